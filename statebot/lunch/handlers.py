"""
Handler modules of the lunch bot.

The main module answers schedule commands in group chats. Commands are
accepted with and without the ``@<bot username>`` suffix Telegram adds in
groups. Any other message is ignored by a silent default.
"""

from typing import List, Optional, TYPE_CHECKING

from ..bot.conditions import MessageCondition, When
from ..bot.handler_module import HandlerModule
from ..bot.keyboards import InlineKeyboard
from ..bot.paginator import PaginatorData, PAGINATOR_KEY
from .schedule import LunchSchedule, format_duration

if TYPE_CHECKING:
    from ..bot.update_handler import UpdateHandler


MAIN_HANDLER_ID = "main"
SLOT_CALLBACK_PREFIX = "lunch:"
LIST_PAGE_SIZE = 3


def command_variants(command: str, bot_username: Optional[str]) -> List[str]:
    variants = [command]
    if bot_username:
        variants.append(f"{command}@{bot_username.lstrip('@')}")
    return variants


def is_slot_callback(handler: "UpdateHandler") -> bool:
    data = handler.update.callback_data
    return data is not None and data.startswith(SLOT_CALLBACK_PREFIX)


def create_main_handler(schedule: LunchSchedule, bot_username: Optional[str] = None) -> HandlerModule:
    """Build the main handler module for a schedule."""
    module = HandlerModule(MAIN_HANDLER_ID, "Lunch schedule")

    @module.default()
    async def idle(handler: "UpdateHandler") -> None:
        return None

    async def next_lunch(handler: "UpdateHandler") -> None:
        current = schedule.current_lunch
        if current is not None:
            end = current.end_date(schedule.current_time)
            await handler.send_message(
                f"🍽 Lunch ends in {format_duration(schedule.time_until(end))} at {current.end:%H:%M}"
            )
            return

        closest = schedule.closest_lunch
        await handler.send_message(
            f"🍽 Next lunch is in {format_duration(schedule.time_until(closest))} at {closest:%H:%M}"
        )

    async def lunch_list(handler: "UpdateHandler") -> None:
        now = schedule.current_time
        buttons = []
        for i, slot in enumerate(schedule.slots):
            left = format_duration(slot.start_date(now) - now)
            buttons.append((f"{i + 1}. {slot.format()} (in {left})", f"{SLOT_CALLBACK_PREFIX}{i}"))
        await handler.send_paginated("🍽 List of all lunches for the day:", buttons, page_size=LIST_PAGE_SIZE)

    async def menu(handler: "UpdateHandler") -> None:
        await handler.send_message("🍽 What do you want to know?", await handler.generate_reply())

    for command, func in (("/lunch", next_lunch), ("/list", lunch_list), ("/menu", menu)):
        for text in command_variants(command, bot_username):
            module.add_method(func, [MessageCondition(text, hidden=True)])

    module.add_method(next_lunch, [MessageCondition("🍽 Next lunch")])
    module.add_method(lunch_list, [MessageCondition("📋 Schedule\n")])

    @module.handler(When(is_slot_callback))
    async def slot_details(handler: "UpdateHandler") -> None:
        try:
            index = int(handler.update.callback_data[len(SLOT_CALLBACK_PREFIX):])
            slot = schedule.slots[index]
        except (ValueError, IndexError):
            return

        now = schedule.current_time
        if slot.is_ongoing(now):
            text = f"🍽 Lunch {slot.format()} is happening right now!"
        else:
            text = f"🍽 Lunch {slot.format()} starts in {format_duration(slot.start_date(now) - now)}"

        data = handler.state.get_state(PAGINATOR_KEY, PaginatorData)
        keyboard = InlineKeyboard.from_pairs(data.get_buttons()) if data is not None else None
        await handler.edit_message(text, keyboard)

    return module
