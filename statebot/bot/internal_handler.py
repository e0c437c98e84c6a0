"""
Built-in handler module.

Its methods are tried before the conversation's own module for every update,
so framework mechanics like pagination work in any module.
"""

from typing import TYPE_CHECKING

from .handler_module import HandlerModule
from .keyboards import InlineKeyboard
from .paginator import PaginatorData, PAGINATOR_KEY, PAGINATOR_MARKER, parse_page
from ..common.log import log_paginator_page_changed

if TYPE_CHECKING:
    from .update_handler import UpdateHandler


INTERNAL_HANDLER_ID = "__internal__"

internal_handler = HandlerModule(INTERNAL_HANDLER_ID, "Framework-level behaviour")


@internal_handler.internal(PAGINATOR_MARKER)
async def paginator(handler: "UpdateHandler") -> None:
    try:
        page = parse_page(handler.update.callback_data or "")
    except ValueError:
        return

    data = handler.state.get_state(PAGINATOR_KEY, PaginatorData)
    if data is None or not data.can_switch_to(page):
        return

    old_page = data.page
    data.page = page
    handler.state.set_state(PAGINATOR_KEY, data)
    await handler.apply_changes()
    log_paginator_page_changed(handler.chat_id, old_page, page)

    await handler.client.edit_buttons(
        handler.chat_id, handler.message_id, InlineKeyboard.from_pairs(data.get_buttons())
    )
