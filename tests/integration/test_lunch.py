from datetime import datetime, timedelta, timezone, time

import pytest

from statebot.lunch.handlers import create_main_handler, MAIN_HANDLER_ID
from statebot.lunch.notifier import LunchNotifier
from statebot.lunch.schedule import LunchSchedule, LunchSlot, format_duration
from statebot.bot.keyboards import InlineKeyboard, ReplyKeyboard

from conftest import GROUP_CHAT_ID


# --- Test Configuration ---
pytest_plugins = ('pytest_asyncio',)

GROUPS = [-1001, -1002]


def utc(hour, minute=0, day=1):
    return datetime(2024, 5, day, hour, minute, tzinfo=timezone.utc)


class FakeClock:
    """Adjustable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    # 12:10 in the office (UTC+3)
    return FakeClock(utc(9, 10))


@pytest.fixture
def schedule(clock):
    return LunchSchedule(utc_offset=3, clock=clock)


@pytest.fixture
def lunch_bot(stateful, schedule):
    stateful.register(MAIN_HANDLER_ID, create_main_handler(schedule, bot_username="lunch_bot"))
    return stateful


# --- Schedule ---

def test_format_duration():
    assert format_duration(timedelta(0)) == "no time"
    assert format_duration(timedelta(seconds=-5)) == "no time"
    assert format_duration(timedelta(seconds=1)) == "1 second"
    assert format_duration(timedelta(minutes=20)) == "20 minutes"
    assert format_duration(timedelta(hours=2, minutes=5, seconds=9)) == "2 hours, 5 minutes"
    assert format_duration(timedelta(days=1, hours=2, minutes=3)) == "1 day, 2 hours"
    # empty units are skipped
    assert format_duration(timedelta(hours=1, seconds=5)) == "1 hour, 5 seconds"
    assert format_duration(timedelta(days=2, seconds=1)) == "2 days, 1 second"


def test_slot_dates_roll_over_to_tomorrow():
    slot = LunchSlot(start=time(12, 30), end=time(13, 0))
    tz = timezone(timedelta(hours=3))

    before = datetime(2024, 5, 1, 12, 10, tzinfo=tz)
    during = datetime(2024, 5, 1, 12, 40, tzinfo=tz)

    assert slot.start_date(before) == datetime(2024, 5, 1, 12, 30, tzinfo=tz)
    assert slot.start_date(during) == datetime(2024, 5, 2, 12, 30, tzinfo=tz)
    assert slot.end_date(during) == datetime(2024, 5, 1, 13, 0, tzinfo=tz)
    assert slot.is_ongoing(during)
    assert not slot.is_ongoing(before)
    assert not slot.is_ongoing(datetime(2024, 5, 1, 13, 0, tzinfo=tz))
    assert slot.format() == "12:30 - 13:00"


def test_schedule_uses_office_time(schedule, clock):
    assert schedule.current_time.hour == 12
    assert schedule.current_lunch is None
    assert schedule.closest_lunch.strftime("%H:%M") == "12:30"
    assert schedule.time_until(schedule.closest_lunch) == timedelta(minutes=20)

    clock.now = utc(9, 40)
    assert schedule.current_lunch == LunchSlot(start=time(12, 30), end=time(13, 0))
    assert schedule.closest_lunch.strftime("%H:%M") == "16:00"


def test_closest_lunch_after_the_last_one_is_tomorrow(schedule, clock):
    clock.now = utc(19, 0)  # 22:00 in the office

    closest = schedule.closest_lunch

    assert (closest.day, closest.hour, closest.minute) == (2, 8, 30)
    assert format_duration(schedule.time_until(closest)) == "10 hours, 30 minutes"


# --- Main handler ---

@pytest.mark.asyncio
@pytest.mark.parametrize("command", ["/lunch", "/lunch@lunch_bot", "🍽 Next lunch"])
async def test_next_lunch(lunch_bot, transport, message_update, command):
    await lunch_bot.handle_update(message_update(command))

    assert transport.last_sent[:2] == (GROUP_CHAT_ID, "🍽 Next lunch is in 20 minutes at 12:30")


@pytest.mark.asyncio
async def test_lunch_during_a_lunch(lunch_bot, transport, clock, message_update):
    clock.now = utc(9, 45)

    await lunch_bot.handle_update(message_update("/lunch"))

    assert transport.last_sent[1] == "🍽 Lunch ends in 15 minutes at 13:00"


@pytest.mark.asyncio
async def test_other_messages_are_ignored(lunch_bot, transport, repo, message_update):
    await lunch_bot.handle_update(message_update("hello there"))
    await lunch_bot.handle_update(message_update("/lunch@other_bot"))

    assert transport.sent == []
    assert len(repo.states_of(GROUP_CHAT_ID)) == 1


@pytest.mark.asyncio
async def test_list_sends_paginated_slots(lunch_bot, transport, message_update):
    await lunch_bot.handle_update(message_update("/list@lunch_bot"))

    _, text, keyboard = transport.last_sent
    assert text == "🍽 List of all lunches for the day:"
    assert isinstance(keyboard, InlineKeyboard)
    assert keyboard.buttons == [
        ("1. 08:30 - 09:00 (in 20 hours, 20 minutes)", "lunch:0"),
        ("2. 12:30 - 13:00 (in 20 minutes)", "lunch:1"),
        ("3. 16:00 - 16:30 (in 3 hours, 50 minutes)", "lunch:2"),
        ("1/2", "stinternal-paginator:0"),
        ("Next ▶", "stinternal-paginator:1"),
    ]


@pytest.mark.asyncio
async def test_slot_details_keep_the_menu(lunch_bot, transport, message_update, callback_update):
    await lunch_bot.handle_update(message_update("/list"))
    _, _, menu = transport.last_sent

    await lunch_bot.handle_update(callback_update("lunch:2", message_id=1000))

    chat_id, message_id, text, keyboard = transport.edits[-1]
    assert (chat_id, message_id) == (GROUP_CHAT_ID, 1000)
    assert text == "🍽 Lunch 16:00 - 16:30 starts in 3 hours, 50 minutes"
    assert keyboard == menu


@pytest.mark.asyncio
async def test_second_page_of_the_list(lunch_bot, transport, message_update, callback_update):
    await lunch_bot.handle_update(message_update("/list"))

    await lunch_bot.handle_update(callback_update("stinternal-paginator:1", message_id=1000))

    _, _, _, keyboard = transport.edits[-1]
    assert keyboard.buttons == [
        ("4. 19:00 - 19:30 (in 6 hours, 50 minutes)", "lunch:3"),
        ("5. 21:00 - 21:30 (in 8 hours, 50 minutes)", "lunch:4"),
        ("◀ Previous", "stinternal-paginator:0"),
        ("2/2", "stinternal-paginator:1"),
    ]


@pytest.mark.asyncio
async def test_menu_lists_visible_commands(lunch_bot, transport, message_update):
    await lunch_bot.handle_update(message_update("/menu"))

    _, _, keyboard = transport.last_sent
    assert isinstance(keyboard, ReplyKeyboard)
    assert keyboard.labels == ["🍽 Next lunch", "📋 Schedule"]


# --- Notifier ---

@pytest.fixture
def notifier(transport, schedule):
    return LunchNotifier(transport, schedule, GROUPS, interval=timedelta(minutes=15))


@pytest.mark.asyncio
async def test_no_reminder_when_lunch_is_far(notifier, transport, clock):
    clock.now = utc(8, 0)  # 11:00

    delay = await notifier.check_once()

    assert delay == timedelta(minutes=15)
    assert transport.sent == []


@pytest.mark.asyncio
async def test_reminder_before_lunch(notifier, transport):
    delay = await notifier.check_once()

    assert delay == timedelta(minutes=15)
    assert [(chat_id, text) for chat_id, text, _ in transport.sent] == [
        (group_id, "🍽 Lunch is coming! Starts in 20 minutes at 12:30") for group_id in GROUPS
    ]


@pytest.mark.asyncio
async def test_reminder_checks_twice_as_often_right_before_lunch(notifier, transport, clock):
    clock.now = utc(9, 25)  # 12:25

    delay = await notifier.check_once()

    assert delay == timedelta(minutes=7, seconds=30)
    assert len(transport.sent) == len(GROUPS)


@pytest.mark.asyncio
async def test_ongoing_lunch_is_announced_until_it_ends(notifier, transport, clock):
    clock.now = utc(9, 40)  # 12:40

    delay = await notifier.check_once()

    assert delay == timedelta(minutes=20, seconds=1)
    assert transport.last_sent[1] == "🍽 Lunch is on! Everybody go eat!"


@pytest.mark.asyncio
async def test_lunch_is_announced_once(notifier, transport, clock):
    clock.now = utc(9, 40)  # 12:40
    delay = await notifier.check_once()

    # a wake-up that comes a little early still lands after the lunch
    clock.now += delay - timedelta(milliseconds=500)
    await notifier.check_once()

    announcements = [text for _, text, _ in transport.sent if text.startswith("🍽 Lunch is on!")]
    assert len(announcements) == len(GROUPS)


@pytest.mark.asyncio
async def test_failing_group_does_not_stop_the_others(notifier, transport):
    transport.fail_for = [GROUPS[0]]

    sent = await notifier.send_to_groups("hello", "test")

    assert sent == 1
    assert [chat_id for chat_id, _, _ in transport.sent] == [GROUPS[1]]
