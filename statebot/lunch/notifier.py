"""
Lunch reminders for group chats.

``LunchNotifier`` runs next to the bot and posts to every configured group:
once when a lunch is going on, and ahead of the next lunch as soon as it is
less than ``WARN_BEFORE`` away.
"""

import asyncio
from datetime import timedelta
from typing import Iterable, List, TYPE_CHECKING

from .schedule import LunchSchedule, format_duration
from ..common.log import log_reminder_sent, log_reminder_next_check, log_unexpected_error, Logger

if TYPE_CHECKING:
    from ..api.base_transport import BaseTransport


WARN_BEFORE = timedelta(minutes=30)
SOON = timedelta(minutes=10)
# sleeping is not aligned with the wall clock, wake up after the lunch is over
END_MARGIN = timedelta(seconds=1)


class LunchNotifier:
    """Background loop announcing lunches."""

    def __init__(self, transport: "BaseTransport", schedule: LunchSchedule, groups: Iterable[int],
                 interval: timedelta = timedelta(minutes=15)):
        self.transport = transport
        self.schedule = schedule
        self.groups: List[int] = list(groups)
        self.interval = interval
        self.logger = Logger("LunchNotifier")

    async def send_to_groups(self, text: str, kind: str) -> int:
        """Send a message to every group. Returns the number of successful sends."""
        sent = 0
        for group_id in self.groups:
            try:
                await self.transport.send_text(group_id, text)
            except Exception as e:
                log_unexpected_error("send_reminder", str(e), {"group_id": group_id})
                continue
            log_reminder_sent(group_id, kind)
            sent += 1
        return sent

    async def check_once(self) -> timedelta:
        """
        Send whatever reminder is due right now.

        Returns:
            Time to wait before the next check
        """
        now = self.schedule.current_time

        current = self.schedule.current_lunch
        if current is not None:
            await self.send_to_groups("🍽 Lunch is on! Everybody go eat!", "ongoing")
            return current.end_date(now) - now + END_MARGIN

        closest = self.schedule.closest_lunch
        left = closest - now
        if left > WARN_BEFORE:
            return self.interval

        await self.send_to_groups(
            f"🍽 Lunch is coming! Starts in {format_duration(left)} at {closest:%H:%M}", "upcoming"
        )
        return self.interval / 2 if left < SOON else self.interval

    async def run(self) -> None:
        """Check forever. A failing check is logged and retried after the regular interval."""
        self.logger.info(f"Reminding {len(self.groups)} group(s)")
        while True:
            try:
                delay = await self.check_once()
            except Exception as e:
                log_unexpected_error("lunch_reminder", str(e))
                delay = self.interval

            seconds = max(delay.total_seconds(), 0)
            log_reminder_next_check(seconds)
            await asyncio.sleep(seconds)
