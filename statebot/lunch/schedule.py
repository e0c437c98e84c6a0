"""
Daily lunch schedule.

Lunch slots are fixed times of day in the office time zone (a UTC hour
offset). Dates are computed relative to "now": once a slot's start or end
time has passed today, the next occurrence is tomorrow.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel, Field


class LunchSlot(BaseModel):
    """One daily lunch."""
    start: time = Field(..., description="Start time of day")
    end: time = Field(..., description="End time of day")

    def _next(self, moment: time, now: datetime) -> datetime:
        occurrence = datetime.combine(now.date(), moment, tzinfo=now.tzinfo)
        if now.time() > moment:
            occurrence += timedelta(days=1)
        return occurrence

    def start_date(self, now: datetime) -> datetime:
        """Next start of this lunch."""
        return self._next(self.start, now)

    def end_date(self, now: datetime) -> datetime:
        """Next end of this lunch."""
        return self._next(self.end, now)

    def is_ongoing(self, now: datetime) -> bool:
        return self.start <= now.time() < self.end

    def format(self) -> str:
        return f"{self.start:%H:%M} - {self.end:%H:%M}"


DEFAULT_SLOTS = [
    LunchSlot(start=time(8, 30), end=time(9, 0)),
    LunchSlot(start=time(12, 30), end=time(13, 0)),
    LunchSlot(start=time(16, 0), end=time(16, 30)),
    LunchSlot(start=time(19, 0), end=time(19, 30)),
    LunchSlot(start=time(21, 0), end=time(21, 30)),
]


class LunchSchedule:
    """The lunches of a day and the clock they are measured against."""

    def __init__(self, slots: Optional[List[LunchSlot]] = None, utc_offset: int = 3,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            slots: Lunch slots, defaults to the office schedule
            utc_offset: Office time zone as hours from UTC
            clock: Returns the current UTC time (for tests)
        """
        self.slots = list(slots) if slots is not None else list(DEFAULT_SLOTS)
        self.tz = timezone(timedelta(hours=utc_offset))
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def current_time(self) -> datetime:
        return self.clock().astimezone(self.tz)

    @property
    def current_lunch(self) -> Optional[LunchSlot]:
        now = self.current_time
        return next((slot for slot in self.slots if slot.is_ongoing(now)), None)

    @property
    def closest_lunch(self) -> datetime:
        """Start of the next lunch that has not started yet."""
        now = self.current_time
        return min(slot.start_date(now) for slot in self.slots)

    def time_until(self, moment: datetime) -> timedelta:
        return moment - self.current_time


_UNITS = [
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
]


def format_duration(delta: timedelta, precision: int = 2) -> str:
    """Human readable duration with at most ``precision`` units, e.g. ``2 hours, 5 minutes``."""
    seconds = max(0, int(delta.total_seconds()))
    if seconds == 0:
        return "no time"

    parts = []
    for name, size in _UNITS:
        amount, seconds = divmod(seconds, size)
        # empty units are skipped and do not count towards the precision
        if amount:
            parts.append(f"{amount} {name}{'s' if amount != 1 else ''}")
        if len(parts) == precision:
            break
    return ", ".join(parts)
