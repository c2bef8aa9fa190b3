"""Calendar day boundaries and weekday numbering.

A day window is the half-open interval ``[midnight, next midnight)`` of the
calendar day containing an instant, expressed in the instant's own time zone.
Weekdays are numbered 0 = Sunday through 6 = Saturday.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional

WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


@dataclass(frozen=True)
class DayWindow:
    """Half-open interval covering one calendar day."""

    day: date
    start: datetime
    end: datetime

    def __contains__(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def weekday(self) -> int:
        return weekday_index(self.day)

    def shift(self, days: int) -> "DayWindow":
        """Return the window ``days`` calendar days away, in the same zone."""

        return day_window_for_date(self.day + timedelta(days=days), self.start.tzinfo)

    def start_utc(self) -> datetime:
        return to_storage_time(self.start)

    def end_utc(self) -> datetime:
        return to_storage_time(self.end)


def localize(instant: datetime, tz: tzinfo) -> datetime:
    """Express ``instant`` in ``tz``; naive instants are taken to be local to ``tz``."""

    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def day_window_for_date(day: date, tz: Optional[tzinfo]) -> DayWindow:
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return DayWindow(day=day, start=start, end=end)


def day_window(instant: datetime) -> DayWindow:
    """Return the day window containing ``instant``."""

    return day_window_for_date(instant.date(), instant.tzinfo)


def weekday_index(instant: date) -> int:
    """Return 0 for Sunday through 6 for Saturday.

    Accepts a ``date`` or ``datetime``; for a datetime the local calendar day is used.
    """

    return instant.isoweekday() % 7


def to_storage_time(instant: datetime) -> datetime:
    """Convert to the naive-UTC form used for persisted timestamps."""

    if instant.tzinfo is None:
        return instant
    return instant.astimezone(timezone.utc).replace(tzinfo=None)


__all__ = [
    "DayWindow",
    "WEEKDAY_NAMES",
    "day_window",
    "day_window_for_date",
    "localize",
    "to_storage_time",
    "weekday_index",
]
