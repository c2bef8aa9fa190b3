"""Injectable time providers."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Callable

Clock = Callable[[], datetime]


def system_clock(tz: tzinfo = timezone.utc) -> Clock:
    """Return a clock reading the wall time in ``tz``."""

    def _now() -> datetime:
        return datetime.now(tz)

    return _now


def fixed_clock(instant: datetime) -> Clock:
    """Return a clock frozen at ``instant`` (tests, replays)."""

    return lambda: instant


__all__ = ["Clock", "fixed_clock", "system_clock"]
