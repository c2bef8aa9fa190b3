"""Aggregate streak store protocol."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol


@dataclass(frozen=True)
class StreakSnapshot:
    """A user's aggregate streak counters.

    ``last_satisfied_on`` is the most recent day counted in ``current_streak``,
    so a day that is re-opened and finished again is not counted twice.
    """

    current_streak: int = 0
    longest_streak: int = 0
    last_satisfied_on: Optional[date] = None

    def counts(self, day: date) -> bool:
        return self.last_satisfied_on == day

    def advanced(self, day: Optional[date] = None) -> "StreakSnapshot":
        current = self.current_streak + 1
        return StreakSnapshot(current, max(self.longest_streak, current), day)

    def retreated(self) -> "StreakSnapshot":
        return StreakSnapshot(max(0, self.current_streak - 1), self.longest_streak)


class StreakRepository(Protocol):
    """Per-user ``(current_streak, longest_streak)`` storage."""

    def get(self, user_id: int, *, for_update: bool = False) -> StreakSnapshot:
        """Return the user's counters, ``(0, 0)`` when nothing is stored yet."""
        ...

    def save(self, user_id: int, snapshot: StreakSnapshot) -> StreakSnapshot:
        """Persist the user's counters."""
        ...
