"""Weekly schedule validation and due-day evaluation."""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple, Union

from ..errors import MalformedSchedule
from ..logging_config import get_logger
from ..models.habit import Habit

logger = get_logger("services.schedule")

DAYS_PER_WEEK = 7

WeeklySchedule = Tuple[bool, bool, bool, bool, bool, bool, bool]

EVERY_DAY: WeeklySchedule = (True,) * DAYS_PER_WEEK  # type: ignore[assignment]


def validate_schedule(value: Any, *, habit_id: Optional[int] = None) -> WeeklySchedule:
    """Return ``value`` as a 7-tuple of booleans or raise ``MalformedSchedule``.

    Only real booleans are accepted; ``0``/``1`` or strings are rejected rather
    than coerced.
    """

    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise MalformedSchedule(f"expected a sequence, got {type(value).__name__}", habit_id=habit_id)
    if len(value) != DAYS_PER_WEEK:
        raise MalformedSchedule(f"expected {DAYS_PER_WEEK} entries, got {len(value)}", habit_id=habit_id)
    for index, entry in enumerate(value):
        if not isinstance(entry, bool):
            raise MalformedSchedule(
                f"entry {index} is {type(entry).__name__}, not bool", habit_id=habit_id
            )
    return tuple(value)  # type: ignore[return-value]


def schedule_from_days(days: Iterable[int]) -> WeeklySchedule:
    """Build a schedule from weekday indexes (0 = Sunday)."""

    selected = set()
    for day in days:
        if not 0 <= day < DAYS_PER_WEEK:
            raise MalformedSchedule(f"weekday {day} out of range 0-6")
        selected.add(day)
    return tuple(index in selected for index in range(DAYS_PER_WEEK))  # type: ignore[return-value]


def is_due_today(habit: Union[Habit, WeeklySchedule, list], weekday: int) -> bool:
    """Return whether the habit (or bare schedule) is due on ``weekday``."""

    if not 0 <= weekday < DAYS_PER_WEEK:
        raise ValueError(f"weekday must be in 0-6, got {weekday}")
    if isinstance(habit, Habit):
        try:
            schedule = validate_schedule(habit.weekly_schedule, habit_id=habit.id)
        except MalformedSchedule:
            logger.error(
                "Stored habit has a malformed weekly schedule",
                extra={"habit_id": habit.id, "user_id": habit.user_id},
            )
            raise
    else:
        schedule = validate_schedule(habit)
    return schedule[weekday]


__all__ = [
    "DAYS_PER_WEEK",
    "EVERY_DAY",
    "WeeklySchedule",
    "is_due_today",
    "schedule_from_days",
    "validate_schedule",
]
