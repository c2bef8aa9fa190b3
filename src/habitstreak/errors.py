"""Error taxonomy for habit completion and streak operations."""

from __future__ import annotations

from typing import Any, Optional


class HabitStreakError(Exception):
    """Base class for errors surfaced to callers of the streak engine."""

    retryable = False


class HabitNotFound(HabitStreakError):
    """The habit does not exist or is not owned by the caller."""

    def __init__(self, habit_id: int, user_id: int):
        super().__init__(f"Habit {habit_id} not found for user {user_id}")
        self.habit_id = habit_id
        self.user_id = user_id


class DuplicateCompletion(HabitStreakError):
    """The habit already has a completion recorded for the day."""

    def __init__(self, habit_id: int, day: Any):
        super().__init__(f"Habit {habit_id} is already completed for {day}")
        self.habit_id = habit_id
        self.day = day


class MalformedSchedule(HabitStreakError):
    """A weekly schedule is not exactly seven booleans."""

    def __init__(self, reason: str, *, habit_id: Optional[int] = None):
        prefix = f"Habit {habit_id}: " if habit_id is not None else ""
        super().__init__(f"{prefix}malformed weekly schedule ({reason})")
        self.reason = reason
        self.habit_id = habit_id


class StorageFailure(HabitStreakError):
    """The underlying store failed; nothing from the operation was persisted."""

    retryable = True


__all__ = [
    "DuplicateCompletion",
    "HabitNotFound",
    "HabitStreakError",
    "MalformedSchedule",
    "StorageFailure",
]
