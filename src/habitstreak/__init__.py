"""Habit completion tracking with per-habit and aggregate daily streaks."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .context import AppContext, create_app_context
from .errors import (
    DuplicateCompletion,
    HabitNotFound,
    HabitStreakError,
    MalformedSchedule,
    StorageFailure,
)

__all__ = [
    "AppContext",
    "BaseConfig",
    "DevConfig",
    "DuplicateCompletion",
    "HabitNotFound",
    "HabitStreakError",
    "MalformedSchedule",
    "StorageFailure",
    "create_app_context",
]
