"""SQLModel table exports."""

from .habit import Completion, Habit
from .user import User, UserStreak

__all__ = [
    "Completion",
    "Habit",
    "User",
    "UserStreak",
]
