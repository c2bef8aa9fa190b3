"""Repository protocol definitions for domain layer."""

from .completion import CompletionRepository
from .habit import HabitRepository
from .stores import Stores
from .streak import StreakRepository, StreakSnapshot

__all__ = [
    "CompletionRepository",
    "HabitRepository",
    "Stores",
    "StreakRepository",
    "StreakSnapshot",
]
