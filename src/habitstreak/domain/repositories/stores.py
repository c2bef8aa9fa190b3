"""Bundle of stores sharing one transaction."""

from __future__ import annotations

from dataclasses import dataclass

from .completion import CompletionRepository
from .habit import HabitRepository
from .streak import StreakRepository


@dataclass
class Stores:
    """Repositories bound to the same session, committed or rolled back together."""

    habits: HabitRepository
    completions: CompletionRepository
    streaks: StreakRepository
