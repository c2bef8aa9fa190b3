"""Concrete repository implementations using SQLModel."""

from sqlmodel import Session

from ...domain.repositories.stores import Stores
from .completion import SQLModelCompletionRepository
from .habit import SQLModelHabitRepository
from .streak import SQLModelStreakRepository


def sqlmodel_stores(session: Session) -> Stores:
    """Bind every repository to ``session`` so they share one transaction."""

    return Stores(
        habits=SQLModelHabitRepository(session),
        completions=SQLModelCompletionRepository(session),
        streaks=SQLModelStreakRepository(session),
    )


__all__ = [
    "SQLModelCompletionRepository",
    "SQLModelHabitRepository",
    "SQLModelStreakRepository",
    "sqlmodel_stores",
]
