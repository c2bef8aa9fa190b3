"""Habit repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.habit import Habit


class HabitRepository(Protocol):
    """Repository for managing habit entities, always scoped to an owner."""

    def get_by_id(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID if ``user_id`` owns it."""
        ...

    def list_for_user(self, *, user_id: int) -> list[Habit]:
        """List every habit owned by a user."""
        ...

    def count_for_user(self, *, user_id: int) -> int:
        """Count habits owned by a user."""
        ...

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit."""
        ...

    def update(self, habit: Habit, *, user_id: int) -> Habit:
        """Persist changes to an existing habit."""
        ...

    def update_streak(self, habit: Habit, streak: int) -> Habit:
        """Set the habit's own streak counter."""
        ...

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete a habit and its completions; False when nothing matched."""
        ...
