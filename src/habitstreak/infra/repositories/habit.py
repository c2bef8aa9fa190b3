"""SQLModel implementation of the habit repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from ...models.habit import Habit


class SQLModelHabitRepository:
    """Session-bound habit repository; the caller owns the transaction."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, habit_id: int, *, user_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID if ``user_id`` owns it."""
        return self.session.exec(
            select(Habit).where(Habit.id == habit_id, Habit.user_id == user_id)
        ).first()

    def list_for_user(self, *, user_id: int) -> list[Habit]:
        """List every habit owned by a user, oldest first."""
        statement = select(Habit).where(Habit.user_id == user_id).order_by(Habit.id)  # type: ignore
        return list(self.session.exec(statement).all())

    def count_for_user(self, *, user_id: int) -> int:
        """Count habits owned by a user."""
        statement = select(func.count()).select_from(Habit).where(Habit.user_id == user_id)
        return int(self.session.exec(statement).one())

    def create(self, habit: Habit, *, user_id: int) -> Habit:
        """Create a new habit."""
        habit.user_id = user_id
        self.session.add(habit)
        self.session.flush()
        self.session.refresh(habit)
        return habit

    def update(self, habit: Habit, *, user_id: int) -> Habit:
        """Persist changes to an existing habit."""
        habit.user_id = user_id
        self.session.add(habit)
        self.session.flush()
        self.session.refresh(habit)
        return habit

    def update_streak(self, habit: Habit, streak: int) -> Habit:
        """Set the habit's own streak counter."""
        if streak < 0:
            raise ValueError("Habit streak cannot be negative")
        habit.streak = streak
        self.session.add(habit)
        self.session.flush()
        return habit

    def delete(self, habit_id: int, *, user_id: int) -> bool:
        """Delete a habit; completions go with it through the ORM cascade."""
        habit = self.get_by_id(habit_id, user_id=user_id)
        if habit is None:
            return False
        self.session.delete(habit)
        self.session.flush()
        return True
