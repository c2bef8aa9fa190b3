"""SQLModel implementation of the aggregate streak store."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Session, select

from ...domain.repositories.streak import StreakSnapshot
from ...models.user import UserStreak


class SQLModelStreakRepository:
    """Session-bound store for per-user aggregate streak counters."""

    def __init__(self, session: Session):
        self.session = session

    def _row(self, user_id: int, *, for_update: bool = False):
        statement = select(UserStreak).where(UserStreak.user_id == user_id)
        if for_update:
            statement = statement.with_for_update()
        return self.session.exec(statement).first()

    def get(self, user_id: int, *, for_update: bool = False) -> StreakSnapshot:
        """Return the user's counters, ``(0, 0)`` when nothing is stored yet."""
        row = self._row(user_id, for_update=for_update)
        if row is None:
            return StreakSnapshot()
        return StreakSnapshot(row.current_streak, row.longest_streak, row.last_satisfied_on)

    def save(self, user_id: int, snapshot: StreakSnapshot) -> StreakSnapshot:
        """Upsert the user's counters."""
        if snapshot.current_streak < 0 or snapshot.longest_streak < snapshot.current_streak:
            raise ValueError(f"Invalid aggregate streak state: {snapshot}")
        row = self._row(user_id)
        if row is None:
            row = UserStreak(user_id=user_id)
        row.current_streak = snapshot.current_streak
        row.longest_streak = snapshot.longest_streak
        row.last_satisfied_on = snapshot.last_satisfied_on
        row.updated_at = datetime.now(timezone.utc).replace(tzinfo=None)
        self.session.add(row)
        self.session.flush()
        return snapshot
