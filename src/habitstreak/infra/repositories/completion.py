"""SQLModel implementation of the completion ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ...errors import DuplicateCompletion
from ...models.habit import Completion
from ...services.day_window import DayWindow, day_window, to_storage_time


class SQLModelCompletionRepository:
    """Session-bound completion ledger; windows are compared in naive UTC."""

    def __init__(self, session: Session):
        self.session = session

    def _in_window(self, statement, window: DayWindow):
        return statement.where(Completion.completed_at >= window.start_utc()).where(
            Completion.completed_at < window.end_utc()
        )

    def has_completion(self, habit_id: int, window: DayWindow) -> bool:
        """Return whether the habit has a completion inside ``window``."""
        statement = self._in_window(select(Completion.id).where(Completion.habit_id == habit_id), window)
        return self.session.exec(statement.limit(1)).first() is not None

    def completed_habit_ids(self, habit_ids: Iterable[int], window: DayWindow) -> set[int]:
        """Return the subset of ``habit_ids`` completed inside ``window``."""
        ids = list(habit_ids)
        if not ids:
            return set()
        statement = self._in_window(
            select(Completion.habit_id).where(Completion.habit_id.in_(ids)),  # type: ignore[attr-defined]
            window,
        )
        return set(self.session.exec(statement).all())

    def record_completion(self, habit_id: int, user_id: int, instant: datetime) -> int:
        """Insert a completion for the day containing ``instant``."""
        window = day_window(instant)
        if self.has_completion(habit_id, window):
            raise DuplicateCompletion(habit_id, window.day)

        completion = Completion(
            habit_id=habit_id,
            user_id=user_id,
            completed_at=to_storage_time(instant),
            completed_on=window.day,
        )
        self.session.add(completion)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # Another writer got there first; the caller's transaction is rolled back.
            raise DuplicateCompletion(habit_id, window.day) from exc
        return completion.id  # type: ignore[return-value]

    def remove_completion(self, habit_id: int, window: DayWindow) -> bool:
        """Delete the completion inside ``window``; False when none existed."""
        statement = self._in_window(select(Completion).where(Completion.habit_id == habit_id), window)
        rows = list(self.session.exec(statement).all())
        if not rows:
            return False
        for row in rows:
            self.session.delete(row)
        self.session.flush()
        return True

    def count_for_user(
        self,
        *,
        user_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Count a user's completions, optionally bounded to ``[start, end)``."""
        statement = select(func.count()).select_from(Completion).where(Completion.user_id == user_id)
        if start is not None:
            statement = statement.where(Completion.completed_at >= to_storage_time(start))
        if end is not None:
            statement = statement.where(Completion.completed_at < to_storage_time(end))
        return int(self.session.exec(statement).one())

    def list_for_user(self, *, user_id: int, start: datetime, end: datetime) -> list[Completion]:
        """List a user's completions inside ``[start, end)``, oldest first."""
        statement = (
            select(Completion)
            .where(Completion.user_id == user_id)
            .where(Completion.completed_at >= to_storage_time(start))
            .where(Completion.completed_at < to_storage_time(end))
            .order_by(Completion.completed_at)  # type: ignore[arg-type]
        )
        return list(self.session.exec(statement).all())
