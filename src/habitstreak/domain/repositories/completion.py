"""Completion ledger protocol."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Optional, Protocol

from ...models.habit import Completion

if TYPE_CHECKING:  # pragma: no cover
    from ...services.day_window import DayWindow


class CompletionRepository(Protocol):
    """Append-only record of completion events, queried by habit and day window."""

    def has_completion(self, habit_id: int, window: DayWindow) -> bool:
        """Return whether the habit has a completion inside ``window``."""
        ...

    def completed_habit_ids(self, habit_ids: Iterable[int], window: DayWindow) -> set[int]:
        """Return the subset of ``habit_ids`` completed inside ``window``."""
        ...

    def record_completion(self, habit_id: int, user_id: int, instant: datetime) -> int:
        """Insert a completion; raises ``DuplicateCompletion`` if one exists that day."""
        ...

    def remove_completion(self, habit_id: int, window: DayWindow) -> bool:
        """Delete the completion inside ``window``; False when none existed."""
        ...

    def count_for_user(
        self,
        *,
        user_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Count a user's completions, optionally bounded to ``[start, end)``."""
        ...

    def list_for_user(self, *, user_id: int, start: datetime, end: datetime) -> list[Completion]:
        """List a user's completions inside ``[start, end)``."""
        ...
