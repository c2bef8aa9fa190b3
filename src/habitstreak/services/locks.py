"""Per-user mutual exclusion for read-modify-write streak updates."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Optional


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class UserLockRegistry:
    """Hands out one lock per user id; different users never contend.

    Entries are reference counted and dropped once no thread holds or waits on
    them, so the registry only tracks users with calls in flight.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._guard = threading.Lock()
        self._locks: dict[int, _Entry] = {}
        self.timeout = timeout

    def tracked_users(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, user_id: int) -> _Entry:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = _Entry()
            entry.holders += 1
            return entry

    def _checkin(self, user_id: int, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[user_id]

    @contextmanager
    def hold(self, user_id: int) -> Iterator[None]:
        entry = self._checkout(user_id)
        try:
            acquired = entry.lock.acquire(timeout=-1 if self.timeout is None else self.timeout)
            if not acquired:
                raise TimeoutError(f"Timed out waiting for streak lock of user {user_id}")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(user_id, entry)


__all__ = ["UserLockRegistry"]
