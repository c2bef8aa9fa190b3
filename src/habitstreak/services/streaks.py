"""Habit completion and aggregate streak consistency.

Every mutating call runs under the user's lock and inside a single transaction
covering the completion ledger, the habit's streak counter, and the user's
aggregate streak, so either all three reflect the event or none do.

The aggregate moves only when the day changes state:

* completion advances ``current_streak`` when the day goes from "not fully
  satisfied" to "fully satisfied";
* reversal retreats it when the day goes from "fully satisfied" to "not fully
  satisfied".

A day is fully satisfied when every habit due on its weekday has a completion
inside the day window. A day with nothing due is satisfied both before and
after any event, so it never moves the aggregate.

The aggregate records the last day it counted. A day counts at most once even
when a change to the user's habits re-opens it, and a reversal only retreats a
day that was counted.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Optional

from ..domain.repositories.stores import Stores
from ..errors import DuplicateCompletion, HabitNotFound
from ..infra.database import SessionFactory
from ..infra.repositories import sqlmodel_stores
from ..logging_config import get_logger
from ..models.habit import Habit
from .clock import Clock, system_clock
from .day_window import DayWindow, day_window, localize
from .locks import UserLockRegistry
from .schedule import is_due_today
from .transactions import StoresFactory, store_transaction

logger = get_logger("services.streaks")


def due_habits(habits: list[Habit], window: DayWindow) -> list[Habit]:
    """Return the habits due on the window's weekday."""

    return [habit for habit in habits if is_due_today(habit, window.weekday)]


def day_fully_satisfied(stores: Stores, user_id: int, window: DayWindow) -> bool:
    """Return whether every habit due in ``window`` has a completion in it."""

    due = due_habits(stores.habits.list_for_user(user_id=user_id), window)
    if not due:
        return True
    completed = stores.completions.completed_habit_ids([h.id for h in due], window)
    return all(habit.id in completed for habit in due)


class StreakEngine:
    """Applies completion and reversal events to habit and aggregate streaks."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        clock: Optional[Clock] = None,
        tz: tzinfo = timezone.utc,
        locks: Optional[UserLockRegistry] = None,
        stores_factory: StoresFactory = sqlmodel_stores,
    ):
        self.session_factory = session_factory
        self.tz = tz
        self.clock = clock or system_clock(tz)
        self.locks = locks or UserLockRegistry()
        self.stores_factory = stores_factory

    def _window(self, now: Optional[datetime]) -> tuple[datetime, DayWindow]:
        # One window per call, so an operation straddling midnight stays on one day.
        instant = localize(now if now is not None else self.clock(), self.tz)
        return instant, day_window(instant)

    def _resolve(self, stores: Stores, habit_id: int, user_id: int) -> Habit:
        habit = stores.habits.get_by_id(habit_id, user_id=user_id)
        if habit is None:
            raise HabitNotFound(habit_id, user_id)
        return habit

    def complete_habit(self, habit_id: int, user_id: int, now: Optional[datetime] = None) -> Habit:
        """Record today's completion of a habit and advance streaks.

        Raises:
            HabitNotFound: the habit is absent or owned by someone else.
            DuplicateCompletion: the habit is already completed today.
            MalformedSchedule: one of the user's habits has a corrupt schedule.
            StorageFailure: the store failed; nothing was persisted.
        """

        instant, window = self._window(now)
        with self.locks.hold(user_id), store_transaction(
            self.session_factory, self.stores_factory, operation="complete_habit"
        ) as stores:
            habit = self._resolve(stores, habit_id, user_id)
            aggregate = stores.streaks.get(user_id, for_update=True)
            was_satisfied = day_fully_satisfied(stores, user_id, window)

            try:
                stores.completions.record_completion(habit.id, user_id, instant)
            except DuplicateCompletion:
                logger.info(
                    "Habit already completed today",
                    extra={"habit_id": habit_id, "user_id": user_id, "day": window.day},
                )
                raise
            stores.habits.update_streak(habit, habit.streak + 1)

            now_satisfied = day_fully_satisfied(stores, user_id, window)
            if now_satisfied and not was_satisfied and not aggregate.counts(window.day):
                aggregate = stores.streaks.save(user_id, aggregate.advanced(window.day))
                logger.info(
                    "Day fully satisfied; aggregate streak advanced",
                    extra={
                        "user_id": user_id,
                        "day": window.day,
                        "current_streak": aggregate.current_streak,
                        "longest_streak": aggregate.longest_streak,
                    },
                )

            logger.info(
                "Habit completed",
                extra={"habit_id": habit.id, "user_id": user_id, "habit_streak": habit.streak},
            )
            return habit

    def uncomplete_habit(self, habit_id: int, user_id: int, now: Optional[datetime] = None) -> Habit:
        """Reverse today's completion of a habit.

        Reversing a habit with no completion today is a no-op. ``longest_streak``
        is never reduced.

        Raises:
            HabitNotFound: the habit is absent or owned by someone else.
            MalformedSchedule: one of the user's habits has a corrupt schedule.
            StorageFailure: the store failed; nothing was persisted.
        """

        instant, window = self._window(now)
        with self.locks.hold(user_id), store_transaction(
            self.session_factory, self.stores_factory, operation="uncomplete_habit"
        ) as stores:
            habit = self._resolve(stores, habit_id, user_id)
            aggregate = stores.streaks.get(user_id, for_update=True)
            was_satisfied = day_fully_satisfied(stores, user_id, window)

            if not stores.completions.remove_completion(habit.id, window):
                logger.info(
                    "Nothing to reverse for habit today",
                    extra={"habit_id": habit_id, "user_id": user_id, "day": window.day},
                )
                return habit

            if habit.streak > 0:
                stores.habits.update_streak(habit, habit.streak - 1)

            now_satisfied = day_fully_satisfied(stores, user_id, window)
            if was_satisfied and not now_satisfied and aggregate.counts(window.day):
                aggregate = stores.streaks.save(user_id, aggregate.retreated())
                logger.info(
                    "Day no longer fully satisfied; aggregate streak retreated",
                    extra={
                        "user_id": user_id,
                        "day": window.day,
                        "current_streak": aggregate.current_streak,
                        "longest_streak": aggregate.longest_streak,
                    },
                )

            logger.info(
                "Habit completion reversed",
                extra={"habit_id": habit.id, "user_id": user_id, "habit_streak": habit.streak},
            )
            return habit


__all__ = ["StreakEngine", "day_fully_satisfied", "due_habits"]
