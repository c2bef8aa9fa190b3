"""Habit management: creation, edits, deletion, and today's status listing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional

from sqlmodel import select

from ..errors import HabitNotFound
from ..infra.database import SessionFactory
from ..infra.repositories import sqlmodel_stores
from ..logging_config import get_logger
from ..models.habit import Habit
from ..models.user import User
from .clock import Clock, system_clock
from .day_window import day_window, localize
from .schedule import is_due_today, validate_schedule
from .transactions import StoresFactory, session_transaction, store_transaction

logger = get_logger("services.habits")

_REMINDER_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_EDITABLE_FIELDS = {"name", "identity", "difficulty", "reminder_time", "weekly_schedule"}


@dataclass(frozen=True)
class HabitStatus:
    """A habit together with its state for the current day."""

    habit: Habit
    due_today: bool
    completed_today: bool


def _validate_reminder(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not _REMINDER_RE.match(value):
        raise ValueError(f"Reminder time must be HH:MM, got {value!r}")
    return value


def _validate_name(value: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValueError("Habit name cannot be empty")
    if len(name) > 80:
        raise ValueError("Habit name must be at most 80 characters")
    return name


class HabitService:
    """User-facing habit operations outside the streak transitions."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        clock: Optional[Clock] = None,
        tz: tzinfo = timezone.utc,
        stores_factory: StoresFactory = sqlmodel_stores,
    ):
        self.session_factory = session_factory
        self.tz = tz
        self.clock = clock or system_clock(tz)
        self.stores_factory = stores_factory

    def ensure_user(self, username: str) -> User:
        """Fetch a user by username, creating it when missing."""

        username = username.strip()
        if not username:
            raise ValueError("Username cannot be empty")
        with session_transaction(self.session_factory, operation="ensure_user") as session:
            user = session.exec(select(User).where(User.username == username)).first()
            if user is None:
                user = User(username=username)
                session.add(user)
                session.flush()
                session.refresh(user)
                logger.info("User created", extra={"user_id": user.id})
            return user

    def create_habit(
        self,
        user_id: int,
        name: str,
        weekly_schedule: Any,
        *,
        identity: Optional[str] = None,
        difficulty: Optional[str] = None,
        reminder_time: Optional[str] = None,
    ) -> Habit:
        """Create a habit with a validated seven-day schedule and a zero streak."""

        schedule = validate_schedule(weekly_schedule)
        habit = Habit(
            name=_validate_name(name),
            identity=identity,
            difficulty=difficulty,
            reminder_time=_validate_reminder(reminder_time),
            weekly_schedule=list(schedule),
            streak=0,
            user_id=user_id,
        )
        with store_transaction(self.session_factory, self.stores_factory, operation="create_habit") as stores:
            habit = stores.habits.create(habit, user_id=user_id)
        logger.info("Habit created", extra={"habit_id": habit.id, "user_id": user_id})
        return habit

    def update_habit(self, habit_id: int, user_id: int, **changes: Any) -> Habit:
        """Apply user edits; the schedule is re-validated, streaks are not editable."""

        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update habit fields: {', '.join(sorted(unknown))}")
        if "weekly_schedule" in changes:
            changes["weekly_schedule"] = list(validate_schedule(changes["weekly_schedule"], habit_id=habit_id))
        if "reminder_time" in changes:
            changes["reminder_time"] = _validate_reminder(changes["reminder_time"])
        if "name" in changes:
            changes["name"] = _validate_name(changes["name"])

        with store_transaction(self.session_factory, self.stores_factory, operation="update_habit") as stores:
            habit = stores.habits.get_by_id(habit_id, user_id=user_id)
            if habit is None:
                raise HabitNotFound(habit_id, user_id)
            for field, value in changes.items():
                setattr(habit, field, value)
            habit = stores.habits.update(habit, user_id=user_id)
        logger.info("Habit updated", extra={"habit_id": habit_id, "fields": sorted(changes)})
        return habit

    def delete_habit(self, habit_id: int, user_id: int) -> None:
        """Delete a habit together with its completions."""

        with store_transaction(self.session_factory, self.stores_factory, operation="delete_habit") as stores:
            if not stores.habits.delete(habit_id, user_id=user_id):
                raise HabitNotFound(habit_id, user_id)
        logger.info("Habit deleted", extra={"habit_id": habit_id, "user_id": user_id})

    def list_habits(self, user_id: int, now: Optional[datetime] = None) -> list[HabitStatus]:
        """Return every owned habit with today's due/completed flags."""

        window = day_window(localize(now if now is not None else self.clock(), self.tz))
        with store_transaction(self.session_factory, self.stores_factory, operation="list_habits") as stores:
            habits = stores.habits.list_for_user(user_id=user_id)
            completed = stores.completions.completed_habit_ids([h.id for h in habits], window)
            return [
                HabitStatus(
                    habit=habit,
                    due_today=is_due_today(habit, window.weekday),
                    completed_today=habit.id in completed,
                )
                for habit in habits
            ]


__all__ = ["HabitService", "HabitStatus"]
