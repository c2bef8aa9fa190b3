"""Pytest configuration and shared fixtures for HabitStreak tests.

Each test gets a throwaway SQLite file with the full schema, so repositories,
services, and the streak engine run against a real database without touching
the application's data directory.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

import pytest
from sqlmodel import select

from habitstreak.config import TestConfig
from habitstreak.infra.database import create_db_engine, create_session_factory, init_database
from habitstreak.infra.repositories import SQLModelStreakRepository
from habitstreak.models import Completion, Habit, User
from habitstreak.services.analytics import AnalyticsService
from habitstreak.services.habits import HabitService
from habitstreak.services.schedule import EVERY_DAY
from habitstreak.services.streaks import StreakEngine

# 2024-01-01 is a Monday (weekday index 1).
MONDAY = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
TUESDAY = datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)

MONDAY_ONLY = [False, True, False, False, False, False, False]
NEVER = [False] * 7


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch) -> TestConfig:
    """Configuration pointing at a per-test data directory."""

    monkeypatch.setenv("HABITSTREAK_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("HABITSTREAK_DATABASE_URL", raising=False)
    monkeypatch.delenv("HABITSTREAK_TIMEZONE", raising=False)
    monkeypatch.delenv("HABITSTREAK_ANALYTICS_WINDOW_DAYS", raising=False)
    return TestConfig()


@pytest.fixture
def db_engine(config):
    """Create an isolated SQLite database file with all tables.

    Yields:
        Engine: engine bound to the test database
    """
    engine = create_db_engine(config)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Factory returning transactional session scopes, as the services expect."""

    return create_session_factory(db_engine)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(session_factory):
    """Factory for persisted users."""

    def _create_user(username: str = "tester") -> User:
        with session_factory() as session:
            existing = session.exec(select(User).where(User.username == username)).first()
            if existing:
                return existing
            row = User(username=username)
            session.add(row)
            session.flush()
            session.refresh(row)
            return row

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Default user for scoping data."""

    return user_factory("tester")


@pytest.fixture
def habit_factory(session_factory, user):
    """Factory for habits written straight to the database.

    Bypasses schedule validation so tests can plant corrupt rows.
    """

    def _create_habit(
        name: str = "Read",
        weekly_schedule=None,
        streak: int = 0,
        owner: Optional[User] = None,
    ) -> Habit:
        with session_factory() as session:
            habit = Habit(
                name=name,
                weekly_schedule=list(EVERY_DAY) if weekly_schedule is None else weekly_schedule,
                streak=streak,
                user_id=(owner or user).id,
            )
            session.add(habit)
            session.flush()
            session.refresh(habit)
            return habit

    return _create_habit


@pytest.fixture
def completion_factory(session_factory):
    """Plant a completion row without going through the engine."""

    def _create_completion(habit: Habit, at: datetime) -> Completion:
        with session_factory() as session:
            row = Completion(
                habit_id=habit.id,
                user_id=habit.user_id,
                completed_at=at.astimezone(timezone.utc).replace(tzinfo=None),
                completed_on=at.date(),
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return row

    return _create_completion


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def engine(session_factory) -> StreakEngine:
    return StreakEngine(session_factory, tz=timezone.utc)


@pytest.fixture
def habit_service(session_factory) -> HabitService:
    return HabitService(session_factory, tz=timezone.utc)


@pytest.fixture
def analytics_service(session_factory) -> AnalyticsService:
    return AnalyticsService(session_factory, tz=timezone.utc, window_days=7)


# =============================================================================
# Readers
# =============================================================================


@pytest.fixture
def read_aggregate(session_factory):
    """Return ``(current_streak, longest_streak)`` for a user."""

    def _read(user_id: int) -> tuple[int, int]:
        with session_factory() as session:
            snapshot = SQLModelStreakRepository(session).get(user_id)
            return snapshot.current_streak, snapshot.longest_streak

    return _read


@pytest.fixture
def read_habit(session_factory):
    def _read(habit_id: int) -> Habit:
        with session_factory() as session:
            return session.get(Habit, habit_id)

    return _read


@pytest.fixture
def count_completions(session_factory):
    def _count(habit_id: int, day: Optional[date] = None) -> int:
        with session_factory() as session:
            statement = select(Completion).where(Completion.habit_id == habit_id)
            if day is not None:
                statement = statement.where(Completion.completed_on == day)
            return len(session.exec(statement).all())

    return _count
