"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, bootstrap_database
from .services.analytics import AnalyticsService
from .services.clock import Clock, system_clock
from .services.habits import HabitService
from .services.locks import UserLockRegistry
from .services.streaks import StreakEngine


@dataclass
class AppContext:
    """Configuration, database handles, and the services built on them."""

    config: BaseConfig
    engine: Engine
    session_factory: SessionFactory
    clock: Clock
    streaks: StreakEngine
    habits: HabitService
    analytics: AnalyticsService


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    clock: Optional[Clock] = None,
    locks: Optional[UserLockRegistry] = None,
) -> AppContext:
    """Create the database schema and wire services sharing one clock and time zone."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)
    tz = config.TIMEZONE
    clock = clock or system_clock(tz)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        clock=clock,
        streaks=StreakEngine(session_factory, clock=clock, tz=tz, locks=locks),
        habits=HabitService(session_factory, clock=clock, tz=tz),
        analytics=AnalyticsService(
            session_factory, clock=clock, tz=tz, window_days=config.ANALYTICS_WINDOW_DAYS
        ),
    )
