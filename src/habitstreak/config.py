"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from datetime import timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def resolve_timezone(name: str) -> tzinfo:
    """Return a tzinfo for an IANA zone name, with UTC handled without tzdata."""

    if name.strip().upper() in {"UTC", "Z", "ETC/UTC"}:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitStreak"
    DB_FILENAME = "habitstreak.db"
    DEFAULT_WINDOW_DAYS = 7
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HABITSTREAK_DEV_MODE", default=True)
        self.SQL_ECHO = _env_bool("HABITSTREAK_SQL_ECHO", default=False)
        self.DATABASE_URL = os.getenv("HABITSTREAK_DATABASE_URL", self._build_sqlite_url())
        self.TIMEZONE_NAME = os.getenv("HABITSTREAK_TIMEZONE", "UTC")
        self.TIMEZONE = resolve_timezone(self.TIMEZONE_NAME)
        self.ANALYTICS_WINDOW_DAYS = _env_int(
            "HABITSTREAK_ANALYTICS_WINDOW_DAYS", self.DEFAULT_WINDOW_DAYS
        )
        if self.ANALYTICS_WINDOW_DAYS < 1:
            raise ValueError("HABITSTREAK_ANALYTICS_WINDOW_DAYS must be at least 1.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("HABITSTREAK_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {"echo": self.SQL_ECHO}
        if self.is_sqlite:
            # Engine calls arrive from worker threads; the per-user lock serializes writers.
            engine_options["connect_args"] = {"check_same_thread": False, "timeout": 30}
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration: local SQLite and the verbose console format."""

    def __init__(self) -> None:
        super().__init__()
        self.DEV_MODE = True


class TestConfig(BaseConfig):
    """Configuration used by the test-suite; callers point DATA_DIR at a temp dir."""

    __test__ = False  # keep pytest from collecting this class
