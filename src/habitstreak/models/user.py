"""User and per-user aggregate streak tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import ClassVar, Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(SQLModel, table=True):
    """Owner of habits. Credentials live with the external auth layer."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(nullable=False, unique=True, index=True, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime, nullable=False))

    habits = Relationship(
        back_populates="user",
        sa_relationship=relationship("Habit", back_populates="user"),
    )


class UserStreak(SQLModel, table=True):
    """Aggregate streak: consecutive days on which every due habit was completed."""

    __tablename__: ClassVar[str] = "user_streak"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_user_streak_current_non_negative"),
        CheckConstraint("longest_streak >= current_streak", name="ck_user_streak_longest_gte_current"),
    )

    user_id: int = Field(foreign_key="user.id", primary_key=True)
    current_streak: int = Field(default=0, nullable=False)
    longest_streak: int = Field(default=0, nullable=False)
    # Local calendar day last counted in current_streak.
    last_satisfied_on: Optional[date] = Field(default=None)
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime, nullable=False))
