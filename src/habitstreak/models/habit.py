"""Habit and completion tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Habit(SQLModel, table=True):
    """A recurring habit due on selected weekdays."""

    __tablename__: ClassVar[str] = "habit"
    __table_args__ = (CheckConstraint("streak >= 0", name="ck_habit_streak_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=80)
    identity: Optional[str] = Field(default=None, max_length=120)
    difficulty: Optional[str] = Field(default=None, max_length=32)
    reminder_time: Optional[str] = Field(default=None, max_length=5)
    # Seven booleans, index 0 = Sunday.
    weekly_schedule: list = Field(sa_column=Column(JSON, nullable=False))
    streak: int = Field(default=0, nullable=False)
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime, nullable=False))

    completions: list["Completion"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship(
            "Completion", back_populates="habit", cascade="all, delete-orphan"
        ),
    )

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="habits"))


class Completion(SQLModel, table=True):
    """A single completion event for a habit on a calendar day."""

    __tablename__: ClassVar[str] = "completion"
    __table_args__ = (
        UniqueConstraint("habit_id", "completed_on", name="uq_completion_habit_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    # Naive UTC.
    completed_at: datetime = Field(sa_column=Column(DateTime, nullable=False, index=True))
    completed_on: date = Field(nullable=False)

    habit: "Habit" = Relationship(
        back_populates="completions",
        sa_relationship=relationship("Habit", back_populates="completions"),
    )
