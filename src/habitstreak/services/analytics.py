"""Read-only completion analytics over a trailing window of days."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..infra.database import SessionFactory
from ..infra.repositories import sqlmodel_stores
from .clock import Clock, system_clock
from .day_window import WEEKDAY_NAMES, day_window, localize, weekday_index
from .transactions import StoresFactory, store_transaction

OVERVIEW_DAYS = 30


@dataclass(frozen=True)
class HabitAnalytics:
    weekly_completion_pct: int
    current_streak: int
    longest_streak: int
    total_completed: int
    window_completed: int
    best_day: Optional[str] = None
    worst_day: Optional[str] = None


@dataclass(frozen=True)
class WeeklyReport:
    completions: int
    consistency_pct: int
    summary: str


@dataclass(frozen=True)
class Overview:
    total_habits: int
    total_completions: int
    average_per_day: Decimal


def completion_percentage(completions: int, habits: int, days: int) -> int:
    """Percentage of possible completions, rounded half up; 0 with no habits."""

    possible = habits * days
    if possible <= 0:
        return 0
    pct = Decimal(completions * 100) / Decimal(possible)
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class AnalyticsService:
    """Counts completions in ``[start of today - (N-1) days, start of tomorrow)``."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        clock: Optional[Clock] = None,
        tz: tzinfo = timezone.utc,
        window_days: int = 7,
        stores_factory: StoresFactory = sqlmodel_stores,
    ):
        if window_days < 1:
            raise ValueError("window_days must be at least 1")
        self.session_factory = session_factory
        self.tz = tz
        self.clock = clock or system_clock(tz)
        self.window_days = window_days
        self.stores_factory = stores_factory

    def _bounds(self, now: Optional[datetime]) -> tuple[datetime, datetime, list[int]]:
        today = day_window(localize(now if now is not None else self.clock(), self.tz))
        first = today.shift(-(self.window_days - 1))
        weekdays = [first.shift(offset).weekday for offset in range(self.window_days)]
        return first.start, today.end, weekdays

    def get_analytics(self, user_id: int, now: Optional[datetime] = None) -> HabitAnalytics:
        start, end, weekdays = self._bounds(now)
        with store_transaction(self.session_factory, self.stores_factory, operation="get_analytics") as stores:
            habit_count = stores.habits.count_for_user(user_id=user_id)
            in_window = stores.completions.list_for_user(user_id=user_id, start=start, end=end)
            total = stores.completions.count_for_user(user_id=user_id)
            aggregate = stores.streaks.get(user_id)

        best_day = worst_day = None
        if in_window:
            per_weekday = {day: 0 for day in weekdays}
            for completion in in_window:
                day = weekday_index(completion.completed_on)
                per_weekday[day] = per_weekday.get(day, 0) + 1
            ordered = sorted(per_weekday)
            best = max(ordered, key=lambda d: per_weekday[d])
            worst = min(ordered, key=lambda d: per_weekday[d])
            best_day, worst_day = WEEKDAY_NAMES[best], WEEKDAY_NAMES[worst]

        return HabitAnalytics(
            weekly_completion_pct=completion_percentage(len(in_window), habit_count, self.window_days),
            current_streak=aggregate.current_streak,
            longest_streak=aggregate.longest_streak,
            total_completed=total,
            window_completed=len(in_window),
            best_day=best_day,
            worst_day=worst_day,
        )

    def weekly_report(self, user_id: int, now: Optional[datetime] = None) -> WeeklyReport:
        start, end, _ = self._bounds(now)
        with store_transaction(self.session_factory, self.stores_factory, operation="weekly_report") as stores:
            habit_count = stores.habits.count_for_user(user_id=user_id)
            completions = stores.completions.count_for_user(user_id=user_id, start=start, end=end)

        consistency = completion_percentage(completions, habit_count, self.window_days)
        noun = "habit" if completions == 1 else "habits"
        summary = (
            f"Over the last {self.window_days} days you completed {completions} {noun} "
            f"with {consistency}% consistency."
        )
        return WeeklyReport(completions=completions, consistency_pct=consistency, summary=summary)

    def overview(self, user_id: int) -> Overview:
        """All-time totals, with completions averaged over a nominal month."""

        with store_transaction(self.session_factory, self.stores_factory, operation="overview") as stores:
            total_habits = stores.habits.count_for_user(user_id=user_id)
            total_completions = stores.completions.count_for_user(user_id=user_id)

        average = (Decimal(total_completions) / Decimal(OVERVIEW_DAYS)).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )
        return Overview(
            total_habits=total_habits,
            total_completions=total_completions,
            average_per_day=average,
        )


__all__ = ["AnalyticsService", "HabitAnalytics", "Overview", "WeeklyReport", "completion_percentage"]
