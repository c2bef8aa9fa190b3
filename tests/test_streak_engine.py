"""Tests for habit completion, reversal, and aggregate streak transitions."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from habitstreak.domain.repositories.stores import Stores
from habitstreak.errors import (
    DuplicateCompletion,
    HabitNotFound,
    MalformedSchedule,
    StorageFailure,
)
from habitstreak.infra.repositories import (
    SQLModelCompletionRepository,
    SQLModelHabitRepository,
    SQLModelStreakRepository,
)
from habitstreak.models import UserStreak
from habitstreak.services.clock import fixed_clock
from habitstreak.services.schedule import EVERY_DAY
from habitstreak.services.streaks import StreakEngine
from tests.conftest import MONDAY, MONDAY_ONLY, NEVER, TUESDAY


class TestCompleteHabit:
    def test_single_due_habit_advances_everything(self, engine, habit_factory, user, read_aggregate):
        habit = habit_factory()

        result = engine.complete_habit(habit.id, user.id, MONDAY)

        assert result.streak == 1
        assert read_aggregate(user.id) == (1, 1)

    def test_completion_is_recorded_for_the_day(self, engine, habit_factory, user, count_completions):
        habit = habit_factory()

        engine.complete_habit(habit.id, user.id, MONDAY)

        assert count_completions(habit.id, MONDAY.date()) == 1

    def test_second_completion_same_day_is_duplicate(
        self, engine, habit_factory, user, read_aggregate, read_habit, count_completions
    ):
        habit = habit_factory()
        engine.complete_habit(habit.id, user.id, MONDAY)

        with pytest.raises(DuplicateCompletion) as excinfo:
            engine.complete_habit(habit.id, user.id, MONDAY + timedelta(hours=5))

        assert excinfo.value.habit_id == habit.id
        assert read_habit(habit.id).streak == 1
        assert read_aggregate(user.id) == (1, 1)
        assert count_completions(habit.id) == 1

    def test_unknown_habit(self, engine, user):
        with pytest.raises(HabitNotFound):
            engine.complete_habit(999, user.id, MONDAY)

    def test_habit_owned_by_someone_else(self, engine, habit_factory, user_factory, count_completions):
        intruder = user_factory("intruder")
        habit = habit_factory()

        with pytest.raises(HabitNotFound):
            engine.complete_habit(habit.id, intruder.id, MONDAY)
        assert count_completions(habit.id) == 0

    def test_partial_day_holds_aggregate(self, engine, habit_factory, user, read_aggregate):
        first = habit_factory("Read")
        habit_factory("Run")

        engine.complete_habit(first.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (0, 0)

    def test_last_due_habit_advances_aggregate(self, engine, habit_factory, user, read_aggregate):
        first = habit_factory("Read")
        second = habit_factory("Run")

        engine.complete_habit(first.id, user.id, MONDAY)
        engine.complete_habit(second.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (1, 1)

    def test_non_due_habits_do_not_block_the_day(self, engine, habit_factory, user, read_aggregate):
        due = habit_factory("Read", MONDAY_ONLY)
        habit_factory("Weekend hike", [True, False, False, False, False, False, True])

        engine.complete_habit(due.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (1, 1)

    def test_completing_extra_habit_after_full_day_does_not_double_count(
        self, engine, habit_factory, user, read_aggregate
    ):
        due = habit_factory("Read", MONDAY_ONLY)
        extra = habit_factory("Stretch", NEVER)

        engine.complete_habit(due.id, user.id, MONDAY)
        engine.complete_habit(extra.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (1, 1)

    def test_nothing_due_means_aggregate_untouched(self, engine, habit_factory, user, read_aggregate, read_habit):
        habit = habit_factory("Stretch", NEVER)

        engine.complete_habit(habit.id, user.id, MONDAY)

        assert read_habit(habit.id).streak == 1
        assert read_aggregate(user.id) == (0, 0)

    def test_consecutive_days_build_streaks(self, engine, habit_factory, user, read_aggregate):
        habit = habit_factory()

        engine.complete_habit(habit.id, user.id, MONDAY)
        result = engine.complete_habit(habit.id, user.id, TUESDAY)

        assert result.streak == 2
        assert read_aggregate(user.id) == (2, 2)

    def test_day_boundary_splits_completions(self, engine, habit_factory, user, count_completions):
        habit = habit_factory()
        before_midnight = datetime(2024, 1, 1, 23, 59, 59, tzinfo=timezone.utc)
        after_midnight = datetime(2024, 1, 2, 0, 0, 1, tzinfo=timezone.utc)

        engine.complete_habit(habit.id, user.id, before_midnight)
        engine.complete_habit(habit.id, user.id, after_midnight)

        assert count_completions(habit.id) == 2

    def test_clock_supplies_now(self, session_factory, habit_factory, user, count_completions):
        engine = StreakEngine(session_factory, clock=fixed_clock(TUESDAY))
        habit = habit_factory()

        engine.complete_habit(habit.id, user.id)

        assert count_completions(habit.id, TUESDAY.date()) == 1

    def test_engine_time_zone_defines_today(self, session_factory, habit_factory, user, count_completions):
        est = timezone(timedelta(hours=-5))
        engine = StreakEngine(session_factory, tz=est)
        habit = habit_factory()

        # 03:00 UTC on Tuesday is still Monday evening in UTC-5.
        engine.complete_habit(habit.id, user.id, datetime(2024, 1, 2, 3, 0, tzinfo=timezone.utc))

        assert count_completions(habit.id, MONDAY.date()) == 1
        with pytest.raises(DuplicateCompletion):
            engine.complete_habit(habit.id, user.id, datetime(2024, 1, 1, 20, 0, tzinfo=est))

    def test_new_high_water_mark(self, engine, habit_factory, user, session_factory, read_aggregate):
        with session_factory() as session:
            session.add(UserStreak(user_id=user.id, current_streak=4, longest_streak=4))
        habit = habit_factory()

        engine.complete_habit(habit.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (5, 5)

    def test_longest_kept_when_below_high_water_mark(self, engine, habit_factory, user, session_factory, read_aggregate):
        with session_factory() as session:
            session.add(UserStreak(user_id=user.id, current_streak=1, longest_streak=9))
        habit = habit_factory()

        engine.complete_habit(habit.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (2, 9)


class TestUncompleteHabit:
    def test_round_trip_restores_counters(self, engine, habit_factory, user, read_aggregate, read_habit):
        habit = habit_factory(streak=3)

        engine.complete_habit(habit.id, user.id, MONDAY)
        result = engine.uncomplete_habit(habit.id, user.id, MONDAY)

        assert result.streak == 3
        assert read_habit(habit.id).streak == 3
        # longest keeps its high-water mark
        assert read_aggregate(user.id) == (0, 1)

    def test_retreat_after_full_day(self, engine, habit_factory, user, read_aggregate):
        first = habit_factory("Read")
        second = habit_factory("Run")
        engine.complete_habit(first.id, user.id, MONDAY)
        engine.complete_habit(second.id, user.id, MONDAY)

        engine.uncomplete_habit(second.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (0, 1)

    def test_second_reversal_on_partial_day_does_not_retreat_again(
        self, engine, habit_factory, user, read_aggregate, session_factory
    ):
        with session_factory() as session:
            session.add(UserStreak(user_id=user.id, current_streak=5, longest_streak=5))
        habits = [habit_factory(name) for name in ("Read", "Run", "Write")]
        for habit in habits:
            engine.complete_habit(habit.id, user.id, MONDAY)
        assert read_aggregate(user.id) == (6, 6)

        engine.uncomplete_habit(habits[0].id, user.id, MONDAY)
        engine.uncomplete_habit(habits[1].id, user.id, MONDAY)

        assert read_aggregate(user.id) == (5, 6)

    def test_reversing_the_only_completed_of_several_does_not_retreat(
        self, engine, habit_factory, user, read_aggregate, session_factory
    ):
        with session_factory() as session:
            session.add(UserStreak(user_id=user.id, current_streak=2, longest_streak=2))
        done = habit_factory("Read")
        habit_factory("Run")
        habit_factory("Write")
        engine.complete_habit(done.id, user.id, MONDAY)

        engine.uncomplete_habit(done.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (2, 2)

    def test_no_completion_today_is_a_no_op(self, engine, habit_factory, user, read_aggregate, session_factory):
        with session_factory() as session:
            session.add(UserStreak(user_id=user.id, current_streak=3, longest_streak=7))
        habit = habit_factory(streak=4)

        result = engine.uncomplete_habit(habit.id, user.id, MONDAY)

        assert result.streak == 4
        assert read_aggregate(user.id) == (3, 7)

    def test_yesterdays_completion_is_not_reversed_today(
        self, engine, habit_factory, user, count_completions, read_aggregate
    ):
        habit = habit_factory()
        engine.complete_habit(habit.id, user.id, MONDAY)

        engine.uncomplete_habit(habit.id, user.id, TUESDAY)

        assert count_completions(habit.id, MONDAY.date()) == 1
        assert read_aggregate(user.id) == (1, 1)

    def test_habit_streak_floor_is_zero(self, engine, habit_factory, user, completion_factory, read_habit):
        habit = habit_factory(streak=0)
        completion_factory(habit, MONDAY)

        result = engine.uncomplete_habit(habit.id, user.id, MONDAY)

        assert result.streak == 0
        assert read_habit(habit.id).streak == 0

    def test_aggregate_floor_is_zero(self, engine, habit_factory, user, completion_factory, read_aggregate):
        habit = habit_factory()
        # Completion planted without the aggregate ever advancing.
        completion_factory(habit, MONDAY)

        engine.uncomplete_habit(habit.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (0, 0)

    def test_non_due_reversal_leaves_aggregate(self, engine, habit_factory, user, read_aggregate):
        due = habit_factory("Read", MONDAY_ONLY)
        extra = habit_factory("Stretch", NEVER)
        engine.complete_habit(due.id, user.id, MONDAY)
        engine.complete_habit(extra.id, user.id, MONDAY)

        engine.uncomplete_habit(extra.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (1, 1)

    def test_unknown_or_foreign_habit(self, engine, habit_factory, user_factory):
        habit = habit_factory()
        other = user_factory("other")

        with pytest.raises(HabitNotFound):
            engine.uncomplete_habit(habit.id, other.id, MONDAY)
        with pytest.raises(HabitNotFound):
            engine.uncomplete_habit(12345, other.id, MONDAY)


class TestInvariants:
    def test_random_walk_keeps_invariants(self, engine, habit_factory, user, read_aggregate, read_habit):
        habits = [habit_factory(name) for name in ("A", "B", "C")]
        steps = [
            ("complete", 0), ("complete", 1), ("uncomplete", 0), ("complete", 2),
            ("complete", 0), ("uncomplete", 2), ("uncomplete", 2), ("complete", 2),
            ("uncomplete", 1), ("complete", 1), ("uncomplete", 0), ("uncomplete", 1),
        ]
        for action, index in steps:
            habit = habits[index]
            if action == "complete":
                engine.complete_habit(habit.id, user.id, MONDAY)
            else:
                engine.uncomplete_habit(habit.id, user.id, MONDAY)

            current, longest = read_aggregate(user.id)
            assert longest >= current >= 0
            assert all(read_habit(h.id).streak >= 0 for h in habits)

        # Final state: only C complete, so the day is not satisfied.
        assert read_aggregate(user.id) == (0, 1)


class TestReopenedDay:
    def test_new_habit_does_not_count_the_day_twice(self, engine, habit_factory, habit_service, user, read_aggregate):
        read = habit_factory("Read")
        engine.complete_habit(read.id, user.id, MONDAY)
        run = habit_service.create_habit(user.id, "Run", EVERY_DAY)

        engine.complete_habit(run.id, user.id, MONDAY + timedelta(hours=1))

        assert read_aggregate(user.id) == (1, 1)

    def test_rescheduled_habit_does_not_count_the_day_twice(
        self, engine, habit_factory, habit_service, user, read_aggregate
    ):
        read = habit_factory("Read")
        run = habit_factory("Run", NEVER)
        engine.complete_habit(read.id, user.id, MONDAY)
        habit_service.update_habit(run.id, user.id, weekly_schedule=EVERY_DAY)

        engine.complete_habit(run.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (1, 1)

    def test_uncounted_day_is_not_retreated(self, engine, habit_factory, habit_service, user, read_aggregate):
        read = habit_factory("Read")
        run = habit_factory("Run")
        engine.complete_habit(read.id, user.id, MONDAY)
        # Deleting the open habit finishes the day without counting it.
        habit_service.delete_habit(run.id, user.id)

        engine.uncomplete_habit(read.id, user.id, MONDAY)
        assert read_aggregate(user.id) == (0, 0)

        engine.complete_habit(read.id, user.id, MONDAY)
        assert read_aggregate(user.id) == (1, 1)

    def test_reversed_day_can_be_counted_again(self, engine, habit_factory, user, read_aggregate):
        read = habit_factory("Read")
        engine.complete_habit(read.id, user.id, MONDAY)
        engine.uncomplete_habit(read.id, user.id, MONDAY)

        engine.complete_habit(read.id, user.id, MONDAY)

        assert read_aggregate(user.id) == (1, 1)

    def test_next_day_still_advances(self, engine, habit_factory, habit_service, user, read_aggregate):
        read = habit_factory("Read")
        engine.complete_habit(read.id, user.id, MONDAY)
        run = habit_service.create_habit(user.id, "Run", EVERY_DAY)
        engine.complete_habit(run.id, user.id, MONDAY)

        engine.complete_habit(read.id, user.id, TUESDAY)
        engine.complete_habit(run.id, user.id, TUESDAY)

        assert read_aggregate(user.id) == (2, 2)


class TestFailureSemantics:
    def test_malformed_schedule_aborts_without_side_effects(
        self, engine, habit_factory, user, read_aggregate, read_habit, count_completions
    ):
        good = habit_factory("Read")
        habit_factory("Broken", [True, True, True])

        with pytest.raises(MalformedSchedule):
            engine.complete_habit(good.id, user.id, MONDAY)

        assert count_completions(good.id) == 0
        assert read_habit(good.id).streak == 0
        assert read_aggregate(user.id) == (0, 0)

    def test_storage_failure_rolls_back_everything(
        self, session_factory, habit_factory, user, read_aggregate, read_habit, count_completions
    ):
        class FailingStreakRepository(SQLModelStreakRepository):
            def save(self, user_id, snapshot):
                raise OperationalError("UPDATE user_streak", {}, Exception("disk I/O error"))

        def failing_stores(session):
            return Stores(
                habits=SQLModelHabitRepository(session),
                completions=SQLModelCompletionRepository(session),
                streaks=FailingStreakRepository(session),
            )

        engine = StreakEngine(session_factory, stores_factory=failing_stores)
        habit = habit_factory()

        with pytest.raises(StorageFailure) as excinfo:
            engine.complete_habit(habit.id, user.id, MONDAY)

        assert excinfo.value.retryable is True
        assert isinstance(excinfo.value.__cause__, OperationalError)
        assert count_completions(habit.id) == 0
        assert read_habit(habit.id).streak == 0
        assert read_aggregate(user.id) == (0, 0)

    def test_storage_failure_during_reversal_keeps_completion(
        self, engine, session_factory, habit_factory, user, read_aggregate, count_completions
    ):
        habit = habit_factory()
        engine.complete_habit(habit.id, user.id, MONDAY)

        class FailingHabitRepository(SQLModelHabitRepository):
            def update_streak(self, habit, streak):
                raise OperationalError("UPDATE habit", {}, Exception("database is locked"))

        def failing_stores(session):
            return Stores(
                habits=FailingHabitRepository(session),
                completions=SQLModelCompletionRepository(session),
                streaks=SQLModelStreakRepository(session),
            )

        failing_engine = StreakEngine(session_factory, stores_factory=failing_stores)
        with pytest.raises(StorageFailure):
            failing_engine.uncomplete_habit(habit.id, user.id, MONDAY)

        assert count_completions(habit.id) == 1
        assert read_aggregate(user.id) == (1, 1)


class TestConcurrency:
    def test_racing_last_completions_advance_once(self, engine, habit_factory, user, read_aggregate):
        first = habit_factory("Read")
        second = habit_factory("Run")
        barrier = threading.Barrier(2)
        errors: list[BaseException] = []

        def complete(habit_id: int) -> None:
            barrier.wait()
            try:
                engine.complete_habit(habit_id, user.id, MONDAY)
            except BaseException as exc:  # surfaced below
                errors.append(exc)

        threads = [threading.Thread(target=complete, args=(h.id,)) for h in (first, second)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert read_aggregate(user.id) == (1, 1)

    def test_racing_duplicate_completions_record_once(self, engine, habit_factory, user, read_habit, count_completions):
        habit = habit_factory()
        barrier = threading.Barrier(4)
        outcomes: list[str] = []
        outcome_lock = threading.Lock()

        def complete() -> None:
            barrier.wait()
            try:
                engine.complete_habit(habit.id, user.id, MONDAY)
                result = "ok"
            except DuplicateCompletion:
                result = "duplicate"
            with outcome_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=complete) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes) == ["duplicate", "duplicate", "duplicate", "ok"]
        assert count_completions(habit.id) == 1
        assert read_habit(habit.id).streak == 1
