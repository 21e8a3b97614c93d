"""Unit tests for StreakCalculator.

Streaks count consecutive due days where every effective slot is Done or
DonePlus. Non-due days are neutral; the walk never crosses created_on.
"""

from __future__ import annotations

from habitcore import const
from habitcore.engines.habit_engine import HabitEngine
from habitcore.engines.status_store import HabitStatus
from tests.helpers import interval, make_habit, weekdays


def days(start: int, end: int, month: str = "2024-01") -> list[str]:
    """ISO dates for day numbers start..end (inclusive) of a month."""
    return [f"{month}-{d:02d}" for d in range(start, end + 1)]


class TestStreak:
    """StreakCalculator.streak()."""

    def test_five_day_streak(self, engine: HabitEngine, complete_days) -> None:
        """Completed on d-4..d, incomplete on d-5 -> exactly 5."""
        habit = make_habit()
        engine.habits.append(habit)
        complete_days(engine, habit, days(1, 4) + days(6, 10))

        assert engine.streak(habit, "2024-01-10") == 5

    def test_zero_when_end_day_incomplete(
        self, engine: HabitEngine, complete_days
    ) -> None:
        habit = make_habit()
        complete_days(engine, habit, days(1, 9))
        assert engine.streak(habit, "2024-01-10") == 0

    def test_deferred_breaks_streak(self, engine: HabitEngine, complete_days) -> None:
        habit = make_habit()
        complete_days(engine, habit, days(1, 5))
        complete_days(engine, habit, ["2024-01-03"], status=HabitStatus.DEFERRED)
        assert engine.streak(habit, "2024-01-05") == 2

    def test_done_plus_counts(self, engine: HabitEngine, complete_days) -> None:
        habit = make_habit()
        complete_days(engine, habit, days(1, 3), status=HabitStatus.DONE_PLUS)
        assert engine.streak(habit, "2024-01-03") == 3

    def test_stops_at_created_on(self, engine: HabitEngine, complete_days) -> None:
        habit = make_habit(created_on="2024-01-05")
        complete_days(engine, habit, days(1, 8), times=[const.TIME_MORNING])
        assert engine.streak(habit, "2024-01-08") == 4

    def test_non_due_days_are_neutral(
        self, engine: HabitEngine, complete_days
    ) -> None:
        """Every-other-day habit: skipped days neither extend nor break."""
        habit = make_habit(frequency=interval(2), anchor="2024-01-01")
        complete_days(engine, habit, ["2024-01-01", "2024-01-03", "2024-01-05"])
        assert engine.streak(habit, "2024-01-06") == 3

    def test_weekday_habit(self, engine: HabitEngine, complete_days) -> None:
        """Mondays only (1): three completed Mondays in a row."""
        habit = make_habit(frequency=weekdays(1))
        complete_days(engine, habit, ["2024-01-01", "2024-01-08", "2024-01-15"])
        assert engine.streak(habit, "2024-01-20") == 3

    def test_all_slots_required(self, engine: HabitEngine, complete_days) -> None:
        habit = make_habit(times=[const.TIME_MORNING, const.TIME_EVENING])
        complete_days(engine, habit, days(1, 3))
        complete_days(
            engine, habit, ["2024-01-04"], times=[const.TIME_MORNING]
        )
        assert engine.streak(habit, "2024-01-03") == 3
        assert engine.streak(habit, "2024-01-04") == 0

    def test_day_with_no_slots_is_consistent(
        self, engine: HabitEngine, complete_days
    ) -> None:
        habit = make_habit()
        complete_days(engine, habit, ["2024-01-01", "2024-01-03"])
        engine.daily_info["2024-01-02"] = {
            "habit-1": {const.DATA_DAILY_INSTANCES: {}, const.DATA_DAILY_SCHEDULE: []}
        }
        engine.invalidate_all()
        assert engine.streak(habit, "2024-01-03") == 3

    def test_lookback_limit(self, complete_days) -> None:
        engine = HabitEngine(config={const.CONF_STREAK_LOOKBACK_DAYS: 3})
        habit = make_habit()
        complete_days(engine, habit, days(1, 10))
        assert engine.streak(habit, "2024-01-10") == 3

    def test_invalid_date(self, engine: HabitEngine) -> None:
        assert engine.streak(make_habit(), "2024/01/10") == 0

    def test_memoized_until_invalidated(
        self, engine: HabitEngine, complete_days
    ) -> None:
        habit = make_habit()
        complete_days(engine, habit, days(1, 3))
        assert engine.streak(habit, "2024-01-03") == 3

        engine.store.set_status(
            "habit-1", "2024-01-02", const.TIME_MORNING, HabitStatus.PENDING
        )
        assert engine.streak(habit, "2024-01-03") == 3

        engine.invalidate_all()
        assert engine.streak(habit, "2024-01-03") == 1


class TestMilestones:
    """StreakCalculator.milestone_for()."""

    def test_milestones(self, engine: HabitEngine) -> None:
        assert engine.streaks.milestone_for(21) == const.STREAK_SEMI_CONSOLIDATED
        assert engine.streaks.milestone_for(66) == const.STREAK_CONSOLIDATED
        assert engine.streaks.milestone_for(22) is None
