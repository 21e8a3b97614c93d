"""Streak Engine - consecutive fully-completed due days.

A day counts when the habit is due and every effective slot for that day is
Done or DonePlus. Days where the habit is not due are neutral: they neither
extend nor break a streak. The walk is bounded by the look-back window and by
the habit's created_on date.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_add_days, dt_parse_date
from .cache import BoundedCache

if TYPE_CHECKING:
    from ..type_defs import HabitData
    from .habit_engine import HabitEngine

# Milestones in ascending order
STREAK_MILESTONES: tuple[int, ...] = (
    const.STREAK_SEMI_CONSOLIDATED,
    const.STREAK_CONSOLIDATED,
)


class StreakCalculator:
    """Count consecutive due-and-completed days ending at a date."""

    def __init__(self, engine: HabitEngine) -> None:
        """Initialize with the owning engine context."""
        self._engine = engine

    def streak(self, habit: HabitData, end_date_iso: str) -> int:
        """Return the streak length ending at `end_date_iso` (inclusive).

        Args:
            habit: Habit record.
            end_date_iso: Last day of the walk. Invalid dates yield 0.

        Returns:
            Number of consecutive due days fully completed, >= 0.
        """
        if dt_parse_date(end_date_iso) is None:
            return 0

        engine = self._engine
        cache = engine.caches.per_habit(
            engine.caches.streaks, habit[const.DATA_HABIT_ID]
        )
        cached = cache.get(end_date_iso)
        if cached is not BoundedCache.MISSING:
            return cached

        created_on = habit.get(const.DATA_HABIT_CREATED_ON) or end_date_iso
        lookback = engine.config[const.CONF_STREAK_LOOKBACK_DAYS]

        count = 0
        day_iso: str | None = end_date_iso
        for _ in range(lookback):
            if day_iso is None or day_iso < created_on:
                break
            if engine.should_appear(habit, day_iso):
                if not self.is_consistently_done(habit, day_iso):
                    break
                count += 1
            day_iso = dt_add_days(day_iso, -1)

        return cache.set(end_date_iso, count)

    def is_consistently_done(self, habit: HabitData, date_iso: str) -> bool:
        """True if every effective slot on the date is Done or DonePlus.

        A day with no effective slots is consistent.
        """
        engine = self._engine
        habit_id = habit[const.DATA_HABIT_ID]
        times = engine.effective_times(habit, date_iso)
        day = engine.store.get_day(habit_id, date_iso)
        return all(day.get(time).is_completed for time in times)

    @staticmethod
    def milestone_for(streak: int) -> int | None:
        """Return the milestone (21 or 66) reached at exactly this streak length."""
        return streak if streak in STREAK_MILESTONES else None
