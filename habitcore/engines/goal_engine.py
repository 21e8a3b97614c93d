"""Goal Engine - adaptive numeric targets for measurable habits.

Resolution order for one (habit, date, slot):
1. Binary ("check") goals, missing schedules and goals without a total: 1
2. A recorded goal override for exactly that (date, slot)
3. Two most recent completed due days carrying the same override value
4. Fallback: base total nudged up by every full week of streak, floored at 5
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .. import const
from ..utils.dt_utils import dt_add_days, dt_parse_date, dt_today_iso

if TYPE_CHECKING:
    from ..type_defs import HabitData
    from .habit_engine import HabitEngine


class GoalAdviser:
    """Compute smart goals from recent overrides and streak length."""

    def __init__(self, engine: HabitEngine) -> None:
        """Initialize with the owning engine context."""
        self._engine = engine

    def smart_goal(self, habit: HabitData, date_iso: str, time: str) -> int:
        """Return the adaptive goal for a slot.

        Args:
            habit: Habit record.
            date_iso: Target date.
            time: Time-of-day slot.

        Returns:
            Numeric goal; 1 for binary goals or when no schedule applies.
        """
        engine = self._engine
        if dt_parse_date(date_iso) is None:
            return const.CHECK_GOAL_VALUE

        # Ended habits still display their last goal
        schedule = engine.resolver.properties_or_latest(habit, date_iso)
        if schedule is None:
            return const.CHECK_GOAL_VALUE
        goal = schedule.get(const.DATA_SCHEDULE_GOAL) or {}
        base_total = goal.get(const.DATA_GOAL_TOTAL)
        if goal.get(const.DATA_GOAL_TYPE) == const.GOAL_TYPE_CHECK or not base_total:
            return const.CHECK_GOAL_VALUE

        override = engine.goal_override(habit[const.DATA_HABIT_ID], date_iso, time)
        if override is not None:
            return override

        repeated = self._repeated_override(habit, date_iso, time)
        if repeated is not None:
            return repeated

        streak = engine.streak(habit, dt_add_days(date_iso, -1) or date_iso)
        return max(
            const.SMART_GOAL_MINIMUM,
            base_total
            + (streak // const.DAYS_PER_WEEK) * const.SMART_GOAL_WEEKLY_INCREMENT,
        )

    def current_goal(self, habit: HabitData, date_iso: str, time: str) -> int:
        """Return the recorded override for the slot, else the smart goal."""
        override = self._engine.goal_override(
            habit[const.DATA_HABIT_ID], date_iso, time
        )
        if override is not None:
            return override
        return self.smart_goal(habit, date_iso, time)

    def _repeated_override(
        self, habit: HabitData, date_iso: str, time: str
    ) -> int | None:
        """Scan back for two completed due days with an identical override.

        The scan starts yesterday (today when the target is in the future)
        and stops at created_on, at the look-back limit, at a completed day
        without an override, or at the first differing value.
        """
        engine = self._engine
        habit_id = habit[const.DATA_HABIT_ID]
        today = dt_today_iso()
        day_iso = today if date_iso > today else dt_add_days(date_iso, -1)
        created_on = habit.get(const.DATA_HABIT_CREATED_ON) or date_iso

        matched_value: int | None = None
        matches = 0
        for _ in range(engine.config[const.CONF_SMART_GOAL_LOOKBACK_DAYS]):
            if day_iso is None or day_iso < created_on:
                break
            if engine.should_appear(habit, day_iso) and engine.get_status(
                habit_id, day_iso, time
            ).is_completed:
                value = engine.goal_override(habit_id, day_iso, time)
                if value is None:
                    break
                if matched_value is None:
                    matched_value = value
                elif value != matched_value:
                    break
                matches += 1
                if matches >= const.SMART_GOAL_REQUIRED_MATCHES:
                    return matched_value
            day_iso = dt_add_days(day_iso, -1)
        return None
