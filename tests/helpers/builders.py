"""Record builders for tests.

Builders return plain dicts keyed by the DATA_* constants, exactly as the
durable store would hand them to the engine.
"""

from __future__ import annotations

from typing import Any

from habitcore import const
from habitcore.type_defs import HabitData, HabitScheduleData

DAILY: dict[str, Any] = {const.DATA_FREQUENCY_TYPE: const.FREQUENCY_DAILY}


def weekdays(*days: int) -> dict[str, Any]:
    """Specific-days frequency (0 = Sunday)."""
    return {
        const.DATA_FREQUENCY_TYPE: const.FREQUENCY_SPECIFIC_DAYS_OF_WEEK,
        const.DATA_FREQUENCY_DAYS: sorted(days),
    }


def interval(amount: int, unit: str = const.TIME_UNIT_DAYS) -> dict[str, Any]:
    """Interval frequency."""
    return {
        const.DATA_FREQUENCY_TYPE: const.FREQUENCY_INTERVAL,
        const.DATA_FREQUENCY_UNIT: unit,
        const.DATA_FREQUENCY_AMOUNT: amount,
    }


def measurable_goal(
    total: int, goal_type: str = const.GOAL_TYPE_PAGES
) -> dict[str, Any]:
    """Measurable goal with a base total."""
    return {
        const.DATA_GOAL_TYPE: goal_type,
        const.DATA_GOAL_TOTAL: total,
        const.DATA_GOAL_UNIT_KEY: "unitPage",
    }


def make_schedule(
    start_date: str,
    end_date: str | None = None,
    times: list[str] | None = None,
    frequency: dict[str, Any] | None = None,
    goal: dict[str, Any] | None = None,
    anchor: str | None = None,
    name: str = "Read",
) -> HabitScheduleData:
    """Create a HabitSchedule record.

    Args:
        start_date: First day of the window (inclusive)
        end_date: End of the window (exclusive), or None for open-ended
        times: Slots, default Morning only
        frequency: Frequency record, default daily
        goal: Goal record, default check
        anchor: Interval anchor, default unset (start_date applies)
        name: Display name
    """
    schedule: HabitScheduleData = {
        const.DATA_SCHEDULE_START_DATE: start_date,
        const.DATA_SCHEDULE_TIMES: list(times or [const.TIME_MORNING]),
        const.DATA_SCHEDULE_FREQUENCY: dict(frequency or DAILY),
        const.DATA_SCHEDULE_GOAL: dict(
            goal or {const.DATA_GOAL_TYPE: const.GOAL_TYPE_CHECK}
        ),
        const.DATA_SCHEDULE_NAME: name,
    }  # type: ignore[typeddict-item]
    if end_date is not None:
        schedule[const.DATA_SCHEDULE_END_DATE] = end_date
    if anchor is not None:
        schedule[const.DATA_SCHEDULE_ANCHOR] = anchor
    return schedule


def make_habit(
    habit_id: str = "habit-1",
    created_on: str = "2024-01-01",
    schedules: list[HabitScheduleData] | None = None,
    **schedule_kwargs: Any,
) -> HabitData:
    """Create a Habit record.

    Without `schedules`, a single open-ended schedule starting on
    `created_on` is built from `schedule_kwargs`.
    """
    history = schedules or [make_schedule(created_on, **schedule_kwargs)]
    return {
        const.DATA_HABIT_ID: habit_id,
        const.DATA_HABIT_CREATED_ON: created_on,
        const.DATA_HABIT_SCHEDULE_HISTORY: history,
    }
