"""Test helpers for habitcore tests.

    from tests.helpers import make_habit, make_schedule, measurable_goal

See builders.py for full documentation.
"""

from tests.helpers.builders import (
    DAILY,
    interval,
    make_habit,
    make_schedule,
    measurable_goal,
    weekdays,
)

__all__ = [
    "DAILY",
    "interval",
    "make_habit",
    "make_schedule",
    "measurable_goal",
    "weekdays",
]
