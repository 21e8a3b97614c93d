"""Engine modules for habitcore.

Contains the read-side computation engines:
- cache: Bounded memo tables shared by every component
- schedule_engine: Effective schedule resolution and due-date evaluation
- status_store: Per-slot completion statuses and their packed transport forms
- streak_engine: Consecutive completed due days
- goal_engine: Adaptive goals for measurable habits
- summary_engine: Per-day totals, plus indicator and display info
- habit_engine: Context object owning state, caches and components
"""

# Use relative imports within package to avoid mypy module resolution issues
from .cache import BoundedCache, EngineCaches
from .goal_engine import GoalAdviser
from .habit_engine import HabitEngine
from .schedule_engine import FrequencyEvaluator, ScheduleResolver
from .status_store import (
    DaySlots,
    HabitStatus,
    StatusStore,
    month_from_bytes,
    month_to_bytes,
    pack_day,
    unpack_day,
)
from .streak_engine import StreakCalculator
from .summary_engine import DaySummaryAggregator, LiveHabit, TemplateHabit

__all__ = [
    "BoundedCache",
    "DaySlots",
    "DaySummaryAggregator",
    "EngineCaches",
    "FrequencyEvaluator",
    "GoalAdviser",
    "HabitEngine",
    "HabitStatus",
    "LiveHabit",
    "ScheduleResolver",
    "StatusStore",
    "StreakCalculator",
    "TemplateHabit",
    "month_from_bytes",
    "month_to_bytes",
    "pack_day",
    "unpack_day",
]
