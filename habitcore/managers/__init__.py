"""Manager modules for habitcore.

Managers own every write to engine state and invalidate the engine's caches
after each mutation. Engines stay read-only.
"""

from .habit_manager import (
    HabitCoreError,
    HabitManager,
    HabitNotFoundError,
    InvalidScheduleChangeError,
)

__all__ = [
    "HabitCoreError",
    "HabitManager",
    "HabitNotFoundError",
    "InvalidScheduleChangeError",
]
