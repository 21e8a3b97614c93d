"""habitcore: habit scheduling and completion-status engine.

Typical use:
    engine = HabitEngine.from_state(snapshot)
    manager = HabitManager(engine)
    manager.toggle_status(habit_id, "2025-04-07", "Morning")
    engine.summary("2025-04-07")
"""

from .engines import (
    DaySlots,
    HabitEngine,
    HabitStatus,
    LiveHabit,
    StatusStore,
    TemplateHabit,
)
from .managers import (
    HabitCoreError,
    HabitManager,
    HabitNotFoundError,
    InvalidScheduleChangeError,
)

__all__ = [
    "DaySlots",
    "HabitCoreError",
    "HabitEngine",
    "HabitManager",
    "HabitNotFoundError",
    "HabitStatus",
    "InvalidScheduleChangeError",
    "LiveHabit",
    "StatusStore",
    "TemplateHabit",
]
