"""Shared fixtures for habitcore tests."""

from __future__ import annotations

import pytest

from habitcore.engines.habit_engine import HabitEngine
from habitcore.engines.status_store import HabitStatus
from habitcore.managers.habit_manager import HabitManager
from habitcore.type_defs import HabitData


@pytest.fixture
def engine() -> HabitEngine:
    """Empty engine with default config."""
    return HabitEngine()


@pytest.fixture
def manager(engine: HabitEngine) -> HabitManager:
    """Manager bound to the `engine` fixture."""
    return HabitManager(engine)


@pytest.fixture
def complete_days():
    """Return a helper that marks slots of a habit on several days.

    Usage:
        complete_days(engine, habit, ["2024-01-01"], status=HabitStatus.DONE)
    """

    def _complete(
        engine: HabitEngine,
        habit: HabitData,
        dates: list[str],
        status: HabitStatus = HabitStatus.DONE,
        times: list[str] | None = None,
    ) -> None:
        habit_id = habit["id"]
        for date_iso in dates:
            for time in times or engine.effective_times(habit, date_iso):
                engine.store.set_status(habit_id, date_iso, time, status)
        engine.invalidate_all()

    return _complete
