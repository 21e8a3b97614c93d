"""Habit Engine - the explicit context object for every query.

One HabitEngine owns the in-memory state handed over by the durable store
(habits, per-day override records, status entries), the engine config, and
every memo table. Components receive the engine by reference; nothing is
cached at module level.

Coherence contract: after ANY mutation of habits, schedules, overrides or
statuses, call `invalidate_all()` before the next query. HabitManager does
this for every action it performs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .. import const
from ..data_builders import load_daily_info, load_habits, normalize_engine_config
from ..utils.dt_utils import set_default_timezone
from .cache import EngineCaches
from .goal_engine import GoalAdviser
from .schedule_engine import FrequencyEvaluator, ScheduleResolver
from .status_store import HabitStatus, StatusStore
from .streak_engine import StreakCalculator
from .summary_engine import DaySummaryAggregator

if TYPE_CHECKING:
    from ..type_defs import (
        ActiveHabit,
        DailyInfoMap,
        DaySummary,
        DisplayInfo,
        EngineConfig,
        HabitDailyInfo,
        HabitData,
        HabitInstanceData,
        HabitScheduleData,
        PersistedState,
    )
    from .summary_engine import DisplaySubject


class HabitEngine:
    """Scheduling and completion-status engine for one session."""

    def __init__(
        self,
        habits: list[HabitData] | None = None,
        daily_info: DailyInfoMap | None = None,
        store: StatusStore | None = None,
        config: Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            habits: Already-validated habit records (see `from_state` for raw).
            daily_info: Already-validated override records.
            store: Status store; a new empty one if omitted.
            config: EngineConfig values; missing keys use defaults.

        Raises:
            vol.Invalid: If the config contains unknown keys or bad values.
        """
        self.config: EngineConfig = normalize_engine_config(config)
        set_default_timezone(self.config[const.CONF_TIME_ZONE])

        self.habits: list[HabitData] = habits if habits is not None else []
        self.daily_info: DailyInfoMap = daily_info if daily_info is not None else {}
        self.store = store or StatusStore()

        self.caches = EngineCaches(
            self.config[const.CONF_MAX_CACHE_ENTRIES],
            self.config[const.CONF_MAX_ANCHOR_CACHE_ENTRIES],
        )
        self.resolver = ScheduleResolver(self.caches)
        self.frequency = FrequencyEvaluator(self.resolver, self.caches)
        self.streaks = StreakCalculator(self)
        self.goals = GoalAdviser(self)
        self.summaries = DaySummaryAggregator(self)

    @classmethod
    def from_state(
        cls, state: Mapping[str, Any], config: Mapping[str, Any] | None = None
    ) -> HabitEngine:
        """Build an engine from a raw persisted snapshot."""
        engine = cls(config=config)
        engine.load_state(state)
        return engine

    # =========================================================================
    # State load / export
    # =========================================================================

    def load_state(self, state: Mapping[str, Any]) -> None:
        """Replace all state from a raw snapshot and invalidate every cache.

        Invalid habits, override records and shard entries are dropped with
        a warning; the rest of the snapshot still loads.
        """
        version = state.get(const.DATA_VERSION, const.STATE_VERSION)
        if version != const.STATE_VERSION:
            const.LOGGER.warning(
                "Loading state version %s (expected %s)", version, const.STATE_VERSION
            )

        # Validate before clearing: the snapshot may alias the live state
        habits = load_habits(state.get(const.DATA_HABITS, []))
        daily_info = load_daily_info(state.get(const.DATA_DAILY_INFO, {}))
        self.habits[:] = habits
        self.daily_info.clear()
        self.daily_info.update(daily_info)
        self.store.import_shards(state.get(const.DATA_LOGS) or {}, replace=True)
        self.invalidate_all()
        const.LOGGER.info(
            "HabitEngine: Loaded %s habits, %s status days",
            len(self.habits),
            len(self.store),
        )

    def export_state(self) -> PersistedState:
        """Return a snapshot suitable for the durable store or a backup."""
        return {
            "version": const.STATE_VERSION,
            "habits": self.habits,
            "daily_info": self.daily_info,
            "logs": self.store.export_shards(),
        }

    def invalidate_all(self) -> None:
        """Drop every memo table. Required after any mutation."""
        self.caches.clear_all()

    # =========================================================================
    # Record lookups
    # =========================================================================

    def get_habit(self, habit_id: str) -> HabitData | None:
        """Return the habit with this id, or None."""
        for habit in self.habits:
            if habit[const.DATA_HABIT_ID] == habit_id:
                return habit
        return None

    def daily_info_for(self, date_iso: str, habit_id: str) -> HabitDailyInfo | None:
        """Return the override record of a habit on a date, if any."""
        return self.daily_info.get(date_iso, {}).get(habit_id)

    def instance_for(
        self, habit_id: str, date_iso: str, time: str
    ) -> HabitInstanceData | None:
        """Return the per-slot override record, if any."""
        day_info = self.daily_info_for(date_iso, habit_id)
        if not day_info:
            return None
        return (day_info.get(const.DATA_DAILY_INSTANCES) or {}).get(time)

    def goal_override(self, habit_id: str, date_iso: str, time: str) -> int | None:
        """Return the recorded goal override of a slot, if any."""
        instance = self.instance_for(habit_id, date_iso, time)
        if not instance:
            return None
        return instance.get(const.DATA_INSTANCE_GOAL_OVERRIDE)

    # =========================================================================
    # Public query surface
    # =========================================================================

    def resolve(self, habit: HabitData, date_iso: str) -> HabitScheduleData | None:
        """Effective schedule record of a habit on a date."""
        return self.resolver.resolve(habit, date_iso)

    def effective_times(self, habit: HabitData, date_iso: str) -> tuple[str, ...]:
        """Slots a habit requires on a date (daily override first)."""
        return self.resolver.effective_times(
            habit, date_iso, self.daily_info_for(date_iso, habit[const.DATA_HABIT_ID])
        )

    def should_appear(self, habit: HabitData, date_iso: str) -> bool:
        """Whether a habit is due on a date."""
        return self.frequency.should_appear(habit, date_iso)

    def occurrences(self, habit: HabitData, start_iso: str, end_iso: str) -> list[str]:
        """Due dates of a habit in an inclusive range."""
        return self.frequency.occurrences(habit, start_iso, end_iso)

    def get_status(self, habit_id: str, date_iso: str, time: str) -> HabitStatus:
        """Status of one (habit, date, slot)."""
        return self.store.get_status(habit_id, date_iso, time)

    def streak(self, habit: HabitData, end_date_iso: str) -> int:
        """Streak length ending at a date."""
        return self.streaks.streak(habit, end_date_iso)

    def smart_goal(self, habit: HabitData, date_iso: str, time: str) -> int:
        """Adaptive goal of a slot."""
        return self.goals.smart_goal(habit, date_iso, time)

    def current_goal(self, habit: HabitData, date_iso: str, time: str) -> int:
        """Recorded override of a slot, else its smart goal."""
        return self.goals.current_goal(habit, date_iso, time)

    def summary(self, date_iso: str) -> DaySummary:
        """Day summary (totals, percentages, plus indicator)."""
        return self.summaries.summary(date_iso)

    def active_habits(self, date_iso: str) -> list[ActiveHabit]:
        """Due habits on a date with their slots."""
        return self.summaries.active_habits(date_iso)

    def display_info(
        self,
        subject: DisplaySubject,
        date_iso: str | None = None,
        time: str | None = None,
    ) -> DisplayInfo:
        """Display name/subtitle (and slot status) of a habit or template."""
        return self.summaries.display_info(subject, date_iso, time)
