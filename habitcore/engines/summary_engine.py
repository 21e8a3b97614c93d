"""Summary Engine - per-day aggregation and display queries.

- `DaySummaryAggregator.summary()`: totals, percentages and the plus indicator
- `DaySummaryAggregator.active_habits()`: due habits with their slots
- `DaySummaryAggregator.display_info()`: name/subtitle (and slot status)

Plus indicator ("momentum bonus"): the day is 100% complete, each of the two
preceding days is non-empty and 100% complete, and at least one DonePlus
measurable slot today used a goal strictly greater than on both prior days.
The prior days are read through the memoized per-date tallies in a fixed
depth loop, so no summary ever recurses into another summary.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import dt_add_days, dt_parse_date, dt_today_iso
from .cache import BoundedCache
from .status_store import HabitStatus

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..type_defs import (
        ActiveHabit,
        DaySummary,
        DisplayInfo,
        HabitData,
        PredefinedHabit,
    )
    from .habit_engine import HabitEngine


# ==============================================================================
# Display subjects (tagged variant)
# ==============================================================================


@dataclass(frozen=True, slots=True)
class LiveHabit:
    """A tracked habit; display fields come from its effective schedule."""

    habit: HabitData

    def display_source(self, engine: HabitEngine, date_iso: str) -> Mapping[str, Any]:
        """Return the schedule record holding display fields for the date."""
        return engine.resolver.properties_or_latest(self.habit, date_iso) or {}


@dataclass(frozen=True, slots=True)
class TemplateHabit:
    """A predefined template; display fields live on the template itself."""

    template: PredefinedHabit

    def display_source(self, engine: HabitEngine, date_iso: str) -> Mapping[str, Any]:
        """Return the template record (date independent)."""
        return self.template


DisplaySubject = LiveHabit | TemplateHabit


# ==============================================================================
# Aggregator
# ==============================================================================


class DaySummaryAggregator:
    """Aggregate every habit's due slots for one date."""

    def __init__(self, engine: HabitEngine) -> None:
        """Initialize with the owning engine context."""
        self._engine = engine

    def active_habits(self, date_iso: str) -> list[ActiveHabit]:
        """Return due habits on a date with their non-empty effective slots."""
        if dt_parse_date(date_iso) is None:
            return []

        engine = self._engine
        cached = engine.caches.active_habits.get(date_iso)
        if cached is not BoundedCache.MISSING:
            return cached

        result: list[ActiveHabit] = []
        for habit in engine.habits:
            if not engine.should_appear(habit, date_iso):
                continue
            times = engine.effective_times(habit, date_iso)
            if times:
                result.append({"habit": habit, "schedule": list(times)})
        return engine.caches.active_habits.set(date_iso, result)

    def tally(self, date_iso: str) -> tuple[int, int, int, int]:
        """Return (total, completed, snoozed, pending) slot counts for a date."""
        cache = self._engine.caches.day_tallies
        cached = cache.get(date_iso)
        if cached is not BoundedCache.MISSING:
            return cached

        total = completed = snoozed = pending = 0
        for item in self.active_habits(date_iso):
            habit_id = item["habit"][const.DATA_HABIT_ID]
            day = self._engine.store.get_day(habit_id, date_iso)
            for time in item["schedule"]:
                status = day.get(time)
                total += 1
                if status.is_completed:
                    completed += 1
                elif status == HabitStatus.DEFERRED:
                    snoozed += 1
                else:
                    pending += 1
        return cache.set(date_iso, (total, completed, snoozed, pending))

    def is_perfect_day(self, date_iso: str | None) -> bool:
        """True if the date has at least one due slot and all are completed."""
        if date_iso is None:
            return False
        total, completed, _, _ = self.tally(date_iso)
        return total > 0 and completed == total

    def summary(self, date_iso: str) -> DaySummary:
        """Return the day summary for a date (all zero for invalid dates)."""
        engine = self._engine
        if dt_parse_date(date_iso) is None:
            return _empty_summary()

        cached = engine.caches.day_summaries.get(date_iso)
        if cached is not BoundedCache.MISSING:
            return cached

        total, completed, snoozed, pending = self.tally(date_iso)
        result: DaySummary = {
            "total": total,
            "completed": completed,
            "snoozed": snoozed,
            "pending": pending,
            "completed_percent": (completed / total) * 100 if total else 0.0,
            "snoozed_percent": (snoozed / total) * 100 if total else 0.0,
            "show_plus_indicator": self._show_plus_indicator(date_iso),
        }
        return engine.caches.day_summaries.set(date_iso, result)

    def _show_plus_indicator(self, date_iso: str) -> bool:
        if not self.is_perfect_day(date_iso):
            return False

        prior_days: list[str] = []
        day_iso: str | None = date_iso
        for _ in range(const.PLUS_INDICATOR_LOOKBACK_DAYS):
            day_iso = dt_add_days(day_iso, -1)
            if not self.is_perfect_day(day_iso):
                return False
            prior_days.append(day_iso)

        engine = self._engine
        for item in self.active_habits(date_iso):
            habit = item["habit"]
            schedule = engine.resolver.properties_or_latest(habit, date_iso)
            goal = (schedule or {}).get(const.DATA_SCHEDULE_GOAL) or {}
            if goal.get(const.DATA_GOAL_TYPE) == const.GOAL_TYPE_CHECK or not goal.get(
                const.DATA_GOAL_TOTAL
            ):
                continue

            day = engine.store.get_day(habit[const.DATA_HABIT_ID], date_iso)
            for time in item["schedule"]:
                if day.get(time) != HabitStatus.DONE_PLUS:
                    continue
                value_today = engine.current_goal(habit, date_iso, time)
                if all(
                    value_today > engine.current_goal(habit, prior, time)
                    for prior in prior_days
                ):
                    return True
        return False

    # ------------------------------------------------------------------
    # Display info
    # ------------------------------------------------------------------

    def display_info(
        self,
        subject: DisplaySubject,
        date_iso: str | None = None,
        time: str | None = None,
    ) -> DisplayInfo:
        """Resolve name/subtitle for a live habit or template.

        Live habits queried with a time slot also report the slot's status,
        completion flag, note and recorded goal value. Name keys are returned
        as-is; translating them is the caller's concern.
        """
        effective_date = date_iso or dt_today_iso()
        source = subject.display_source(self._engine, effective_date)
        info: DisplayInfo = {
            "name": source.get(const.DATA_SCHEDULE_NAME_KEY)
            or source.get(const.DATA_SCHEDULE_NAME)
            or const.SENTINEL_EMPTY,
            "subtitle": source.get(const.DATA_SCHEDULE_SUBTITLE_KEY)
            or source.get(const.DATA_SCHEDULE_SUBTITLE)
            or const.SENTINEL_EMPTY,
            "name_key": source.get(const.DATA_SCHEDULE_NAME_KEY),
            "subtitle_key": source.get(const.DATA_SCHEDULE_SUBTITLE_KEY),
        }

        if time is None or not isinstance(subject, LiveHabit):
            return info

        engine = self._engine
        habit_id = subject.habit[const.DATA_HABIT_ID]
        status = engine.get_status(habit_id, effective_date, time)
        instance = engine.instance_for(habit_id, effective_date, time) or {}
        info["status"] = int(status)
        info["is_completed"] = status.is_completed
        info["note"] = instance.get(const.DATA_INSTANCE_NOTE)
        info["value"] = instance.get(const.DATA_INSTANCE_GOAL_OVERRIDE) or 0
        return info


def _empty_summary() -> DaySummary:
    return {
        "total": 0,
        "completed": 0,
        "snoozed": 0,
        "pending": 0,
        "completed_percent": 0.0,
        "snoozed_percent": 0.0,
        "show_plus_indicator": False,
    }
