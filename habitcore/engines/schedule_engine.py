"""Schedule Engine for habitcore.

Two leaf components of the habit engine:
- `ScheduleResolver`: picks the effective-dated schedule record for a date
- `FrequencyEvaluator`: decides whether a habit is due on a date

Both are pure reads over habit records. Memo tables live in the shared
`EngineCaches` owned by the HabitEngine; neither class keeps module state.
`dateutil.rrule` is used for range enumeration and RRULE export.

IMPORTANT: This module must NOT import from managers/ to avoid circular imports.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import TYPE_CHECKING, ClassVar

from dateutil.rrule import DAILY, rrule

from .. import const
from ..utils.dt_utils import dt_normalize_iso, dt_parse_date, dt_weekday_sunday0
from .cache import BoundedCache

if TYPE_CHECKING:
    from ..type_defs import HabitDailyInfo, HabitData, HabitScheduleData
    from .cache import EngineCaches

# Safety limit for range enumeration
MAX_OCCURRENCE_DAYS = 3660


class ScheduleResolver:
    """Resolve the schedule record effective for a habit on a date.

    History records are sorted by start_date and cover [start_date, end_date).
    """

    def __init__(self, caches: EngineCaches) -> None:
        """Initialize with the engine's cache tables."""
        self._caches = caches

    def resolve(self, habit: HabitData, date_iso: str) -> HabitScheduleData | None:
        """Return the record whose window contains `date_iso`, or None.

        The newest record with start_date <= date is the only candidate; older
        records cannot contain the date because windows never overlap.
        """
        history = habit.get(const.DATA_HABIT_SCHEDULE_HISTORY) or []
        if not history or dt_parse_date(date_iso) is None:
            return None

        cache = self._caches.per_habit(
            self._caches.schedule, habit[const.DATA_HABIT_ID]
        )
        cached = cache.get(date_iso)
        if cached is not BoundedCache.MISSING:
            return cached

        found: HabitScheduleData | None = None
        for record in reversed(history):
            if record[const.DATA_SCHEDULE_START_DATE] <= date_iso:
                end_date = record.get(const.DATA_SCHEDULE_END_DATE)
                if not end_date or date_iso < end_date:
                    found = record
                break
        return cache.set(date_iso, found)

    def properties_or_latest(
        self, habit: HabitData, date_iso: str
    ) -> HabitScheduleData | None:
        """Return the effective record, falling back to the latest one.

        Used for read-only display of ended or graduated habits.
        """
        history = habit.get(const.DATA_HABIT_SCHEDULE_HISTORY) or []
        if not history:
            return None
        return self.resolve(habit, date_iso) or history[-1]

    def effective_times(
        self,
        habit: HabitData,
        date_iso: str,
        day_info: HabitDailyInfo | None = None,
    ) -> tuple[str, ...]:
        """Return the slots a habit requires on a date.

        A per-day `daily_schedule` override wins over the resolved schedule.
        """
        if day_info:
            override = day_info.get(const.DATA_DAILY_SCHEDULE)
            if override is not None:
                return tuple(override)
        schedule = self.resolve(habit, date_iso)
        if schedule is None:
            return ()
        return tuple(schedule.get(const.DATA_SCHEDULE_TIMES) or ())


class FrequencyEvaluator:
    """Decide whether a habit is due on a date.

    Check order: tombstone, effective schedule and graduation, then dispatch
    on the frequency type (daily, specific weekdays, anchored interval).
    """

    # Sunday-first weekday codes for RRULE BYDAY (stored days use 0 = Sunday)
    RRULE_BYDAY: ClassVar[tuple[str, ...]] = ("SU", "MO", "TU", "WE", "TH", "FR", "SA")

    def __init__(self, resolver: ScheduleResolver, caches: EngineCaches) -> None:
        """Initialize with the resolver and the engine's cache tables."""
        self._resolver = resolver
        self._caches = caches

    def should_appear(self, habit: HabitData, date_iso: str) -> bool:
        """Return True if the habit is due on `date_iso`.

        Invalid dates and habits without an effective schedule are never due.
        """
        current = dt_parse_date(date_iso)
        if current is None:
            return False

        cache = self._caches.per_habit(
            self._caches.appearance, habit[const.DATA_HABIT_ID]
        )
        cached = cache.get(date_iso)
        if cached is not BoundedCache.MISSING:
            return cached
        return cache.set(date_iso, self._evaluate(habit, date_iso, current))

    def _evaluate(self, habit: HabitData, date_iso: str, current: date) -> bool:
        deleted_on = habit.get(const.DATA_HABIT_DELETED_ON)
        if deleted_on and date_iso >= deleted_on:
            return False

        schedule = self._resolver.resolve(habit, date_iso)
        if schedule is None or habit.get(const.DATA_HABIT_GRADUATED_ON):
            return False

        frequency = schedule.get(const.DATA_SCHEDULE_FREQUENCY) or {}
        freq_type = frequency.get(const.DATA_FREQUENCY_TYPE)

        if freq_type == const.FREQUENCY_DAILY:
            return True
        if freq_type == const.FREQUENCY_SPECIFIC_DAYS_OF_WEEK:
            days = frequency.get(const.DATA_FREQUENCY_DAYS) or []
            return dt_weekday_sunday0(current) in days
        if freq_type == const.FREQUENCY_INTERVAL:
            return self._interval_due(schedule, frequency, current)

        const.LOGGER.debug(
            "FrequencyEvaluator: Unknown frequency type %s for habit %s",
            freq_type,
            habit[const.DATA_HABIT_ID],
        )
        return False

    def _interval_due(
        self,
        schedule: HabitScheduleData,
        frequency: Mapping[str, object],
        current: date,
    ) -> bool:
        anchor = self._anchor_date(
            schedule.get(const.DATA_SCHEDULE_ANCHOR)
            or schedule[const.DATA_SCHEDULE_START_DATE]
        )
        if anchor is None:
            return False

        amount = frequency.get(const.DATA_FREQUENCY_AMOUNT)
        if not isinstance(amount, int) or amount < 1:
            return False

        diff_days = (current - anchor).days
        if diff_days < 0:
            return False

        unit = frequency.get(const.DATA_FREQUENCY_UNIT)
        if unit == const.TIME_UNIT_DAYS:
            return diff_days % amount == 0
        if unit == const.TIME_UNIT_WEEKS:
            return (
                current.weekday() == anchor.weekday()
                and (diff_days // const.DAYS_PER_WEEK) % amount == 0
            )
        return False

    def _anchor_date(self, anchor_iso: str) -> date | None:
        """Parse an anchor date once, through the global anchor cache."""
        cache = self._caches.anchor_dates
        cached = cache.get(anchor_iso)
        if cached is not BoundedCache.MISSING:
            return cached
        return cache.set(anchor_iso, dt_parse_date(anchor_iso))

    # =========================================================================
    # Range enumeration / export
    # =========================================================================

    def occurrences(
        self, habit: HabitData, start_iso: str, end_iso: str
    ) -> list[str]:
        """Return every due date in [start_iso, end_iso] (inclusive).

        Days are enumerated with a DAILY rrule and filtered through
        `should_appear`, so schedule edits inside the range are honored.
        """
        start = dt_parse_date(start_iso)
        end = dt_parse_date(end_iso)
        if start is None or end is None or end < start:
            return []

        rule = rrule(DAILY, dtstart=start, until=end)
        due: list[str] = []
        for iteration, occurrence in enumerate(rule):
            if iteration >= MAX_OCCURRENCE_DAYS:
                const.LOGGER.warning(
                    "FrequencyEvaluator: occurrences capped at %s days for %s",
                    MAX_OCCURRENCE_DAYS,
                    habit[const.DATA_HABIT_ID],
                )
                break
            day_iso = dt_normalize_iso(occurrence)
            if day_iso and self.should_appear(habit, day_iso):
                due.append(day_iso)
        return due

    def to_rrule_string(self, schedule: HabitScheduleData) -> str:
        """Generate an RFC 5545 RRULE string for iCal export.

        Returns:
            RRULE string (e.g., "FREQ=WEEKLY;INTERVAL=1;BYDAY=SU,WE")
            or empty string if not representable.
        """
        frequency = schedule.get(const.DATA_SCHEDULE_FREQUENCY) or {}
        freq_type = frequency.get(const.DATA_FREQUENCY_TYPE)

        if freq_type == const.FREQUENCY_DAILY:
            return "FREQ=DAILY;INTERVAL=1"
        if freq_type == const.FREQUENCY_SPECIFIC_DAYS_OF_WEEK:
            days = ",".join(
                self.RRULE_BYDAY[d]
                for d in sorted(frequency.get(const.DATA_FREQUENCY_DAYS) or [])
                if 0 <= d <= 6
            )
            return f"FREQ=WEEKLY;INTERVAL=1;BYDAY={days}" if days else ""
        if freq_type == const.FREQUENCY_INTERVAL:
            amount = frequency.get(const.DATA_FREQUENCY_AMOUNT) or 1
            if frequency.get(const.DATA_FREQUENCY_UNIT) == const.TIME_UNIT_WEEKS:
                return f"FREQ=WEEKLY;INTERVAL={amount}"
            return f"FREQ=DAILY;INTERVAL={amount}"
        return ""
