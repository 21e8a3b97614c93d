"""Cache layer for habitcore engines.

Every memo table in the engine is a BoundedCache: a plain dict that clears
itself entirely once it grows past a fixed entry cap. There is no recency
bookkeeping; a burst of recomputation after a clear is cheaper than tracking
LRU order for lookups that are O(history length).

EngineCaches groups every table so the mutation surface can drop them all in
one call. Per-habit tables are a dict of BoundedCache keyed by habit id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from .. import const

if TYPE_CHECKING:
    from datetime import date

    from ..type_defs import ActiveHabit, DaySummary, HabitScheduleData

_MISSING: Any = object()

K = TypeVar("K")
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """Dict-backed memo table with a "clear when oversized" eviction policy."""

    __slots__ = ("_data", "_max_entries", "name")

    def __init__(self, max_entries: int, name: str = const.SENTINEL_EMPTY) -> None:
        """Initialize an empty table.

        Args:
            max_entries: Size above which the next insert clears the table.
            name: Label used in debug logging.
        """
        self._data: dict[K, V] = {}
        self._max_entries = max(1, max_entries)
        self.name = name

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def get(self, key: K, default: Any = _MISSING) -> V | Any:
        """Return the cached value, or `default` (a private sentinel) if absent.

        Cached values may legitimately be None or False, so callers compare
        against `BoundedCache.MISSING` rather than truthiness.
        """
        return self._data.get(key, default)

    def set(self, key: K, value: V) -> V:
        """Store a value, clearing the whole table first if it is oversized."""
        if len(self._data) > self._max_entries:
            const.LOGGER.debug(
                "Cache '%s' exceeded %s entries, clearing", self.name, self._max_entries
            )
            self._data.clear()
        self._data[key] = value
        return value

    def discard(self, key: K) -> None:
        """Remove a single key if present."""
        self._data.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        self._data.clear()

    MISSING = _MISSING


class EngineCaches:
    """All memo tables owned by one HabitEngine.

    Tables:
        schedule: habit_id -> {date_iso -> HabitSchedule | None}
        appearance: habit_id -> {date_iso -> bool}
        streaks: habit_id -> {end_date_iso -> int}
        anchor_dates: anchor_iso -> parsed date (global, parse-once)
        active_habits: date_iso -> [ActiveHabit]
        day_tallies: date_iso -> (total, completed, snoozed, pending)
        day_summaries: date_iso -> DaySummary
    """

    def __init__(
        self,
        max_entries: int = const.DEFAULT_MAX_CACHE_ENTRIES,
        max_anchor_entries: int = const.DEFAULT_MAX_ANCHOR_CACHE_ENTRIES,
    ) -> None:
        """Create empty tables with the given caps."""
        self._max_entries = max_entries
        self.schedule: dict[str, BoundedCache[str, HabitScheduleData | None]] = {}
        self.appearance: dict[str, BoundedCache[str, bool]] = {}
        self.streaks: dict[str, BoundedCache[str, int]] = {}
        self.anchor_dates: BoundedCache[str, date | None] = BoundedCache(
            max_anchor_entries, "anchor_dates"
        )
        self.active_habits: BoundedCache[str, list[ActiveHabit]] = BoundedCache(
            max_entries, "active_habits"
        )
        self.day_tallies: BoundedCache[str, tuple[int, int, int, int]] = BoundedCache(
            max_entries, "day_tallies"
        )
        self.day_summaries: BoundedCache[str, DaySummary] = BoundedCache(
            max_entries, "day_summaries"
        )

    def per_habit(
        self, table: dict[str, BoundedCache[str, Any]], habit_id: str
    ) -> BoundedCache[str, Any]:
        """Return (creating lazily) the sub-cache for one habit in a per-habit table."""
        sub_cache = table.get(habit_id)
        if sub_cache is None:
            sub_cache = BoundedCache(self._max_entries, habit_id)
            table[habit_id] = sub_cache
        return sub_cache

    def clear_all(self) -> None:
        """Wholesale invalidation of every table.

        Must be called after any mutation of habits, schedules, overrides or
        statuses, before the next query.
        """
        self.schedule.clear()
        self.appearance.clear()
        self.streaks.clear()
        self.anchor_dates.clear()
        self.active_habits.clear()
        self.day_tallies.clear()
        self.day_summaries.clear()
        const.LOGGER.debug("EngineCaches: all tables cleared")
