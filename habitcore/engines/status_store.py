"""Status Store - per-day, per-slot completion state.

Core logic only ever sees `DaySlots` (one `HabitStatus` per time-of-day slot).
Packed integers exist solely at the serialization boundary:

System-of-record layout (per-day):
    entry key:    "{habit_id}_YYYY-MM-DD"
    packed value: 2 bits per slot, Morning = bits 0-1, Afternoon = bits 2-3,
                  Evening = bits 4-5 (value range 0..63)
    shard:        "logs:YYYY-MM" -> ordered [[entry_key, "decimal"], ...]

Bulk-transfer layout (per habit-month wide integer):
    key:          "{habit_id}_YYYY-MM"
    value:        day d occupies bits (d - 1) * 6 .. (d - 1) * 6 + 5
    bytes:        24-byte little-endian buffer (31 days * 6 bits = 186 bits)

Both layouts hold the same per-slot codes; converting between them is exact.
Mutation (`set_status`) belongs to the mutation surface; engines only read.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import IntEnum
import json
from typing import Any

import voluptuous as vol

from .. import const
from ..data_builders import (
    SHARD_ENTRY_SCHEMA,
    coerce_wide_value,
    make_entry_key,
    parse_entry_key,
)
from ..utils.dt_utils import (
    dt_day_of_month,
    dt_iso_from_month_day,
    dt_month_key,
    dt_normalize_iso,
)


class HabitStatus(IntEnum):
    """Completion state of one (habit, date, slot). Values are the 2-bit codes."""

    PENDING = 0
    DONE = 1
    DEFERRED = 2
    DONE_PLUS = 3

    @property
    def is_completed(self) -> bool:
        """Done and DonePlus both count as completed."""
        return self in (HabitStatus.DONE, HabitStatus.DONE_PLUS)


@dataclass(frozen=True, slots=True)
class DaySlots:
    """Statuses of the three time-of-day slots of one (habit, date)."""

    morning: HabitStatus = HabitStatus.PENDING
    afternoon: HabitStatus = HabitStatus.PENDING
    evening: HabitStatus = HabitStatus.PENDING

    def get(self, time: str) -> HabitStatus:
        """Return the status of a slot (PENDING for unknown slot names)."""
        if time == const.TIME_MORNING:
            return self.morning
        if time == const.TIME_AFTERNOON:
            return self.afternoon
        if time == const.TIME_EVENING:
            return self.evening
        return HabitStatus.PENDING

    def with_status(self, time: str, status: HabitStatus) -> DaySlots:
        """Return a copy with one slot replaced."""
        return DaySlots(
            morning=status if time == const.TIME_MORNING else self.morning,
            afternoon=status if time == const.TIME_AFTERNOON else self.afternoon,
            evening=status if time == const.TIME_EVENING else self.evening,
        )

    def as_tuple(self) -> tuple[HabitStatus, HabitStatus, HabitStatus]:
        """Statuses in canonical slot order (Morning, Afternoon, Evening)."""
        return (self.morning, self.afternoon, self.evening)

    @property
    def is_empty(self) -> bool:
        """True when every slot is PENDING."""
        return not any(self.as_tuple())


EMPTY_DAY = DaySlots()


# ==============================================================================
# Pack / unpack (serialization boundary)
# ==============================================================================


def pack_day(slots: DaySlots) -> int:
    """Pack a day's three slot statuses into one 6-bit integer."""
    value = 0
    for time, status in zip(const.TIMES_OF_DAY, slots.as_tuple(), strict=True):
        value |= int(status) << const.SLOT_BIT_OFFSET[time]
    return value


def unpack_day(value: int) -> DaySlots:
    """Unpack a 6-bit integer into a day's three slot statuses."""
    codes = [
        HabitStatus((value >> const.SLOT_BIT_OFFSET[time]) & const.STATUS_SLOT_MASK)
        for time in const.TIMES_OF_DAY
    ]
    return DaySlots(*codes)


def shard_key(month_key: str) -> str:
    """Return the shard key "logs:YYYY-MM" for a month."""
    return f"{const.SHARD_KEY_PREFIX}{month_key}"


def month_to_bytes(value: int) -> bytes:
    """Encode a month wide-integer as a fixed-size little-endian buffer."""
    return value.to_bytes(const.MONTH_BUFFER_BYTES, "little")


def month_from_bytes(buffer: bytes | bytearray | memoryview) -> int:
    """Decode a month buffer. Shorter (legacy 8-byte) buffers are accepted."""
    data = bytes(buffer)
    if len(data) > const.MONTH_BUFFER_BYTES:
        const.LOGGER.warning(
            "Month buffer of %s bytes truncated to %s",
            len(data),
            const.MONTH_BUFFER_BYTES,
        )
        data = data[: const.MONTH_BUFFER_BYTES]
    return int.from_bytes(data, "little")


# ==============================================================================
# Store
# ==============================================================================


class StatusStore:
    """In-memory status table: habit_id -> date_iso -> DaySlots.

    All-pending days are never stored, so absence and PENDING are the same.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._days: dict[str, dict[str, DaySlots]] = {}

    def __len__(self) -> int:
        return sum(len(days) for days in self._days.values())

    def __iter__(self) -> Iterator[tuple[str, str, DaySlots]]:
        for habit_id, days in self._days.items():
            for date_iso, slots in days.items():
                yield habit_id, date_iso, slots

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_day(self, habit_id: str, date_iso: str) -> DaySlots:
        """Return the day's slot statuses (all PENDING if absent)."""
        return self._days.get(habit_id, {}).get(date_iso, EMPTY_DAY)

    def get_status(self, habit_id: str, date_iso: str, time: str) -> HabitStatus:
        """Return one slot's status (PENDING if absent or the input is bad)."""
        return self.get_day(habit_id, date_iso).get(time)

    # ------------------------------------------------------------------
    # Writes (mutation surface only)
    # ------------------------------------------------------------------

    def set_status(
        self, habit_id: str, date_iso: str, time: str, status: HabitStatus | int
    ) -> bool:
        """Write one slot's status.

        Returns:
            True if written, False if any argument was invalid.
        """
        normalized = dt_normalize_iso(date_iso)
        if not habit_id or normalized is None or time not in const.TIMES_OF_DAY:
            const.LOGGER.warning(
                "StatusStore: Rejecting status write %s/%s/%s", habit_id, date_iso, time
            )
            return False
        try:
            status = HabitStatus(status)
        except ValueError:
            const.LOGGER.warning("StatusStore: Invalid status code %r", status)
            return False

        slots = self.get_day(habit_id, normalized).with_status(time, status)
        self._put_day(habit_id, normalized, slots)
        return True

    def _put_day(self, habit_id: str, date_iso: str, slots: DaySlots) -> None:
        if slots.is_empty:
            days = self._days.get(habit_id)
            if days is not None:
                days.pop(date_iso, None)
                if not days:
                    del self._days[habit_id]
            return
        self._days.setdefault(habit_id, {})[date_iso] = slots

    def prune_habit(self, habit_id: str) -> int:
        """Remove every entry of a habit. Returns the number of days removed."""
        removed = self._days.pop(habit_id, {})
        return len(removed)

    def clear(self) -> None:
        """Remove every entry."""
        self._days.clear()

    # ------------------------------------------------------------------
    # Shard export / import (system of record)
    # ------------------------------------------------------------------

    def export_shards(self) -> dict[str, list[list[str]]]:
        """Export every non-empty day grouped into monthly shards.

        Returns:
            {"logs:YYYY-MM": [["{habit_id}_YYYY-MM-DD", "<decimal>"], ...]}
            with shards and entries sorted by key.
        """
        shards: dict[str, list[list[str]]] = {}
        for habit_id, date_iso, slots in self:
            entry = [make_entry_key(habit_id, date_iso), str(pack_day(slots))]
            shards.setdefault(shard_key(dt_month_key(date_iso)), []).append(entry)
        for entries in shards.values():
            entries.sort(key=lambda item: item[0])
        return dict(sorted(shards.items()))

    def import_shards(self, shards: Mapping[str, Any], replace: bool = True) -> int:
        """Load monthly shards produced by `export_shards` (or a peer device).

        Args:
            shards: Shard key -> payload, where payload is a list of
                [entry_key, value] pairs or its JSON string encoding.
                Non-"logs:" keys are ignored.
            replace: Clear the store first (boot/import); False overlays.

        Returns:
            Number of day entries loaded. Malformed shards and entries are
            logged and skipped.
        """
        if replace:
            self.clear()
        loaded = 0
        for key, payload in shards.items():
            if not isinstance(key, str) or not key.startswith(const.SHARD_KEY_PREFIX):
                continue
            entries = self._decode_payload(key, payload)
            for item in entries:
                try:
                    entry_key, value = SHARD_ENTRY_SCHEMA(item)
                except vol.Invalid as err:
                    const.LOGGER.warning("Skipping shard entry in %s: %s", key, err)
                    continue
                parsed = parse_entry_key(entry_key)
                if parsed is None:
                    const.LOGGER.warning(
                        "Skipping entry with invalid date: %s", entry_key
                    )
                    continue
                habit_id, date_iso = parsed
                self._put_day(habit_id, date_iso, unpack_day(value))
                loaded += 1
        const.LOGGER.debug("StatusStore: Imported %s day entries", loaded)
        return loaded

    @staticmethod
    def _decode_payload(key: str, payload: Any) -> list[Any]:
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError:
                const.LOGGER.warning("Skipping shard %s: payload is not JSON", key)
                return []
        if not isinstance(payload, list):
            const.LOGGER.warning("Skipping shard %s: payload is not a list", key)
            return []
        return payload

    # ------------------------------------------------------------------
    # Month wide-integer form (bulk transfer)
    # ------------------------------------------------------------------

    def pack_month(self, habit_id: str, month_key: str) -> int:
        """Pack every day of one habit-month into a single wide integer."""
        value = 0
        for date_iso, slots in self._days.get(habit_id, {}).items():
            if dt_month_key(date_iso) != month_key:
                continue
            offset = (dt_day_of_month(date_iso) - 1) * const.STATUS_BITS_PER_DAY
            value |= pack_day(slots) << offset
        return value

    def load_month(self, habit_id: str, month_key: str, value: int) -> int:
        """Overwrite one habit-month from a wide integer.

        Returns:
            Number of non-empty days loaded, or 0 if the month key is invalid.
        """
        if dt_iso_from_month_day(month_key, 1) is None:
            const.LOGGER.warning("load_month: invalid month key %r", month_key)
            return 0

        day_mask = (1 << const.STATUS_BITS_PER_DAY) - 1
        loaded = 0
        for day in range(1, 32):
            date_iso = dt_iso_from_month_day(month_key, day)
            day_value = (value >> ((day - 1) * const.STATUS_BITS_PER_DAY)) & day_mask
            if date_iso is None:
                if day_value:
                    const.LOGGER.warning(
                        "load_month: bits set for nonexistent day %s-%02d",
                        month_key,
                        day,
                    )
                continue
            slots = unpack_day(day_value)
            self._put_day(habit_id, date_iso, slots)
            loaded += 0 if slots.is_empty else 1
        return loaded

    def export_wide(self) -> dict[str, int]:
        """Export every habit-month as {"{habit_id}_YYYY-MM": wide integer}."""
        result: dict[str, int] = {}
        for habit_id, days in self._days.items():
            for month_key in sorted({dt_month_key(d) for d in days}):
                result[f"{habit_id}{const.ENTRY_KEY_SEPARATOR}{month_key}"] = (
                    self.pack_month(habit_id, month_key)
                )
        return result

    def import_wide(self, months: Mapping[str, Any]) -> int:
        """Load {"{habit_id}_YYYY-MM": value} where value is an int, decimal
        string, "0x" hex string, or a bytes-like month buffer.

        Returns:
            Number of non-empty days loaded.
        """
        loaded = 0
        for key, raw_value in months.items():
            habit_id, _, month_key = str(key).rpartition(const.ENTRY_KEY_SEPARATOR)
            if not habit_id:
                const.LOGGER.warning("import_wide: malformed key %r", key)
                continue
            try:
                if isinstance(raw_value, (bytes, bytearray, memoryview)):
                    value = month_from_bytes(raw_value)
                else:
                    value = coerce_wide_value(raw_value)
            except vol.Invalid as err:
                const.LOGGER.warning("import_wide: skipping %s: %s", key, err)
                continue
            loaded += self.load_month(habit_id, month_key, value)
        return loaded
