"""Tests for engines/status_store.py - slot statuses and packed forms.

Test Categories:
- Day pack/unpack for all 4x4x4 slot combinations
- Store reads/writes and defensive defaults
- Shard export/import (system-of-record layout)
- Month wide-integer and byte buffer forms
"""

from __future__ import annotations

import itertools
import json

import pytest

from habitcore import const
from habitcore.engines.status_store import (
    DaySlots,
    HabitStatus,
    StatusStore,
    month_from_bytes,
    month_to_bytes,
    pack_day,
    unpack_day,
)

ALL_TRIPLES = list(itertools.product(HabitStatus, repeat=3))


# =============================================================================
# Day packing
# =============================================================================


class TestDayPacking:
    """pack_day() / unpack_day() bit layout."""

    def test_slot_bit_layout(self) -> None:
        """Morning bits 0-1, Afternoon bits 2-3, Evening bits 4-5."""
        slots = DaySlots(HabitStatus.DONE, HabitStatus.DEFERRED, HabitStatus.DONE_PLUS)
        assert pack_day(slots) == 1 | (2 << 2) | (3 << 4)

    @pytest.mark.parametrize("triple", ALL_TRIPLES)
    def test_shard_round_trip(self, triple: tuple[HabitStatus, ...]) -> None:
        """Every combination survives export to shards and import back."""
        store = StatusStore()
        for time, status in zip(const.TIMES_OF_DAY, triple, strict=True):
            store.set_status("h", "2024-01-15", time, status)

        restored = StatusStore()
        restored.import_shards(json.loads(json.dumps(store.export_shards())))

        assert restored.get_day("h", "2024-01-15").as_tuple() == triple

    def test_unpack_known_value(self) -> None:
        assert unpack_day(0b11_01_10) == DaySlots(
            HabitStatus.DEFERRED, HabitStatus.DONE, HabitStatus.DONE_PLUS
        )

    def test_with_status_is_copy(self) -> None:
        empty = DaySlots()
        updated = empty.with_status(const.TIME_EVENING, HabitStatus.DONE)
        assert empty.is_empty
        assert updated.evening == HabitStatus.DONE
        assert updated.get("Night") == HabitStatus.PENDING


# =============================================================================
# Store reads / writes
# =============================================================================


class TestStoreReadsWrites:
    """get_status() / set_status() behavior."""

    def test_absent_is_pending(self) -> None:
        store = StatusStore()
        assert store.get_status("h", "2024-01-01", const.TIME_MORNING) == (
            HabitStatus.PENDING
        )
        assert store.get_status("h", "garbage", "Night") == HabitStatus.PENDING

    def test_set_and_reset_to_pending_removes_entry(self) -> None:
        store = StatusStore()
        assert store.set_status("h", "2024-01-01", const.TIME_MORNING, 1)
        assert store.get_status("h", "2024-01-01", const.TIME_MORNING) == (
            HabitStatus.DONE
        )
        assert len(store) == 1

        store.set_status("h", "2024-01-01", const.TIME_MORNING, HabitStatus.PENDING)
        assert len(store) == 0
        assert store.export_shards() == {}

    @pytest.mark.parametrize(
        ("habit_id", "date_iso", "time", "status"),
        [
            ("", "2024-01-01", const.TIME_MORNING, 1),
            ("h", "2024-13-01", const.TIME_MORNING, 1),
            ("h", "2024-01-01", "Night", 1),
            ("h", "2024-01-01", const.TIME_MORNING, 7),
        ],
    )
    def test_invalid_writes_rejected(
        self, habit_id: str, date_iso: str, time: str, status: int
    ) -> None:
        store = StatusStore()
        assert store.set_status(habit_id, date_iso, time, status) is False
        assert len(store) == 0

    def test_prune_habit(self) -> None:
        store = StatusStore()
        store.set_status("a", "2024-01-01", const.TIME_MORNING, HabitStatus.DONE)
        store.set_status("a", "2024-01-02", const.TIME_MORNING, HabitStatus.DONE)
        store.set_status("b", "2024-01-01", const.TIME_MORNING, HabitStatus.DONE)
        assert store.prune_habit("a") == 2
        assert len(store) == 1


# =============================================================================
# Shards
# =============================================================================


class TestShards:
    """Shard export/import layout."""

    def test_export_layout(self) -> None:
        store = StatusStore()
        store.set_status("h_2", "2024-02-01", const.TIME_EVENING, HabitStatus.DONE)
        store.set_status("h_1", "2024-01-31", const.TIME_MORNING, HabitStatus.DEFERRED)
        store.set_status("h_1", "2024-01-02", const.TIME_AFTERNOON, HabitStatus.DONE)

        assert store.export_shards() == {
            "logs:2024-01": [["h_1_2024-01-02", "4"], ["h_1_2024-01-31", "2"]],
            "logs:2024-02": [["h_2_2024-02-01", "16"]],
        }

    def test_import_accepts_json_and_hex(self) -> None:
        store = StatusStore()
        loaded = store.import_shards(
            {
                "logs:2024-01": json.dumps([["h_2024-01-01", "0x15"]]),
                "logs:2024-02": [["h_2024-02-01", 3]],
                "settings": {"ignored": True},
            }
        )
        assert loaded == 2
        assert store.get_day("h", "2024-01-01").as_tuple() == (
            HabitStatus.DONE,
            HabitStatus.DONE,
            HabitStatus.DONE,
        )
        assert store.get_status("h", "2024-02-01", const.TIME_MORNING) == (
            HabitStatus.DONE_PLUS
        )

    def test_import_skips_malformed(self, caplog: pytest.LogCaptureFixture) -> None:
        store = StatusStore()
        loaded = store.import_shards(
            {
                "logs:2024-01": [
                    ["h_2024-01-01", "1"],
                    ["h_2024-01-02", "99"],
                    ["no-date", "1"],
                    ["h_2024-02-30", "1"],
                    ["h_2024-01-03"],
                ],
                "logs:2024-03": "{not json",
                "logs:2024-04": 12,
            }
        )
        assert loaded == 1
        assert "Skipping" in caplog.text

    def test_import_replace_and_overlay(self) -> None:
        store = StatusStore()
        store.set_status("old", "2024-01-01", const.TIME_MORNING, HabitStatus.DONE)

        store.import_shards({"logs:2024-01": [["new_2024-01-01", "1"]]}, replace=False)
        assert len(store) == 2

        store.import_shards({"logs:2024-01": [["new_2024-01-01", "1"]]})
        assert store.get_status("old", "2024-01-01", const.TIME_MORNING) == (
            HabitStatus.PENDING
        )


# =============================================================================
# Month wide-integer form
# =============================================================================


class TestMonthForm:
    """pack_month() / load_month() / byte buffers."""

    def test_pack_month_offsets(self) -> None:
        store = StatusStore()
        store.set_status("h", "2024-01-01", const.TIME_MORNING, HabitStatus.DONE)
        store.set_status("h", "2024-01-31", const.TIME_EVENING, HabitStatus.DONE_PLUS)
        store.set_status("h", "2024-02-01", const.TIME_MORNING, HabitStatus.DONE)

        value = store.pack_month("h", "2024-01")

        assert value == 1 | ((3 << 4) << (30 * 6))

    def test_wide_and_bytes_round_trip(self) -> None:
        store = StatusStore()
        store.set_status("h", "2024-02-29", const.TIME_AFTERNOON, HabitStatus.DEFERRED)
        store.set_status("h", "2024-02-10", const.TIME_MORNING, HabitStatus.DONE)

        buffer = month_to_bytes(store.pack_month("h", "2024-02"))
        assert len(buffer) == const.MONTH_BUFFER_BYTES

        restored = StatusStore()
        assert restored.load_month("h", "2024-02", month_from_bytes(buffer)) == 2
        assert restored.export_shards() == store.export_shards()

    def test_legacy_short_buffer(self) -> None:
        """An 8-byte little-endian buffer decodes to the same value."""
        assert month_from_bytes((21).to_bytes(8, "little")) == 21

    def test_load_month_invalid_key(self) -> None:
        assert StatusStore().load_month("h", "2024-13", 1) == 0

    def test_export_import_wide(self) -> None:
        store = StatusStore()
        store.set_status("h_x", "2024-03-05", const.TIME_MORNING, HabitStatus.DONE)
        exported = store.export_wide()
        assert list(exported) == ["h_x_2024-03"]

        restored = StatusStore()
        months = {key: hex(value) for key, value in exported.items()}
        months["bad"] = "1"
        assert restored.import_wide(months) == 1
        assert restored.get_status("h_x", "2024-03-05", const.TIME_MORNING) == (
            HabitStatus.DONE
        )

    def test_import_wide_bytes(self) -> None:
        restored = StatusStore()
        restored.import_wide({"h_2024-03": month_to_bytes(1 << 6)})
        assert restored.get_status("h", "2024-03-02", const.TIME_MORNING) == (
            HabitStatus.DONE
        )
