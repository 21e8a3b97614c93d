# File: utils/dt_utils.py
"""Date utilities for habitcore.

Pure Python date functions shared by every engine. All dates that cross the
engine boundary are ISO strings ("YYYY-MM-DD"); lexical comparison of those
strings is the ordering used for schedule windows and tombstones, so every
function here either returns a canonical ISO string or None.

Uses standard library only: datetime, zoneinfo.

Functions:
    - set_default_timezone: Configure the zone used for "today"
    - dt_today_iso: Today's date in the configured zone
    - dt_parse_date: Strictly parse a canonical ISO date string
    - dt_normalize_iso: Normalize str/date input to a canonical ISO string
    - dt_add_days: Shift an ISO date by N days
    - dt_weekday_sunday0: Weekday with 0 = Sunday (stored frequency format)
    - dt_month_key / dt_day_of_month: Split an ISO date for shard packing
    - dt_iso_from_month_day: Rebuild an ISO date from a month key and day
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import logging
import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}$")


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo | str) -> None:
    """Set the default timezone used to compute "today".

    Args:
        tz: ZoneInfo object or IANA name. Unknown names keep the current zone.
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    if isinstance(tz, str):
        try:
            tz = ZoneInfo(tz)
        except (ZoneInfoNotFoundError, ValueError):
            _LOGGER.warning("Unknown time zone '%s', keeping %s", tz, DEFAULT_TIME_ZONE)
            return
    DEFAULT_TIME_ZONE = tz


# ==============================================================================
# Current Date Functions
# ==============================================================================


def dt_today_iso(tz: ZoneInfo | None = None) -> str:
    """Return today's date in the configured timezone as "YYYY-MM-DD".

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Example:
        "2025-04-07"
    """
    return datetime.now(tz or DEFAULT_TIME_ZONE).date().isoformat()


# ==============================================================================
# Parsing / Normalization
# ==============================================================================


def dt_parse_date(date_str: str | None) -> date | None:
    """Strictly parse a canonical ISO date string into a `datetime.date`.

    Only "YYYY-MM-DD" is accepted. Compact or week-based forms that
    `date.fromisoformat` would also accept are rejected, because the engines
    compare ISO strings lexically.

    Args:
        date_str: Date string to parse, or None

    Returns:
        datetime.date or None if the input is not a valid ISO date.
    """
    if not date_str or not isinstance(date_str, str):
        return None
    if not ISO_DATE_PATTERN.match(date_str):
        return None
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        return None


def dt_normalize_iso(value: str | date | None) -> str | None:
    """Normalize a date input to a canonical ISO string.

    Args:
        value: ISO string, date/datetime, or None.

    Returns:
        "YYYY-MM-DD" or None if the input cannot be interpreted.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    parsed = dt_parse_date(value)
    return parsed.isoformat() if parsed else None


# ==============================================================================
# Day Arithmetic
# ==============================================================================


def dt_add_days(date_iso: str | None, days: int) -> str | None:
    """Shift an ISO date by a number of days (negative goes back).

    Returns:
        Shifted ISO date, or None if the input is invalid or out of range.
    """
    parsed = dt_parse_date(date_iso)
    if parsed is None:
        return None
    try:
        return (parsed + timedelta(days=days)).isoformat()
    except OverflowError:
        return None


def dt_weekday_sunday0(value: date) -> int:
    """Return the weekday with 0 = Sunday ... 6 = Saturday.

    Stored `specific_days_of_week` frequencies use this convention, while
    Python's `date.weekday()` uses 0 = Monday.
    """
    return (value.weekday() + 1) % 7


# ==============================================================================
# Month Keys (shard packing)
# ==============================================================================


def dt_month_key(date_iso: str) -> str:
    """Return the "YYYY-MM" prefix of an ISO date."""
    return date_iso[:7]


def dt_day_of_month(date_iso: str) -> int:
    """Return the day of month (1-31) of an ISO date."""
    return int(date_iso[8:10])


def dt_iso_from_month_day(month_key: str, day: int) -> str | None:
    """Rebuild an ISO date from a "YYYY-MM" key and a day of month.

    Returns:
        ISO date, or None if the month key is malformed or the day does not
        exist in that month (e.g. Feb 30).
    """
    if not isinstance(month_key, str) or not MONTH_KEY_PATTERN.match(month_key):
        return None
    return dt_normalize_iso(f"{month_key}-{day:02d}") if 1 <= day <= 31 else None
