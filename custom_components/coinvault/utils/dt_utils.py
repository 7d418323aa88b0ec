# File: utils/dt_utils.py
"""Date and time utilities for Coin Vault.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

Calendar days are always derived in an explicit time zone passed by the
caller (the integration's configured calendar time zone). Nothing here reads
the process locale.

Functions:
    - as_utc: Normalize a datetime to UTC
    - as_local: Convert a datetime into a calendar time zone
    - dt_day_id: Calendar day identifier (YYYY-MM-DD)
    - dt_previous_day_id: Identifier of the preceding calendar day
    - dt_start_of_next_day: Next local midnight
    - dt_parse: Normalize ISO strings / datetimes to aware UTC datetimes
    - dt_to_iso: Serialize a datetime as a UTC ISO string
    - dt_minutes_until: Whole minutes remaining until a target (ceiling)
    - dt_serialize: Make nested results JSON-serializable
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime, time, timedelta
import logging
import math
from typing import Any
from zoneinfo import ZoneInfo

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# Default calendar time zone when the caller passes none
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC timezone.

    Naive datetimes are assumed to already be UTC.
    """
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to the calendar time zone.

    Args:
        dt_obj: Datetime object (naive values are treated as UTC)
        tz: Calendar time zone. Uses DEFAULT_TIME_ZONE if not provided.

    Returns:
        Datetime in the calendar time zone
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return as_utc(dt_obj).astimezone(tz_info)


# ==============================================================================
# Calendar Day Identifiers
# ==============================================================================


def dt_day_id(dt_obj: datetime, tz: ZoneInfo | None = None) -> str:
    """Return the calendar day identifier for a datetime.

    Example:
        dt_day_id(datetime(2024, 5, 1, 23, 30, tzinfo=UTC)) -> "2024-05-01"
    """
    return as_local(dt_obj, tz).date().isoformat()


def dt_previous_day_id(dt_obj: datetime, tz: ZoneInfo | None = None) -> str:
    """Return the identifier of the calendar day before dt_obj's day."""
    local_date: date = as_local(dt_obj, tz).date()
    return (local_date - timedelta(days=1)).isoformat()


def dt_start_of_next_day(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Return the next local midnight after dt_obj (timezone-aware).

    Example:
        2024-05-01T10:00 UTC, tz=UTC -> 2024-05-02T00:00+00:00
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    local_date = as_local(dt_obj, tz_info).date()
    return datetime.combine(local_date + timedelta(days=1), time.min, tzinfo=tz_info)


# ==============================================================================
# Parsing / Formatting
# ==============================================================================


def dt_parse(value: Any) -> datetime | None:
    """Normalize a stored timestamp into an aware UTC datetime.

    Accepts datetime objects and ISO 8601 strings. Anything else, including
    malformed strings, yields None so callers can treat the field as unset.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        _LOGGER.debug("DEBUG: Ignoring unparseable timestamp '%s'", value)
        return None
    return as_utc(parsed)


def dt_to_iso(dt_obj: datetime) -> str:
    """Serialize a datetime as a UTC ISO 8601 string."""
    return as_utc(dt_obj).isoformat()


def dt_minutes_until(target: datetime, now: datetime) -> int:
    """Return whole minutes from now until target, rounded up.

    Returns 0 when target is not in the future.
    """
    remaining = (as_utc(target) - as_utc(now)).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining / 60)


def dt_serialize(value: Any) -> Any:
    """Recursively replace datetimes with ISO strings for JSON payloads.

    Mappings become dicts and tuples become lists; other values pass through.
    """
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {key: dt_serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [dt_serialize(item) for item in value]
    return value
