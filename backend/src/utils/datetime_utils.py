"""
Datetime utilities for consistent timezone handling across the application.

Bookings are stored as UTC instants. Availability is configured in the
practice's local wall-clock time, so every conversion here takes the
practice's IANA timezone explicitly instead of relying on server-local time.
"""

import logging
from datetime import datetime, timezone, timedelta, date, time
from functools import lru_cache
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.exceptions import InvalidTimeFormat
from shared_types.availability import DayOfWeek

logger = logging.getLogger(__name__)

# Accepted local datetime layouts, most specific first
_LOCAL_DATETIME_FORMATS = (
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M',
)


@lru_cache(maxsize=64)
def get_zone(tz_name: str) -> ZoneInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValueError: If the name is not a known timezone
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {tz_name}") from e


def utc_now() -> datetime:
    """Get the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def practice_now(tz_name: str, now: Optional[datetime] = None) -> datetime:
    """Get the current datetime in the practice's timezone."""
    return to_local(now if now is not None else utc_now(), tz_name)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware and in UTC.

    Naive values are assumed to already be UTC (some drivers, e.g. SQLite,
    drop tzinfo on the way back from the database).
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_of_week(instant: datetime, tz_name: str) -> DayOfWeek:
    """
    Map an instant to its lowercase day name in the practice's timezone.

    A booking at 2025-03-04 02:00 UTC is still Monday evening in Toronto,
    which is what the practice's weekly schedule is keyed on.
    """
    local = to_local(instant, tz_name)
    return DayOfWeek.from_date(local.date())


def to_local(instant: datetime, tz_name: str) -> datetime:
    """Convert a UTC (or naive-UTC) instant to an aware local datetime."""
    utc_instant = ensure_utc(instant)
    assert utc_instant is not None
    return utc_instant.astimezone(get_zone(tz_name))


def to_offset_local(instant: datetime, tz_name: str) -> datetime:
    """
    Convert an instant to practice-local time with a fixed UTC offset.

    Datetimes sharing one ZoneInfo compare by wall clock and ignore fold, so
    01:30 EDT and 01:30 EST would look equal on the fall-back day. A fixed
    offset keeps comparisons and arithmetic on real elapsed time.
    """
    local = to_local(instant, tz_name)
    return local.replace(tzinfo=timezone(local.utcoffset()))


def parse_local_datetime(value: str, tz_name: str) -> datetime:
    """
    Parse a local datetime string in the practice timezone.

    Accepts "YYYY-MM-DD HH:MM[:SS]" or the ISO "T" form. Strings that carry
    an explicit offset (e.g. "...+00:00" or "...Z") are honoured as-is.

    Returns:
        Aware datetime in the practice timezone

    Raises:
        InvalidTimeFormat: If the string cannot be parsed
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimeFormat(value, "empty value")

    text = value.strip()
    zone = get_zone(tz_name)

    for fmt in _LOCAL_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=zone)
        except ValueError:
            continue

    # Fall back to ISO parsing for offset-bearing strings
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError as e:
        raise InvalidTimeFormat(value) from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def to_utc(local_datetime: str | datetime, tz_name: str) -> datetime:
    """
    Convert a practice-local datetime (string or naive datetime) to UTC.

    Raises:
        InvalidTimeFormat: If a string value cannot be parsed
    """
    if isinstance(local_datetime, datetime):
        if local_datetime.tzinfo is None:
            local_datetime = local_datetime.replace(tzinfo=get_zone(tz_name))
        return local_datetime.astimezone(timezone.utc)

    return parse_local_datetime(local_datetime, tz_name).astimezone(timezone.utc)


def add_minutes(instant: datetime, minutes: int) -> datetime:
    """Shift an instant by a number of minutes (used to derive end times)."""
    return instant + timedelta(minutes=minutes)


def combine_local(local_date: date, time_of_day: time, tz_name: str) -> datetime:
    """Build an aware local datetime from a date and a wall-clock time."""
    return datetime.combine(local_date, time_of_day).replace(tzinfo=get_zone(tz_name))


def local_day_bounds(local_date: date, tz_name: str) -> Tuple[datetime, datetime]:
    """
    Get the UTC window covering one local calendar day.

    Uses the next local midnight rather than +24h so DST transition days
    (23 or 25 hours long) are covered exactly.
    """
    start = combine_local(local_date, time.min, tz_name)
    end = combine_local(local_date + timedelta(days=1), time.min, tz_name)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Automatically normalizes single-digit months/days.

    Raises:
        InvalidTimeFormat: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise InvalidTimeFormat(date_str, "empty date")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise InvalidTimeFormat(date_str, "expected YYYY-MM-DD or YYYY/MM/DD")

    if len(parts) != 3:
        raise InvalidTimeFormat(date_str, "expected YYYY-MM-DD or YYYY/MM/DD")

    normalized = f"{parts[0].zfill(4)}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise InvalidTimeFormat(date_str, "expected YYYY-MM-DD or YYYY/MM/DD") from e
