"""
Date and time utility functions used across the project.

Notes:
- Calendar date strings at rest are normalized to zero-padded ``YYYY-MM-DD``.
  The calendar dataset uses the unpadded ``YYYY/M/D`` form, and older records
  may carry a full ISO timestamp; both normalize to the same string.
- All "UTC" helpers use timezone-aware datetimes with `timezone.utc`.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from schoolhub.core.exceptions import ConfigurationError, InvalidFormatError

UTC = timezone.utc

# YYYY-MM-DD, YYYY/M/D, YYYY-M-D, optionally followed by an ISO time part
_DATE_PATTERN = re.compile(
    r"^\s*(\d{4})[-/](\d{1,2})[-/](\d{1,2})"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?\s*$"
)

DateLike = Union[str, date, datetime]


def now_utc() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def get_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA timezone name."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone: {name}", setting="LOCAL_TIMEZONE") from e


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Return today's date in the named timezone."""
    now = now or now_utc()
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return now.astimezone(get_timezone(tz_name)).date()


def split_date_string(value: str, calendar: str | None = None) -> Tuple[int, int, int]:
    """
    Split a date string into integer (year, month, day) parts.

    Only the shape is checked here; whether the day exists in the given
    calendar is left to the conversion service.

    Raises:
        InvalidFormatError: if the string is not a recognised date form
    """
    if not isinstance(value, str):
        raise InvalidFormatError(value, calendar=calendar)
    match = _DATE_PATTERN.match(value)
    if not match:
        raise InvalidFormatError(value, calendar=calendar)
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def format_date_parts(year: int, month: int, day: int) -> str:
    """Format (year, month, day) as zero-padded ``YYYY-MM-DD``."""
    return f"{year:04d}-{month:02d}-{day:02d}"


def normalize_date_string(value: str, calendar: str | None = None) -> str:
    """Normalize any accepted date string to ``YYYY-MM-DD`` without range checks."""
    return format_date_parts(*split_date_string(value, calendar))


def parse_ad_date(value: DateLike) -> date:
    """
    Parse an AD (Gregorian) date from a string, date or datetime.

    Raises:
        InvalidFormatError: if the value is not a valid Gregorian date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    year, month, day = split_date_string(value, calendar="AD")
    try:
        return date(year, month, day)
    except ValueError as e:
        raise InvalidFormatError(value, calendar="AD") from e


def normalize_ad_date(value: DateLike) -> str:
    """Normalize an AD date to ``YYYY-MM-DD``, validating that the day exists."""
    return parse_ad_date(value).isoformat()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each day from start to end inclusive; nothing when start > end."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def day_diff(start: date, end: date) -> int:
    """Whole days from start to end (negative when end precedes start)."""
    return (end - start).days


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DD HH:MM:SS``."""
    return dt.strftime("%Y-%m-%d %H:%M:%S")


__all__ = [
    "UTC",
    "now_utc",
    "get_timezone",
    "local_today",
    "split_date_string",
    "format_date_parts",
    "normalize_date_string",
    "parse_ad_date",
    "normalize_ad_date",
    "iter_days",
    "day_diff",
    "format_timestamp",
]
