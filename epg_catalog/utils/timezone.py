"""
Date and Time utilities

This module handles all timestamp parsing for the catalog pipeline.
Every instant leaving this module is a timezone-aware UTC datetime.
"""
from datetime import datetime, timedelta, timezone
import logging
import re


logger = logging.getLogger(__name__)

_XMLTV_TIME_RE = re.compile(r"^(\d{14})(?:\s*([+-]\d{4}|Z))?$")


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def _normalize_iso8601_string(date_str: str) -> str:
    """Normalize ISO8601 string by replacing 'Z' with '+00:00'

    Args:
        date_str: ISO8601 datetime string

    Returns:
        Normalized string with explicit timezone offset
    """
    return date_str.replace('Z', '+00:00') if date_str.endswith('Z') else date_str


def parse_iso8601_to_utc(date_str: str) -> datetime:
    """
    Parse ISO8601 date string and convert to UTC datetime

    Args:
        date_str: ISO8601 datetime string (e.g., '2025-10-09T00:00:00Z' or '2025-10-09T00:00:00+01:00')

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the date string format is invalid
    """
    try:
        normalized = _normalize_iso8601_string(date_str.strip())
        dt = datetime.fromisoformat(normalized)
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, AttributeError) as e:
        raise DateFormatError(f"Invalid ISO8601 datetime format: '{date_str}'") from e


def parse_xmltv_time(time_str: str) -> datetime:
    """
    Convert XMLTV time token to a UTC datetime

    Args:
        time_str: XMLTV time like '20080715003000 -0600' or '20080715003000+0200'

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        DateFormatError: If the token does not follow YYYYMMDDHHMMSS[+-ZZZZ]
    """
    match = _XMLTV_TIME_RE.match(time_str.strip()) if isinstance(time_str, str) else None
    if not match:
        raise DateFormatError(f"Invalid XMLTV time format: '{time_str}'")

    try:
        dt = datetime.strptime(match.group(1), '%Y%m%d%H%M%S')
    except ValueError as e:
        raise DateFormatError(f"Invalid XMLTV time format: '{time_str}'") from e

    tz_part = match.group(2)
    if not tz_part or tz_part == 'Z':
        return dt.replace(tzinfo=timezone.utc)

    # Parse timezone offset (+-HHMM)
    tz_sign = 1 if tz_part[0] == '+' else -1
    tz_offset = timedelta(hours=int(tz_part[1:3]), minutes=int(tz_part[3:5]))

    return (dt - tz_sign * tz_offset).replace(tzinfo=timezone.utc)


def parse_timestamp(value: object) -> datetime | None:
    """
    Parse a timestamp in any supported source format

    Accepts XMLTV tokens, ISO8601 strings, and datetimes. Returns None for
    empty or unparseable values so callers can treat them as absent.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if not isinstance(value, str):
        logger.debug("Ignoring non-string timestamp value: %r", value)
        return None

    for parser in (parse_xmltv_time, parse_iso8601_to_utc):
        try:
            return parser(value)
        except DateFormatError:
            continue

    logger.debug("Unparseable timestamp: %r", value)
    return None


def format_catalog_window(now: datetime, *, start_hour: int = 6, days: int = 1) -> tuple[str, str]:
    """
    Build the 'YYYYMMDDHHMM' window parameters used by catalog APIs

    The window starts today at ``start_hour`` UTC and spans ``days`` days.
    """
    now_utc = now.astimezone(timezone.utc)
    start = now_utc.replace(hour=start_hour, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=days)
    return start.strftime('%Y%m%d%H%M'), end.strftime('%Y%m%d%H%M')
