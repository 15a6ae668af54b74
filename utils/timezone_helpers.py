"""
Timezone utilities for deriving attendance date keys and report ranges.

Attendance records are keyed by the calendar date in the user's local
timezone, so every conversion from "now" to a key goes through here.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core import config

DATE_KEY_FORMAT = "%Y-%m-%d"


def from_utc_to_local(utc_dt: datetime, tz: str) -> datetime:
    """
    Convert UTC datetime to local datetime in the specified timezone.

    Args:
        utc_dt: UTC datetime (naive values are treated as UTC)
        tz: IANA timezone string (e.g., 'Asia/Kolkata', 'America/New_York')

    Returns:
        datetime: Local datetime in the specified timezone
    """
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)

    return utc_dt.astimezone(ZoneInfo(tz))


def get_current_time_in_tz(tz: str) -> datetime:
    """Current wall-clock time in the specified timezone."""
    return from_utc_to_local(datetime.now(timezone.utc), tz)


def validate_timezone(tz: str) -> bool:
    """
    Validate if the timezone string is a valid IANA timezone.

    Returns:
        bool: True if valid, False otherwise
    """
    try:
        ZoneInfo(tz)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_default_timezone() -> str:
    return config.ATTENDANCE_TIMEZONE


def resolve_timezone(tz: Optional[str]) -> str:
    """Use ``tz`` when it is a valid IANA name, otherwise the service default."""
    if tz and validate_timezone(tz):
        return tz
    return get_default_timezone()


def date_key(moment: datetime, tz: str) -> str:
    """The YYYY-MM-DD attendance key for ``moment`` as seen in ``tz``."""
    return from_utc_to_local(moment, tz).strftime(DATE_KEY_FORMAT)


def date_key_for_day(day: date) -> str:
    return day.strftime(DATE_KEY_FORMAT)


def parse_date_key(key: str) -> date:
    return datetime.strptime(key, DATE_KEY_FORMAT).date()


def days_in_range(start: date, end: date) -> List[date]:
    """Every day from ``start`` to ``end`` inclusive, newest first."""
    if end < start:
        start, end = end, start
    span = (end - start).days
    return [end - timedelta(days=offset) for offset in range(span + 1)]


def get_week_range(day: date) -> Tuple[date, date]:
    """Monday..Sunday of the week containing ``day``."""
    week_start = day - timedelta(days=day.weekday())
    return week_start, week_start + timedelta(days=6)


def get_month_range(day: date) -> Tuple[date, date]:
    """First and last day of the month containing ``day``."""
    first = day.replace(day=1)
    next_month = (first + timedelta(days=32)).replace(day=1)
    return first, next_month - timedelta(days=1)
