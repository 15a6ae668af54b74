from datetime import datetime, timedelta, timezone
from typing import Optional


def format_utc_datetime(dt: Optional[datetime]) -> Optional[str]:
    """
    Format a datetime object to an ISO 8601 string with 'Z' suffix.

    If the datetime is naive, it is assumed to be in UTC and is made aware.
    If it is timezone-aware, it is converted to UTC.

    Args:
        dt: A datetime object or None

    Returns:
        An ISO 8601 formatted string with 'Z' suffix, or None if the input is None.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    iso_string = dt.isoformat()

    if iso_string.endswith("+00:00"):
        return iso_string.replace("+00:00", "Z")

    return iso_string


def format_duration(start: Optional[datetime], end: Optional[datetime]) -> str:
    """
    Worked time between a check-in and check-out, e.g. "8h 5m" or "45m".

    Returns "—" when either side is missing.
    """
    if start is None or end is None:
        return "—"

    delta = end - start
    if delta < timedelta(0):
        delta = timedelta(0)

    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
