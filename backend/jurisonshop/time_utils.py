from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

DISPLAY_FORMAT = "%b %d, %Y, %I:%M %p"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_local(dt: datetime, tz_name: str) -> datetime:
    """Convert a stored (UTC, possibly naive) datetime into the shop's zone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(ZoneInfo(tz_name))


def format_display(dt: Optional[datetime], tz_name: str) -> str:
    """Human-readable timestamp, e.g. 'Oct 19, 2026, 02:30 PM'."""
    if dt is None:
        return ""
    return to_local(dt, tz_name).strftime(DISPLAY_FORMAT)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]
