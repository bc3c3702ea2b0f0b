"""UTC time helpers (timezone-aware calculation, naive storage)."""
from __future__ import annotations

from datetime import datetime, timezone, timedelta


def utc_now() -> datetime:
    """Return a UTC timestamp without tzinfo for legacy DB columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utc_in(hours: int = 0, minutes: int = 0) -> datetime:
    """Naive UTC timestamp offset from now, used for expiry deadlines."""
    return utc_now() + timedelta(hours=hours, minutes=minutes)


def parse_iso_datetime(value):
    """Parse an ISO-8601 string into naive UTC; ``None`` passes through."""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if dt.tzinfo:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def isoformat_or_none(value):
    return value.isoformat() if value else None
