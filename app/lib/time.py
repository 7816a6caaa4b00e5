"""
Time helpers shared across the application.

Timestamps are stored as naive UTC datetimes. Use utcnow_naive() inline and
as a column default (default=utcnow_naive, onupdate=utcnow_naive); use
isoformat() when a timestamp leaves the process in a JSON payload.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow_naive() -> datetime:
    """Return the current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """
    Serialize a naive UTC datetime as ISO 8601 with a trailing 'Z'.

    None passes through so optional columns serialize to null.
    """
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + 'Z'


def start_of_utc_day(now: Optional[datetime] = None) -> datetime:
    now = now or utcnow_naive()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def next_utc_midnight(now: Optional[datetime] = None) -> datetime:
    return start_of_utc_day(now) + timedelta(days=1)
