"""
Centralized timestamp utilities.

Ledger and mirror both carry timestamps as integer milliseconds since the
Unix epoch (UTC). All conversions go through these helpers.
"""

from datetime import datetime, timezone
from typing import Optional


def now_ms() -> int:
    """Current UTC time as epoch milliseconds."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


def ms_to_datetime(value: Optional[int]) -> Optional[datetime]:
    """
    Convert epoch milliseconds to an aware UTC datetime.

    Args:
        value: Milliseconds since the epoch, or None

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def datetime_to_ms(dt: Optional[datetime]) -> Optional[int]:
    """
    Convert a datetime to epoch milliseconds.

    Naive datetimes are assumed to already be in UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def isoformat_ms(value: Optional[int]) -> Optional[str]:
    """Format epoch milliseconds as an ISO-8601 UTC string for display."""
    dt = ms_to_datetime(value)
    return dt.isoformat() if dt else None
