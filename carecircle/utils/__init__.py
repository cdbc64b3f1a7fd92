"""Utility modules for CareCircle."""

from .datetime_utils import (
    now_ms,
    ms_to_datetime,
    datetime_to_ms,
    isoformat_ms,
)

__all__ = [
    "now_ms",
    "ms_to_datetime",
    "datetime_to_ms",
    "isoformat_ms",
]
