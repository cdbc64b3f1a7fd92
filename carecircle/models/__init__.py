"""Payload models for the CareCircle mirror API."""

from .api_validation import (
    CircleUpsert,
    MemberUpsert,
    TaskUpsert,
    parse_payload,
    format_validation_error,
)

__all__ = [
    "CircleUpsert",
    "MemberUpsert",
    "TaskUpsert",
    "parse_payload",
    "format_validation_error",
]
