"""
Mirror database module for CareCircle.

Handles:
- Circle, member and task rows mirrored from ledger outcomes
- Idempotent upserts that never erase proof references
- Read models and aggregate stats for the HTTP API
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
    normalize_database_url,
)
from .exceptions import (
    DatabaseError,
    DatabaseConnectionError,
    DatabaseOperationError,
    ValidationError,
    CompletionConflictError,
)
from .models import (
    Base,
    CircleDB,
    MemberDB,
    TaskDB,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "normalize_database_url",
    "DatabaseError",
    "DatabaseConnectionError",
    "DatabaseOperationError",
    "ValidationError",
    "CompletionConflictError",
    "Base",
    "CircleDB",
    "MemberDB",
    "TaskDB",
]
