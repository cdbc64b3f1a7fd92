"""
Care circle ledger.

The authoritative record of circles, members and tasks:
- State machine with ownership and assignee checks
- Ledger-wide monotonic circle and task ids
- One chained event per accepted mutation
- Async gateway used by the client orchestrator
"""

from .errors import (
    LedgerError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
    AlreadyCompletedError,
    AlreadyMemberError,
    LedgerTimeoutError,
)
from .models import (
    Address,
    Circle,
    Member,
    MemberStatus,
    Task,
    TaskPriority,
    EventKind,
    LedgerEvent,
    LedgerStats,
)
from .state import CareCircleLedger
from .gateway import LedgerGateway, LocalLedgerGateway, LedgerReceipt

__all__ = [
    "LedgerError",
    "InvalidInputError",
    "NotFoundError",
    "UnauthorizedError",
    "AlreadyCompletedError",
    "AlreadyMemberError",
    "LedgerTimeoutError",
    "Address",
    "Circle",
    "Member",
    "MemberStatus",
    "Task",
    "TaskPriority",
    "EventKind",
    "LedgerEvent",
    "LedgerStats",
    "CareCircleLedger",
    "LedgerGateway",
    "LocalLedgerGateway",
    "LedgerReceipt",
]
