"""Entity and event models for the care circle ledger."""

from enum import Enum, IntEnum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

# Ledger addresses are opaque public-key strings
Address = str


class TaskPriority(IntEnum):
    """Task priority levels (wire value is the integer)."""
    LOW = 0
    NORMAL = 1
    HIGH = 2
    URGENT = 3


class MemberStatus(str, Enum):
    """Membership states. Rows are never deleted, only moved to REMOVED."""
    ACTIVE = "active"
    REMOVED = "removed"


class EventKind(str, Enum):
    """Kinds of ledger events, one per successful mutation."""
    CIRCLE_CREATED = "CircleCreated"
    MEMBER_ADDED = "MemberAdded"
    MEMBER_REMOVED = "MemberRemoved"
    TASK_CREATED = "TaskCreated"
    TASK_COMPLETED = "TaskCompleted"
    TASK_REASSIGNED = "TaskReassigned"


class Circle(BaseModel):
    """A care circle: a group coordinating caregiving tasks."""
    id: int
    name: str
    owner: Address
    created_at: int
    member_count: int = 0
    task_count: int = 0


class Member(BaseModel):
    """Membership of an address in a circle, keyed by (circle_id, address)."""
    circle_id: int
    address: Address
    joined_at: int
    tasks_completed: int = 0
    is_owner: bool = False
    status: MemberStatus = MemberStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE


class Task(BaseModel):
    """A caregiving task within a circle."""
    id: int
    circle_id: int
    title: str
    description: Optional[str] = None
    assigned_to: Address
    created_by: Address
    created_at: int
    completed: bool = False
    completed_by: Optional[Address] = None
    completed_at: Optional[int] = None
    priority: TaskPriority = TaskPriority.NORMAL


class LedgerEvent(BaseModel):
    """
    Durable record of a ledger mutation.

    The tx_ref is the proof reference the rest of the system carries around;
    it hashes the event together with the previous event's tx_ref.
    """
    sequence: int
    kind: EventKind
    entity_ids: Dict[str, Any]
    actor: Address
    timestamp: int
    payload: Dict[str, Any] = Field(default_factory=dict)
    tx_ref: str = ""


class LedgerStats(BaseModel):
    """Ledger-wide counters."""
    total_circles: int = 0
    total_tasks: int = 0
    total_completions: int = 0
