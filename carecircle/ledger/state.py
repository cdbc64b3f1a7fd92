"""
Authoritative care circle state machine.

Handles:
- Circle creation with ledger-wide monotonic ids
- Membership add / soft removal (owner only)
- Task creation, one-shot completion and reassignment
- Event emission with chained proof references

Every operation runs all of its checks before touching state, so a rejected
call leaves circles, members, tasks and the event history unchanged.
"""

import hashlib
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..utils.datetime_utils import now_ms
from .errors import (
    AlreadyCompletedError,
    AlreadyMemberError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from .models import (
    Address,
    Circle,
    EventKind,
    LedgerEvent,
    LedgerStats,
    Member,
    MemberStatus,
    Task,
    TaskPriority,
)

logger = logging.getLogger(__name__)

GENESIS_REF = "0" * 64


class CareCircleLedger:
    """In-process ledger holding circles, members, tasks and their events."""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or now_ms

        # Counters
        self.next_circle_id = 1
        self.next_task_id = 1
        self._total_completions = 0

        # Storage
        self._circles: Dict[int, Circle] = {}
        self._members: Dict[Tuple[int, Address], Member] = {}
        self._tasks: Dict[int, Task] = {}
        self._events: List[LedgerEvent] = []

    # ==================== CIRCLES ====================

    def create_circle(self, caller: Address, name: str) -> int:
        """Create a circle. The caller becomes its owner and first member."""
        self._require_address(caller, "caller")
        if not name or not name.strip():
            raise InvalidInputError("circle name must not be empty")

        name = name.strip()
        timestamp = self._clock()
        circle_id = self.next_circle_id

        circle = Circle(
            id=circle_id,
            name=name,
            owner=caller,
            created_at=timestamp,
            member_count=1,
            task_count=0,
        )
        owner = Member(
            circle_id=circle_id,
            address=caller,
            joined_at=timestamp,
            is_owner=True,
        )
        event = self._prepare_event(
            EventKind.CIRCLE_CREATED,
            {"circle_id": circle_id},
            caller,
            timestamp,
            {"name": name, "owner": caller},
        )

        self.next_circle_id += 1
        self._circles[circle_id] = circle
        self._members[(circle_id, caller)] = owner
        self._events.append(event)

        logger.info(f"Circle {circle_id} '{name}' created by {caller}")
        return circle_id

    # ==================== MEMBERS ====================

    def add_member(self, caller: Address, circle_id: int, address: Address) -> None:
        """Add (or reactivate) a member. Only the circle owner may do this."""
        self._require_address(address, "member address")
        circle = self._get_circle_or_raise(circle_id)

        if caller != circle.owner:
            raise UnauthorizedError(
                f"only the owner of circle {circle_id} can add members"
            )

        existing = self._members.get((circle_id, address))
        if existing is not None and existing.is_active:
            raise AlreadyMemberError(
                f"{address} is already an active member of circle {circle_id}"
            )

        timestamp = self._clock()
        event = self._prepare_event(
            EventKind.MEMBER_ADDED,
            {"circle_id": circle_id, "address": address},
            caller,
            timestamp,
            {"reactivated": existing is not None},
        )

        if existing is not None:
            existing.status = MemberStatus.ACTIVE
        else:
            self._members[(circle_id, address)] = Member(
                circle_id=circle_id,
                address=address,
                joined_at=timestamp,
            )
        circle.member_count += 1
        self._events.append(event)

        logger.info(f"Member {address} added to circle {circle_id}")

    def remove_member(self, caller: Address, circle_id: int, address: Address) -> None:
        """
        Soft-remove a member. Only the circle owner may do this.

        Open tasks assigned to the removed member keep their assignee; the
        member simply becomes ineligible for new assignments.
        """
        circle = self._get_circle_or_raise(circle_id)

        if caller != circle.owner:
            raise UnauthorizedError(
                f"only the owner of circle {circle_id} can remove members"
            )

        member = self._members.get((circle_id, address))
        if member is None or not member.is_active:
            raise NotFoundError(
                f"{address} has no active membership in circle {circle_id}"
            )
        if member.is_owner:
            raise InvalidInputError(
                f"the owner of circle {circle_id} must remain an active member"
            )

        timestamp = self._clock()
        event = self._prepare_event(
            EventKind.MEMBER_REMOVED,
            {"circle_id": circle_id, "address": address},
            caller,
            timestamp,
        )

        member.status = MemberStatus.REMOVED
        circle.member_count -= 1
        self._events.append(event)

        logger.info(f"Member {address} removed from circle {circle_id}")

    # ==================== TASKS ====================

    def create_task(
        self,
        caller: Address,
        circle_id: int,
        title: str,
        description: Optional[str],
        assigned_to: Address,
        priority: int = TaskPriority.NORMAL,
    ) -> int:
        """Create a task in a circle, assigned to one of its active members."""
        circle = self._get_circle_or_raise(circle_id)

        if not title or not title.strip():
            raise InvalidInputError("task title must not be empty")
        if isinstance(priority, bool) or not isinstance(priority, int) or not 0 <= priority <= 3:
            raise InvalidInputError(f"priority must be an integer in 0..3, got {priority!r}")
        if not self.is_active_member(circle_id, caller):
            raise UnauthorizedError(
                f"{caller} is not an active member of circle {circle_id}"
            )
        if not self.is_active_member(circle_id, assigned_to):
            raise UnauthorizedError(
                f"assignee {assigned_to} is not an active member of circle {circle_id}"
            )

        title = title.strip()
        timestamp = self._clock()
        task_id = self.next_task_id

        task = Task(
            id=task_id,
            circle_id=circle_id,
            title=title,
            description=description or None,
            assigned_to=assigned_to,
            created_by=caller,
            created_at=timestamp,
            priority=TaskPriority(priority),
        )
        event = self._prepare_event(
            EventKind.TASK_CREATED,
            {"task_id": task_id, "circle_id": circle_id},
            caller,
            timestamp,
            {"title": title, "assigned_to": assigned_to, "priority": int(priority)},
        )

        self.next_task_id += 1
        self._tasks[task_id] = task
        circle.task_count += 1
        self._events.append(event)

        logger.info(f"Task {task_id} created in circle {circle_id}, assigned to {assigned_to}")
        return task_id

    def complete_task(self, caller: Address, task_id: int) -> None:
        """Complete a task. Only its current assignee may do this, once."""
        task = self._get_task_or_raise(task_id)

        if task.completed:
            raise AlreadyCompletedError(f"task {task_id} is already completed")
        if caller != task.assigned_to:
            raise UnauthorizedError(
                f"only the assignee of task {task_id} can complete it"
            )

        timestamp = self._clock()
        event = self._prepare_event(
            EventKind.TASK_COMPLETED,
            {"task_id": task_id, "circle_id": task.circle_id},
            caller,
            timestamp,
            {"completed_by": caller},
        )

        task.completed = True
        task.completed_by = caller
        task.completed_at = timestamp
        member = self._members.get((task.circle_id, caller))
        if member is not None:
            member.tasks_completed += 1
        self._total_completions += 1
        self._events.append(event)

        logger.info(f"Task {task_id} completed by {caller}")

    def reassign_task(self, caller: Address, task_id: int, new_assignee: Address) -> None:
        """Reassign an open task. Allowed for the task creator or the circle owner."""
        task = self._get_task_or_raise(task_id)

        membership = self._members.get((task.circle_id, new_assignee))
        if membership is None:
            raise NotFoundError(
                f"{new_assignee} has no membership in circle {task.circle_id}"
            )

        circle = self._circles[task.circle_id]
        if caller not in (task.created_by, circle.owner):
            raise UnauthorizedError(
                f"only the creator of task {task_id} or the circle owner can reassign it"
            )
        if task.completed:
            raise AlreadyCompletedError(f"task {task_id} is already completed")
        if not membership.is_active:
            raise InvalidInputError(
                f"{new_assignee} is no longer an active member of circle {task.circle_id}"
            )

        timestamp = self._clock()
        event = self._prepare_event(
            EventKind.TASK_REASSIGNED,
            {"task_id": task_id, "circle_id": task.circle_id},
            caller,
            timestamp,
            {"from": task.assigned_to, "to": new_assignee},
        )

        task.assigned_to = new_assignee
        self._events.append(event)

        logger.info(f"Task {task_id} reassigned to {new_assignee} by {caller}")

    # ==================== VIEWS ====================

    def get_circle(self, circle_id: int) -> Optional[Circle]:
        circle = self._circles.get(circle_id)
        return circle.model_copy() if circle else None

    def get_task(self, task_id: int) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.model_copy() if task else None

    def get_member(self, circle_id: int, address: Address) -> Optional[Member]:
        member = self._members.get((circle_id, address))
        return member.model_copy() if member else None

    def is_active_member(self, circle_id: int, address: Address) -> bool:
        member = self._members.get((circle_id, address))
        return member is not None and member.is_active

    def list_members(self, circle_id: int, active_only: bool = False) -> List[Member]:
        """Members of a circle in the order they joined."""
        members = [
            m for (cid, _), m in self._members.items()
            if cid == circle_id and (m.is_active or not active_only)
        ]
        members.sort(key=lambda m: m.joined_at)
        return [m.model_copy() for m in members]

    def list_tasks(self, circle_id: int) -> List[Task]:
        return [t.model_copy() for t in self._tasks.values() if t.circle_id == circle_id]

    def get_stats(self) -> LedgerStats:
        return LedgerStats(
            total_circles=len(self._circles),
            total_tasks=len(self._tasks),
            total_completions=self._total_completions,
        )

    @property
    def events(self) -> List[LedgerEvent]:
        return [e.model_copy() for e in self._events]

    @property
    def last_event(self) -> Optional[LedgerEvent]:
        return self._events[-1].model_copy() if self._events else None

    def verify_event_chain(self) -> bool:
        """Recompute every proof reference and check the chain is intact."""
        prev_ref = GENESIS_REF
        for event in self._events:
            if self._proof_ref(prev_ref, event) != event.tx_ref:
                logger.error(f"Event chain broken at sequence {event.sequence}")
                return False
            prev_ref = event.tx_ref
        return True

    # ==================== INTERNALS ====================

    def _get_circle_or_raise(self, circle_id: int) -> Circle:
        circle = self._circles.get(circle_id)
        if circle is None:
            raise NotFoundError(f"circle {circle_id} not found")
        return circle

    def _get_task_or_raise(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(f"task {task_id} not found")
        return task

    @staticmethod
    def _require_address(address: Address, label: str) -> None:
        if not isinstance(address, str) or not address.strip():
            raise InvalidInputError(f"{label} must be a non-empty address")

    def _prepare_event(
        self,
        kind: EventKind,
        entity_ids: Dict[str, Any],
        actor: Address,
        timestamp: int,
        payload: Optional[Dict[str, Any]] = None,
    ) -> LedgerEvent:
        """Build the next event and its proof reference without recording it."""
        prev_ref = self._events[-1].tx_ref if self._events else GENESIS_REF
        event = LedgerEvent(
            sequence=len(self._events) + 1,
            kind=kind,
            entity_ids=entity_ids,
            actor=actor,
            timestamp=timestamp,
            payload=payload or {},
        )
        event.tx_ref = self._proof_ref(prev_ref, event)
        return event

    @staticmethod
    def _proof_ref(prev_ref: str, event: LedgerEvent) -> str:
        body = json.dumps(
            {
                "prev": prev_ref,
                "sequence": event.sequence,
                "kind": event.kind.value,
                "entity_ids": event.entity_ids,
                "actor": event.actor,
                "timestamp": event.timestamp,
                "payload": event.payload,
            },
            sort_keys=True,
            separators=(",", ":"),
        )
        return hashlib.sha256(body.encode("utf-8")).hexdigest()
