"""
Client orchestrator for care circle actions.

Each action runs in three steps:
1. Ledger call. A rejection or timeout is raised to the caller unchanged
   and nothing else happens.
2. Mirror upsert of the ledger outcome. A failure here does not undo the
   ledger mutation; the outcome is returned with stale=True.
3. Mirror re-read of the affected circle for display. A failure here also
   yields stale=True.

No step is retried automatically. Mirror upserts are idempotent, so a user
may safely refresh or re-run the sync; ledger calls are not.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..ledger import LedgerError, LedgerGateway, LedgerReceipt, Task, TaskPriority
from .mirror_client import MirrorClient, MirrorError

logger = logging.getLogger(__name__)

STALE_WARNING = "Saved on the ledger, but the displayed data may be out of date until you refresh."


@dataclass
class CircleView:
    """Mirror snapshot of one circle, as displayed to the user."""
    circle: Optional[Dict[str, Any]]
    members: List[Dict[str, Any]] = field(default_factory=list)
    tasks: List[Dict[str, Any]] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def active_members(self) -> List[Dict[str, Any]]:
        return [m for m in self.members if m.get("is_active", True)]

    @property
    def open_tasks(self) -> List[Dict[str, Any]]:
        return [t for t in self.tasks if not t.get("completed")]


@dataclass
class ActionOutcome:
    """Result of an orchestrated action.

    ``receipt`` is None for pure refreshes. ``stale`` means the ledger step
    succeeded (or was not needed) but the mirror could not be updated or read.
    """
    receipt: Optional[LedgerReceipt]
    view: Optional[CircleView] = None
    stale: bool = False
    warning: Optional[str] = None

    @property
    def value(self) -> Any:
        return self.receipt.value if self.receipt else None

    @property
    def tx_ref(self) -> Optional[str]:
        return self.receipt.tx_ref if self.receipt else None


def task_payload(
    task: Task,
    tx_hash: Optional[str] = None,
    completion_tx_hash: Optional[str] = None,
) -> Dict[str, Any]:
    """Full mirror record for a ledger task."""
    return {
        "id": task.id,
        "circle_id": task.circle_id,
        "title": task.title,
        "description": task.description,
        "assigned_to": task.assigned_to,
        "created_by": task.created_by,
        "priority": int(task.priority),
        "completed": task.completed,
        "completed_by": task.completed_by,
        "completed_at": task.completed_at,
        "tx_hash": tx_hash,
        "completion_tx_hash": completion_tx_hash,
    }


class CircleOrchestrator:
    """Runs user actions against the ledger and keeps the mirror in step."""

    def __init__(self, ledger: LedgerGateway, mirror: MirrorClient):
        self.ledger = ledger
        self.mirror = mirror

    # ==================== CIRCLES ====================

    async def create_circle(self, caller: str, name: str) -> ActionOutcome:
        receipt = await self.ledger.create_circle(caller, name)
        circle_id = receipt.value

        async def sync():
            circle = await self.ledger.get_circle(circle_id)
            await self.mirror.upsert_circle({
                "id": circle_id,
                "name": circle.name if circle else name.strip(),
                "owner": caller,
                "tx_hash": receipt.tx_ref,
            })
            await self.mirror.upsert_member({
                "circle_id": circle_id,
                "address": caller,
                "is_owner": True,
                "is_active": True,
                "tx_hash": receipt.tx_ref,
            })

        return await self._complete(receipt, circle_id, sync)

    # ==================== MEMBERS ====================

    async def add_member(self, caller: str, circle_id: int, address: str) -> ActionOutcome:
        receipt = await self.ledger.add_member(caller, circle_id, address)

        async def sync():
            await self.mirror.upsert_member({
                "circle_id": circle_id,
                "address": address,
                "is_active": True,
                "tx_hash": receipt.tx_ref,
            })

        return await self._complete(receipt, circle_id, sync)

    async def remove_member(self, caller: str, circle_id: int, address: str) -> ActionOutcome:
        receipt = await self.ledger.remove_member(caller, circle_id, address)

        async def sync():
            await self.mirror.upsert_member({
                "circle_id": circle_id,
                "address": address,
                "is_active": False,
                "tx_hash": receipt.tx_ref,
            })

        return await self._complete(receipt, circle_id, sync)

    # ==================== TASKS ====================

    async def create_task(
        self,
        caller: str,
        circle_id: int,
        title: str,
        assigned_to: str,
        description: Optional[str] = None,
        priority: int = TaskPriority.NORMAL,
    ) -> ActionOutcome:
        receipt = await self.ledger.create_task(
            caller,
            circle_id,
            title,
            assigned_to,
            description=description,
            priority=priority,
        )
        task_id = receipt.value

        async def sync():
            task = await self._ledger_task(task_id)
            await self.mirror.upsert_task(task_payload(task, tx_hash=receipt.tx_ref))

        return await self._complete(receipt, circle_id, sync)

    async def complete_task(self, caller: str, task_id: int) -> ActionOutcome:
        receipt = await self.ledger.complete_task(caller, task_id)
        circle_id = receipt.event.entity_ids.get("circle_id")

        async def sync():
            task = await self._ledger_task(task_id)
            await self.mirror.upsert_task(
                task_payload(task, completion_tx_hash=receipt.tx_ref)
            )

        return await self._complete(receipt, circle_id, sync)

    async def reassign_task(self, caller: str, task_id: int, new_assignee: str) -> ActionOutcome:
        receipt = await self.ledger.reassign_task(caller, task_id, new_assignee)
        circle_id = receipt.event.entity_ids.get("circle_id")

        async def sync():
            task = await self._ledger_task(task_id)
            await self.mirror.upsert_task(task_payload(task))

        return await self._complete(receipt, circle_id, sync)

    # ==================== READS ====================

    async def load_circle(self, circle_id: int) -> CircleView:
        """Read one circle from the mirror. Raises MirrorError on failure."""
        circle = await self.mirror.get_circle(circle_id)
        if circle is None:
            return CircleView(circle=None)

        return CircleView(
            circle=circle,
            members=await self.mirror.get_members(circle_id),
            tasks=await self.mirror.get_tasks(circle_id),
            stats=await self.mirror.get_stats(circle_id),
        )

    async def refresh(self, circle_id: int) -> ActionOutcome:
        """Manual refresh: re-read the mirror without touching the ledger."""
        view, warning = await self._read_view(circle_id)
        return ActionOutcome(receipt=None, view=view, stale=warning is not None, warning=warning)

    # ==================== INTERNALS ====================

    async def _ledger_task(self, task_id: int) -> Task:
        task = await self.ledger.get_task(task_id)
        if task is None:
            raise LedgerError(f"task {task_id} missing from ledger after an accepted call")
        return task

    async def _complete(
        self,
        receipt: LedgerReceipt,
        circle_id: Optional[int],
        sync: Callable[[], Awaitable[None]],
    ) -> ActionOutcome:
        """Run the mirror steps for an accepted ledger call."""
        try:
            await sync()
        except (MirrorError, LedgerError) as e:
            logger.warning(
                f"Mirror sync failed after ledger tx {receipt.tx_ref[:12]} "
                f"({receipt.event.kind.value}): {e}"
            )
            return ActionOutcome(receipt=receipt, stale=True, warning=STALE_WARNING)

        if circle_id is None:
            return ActionOutcome(receipt=receipt)

        view, warning = await self._read_view(circle_id)
        return ActionOutcome(receipt=receipt, view=view, stale=warning is not None, warning=warning)

    async def _read_view(self, circle_id: int):
        try:
            return await self.load_circle(circle_id), None
        except MirrorError as e:
            logger.warning(f"Mirror read failed for circle {circle_id}: {e}")
            return None, STALE_WARNING
