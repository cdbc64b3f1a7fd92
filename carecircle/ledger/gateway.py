"""
Ledger gateway used by the client orchestrator.

The authoritative ledger is an external system; callers only ever see it
through this interface. Every mutating call is bounded by a timeout and
returns a receipt carrying the proof reference of the event it produced.
A timed-out call is a failure: nothing here retries, because resubmitting
a mutation such as create_task would duplicate it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from config import settings
from .errors import LedgerError, LedgerTimeoutError
from .models import Address, Circle, LedgerEvent, Member, Task, TaskPriority
from .state import CareCircleLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerReceipt:
    """Result of an accepted ledger operation."""
    value: Any
    event: LedgerEvent

    @property
    def tx_ref(self) -> str:
        return self.event.tx_ref

    @property
    def timestamp(self) -> int:
        return self.event.timestamp


class LedgerGateway(ABC):
    """Async access to the authoritative ledger."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.ledger_timeout_seconds

    # ==================== MUTATIONS ====================

    async def create_circle(self, caller: Address, name: str) -> LedgerReceipt:
        return await self._call("create_circle", caller, name=name)

    async def add_member(self, caller: Address, circle_id: int, address: Address) -> LedgerReceipt:
        return await self._call("add_member", caller, circle_id=circle_id, address=address)

    async def remove_member(self, caller: Address, circle_id: int, address: Address) -> LedgerReceipt:
        return await self._call("remove_member", caller, circle_id=circle_id, address=address)

    async def create_task(
        self,
        caller: Address,
        circle_id: int,
        title: str,
        assigned_to: Address,
        description: Optional[str] = None,
        priority: int = TaskPriority.NORMAL,
    ) -> LedgerReceipt:
        return await self._call(
            "create_task",
            caller,
            circle_id=circle_id,
            title=title,
            description=description,
            assigned_to=assigned_to,
            priority=priority,
        )

    async def complete_task(self, caller: Address, task_id: int) -> LedgerReceipt:
        return await self._call("complete_task", caller, task_id=task_id)

    async def reassign_task(self, caller: Address, task_id: int, new_assignee: Address) -> LedgerReceipt:
        return await self._call("reassign_task", caller, task_id=task_id, new_assignee=new_assignee)

    # ==================== READS ====================

    @abstractmethod
    async def get_circle(self, circle_id: int) -> Optional[Circle]:
        ...

    @abstractmethod
    async def get_task(self, task_id: int) -> Optional[Task]:
        ...

    @abstractmethod
    async def get_member(self, circle_id: int, address: Address) -> Optional[Member]:
        ...

    # ==================== SUBMISSION ====================

    @abstractmethod
    async def _submit(self, operation: str, caller: Address, **kwargs) -> LedgerReceipt:
        """Send one signed operation to the ledger and wait for its outcome."""

    async def _call(self, operation: str, caller: Address, **kwargs) -> LedgerReceipt:
        try:
            receipt = await asyncio.wait_for(
                self._submit(operation, caller, **kwargs),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Ledger call {operation} by {caller} timed out after {self.timeout}s")
            raise LedgerTimeoutError(
                f"{operation} did not complete within {self.timeout}s; "
                f"check the ledger before resubmitting"
            )
        except LedgerError as e:
            logger.warning(f"Ledger rejected {operation} by {caller}: {e}")
            raise

        logger.info(f"Ledger accepted {operation} by {caller} (tx {receipt.tx_ref[:12]})")
        return receipt


class LocalLedgerGateway(LedgerGateway):
    """Gateway backed by an in-process CareCircleLedger."""

    def __init__(self, ledger: Optional[CareCircleLedger] = None, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.ledger = ledger or CareCircleLedger()

    async def _submit(self, operation: str, caller: Address, **kwargs) -> LedgerReceipt:
        method = getattr(self.ledger, operation)
        value = method(caller, **kwargs)
        return LedgerReceipt(value=value, event=self.ledger.last_event)

    async def get_circle(self, circle_id: int) -> Optional[Circle]:
        return self.ledger.get_circle(circle_id)

    async def get_task(self, task_id: int) -> Optional[Task]:
        return self.ledger.get_task(task_id)

    async def get_member(self, circle_id: int, address: Address) -> Optional[Member]:
        return self.ledger.get_member(circle_id, address)
