"""
Task repository.

Handles:
- Idempotent task upserts keyed by the ledger task id
- Write-once completion: a completed row never reverts, and a completion
  with a different completer or time is rejected
- Per-circle and per-assignee listings (open first, priority desc, id desc)
"""

import logging
from typing import Optional, List, Dict, Any, Union

from sqlalchemy import select, func, case, true

from ..connection import Database, get_database
from ..models import TaskDB
from ..exceptions import CompletionConflictError, DatabaseOperationError
from ..upsert import insert_for
from ...models.api_validation import TaskUpsert, parse_payload
from .stats import invalidate_circle_stats

logger = logging.getLogger(__name__)


def _task_ordering():
    return (TaskDB.completed.asc(), TaskDB.priority.desc(), TaskDB.id.desc())


class TaskRepository:
    """Repository for mirrored tasks."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    # ==================== UPSERT ====================

    async def upsert(self, data: Union[TaskUpsert, Dict[str, Any]]) -> int:
        """
        Insert or merge a full task record. Returns the task id.

        Raises:
            ValidationError: payload is malformed
            CompletionConflictError: the stored completion differs from the
                payload's completion
        """
        payload = parse_payload(TaskUpsert, data)

        async with self.db.session() as session:
            try:
                existing = (await session.execute(
                    select(TaskDB).where(TaskDB.id == payload.id).with_for_update()
                )).scalar_one_or_none()

                if (
                    existing is not None
                    and existing.completed
                    and payload.completed
                    and (existing.completed_by, existing.completed_at)
                    != (payload.completed_by, payload.completed_at)
                ):
                    raise CompletionConflictError(
                        f"Task {payload.id} already completed by {existing.completed_by} "
                        f"at {existing.completed_at}"
                    )

                stmt = insert_for(self.db.dialect_name, TaskDB).values(
                    id=payload.id,
                    circle_id=payload.circle_id,
                    title=payload.title,
                    description=payload.description,
                    priority=payload.priority,
                    assigned_to=payload.assigned_to,
                    created_by=payload.created_by,
                    completed=payload.completed,
                    completed_by=payload.completed_by,
                    completed_at=payload.completed_at,
                    tx_hash=payload.tx_hash,
                    completion_tx_hash=payload.completion_tx_hash,
                )

                already_completed = TaskDB.completed == true()
                stmt = stmt.on_conflict_do_update(
                    index_elements=[TaskDB.id],
                    set_={
                        "circle_id": stmt.excluded.circle_id,
                        "title": stmt.excluded.title,
                        "description": stmt.excluded.description,
                        "priority": stmt.excluded.priority,
                        "assigned_to": stmt.excluded.assigned_to,
                        "created_by": stmt.excluded.created_by,
                        # Completion triple is write-once
                        "completed": case(
                            (already_completed, TaskDB.completed),
                            else_=stmt.excluded.completed,
                        ),
                        "completed_by": case(
                            (already_completed, TaskDB.completed_by),
                            else_=stmt.excluded.completed_by,
                        ),
                        "completed_at": case(
                            (already_completed, TaskDB.completed_at),
                            else_=stmt.excluded.completed_at,
                        ),
                        "tx_hash": func.coalesce(TaskDB.tx_hash, stmt.excluded.tx_hash),
                        "completion_tx_hash": func.coalesce(
                            TaskDB.completion_tx_hash, stmt.excluded.completion_tx_hash
                        ),
                    },
                )
                await session.execute(stmt)

                logger.info(
                    f"Upserted task {payload.id} in circle {payload.circle_id} "
                    f"(completed={payload.completed})"
                )

            except CompletionConflictError as e:
                logger.warning(f"Rejected task upsert: {e}")
                raise

            except Exception as e:
                logger.error(f"CRITICAL: Task upsert failed for {payload.id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert task {payload.id}: {e}")

        await invalidate_circle_stats(payload.circle_id)
        if existing is not None and existing.circle_id != payload.circle_id:
            await invalidate_circle_stats(existing.circle_id)
        return payload.id

    # ==================== QUERIES ====================

    async def get_by_id(self, task_id: int) -> Optional[TaskDB]:
        """Get task by ledger id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB).where(TaskDB.id == task_id)
            )
            return result.scalar_one_or_none()

    async def get_by_circle(self, circle_id: int) -> List[TaskDB]:
        """Get all tasks of a circle."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB)
                .where(TaskDB.circle_id == circle_id)
                .order_by(*_task_ordering())
            )
            return list(result.scalars().all())

    async def get_by_assignee(self, address: str) -> List[TaskDB]:
        """Get all tasks assigned to an address, across circles."""
        async with self.db.session() as session:
            result = await session.execute(
                select(TaskDB)
                .where(TaskDB.assigned_to == address)
                .order_by(*_task_ordering())
            )
            return list(result.scalars().all())


# Singleton
_task_repository: Optional[TaskRepository] = None


def get_task_repository() -> TaskRepository:
    """Get the task repository singleton."""
    global _task_repository
    if _task_repository is None:
        _task_repository = TaskRepository()
    return _task_repository
