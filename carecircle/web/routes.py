"""
Mirror API routes.

Writers POST ledger outcomes here after each confirmed ledger call; readers
GET circles, members, tasks and stats. Validation errors surface as 400 and
completion conflicts as 409 through the app's exception handlers.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends

from ..database.repositories import (
    CircleRepository,
    MemberRepository,
    TaskRepository,
    StatsRepository,
    get_circle_repository,
    get_member_repository,
    get_task_repository,
    get_stats_repository,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== CIRCLES ====================

@router.post("/circles/upsert")
async def upsert_circle(
    payload: Dict[str, Any] = Body(...),
    repo: CircleRepository = Depends(get_circle_repository),
):
    """Record a circle created on the ledger."""
    circle_id = await repo.upsert(payload)
    return {"ok": True, "id": circle_id}


@router.get("/circles/owner/{address}")
async def get_circles_by_owner(
    address: str,
    repo: CircleRepository = Depends(get_circle_repository),
) -> List[Dict[str, Any]]:
    circles = await repo.get_by_owner(address)
    return [c.to_dict() for c in circles]


@router.get("/circles/{circle_id}")
async def get_circle(
    circle_id: int,
    repo: CircleRepository = Depends(get_circle_repository),
) -> Optional[Dict[str, Any]]:
    """Circle row, or null when the mirror has not seen it."""
    circle = await repo.get_by_id(circle_id)
    return circle.to_dict() if circle else None


# ==================== MEMBERS ====================

@router.post("/members/upsert")
async def upsert_member(
    payload: Dict[str, Any] = Body(...),
    repo: MemberRepository = Depends(get_member_repository),
):
    """Record a membership change (join, reactivation or removal)."""
    await repo.upsert(payload)
    return {"ok": True}


@router.get("/circles/{circle_id}/members")
async def get_circle_members(
    circle_id: int,
    repo: MemberRepository = Depends(get_member_repository),
) -> List[Dict[str, Any]]:
    members = await repo.get_by_circle(circle_id)
    return [m.to_dict() for m in members]


# ==================== TASKS ====================

@router.post("/tasks/upsert")
async def upsert_task(
    payload: Dict[str, Any] = Body(...),
    repo: TaskRepository = Depends(get_task_repository),
):
    """Record a full task snapshot (creation, completion or reassignment)."""
    task_id = await repo.upsert(payload)
    return {"ok": True, "id": task_id}


@router.get("/circles/{circle_id}/tasks")
async def get_circle_tasks(
    circle_id: int,
    repo: TaskRepository = Depends(get_task_repository),
) -> List[Dict[str, Any]]:
    tasks = await repo.get_by_circle(circle_id)
    return [t.to_dict() for t in tasks]


@router.get("/tasks/assigned/{address}")
async def get_assigned_tasks(
    address: str,
    repo: TaskRepository = Depends(get_task_repository),
) -> List[Dict[str, Any]]:
    tasks = await repo.get_by_assignee(address)
    return [t.to_dict() for t in tasks]


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: int,
    repo: TaskRepository = Depends(get_task_repository),
) -> Optional[Dict[str, Any]]:
    task = await repo.get_by_id(task_id)
    return task.to_dict() if task else None


# ==================== STATS ====================

@router.get("/circles/{circle_id}/stats")
async def get_circle_stats(
    circle_id: int,
    repo: StatsRepository = Depends(get_stats_repository),
) -> Dict[str, int]:
    return await repo.compute_stats(circle_id)


@router.get("/stats")
async def get_global_stats(
    repo: StatsRepository = Depends(get_stats_repository),
) -> Dict[str, Any]:
    return await repo.compute_global_stats()
