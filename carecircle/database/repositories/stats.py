"""
Aggregate statistics over the mirror.

Circle stats are read-through cached in Redis when it is configured; task
and member upserts invalidate the affected circle's entry.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy import select, func, case, true, distinct

from config import settings
from ...cache import cache, cached
from ..connection import Database, get_database
from ..models import CircleDB, MemberDB, TaskDB
from ..exceptions import DatabaseOperationError

logger = logging.getLogger(__name__)

STATS_CACHE_PREFIX = "stats:circle"


def stats_cache_key(circle_id: int) -> str:
    return f"{STATS_CACHE_PREFIX}:{circle_id}"


async def invalidate_circle_stats(circle_id: int) -> None:
    """Drop the cached stats of one circle."""
    await cache.delete(stats_cache_key(circle_id))


def completion_rate(completed: int, total: int) -> int:
    """Percentage of completed tasks, rounded half-up; 0 for an empty circle."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


class StatsRepository:
    """Read-only aggregate queries."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    @cached(ttl=settings.stats_cache_ttl, key_prefix=STATS_CACHE_PREFIX)
    async def compute_stats(self, circle_id: int) -> Dict[str, int]:
        """
        Task and membership totals for one circle.

        Unknown circles yield all zeros.
        """
        try:
            async with self.db.session() as session:
                task_row = (await session.execute(
                    select(
                        func.count(TaskDB.id),
                        func.coalesce(
                            func.sum(case((TaskDB.completed == true(), 1), else_=0)), 0
                        ),
                    ).where(TaskDB.circle_id == circle_id)
                )).one()

                member_count = (await session.execute(
                    select(func.count())
                    .select_from(MemberDB)
                    .where(MemberDB.circle_id == circle_id, MemberDB.is_active == true())
                )).scalar_one()

        except Exception as e:
            logger.error(f"Stats query failed for circle {circle_id}: {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to compute stats for circle {circle_id}: {e}")

        total, completed = int(task_row[0]), int(task_row[1])
        return {
            "total_tasks": total,
            "completed_tasks": completed,
            "open_tasks": total - completed,
            "completion_rate": completion_rate(completed, total),
            "member_count": int(member_count),
        }

    async def compute_global_stats(self) -> Dict[str, Any]:
        """Totals across the whole mirror."""
        try:
            async with self.db.session() as session:
                total_circles = (await session.execute(
                    select(func.count()).select_from(CircleDB)
                )).scalar_one()

                task_row = (await session.execute(
                    select(
                        func.count(TaskDB.id),
                        func.coalesce(
                            func.sum(case((TaskDB.completed == true(), 1), else_=0)), 0
                        ),
                    )
                )).one()

                total_members = (await session.execute(
                    select(func.count(distinct(MemberDB.address)))
                    .where(MemberDB.is_active == true())
                )).scalar_one()

        except Exception as e:
            logger.error(f"Global stats query failed: {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to compute global stats: {e}")

        return {
            "total_circles": int(total_circles),
            "total_tasks": int(task_row[0]),
            "completed_tasks": int(task_row[1]),
            "total_members": int(total_members),
        }


# Singleton
_stats_repository: Optional[StatsRepository] = None


def get_stats_repository() -> StatsRepository:
    """Get the stats repository singleton."""
    global _stats_repository
    if _stats_repository is None:
        _stats_repository = StatsRepository()
    return _stats_repository
