"""
Repository classes for mirror database operations.

Each repository handles upserts and queries for its entity type.
"""

from .circles import CircleRepository, get_circle_repository
from .members import MemberRepository, get_member_repository
from .tasks import TaskRepository, get_task_repository
from .stats import StatsRepository, get_stats_repository, completion_rate, invalidate_circle_stats

__all__ = [
    "CircleRepository",
    "get_circle_repository",
    "MemberRepository",
    "get_member_repository",
    "TaskRepository",
    "get_task_repository",
    "StatsRepository",
    "get_stats_repository",
    "completion_rate",
    "invalidate_circle_stats",
]
