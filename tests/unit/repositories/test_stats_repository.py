"""
Unit tests for StatsRepository and completion rate rounding.
"""

import pytest
from unittest.mock import AsyncMock, patch

from carecircle.database.repositories.circles import CircleRepository
from carecircle.database.repositories.members import MemberRepository
from carecircle.database.repositories.stats import (
    StatsRepository,
    completion_rate,
    invalidate_circle_stats,
    stats_cache_key,
)
from carecircle.database.repositories.tasks import TaskRepository

OWNER = "owner-addr"
ALICE = "alice-addr"
BOB = "bob-addr"


def task(task_id, circle_id=1, completed=False, assignee=ALICE):
    data = {
        "id": task_id,
        "circle_id": circle_id,
        "title": f"Task {task_id}",
        "assigned_to": assignee,
        "created_by": OWNER,
        "completed": completed,
    }
    if completed:
        data.update(completed_by=assignee, completed_at=1_700_000_000_000 + task_id)
    return data


@pytest.fixture
def repos(mirror_db):
    return (
        CircleRepository(mirror_db),
        MemberRepository(mirror_db),
        TaskRepository(mirror_db),
        StatsRepository(mirror_db),
    )


class TestCompletionRate:
    """Tests for completion_rate."""

    @pytest.mark.parametrize("completed, total, expected", [
        (0, 0, 0),
        (0, 4, 0),
        (2, 4, 50),
        (4, 4, 100),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (1, 200, 1),
        (1, 201, 0),
    ])
    def test_rounding(self, completed, total, expected):
        assert completion_rate(completed, total) == expected


class TestComputeStats:
    """Tests for per-circle stats."""

    async def test_half_completed_circle(self, repos):
        _, members, tasks, stats = repos
        await members.upsert({"circle_id": 1, "address": OWNER, "is_owner": True})
        await members.upsert({"circle_id": 1, "address": ALICE})
        await members.upsert({"circle_id": 1, "address": BOB, "is_active": False})
        for task_id, done in [(1, True), (2, True), (3, False), (4, False)]:
            await tasks.upsert(task(task_id, completed=done))
        await tasks.upsert(task(5, circle_id=2, completed=True))

        result = await stats.compute_stats(1)

        assert result == {
            "total_tasks": 4,
            "completed_tasks": 2,
            "open_tasks": 2,
            "completion_rate": 50,
            "member_count": 2,
        }

    async def test_empty_circle(self, repos):
        stats = repos[3]
        assert await stats.compute_stats(42) == {
            "total_tasks": 0,
            "completed_tasks": 0,
            "open_tasks": 0,
            "completion_rate": 0,
            "member_count": 0,
        }

    async def test_uses_cache_when_available(self, repos):
        stats = repos[3]
        cached_value = {"total_tasks": 9, "completed_tasks": 9, "open_tasks": 0,
                        "completion_rate": 100, "member_count": 1}

        with patch("carecircle.cache.decorators.cache") as mock_cache:
            mock_cache.get = AsyncMock(return_value=cached_value)
            result = await stats.compute_stats(1)

        assert result == cached_value
        mock_cache.get.assert_awaited_once_with(stats_cache_key(1))

    async def test_cached_key_matches_invalidated_key(self, repos):
        stats = repos[3]

        with patch("carecircle.cache.decorators.cache") as mock_cache:
            mock_cache.get = AsyncMock(return_value=None)
            mock_cache.set = AsyncMock(return_value=True)
            await stats.compute_stats(4)

        written_key = mock_cache.set.await_args.args[0]
        with patch("carecircle.database.repositories.stats.cache") as mock_cache:
            mock_cache.delete = AsyncMock(return_value=True)
            await invalidate_circle_stats(4)

        mock_cache.delete.assert_awaited_once_with(written_key)


class TestGlobalStats:
    """Tests for mirror-wide stats."""

    async def test_totals(self, repos):
        circles, members, tasks, stats = repos
        await circles.upsert({"id": 1, "name": "One", "owner": OWNER})
        await circles.upsert({"id": 2, "name": "Two", "owner": ALICE})
        await members.upsert({"circle_id": 1, "address": OWNER, "is_owner": True})
        await members.upsert({"circle_id": 1, "address": ALICE})
        await members.upsert({"circle_id": 2, "address": ALICE, "is_owner": True})
        await members.upsert({"circle_id": 2, "address": BOB, "is_active": False})
        await tasks.upsert(task(1, completed=True))
        await tasks.upsert(task(2, circle_id=2))

        assert await stats.compute_global_stats() == {
            "total_circles": 2,
            "total_tasks": 2,
            "completed_tasks": 1,
            "total_members": 2,
        }

    async def test_empty_mirror(self, repos):
        assert await repos[3].compute_global_stats() == {
            "total_circles": 0,
            "total_tasks": 0,
            "completed_tasks": 0,
            "total_members": 0,
        }


class TestInvalidation:
    """Tests for stats cache invalidation."""

    async def test_deletes_circle_key(self):
        with patch("carecircle.database.repositories.stats.cache") as mock_cache:
            mock_cache.delete = AsyncMock(return_value=True)
            await invalidate_circle_stats(5)

        mock_cache.delete.assert_awaited_once_with("stats:circle:5")
