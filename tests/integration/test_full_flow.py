"""
End-to-end flow: orchestrator -> local ledger -> mirror API -> SQLite.

The mirror client talks to the real FastAPI app in-process through
httpx.ASGITransport.
"""

import httpx
import pytest
from unittest.mock import AsyncMock

from carecircle.client import CircleOrchestrator, MirrorClient, MirrorUnavailableError
from carecircle.client.orchestrator import task_payload
from carecircle.database.repositories import (
    CircleRepository,
    MemberRepository,
    StatsRepository,
    TaskRepository,
    get_circle_repository,
    get_member_repository,
    get_stats_repository,
    get_task_repository,
)
from carecircle.ledger import TaskPriority, UnauthorizedError
from carecircle.main import app

OWNER = "01a5b8c9d0e1f234567890abcdef1234567890abcdef1234567890abcdef1234"
ALICE = "02b6c9d0e1f234567890abcdef1234567890abcdef1234567890abcdef123456"
BOB = "01c7d0e1f234567890abcdef1234567890abcdef1234567890abcdef12345678"


@pytest.fixture
async def mirror(mirror_db):
    app.dependency_overrides[get_circle_repository] = lambda: CircleRepository(mirror_db)
    app.dependency_overrides[get_member_repository] = lambda: MemberRepository(mirror_db)
    app.dependency_overrides[get_task_repository] = lambda: TaskRepository(mirror_db)
    app.dependency_overrides[get_stats_repository] = lambda: StatsRepository(mirror_db)

    client = MirrorClient(base_url="http://mirror", transport=httpx.ASGITransport(app=app))
    yield client
    await client.close()
    app.dependency_overrides.clear()


@pytest.fixture
def orchestrator(gateway, mirror):
    return CircleOrchestrator(gateway, mirror)


class TestCareCircleFlow:
    """Full user journeys through ledger and mirror."""

    async def test_demo_circle(self, orchestrator, ledger):
        created = await orchestrator.create_circle(OWNER, "Mom's Care Team")
        circle_id = created.value
        assert not created.stale
        assert created.view.circle["tx_hash"] == created.tx_ref

        await orchestrator.add_member(OWNER, circle_id, ALICE)
        await orchestrator.add_member(OWNER, circle_id, BOB)

        ids = []
        for title, assignee, priority in [
            ("Pick up medication", ALICE, TaskPriority.HIGH),
            ("Grocery shopping", BOB, TaskPriority.NORMAL),
            ("Doctor appointment", OWNER, TaskPriority.URGENT),
            ("Morning check-in call", ALICE, TaskPriority.NORMAL),
        ]:
            outcome = await orchestrator.create_task(OWNER, circle_id, title, assignee, priority=priority)
            ids.append(outcome.value)

        await orchestrator.complete_task(OWNER, ids[2])
        outcome = await orchestrator.complete_task(ALICE, ids[3])

        view = outcome.view
        assert not outcome.stale
        assert [m["address"] for m in view.members][0] == OWNER
        assert len(view.active_members) == 3
        assert [t["id"] for t in view.tasks] == [1, 2, 3, 4]
        assert view.stats == {
            "total_tasks": 4,
            "completed_tasks": 2,
            "open_tasks": 2,
            "completion_rate": 50,
            "member_count": 3,
        }

        completed = next(t for t in view.tasks if t["id"] == ids[3])
        ledger_task = ledger.get_task(ids[3])
        assert completed["completed_by"] == ALICE
        assert completed["completed_at"] == ledger_task.completed_at
        assert completed["completion_tx_hash"] == outcome.tx_ref
        assert completed["tx_hash"] is not None
        assert completed["tx_hash"] != outcome.tx_ref

    async def test_removal_and_reassignment(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")
        await orchestrator.add_member(OWNER, 1, ALICE)
        await orchestrator.add_member(OWNER, 1, BOB)
        await orchestrator.create_task(OWNER, 1, "Laundry", BOB)

        outcome = await orchestrator.remove_member(OWNER, 1, BOB)
        bob = next(m for m in outcome.view.members if m["address"] == BOB)
        assert bob["is_active"] is False
        assert outcome.view.stats["member_count"] == 2
        assert outcome.view.tasks[0]["assigned_to"] == BOB

        outcome = await orchestrator.reassign_task(OWNER, 1, ALICE)
        assert outcome.view.tasks[0]["assigned_to"] == ALICE
        assert [t["id"] for t in await mirror.get_assigned_tasks(ALICE)] == [1]

    async def test_ledger_rejection_leaves_mirror_untouched(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")

        with pytest.raises(UnauthorizedError):
            await orchestrator.create_task(ALICE, 1, "Sneaky", ALICE)

        assert await mirror.get_tasks(1) == []
        assert (await mirror.get_global_stats())["total_tasks"] == 0

    async def test_mirror_outage_then_manual_resync(self, orchestrator, mirror, gateway):
        await orchestrator.create_circle(OWNER, "Team")

        real_upsert = mirror.upsert_task
        mirror.upsert_task = AsyncMock(side_effect=MirrorUnavailableError("down"))
        outcome = await orchestrator.create_task(OWNER, 1, "Meds", OWNER)
        assert outcome.stale
        assert await mirror.get_task(outcome.value) is None

        mirror.upsert_task = real_upsert
        task = await gateway.get_task(outcome.value)
        await mirror.upsert_task(task_payload(task, tx_hash=outcome.tx_ref))

        refreshed = await orchestrator.refresh(1)
        assert not refreshed.stale
        assert refreshed.view.tasks[0]["tx_hash"] == outcome.tx_ref

    async def test_stale_snapshot_cannot_undo_completion(self, orchestrator, mirror, gateway):
        await orchestrator.create_circle(OWNER, "Team")
        created = await orchestrator.create_task(OWNER, 1, "Meds", OWNER)
        open_snapshot = task_payload(await gateway.get_task(1), tx_hash=created.tx_ref)

        await orchestrator.complete_task(OWNER, 1)
        await mirror.upsert_task(open_snapshot)

        task = await mirror.get_task(1)
        assert task["completed"] is True
        assert task["completed_by"] == OWNER

    async def test_owner_lookup(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "One")
        await orchestrator.create_circle(ALICE, "Two")
        await orchestrator.create_circle(OWNER, "Three")

        circles = await mirror.get_circles_by_owner(OWNER)
        assert sorted(c["name"] for c in circles) == ["One", "Three"]
