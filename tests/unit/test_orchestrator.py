"""
Tests for carecircle/client/orchestrator.py

The ledger is a real in-process gateway; the mirror is mocked so each
failure mode can be forced.
"""

import httpx
import pytest
from unittest.mock import AsyncMock

from carecircle.client.mirror_client import (
    MirrorClient,
    MirrorRejectedError,
    MirrorUnavailableError,
)
from carecircle.client.orchestrator import (
    STALE_WARNING,
    CircleOrchestrator,
    CircleView,
)
from carecircle.ledger import AlreadyCompletedError, UnauthorizedError

OWNER = "owner-addr"
ALICE = "alice-addr"
BOB = "bob-addr"


@pytest.fixture
def mirror():
    client = AsyncMock(spec=MirrorClient)
    client.get_circle.return_value = {"id": 1, "name": "Team", "owner": OWNER}
    client.get_members.return_value = [{"circle_id": 1, "address": OWNER, "is_owner": True, "is_active": True}]
    client.get_tasks.return_value = []
    client.get_stats.return_value = {"total_tasks": 0, "completion_rate": 0}
    return client


@pytest.fixture
def orchestrator(gateway, mirror):
    return CircleOrchestrator(gateway, mirror)


class TestSuccessfulActions:
    """Ledger call, mirror upsert, mirror re-read."""

    async def test_create_circle(self, orchestrator, mirror, ledger):
        outcome = await orchestrator.create_circle(OWNER, "  Team  ")

        assert outcome.value == 1
        assert not outcome.stale
        assert outcome.warning is None
        tx_ref = ledger.last_event.tx_ref
        assert outcome.tx_ref == tx_ref

        mirror.upsert_circle.assert_awaited_once_with(
            {"id": 1, "name": "Team", "owner": OWNER, "tx_hash": tx_ref}
        )
        mirror.upsert_member.assert_awaited_once_with(
            {"circle_id": 1, "address": OWNER, "is_owner": True, "is_active": True, "tx_hash": tx_ref}
        )
        assert isinstance(outcome.view, CircleView)
        assert outcome.view.circle["name"] == "Team"

    async def test_add_and_remove_member(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")

        await orchestrator.add_member(OWNER, 1, ALICE)
        added = mirror.upsert_member.await_args.args[0]
        assert added["address"] == ALICE
        assert added["is_active"] is True
        assert "is_owner" not in added

        await orchestrator.remove_member(OWNER, 1, ALICE)
        removed = mirror.upsert_member.await_args.args[0]
        assert removed["is_active"] is False

    async def test_create_and_complete_task(self, orchestrator, mirror, ledger):
        await orchestrator.create_circle(OWNER, "Team")
        await orchestrator.add_member(OWNER, 1, ALICE)

        created = await orchestrator.create_task(
            OWNER, 1, "Meds", ALICE, description="CVS", priority=3
        )
        payload = mirror.upsert_task.await_args.args[0]
        assert created.value == 1
        assert payload["id"] == 1
        assert payload["description"] == "CVS"
        assert payload["priority"] == 3
        assert payload["completed"] is False
        assert payload["tx_hash"] == created.tx_ref
        assert payload["completion_tx_hash"] is None

        completed = await orchestrator.complete_task(ALICE, 1)
        payload = mirror.upsert_task.await_args.args[0]
        task = ledger.get_task(1)
        assert payload["completed"] is True
        assert payload["completed_by"] == ALICE
        assert payload["completed_at"] == task.completed_at
        assert payload["tx_hash"] is None
        assert payload["completion_tx_hash"] == completed.tx_ref
        mirror.get_tasks.assert_awaited_with(1)

    async def test_reassign_task(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")
        await orchestrator.add_member(OWNER, 1, ALICE)
        await orchestrator.add_member(OWNER, 1, BOB)
        await orchestrator.create_task(OWNER, 1, "Meds", ALICE)

        outcome = await orchestrator.reassign_task(OWNER, 1, BOB)

        assert not outcome.stale
        assert mirror.upsert_task.await_args.args[0]["assigned_to"] == BOB


class TestLedgerFailures:
    """A rejected ledger call is surfaced verbatim and the mirror is untouched."""

    async def test_rejection_skips_mirror(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")
        mirror.reset_mock()

        with pytest.raises(UnauthorizedError):
            await orchestrator.add_member(ALICE, 1, BOB)

        mirror.upsert_member.assert_not_awaited()
        mirror.get_circle.assert_not_awaited()

    async def test_double_completion_surfaces_ledger_error(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")
        await orchestrator.create_task(OWNER, 1, "Meds", OWNER)
        await orchestrator.complete_task(OWNER, 1)
        mirror.reset_mock()

        with pytest.raises(AlreadyCompletedError):
            await orchestrator.complete_task(OWNER, 1)

        mirror.upsert_task.assert_not_awaited()


class TestStaleMirror:
    """Mirror failures never undo the ledger mutation."""

    async def test_unavailable_mirror_flags_stale(self, orchestrator, mirror, ledger):
        mirror.upsert_circle.side_effect = MirrorUnavailableError("down")

        outcome = await orchestrator.create_circle(OWNER, "Team")

        assert outcome.value == 1
        assert outcome.stale is True
        assert outcome.warning == STALE_WARNING
        assert outcome.view is None
        assert ledger.get_circle(1) is not None
        mirror.get_circle.assert_not_awaited()

    async def test_rejected_upsert_flags_stale(self, orchestrator, mirror):
        await orchestrator.create_circle(OWNER, "Team")
        await orchestrator.create_task(OWNER, 1, "Meds", OWNER)
        mirror.upsert_task.side_effect = MirrorRejectedError("conflict", 409)

        outcome = await orchestrator.complete_task(OWNER, 1)

        assert outcome.stale is True
        assert outcome.receipt is not None

    async def test_failed_reread_flags_stale(self, orchestrator, mirror):
        mirror.get_members.side_effect = MirrorUnavailableError("timeout")

        outcome = await orchestrator.create_circle(OWNER, "Team")

        mirror.upsert_circle.assert_awaited_once()
        assert outcome.stale is True
        assert outcome.view is None

    async def test_no_automatic_retry(self, orchestrator, mirror, ledger):
        mirror.upsert_circle.side_effect = MirrorUnavailableError("down")

        await orchestrator.create_circle(OWNER, "Team")

        assert mirror.upsert_circle.await_count == 1
        assert len(ledger.events) == 1


class TestReads:
    """Tests for load_circle and refresh."""

    async def test_load_unknown_circle(self, orchestrator, mirror):
        mirror.get_circle.return_value = None

        view = await orchestrator.load_circle(5)

        assert view.circle is None
        assert view.members == []
        mirror.get_members.assert_not_awaited()

    async def test_view_helpers(self):
        view = CircleView(
            circle={"id": 1},
            members=[{"address": "a", "is_active": True}, {"address": "b", "is_active": False}],
            tasks=[{"id": 1, "completed": False}, {"id": 2, "completed": True}],
        )
        assert [m["address"] for m in view.active_members] == ["a"]
        assert [t["id"] for t in view.open_tasks] == [1]

    async def test_refresh_success(self, orchestrator):
        outcome = await orchestrator.refresh(1)

        assert outcome.receipt is None
        assert outcome.value is None
        assert not outcome.stale
        assert outcome.view.stats == {"total_tasks": 0, "completion_rate": 0}

    async def test_refresh_failure_is_stale(self, orchestrator, mirror):
        mirror.get_circle.side_effect = MirrorUnavailableError("down")

        outcome = await orchestrator.refresh(1)

        assert outcome.stale is True
        assert outcome.view is None


class TestUnreadableMirror:
    """A mirror answering 2xx with a non-JSON body."""

    async def test_html_reply_flags_stale(self, gateway, ledger):
        def handler(request):
            return httpx.Response(200, text="<html>proxy error</html>")

        mirror = MirrorClient(base_url="http://mirror.test/", transport=httpx.MockTransport(handler))
        async with mirror:
            outcome = await CircleOrchestrator(gateway, mirror).create_circle(OWNER, "Mom's Care")

        assert outcome.value == 1
        assert outcome.stale is True
        assert outcome.warning == STALE_WARNING
        assert ledger.get_stats().total_circles == 1
