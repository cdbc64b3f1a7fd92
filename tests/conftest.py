"""
Pytest configuration and shared fixtures.
"""

import os

# Must be set before config.settings is imported anywhere
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["REDIS_URL"] = ""

import pytest

from carecircle.database.connection import Database
from carecircle.ledger import CareCircleLedger, LocalLedgerGateway

OWNER = "01a5b8c9d0e1f234567890abcdef1234567890abcdef1234567890abcdef1234"
ALICE = "02b6c9d0e1f234567890abcdef1234567890abcdef1234567890abcdef123456"
BOB = "01c7d0e1f234567890abcdef1234567890abcdef1234567890abcdef12345678"
MALLORY = "03ffeeddccbbaa99887766554433221100ffeeddccbbaa998877665544332211"


class FakeClock:
    """Deterministic millisecond clock, advancing 1s per reading."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        value = self.now
        self.now += self.step
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    """Fresh in-process ledger with a deterministic clock."""
    return CareCircleLedger(clock=clock)


@pytest.fixture
def gateway(ledger):
    return LocalLedgerGateway(ledger, timeout=1.0)


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'mirror.db'}"


@pytest.fixture
async def mirror_db(database_url):
    """Initialized mirror store on a temporary SQLite file."""
    db = Database(database_url)
    assert await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def sample_task_payload():
    """Open task record as posted to /tasks/upsert."""
    return {
        "id": 1,
        "circle_id": 1,
        "title": "Pick up medication from pharmacy",
        "description": "Monthly prescription refill",
        "assigned_to": ALICE,
        "created_by": OWNER,
        "priority": 2,
        "completed": False,
        "tx_hash": "a" * 64,
    }
