#!/usr/bin/env python3
"""
Seed a running mirror API with a demo care circle.

Drives the orchestrator against an in-process ledger, so every mirror row
carries a real proof reference. Start the API first:

    python -m carecircle.main
    python scripts/seed_demo.py --api-url http://localhost:3005

The local ledger starts from id 1 on every run; seeding a mirror that
already holds circle 1 merges into it.
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from carecircle.client import CircleOrchestrator, MirrorClient, MirrorError
from carecircle.ledger import LocalLedgerGateway, TaskPriority
from carecircle.utils import isoformat_ms

OWNER_ADDR = "01a5b8c9d0e1f234567890abcdef1234567890abcdef1234567890abcdef1234"
MEMBER1_ADDR = "02b6c9d0e1f234567890abcdef1234567890abcdef1234567890abcdef123456"
MEMBER2_ADDR = "01c7d0e1f234567890abcdef1234567890abcdef1234567890abcdef12345678"

DEMO_TASKS = [
    # (title, description, assignee, priority, complete?)
    ("Pick up medication from pharmacy", "Monthly prescription refill", MEMBER1_ADDR, TaskPriority.HIGH, False),
    ("Grocery shopping for the week", "Get items from the shopping list", MEMBER2_ADDR, TaskPriority.NORMAL, False),
    ("Doctor appointment accompaniment", "Drive to and attend appointment", OWNER_ADDR, TaskPriority.URGENT, True),
    ("Morning check-in call", "Daily wellness check", MEMBER1_ADDR, TaskPriority.NORMAL, True),
]


def report(outcome, label: str):
    status = "[STALE]" if outcome.stale else "[OK]"
    print(f"{status} {label} (tx {outcome.tx_ref[:16]}...)")
    if outcome.warning:
        print(f"        {outcome.warning}")


async def seed(api_url: str) -> bool:
    print("[INFO] Seeding CareCircle demo data...")
    print(f"[INFO] API: {api_url}")
    print()

    async with MirrorClient(base_url=api_url) as mirror:
        try:
            health = await mirror.health()
        except MirrorError as e:
            print(f"[ERROR] API server not reachable at {api_url}: {e}")
            print("        Start it with: python -m carecircle.main")
            return False
        print(f"[INFO] API is running ({health.get('service')} v{health.get('version')})")
        print()

        orchestrator = CircleOrchestrator(LocalLedgerGateway(), mirror)

        outcome = await orchestrator.create_circle(OWNER_ADDR, "Mom's Care Team")
        circle_id = outcome.value
        report(outcome, f"Created circle {circle_id}")

        for address in (MEMBER1_ADDR, MEMBER2_ADDR):
            outcome = await orchestrator.add_member(OWNER_ADDR, circle_id, address)
            report(outcome, f"Added member {address[:10]}...")

        for title, description, assignee, priority, complete in DEMO_TASKS:
            outcome = await orchestrator.create_task(
                OWNER_ADDR,
                circle_id,
                title,
                assignee,
                description=description,
                priority=priority,
            )
            task_id = outcome.value
            report(outcome, f"Created task {task_id}: {title}")

            if complete:
                outcome = await orchestrator.complete_task(assignee, task_id)
                report(outcome, f"Completed task {task_id}")

        view = await orchestrator.load_circle(circle_id)

    print()
    print("=" * 64)
    print(f"Demo circle: {view.circle['name']} (ID: {circle_id})")
    print(f"Members: {len(view.active_members)}")
    print(f"Tasks: {len(view.tasks)} ({len(view.open_tasks)} open)")
    for task in view.tasks:
        done = f"done {isoformat_ms(task['completed_at'])}" if task["completed"] else "open"
        print(f"  #{task['id']} [{done}] {task['title']}")
    print(f"Stats: {view.stats}")
    print()
    print("Demo addresses:")
    print(f"  Owner:   {OWNER_ADDR}")
    print(f"  Member1: {MEMBER1_ADDR}")
    print(f"  Member2: {MEMBER2_ADDR}")
    print("=" * 64)
    return True


def main():
    parser = argparse.ArgumentParser(description="Seed the CareCircle mirror with demo data")
    parser.add_argument(
        "--api-url",
        default=None,
        help="Mirror API base URL (default: MIRROR_API_URL setting)",
    )
    args = parser.parse_args()

    from config import settings
    api_url = args.api_url or settings.mirror_api_url

    try:
        success = asyncio.run(seed(api_url))
    except MirrorError as e:
        print(f"[ERROR] Mirror read failed: {e}")
        success = False

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
