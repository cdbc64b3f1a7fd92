"""
Member repository.

Memberships are keyed by (circle_id, address) and are never deleted;
removal arrives as an upsert with is_active=false.
"""

import logging
from typing import Optional, List, Dict, Any, Union

from sqlalchemy import select, func

from ..connection import Database, get_database
from ..models import MemberDB
from ..exceptions import DatabaseOperationError
from ..upsert import insert_for
from ...models.api_validation import MemberUpsert, parse_payload
from .stats import invalidate_circle_stats

logger = logging.getLogger(__name__)


class MemberRepository:
    """Repository for mirrored circle memberships."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def upsert(self, data: Union[MemberUpsert, Dict[str, Any]]) -> None:
        """
        Insert or merge a membership.

        Flags omitted from the payload keep their stored value; joined_at is
        only set on first insert.
        """
        payload = parse_payload(MemberUpsert, data)
        key = f"{payload.circle_id}/{payload.address}"

        async with self.db.session() as session:
            try:
                stmt = insert_for(self.db.dialect_name, MemberDB).values(
                    circle_id=payload.circle_id,
                    address=payload.address,
                    is_owner=bool(payload.is_owner),
                    is_active=True if payload.is_active is None else payload.is_active,
                    tx_hash=payload.tx_hash,
                )

                updates = {
                    "tx_hash": func.coalesce(MemberDB.tx_hash, stmt.excluded.tx_hash),
                }
                if payload.is_owner is not None:
                    updates["is_owner"] = stmt.excluded.is_owner
                if payload.is_active is not None:
                    updates["is_active"] = stmt.excluded.is_active

                stmt = stmt.on_conflict_do_update(
                    index_elements=[MemberDB.circle_id, MemberDB.address],
                    set_=updates,
                )
                await session.execute(stmt)

                logger.info(f"Upserted member {key} (active={payload.is_active})")

            except Exception as e:
                logger.error(f"CRITICAL: Member upsert failed for {key}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert member {key}: {e}")

        await invalidate_circle_stats(payload.circle_id)

    async def get(self, circle_id: int, address: str) -> Optional[MemberDB]:
        """Get a single membership row."""
        async with self.db.session() as session:
            result = await session.execute(
                select(MemberDB).where(
                    MemberDB.circle_id == circle_id,
                    MemberDB.address == address,
                )
            )
            return result.scalar_one_or_none()

    async def get_by_circle(self, circle_id: int) -> List[MemberDB]:
        """Get all memberships of a circle: owner first, then by join time."""
        async with self.db.session() as session:
            result = await session.execute(
                select(MemberDB)
                .where(MemberDB.circle_id == circle_id)
                .order_by(
                    MemberDB.is_owner.desc(),
                    MemberDB.joined_at.asc(),
                    MemberDB.address.asc(),
                )
            )
            return list(result.scalars().all())


# Singleton
_member_repository: Optional[MemberRepository] = None


def get_member_repository() -> MemberRepository:
    """Get the member repository singleton."""
    global _member_repository
    if _member_repository is None:
        _member_repository = MemberRepository()
    return _member_repository
