"""
Circle repository.

Circles are keyed by the ledger-assigned id. Name and owner are
last-write-wins; the creation proof (tx_hash) is filled once and never
erased.
"""

import logging
from typing import Optional, List, Dict, Any, Union

from sqlalchemy import select, func

from ..connection import Database, get_database
from ..models import CircleDB
from ..exceptions import DatabaseOperationError
from ..upsert import insert_for
from ...models.api_validation import CircleUpsert, parse_payload

logger = logging.getLogger(__name__)


class CircleRepository:
    """Repository for mirrored circles."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def upsert(self, data: Union[CircleUpsert, Dict[str, Any]]) -> int:
        """Insert or merge a circle snapshot. Returns the circle id."""
        payload = parse_payload(CircleUpsert, data)

        async with self.db.session() as session:
            try:
                stmt = insert_for(self.db.dialect_name, CircleDB).values(
                    id=payload.id,
                    name=payload.name,
                    owner=payload.owner,
                    tx_hash=payload.tx_hash,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[CircleDB.id],
                    set_={
                        "name": stmt.excluded.name,
                        "owner": stmt.excluded.owner,
                        # First non-null proof wins
                        "tx_hash": func.coalesce(CircleDB.tx_hash, stmt.excluded.tx_hash),
                    },
                )
                await session.execute(stmt)

                logger.info(f"Upserted circle {payload.id} (owner={payload.owner})")
                return payload.id

            except Exception as e:
                logger.error(f"CRITICAL: Circle upsert failed for {payload.id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert circle {payload.id}: {e}")

    async def get_by_id(self, circle_id: int) -> Optional[CircleDB]:
        """Get circle by ledger id."""
        async with self.db.session() as session:
            result = await session.execute(
                select(CircleDB).where(CircleDB.id == circle_id)
            )
            return result.scalar_one_or_none()

    async def get_by_owner(self, owner: str) -> List[CircleDB]:
        """Get circles owned by an address, newest first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(CircleDB)
                .where(CircleDB.owner == owner)
                .order_by(CircleDB.created_at.desc(), CircleDB.id.desc())
            )
            return list(result.scalars().all())


# Singleton
_circle_repository: Optional[CircleRepository] = None


def get_circle_repository() -> CircleRepository:
    """Get the circle repository singleton."""
    global _circle_repository
    if _circle_repository is None:
        _circle_repository = CircleRepository()
    return _circle_repository
