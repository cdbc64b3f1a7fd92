"""
SQLAlchemy models for the mirror store.

Schema mirrors ledger outcomes:
- Circles keyed by the ledger-assigned id
- Members keyed by (circle_id, address), soft-removed via is_active
- Tasks keyed by the ledger-assigned global id

Timestamps are epoch milliseconds. tx_hash columns hold ledger proof
references and are never overwritten with null.
"""

from typing import Optional

from sqlalchemy import BigInteger, Boolean, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..utils.datetime_utils import now_ms


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== CIRCLES ====================

class CircleDB(Base):
    """Mirrored care circle."""
    __tablename__ = "circles"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    owner: Mapped[str] = mapped_column(String(255), nullable=False)
    tx_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)

    __table_args__ = (
        Index("idx_circles_owner", "owner"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner": self.owner,
            "tx_hash": self.tx_hash,
            "created_at": self.created_at,
        }


# ==================== MEMBERS ====================

class MemberDB(Base):
    """Mirrored circle membership."""
    __tablename__ = "members"

    circle_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    address: Mapped[str] = mapped_column(String(255), primary_key=True)
    is_owner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tx_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    joined_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)

    __table_args__ = (
        Index("idx_members_address", "address"),
    )

    def to_dict(self) -> dict:
        return {
            "circle_id": self.circle_id,
            "address": self.address,
            "is_owner": bool(self.is_owner),
            "is_active": bool(self.is_active),
            "tx_hash": self.tx_hash,
            "joined_at": self.joined_at,
        }


# ==================== TASKS ====================

class TaskDB(Base):
    """Mirrored caregiving task."""
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    circle_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Core fields
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # 0=low .. 3=urgent

    # Assignment
    assigned_to: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    # Completion (write-once once completed is true)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    completed_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    # Proof references
    tx_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    completion_tx_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=now_ms)

    __table_args__ = (
        Index("idx_tasks_circle", "circle_id"),
        Index("idx_tasks_assigned", "assigned_to"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "circle_id": self.circle_id,
            "title": self.title,
            "description": self.description,
            "assigned_to": self.assigned_to,
            "created_by": self.created_by,
            "priority": self.priority,
            "completed": bool(self.completed),
            "completed_by": self.completed_by,
            "completed_at": self.completed_at,
            "tx_hash": self.tx_hash,
            "completion_tx_hash": self.completion_tx_hash,
            "created_at": self.created_at,
        }
