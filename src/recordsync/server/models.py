"""SQLAlchemy models for the recordsync server.

This module defines the database schema using SQLAlchemy ORM.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from recordsync.core.types import Record


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""


class StoredRecord(Base):
    """A synchronized record; tombstones stay in the table with deleted=True."""

    __tablename__ = "records"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    mutated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Indexes
    __table_args__ = (
        Index("idx_records_mutated", "mutated_at"),
        Index("idx_records_deleted", "deleted"),
    )

    def to_record(self) -> Record:
        """Convert to the shared Record type."""
        return Record.from_dict(json.loads(self.payload))

    def assign(self, record: Record) -> None:
        """Overwrite columns from a Record."""
        self.payload = json.dumps(record.to_dict())
        self.mutated_at = record.mutated_at
        self.created_at = record.created_at
        self.deleted = record.deleted


class Token(Base):
    """Represents a bearer token issued to a device."""

    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Indexes
    __table_args__ = (Index("idx_tokens_hash", "token_hash"),)


class SyncEvent(Base):
    """Sync request observed by the server, kept for audit."""

    __tablename__ = "sync_events"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    client_ip: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    changes_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    deletions_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Indexes
    __table_args__ = (Index("idx_sync_events_timestamp", "timestamp"),)
