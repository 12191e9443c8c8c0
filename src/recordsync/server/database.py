"""Server database using SQLAlchemy with SQLite.

This module provides:
- Record storage with a recycle bin (tombstones) and retention purge
- Sync merging (last write wins on mutatedAt)
- Token-based authentication
- Sync event audit log
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session

from recordsync.core.conflict import is_newer
from recordsync.core.errors import InvalidDataError
from recordsync.core.types import Record, now_ms
from recordsync.server.models import Base, StoredRecord, SyncEvent, Token

if TYPE_CHECKING:
    from sqlalchemy import Engine

MS_PER_DAY = 24 * 60 * 60 * 1000
MAX_SYNC_EVENTS = 100
TOKEN_PREFIX = "rs_"


def hash_token(token: str) -> str:
    """Hash a token using SHA-256.

    Args:
        token: Raw token string.

    Returns:
        Hex-encoded SHA-256 hash.
    """
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class SyncOutcome:
    """Result of merging one sync request."""

    merged: list[Record] = field(default_factory=list)
    upload_count: int = 0
    errors: list[str] = field(default_factory=list)
    deletions_count: int = 0


class Database:
    """SQLAlchemy database for server records.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Create engine with check_same_thread=False for multi-threaded access
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        # Enable WAL mode
        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Record operations ===

    def get_record(self, key: str, include_deleted: bool = False) -> Record | None:
        """Get a record by key.

        Args:
            key: Record key.
            include_deleted: Also return tombstones.

        Returns:
            Record if found, None otherwise.
        """
        with self._session() as session:
            row = session.get(StoredRecord, key)
            if row is None or (row.deleted and not include_deleted):
                return None
            return row.to_record()

    def list_records(self) -> list[Record]:
        """List active records, most recently mutated first."""
        with self._session() as session:
            stmt = (
                select(StoredRecord)
                .where(StoredRecord.deleted.is_(False))
                .order_by(StoredRecord.mutated_at.desc())
            )
            return [row.to_record() for row in session.execute(stmt).scalars()]

    def list_deleted(self) -> list[Record]:
        """List tombstones, most recently deleted first."""
        with self._session() as session:
            stmt = (
                select(StoredRecord)
                .where(StoredRecord.deleted.is_(True))
                .order_by(StoredRecord.mutated_at.desc())
            )
            return [row.to_record() for row in session.execute(stmt).scalars()]

    def save_record(self, record: Record) -> Record:
        """Create or overwrite a record by key.

        Args:
            record: Record to store as-is.

        Returns:
            The stored record.
        """
        with self._session() as session:
            row = session.get(StoredRecord, record.key)
            if row is None:
                row = StoredRecord(key=record.key)
                session.add(row)
            row.assign(record)
            session.commit()
        return record

    def soft_delete(self, key: str) -> Record | None:
        """Move a record to the recycle bin.

        Returns:
            The tombstone, the existing tombstone if already deleted, or None if
            the key is unknown.
        """
        with self._session() as session:
            row = session.get(StoredRecord, key)
            if row is None:
                return None
            current = row.to_record()
            if current.deleted:
                return current
            tombstone = current.touched(now_ms(), deleted=True)
            row.assign(tombstone)
            session.commit()
            return tombstone

    def restore(self, key: str) -> Record | None:
        """Restore a record from the recycle bin.

        Returns:
            The restored record, or None if the key is not in the recycle bin.
        """
        with self._session() as session:
            row = session.get(StoredRecord, key)
            if row is None or not row.deleted:
                return None
            restored = row.to_record().touched(now_ms(), deleted=False)
            row.assign(restored)
            session.commit()
            return restored

    def purge(self, key: str) -> bool:
        """Permanently delete a record from the recycle bin.

        Returns:
            True if a tombstone was removed.
        """
        with self._session() as session:
            row = session.get(StoredRecord, key)
            if row is None or not row.deleted:
                return False
            session.delete(row)
            session.commit()
            return True

    def purge_recycle(self, older_than_days: int = 30) -> list[str]:
        """Permanently delete tombstones older than the retention window.

        Args:
            older_than_days: Delete tombstones deleted more than this many days ago.

        Returns:
            Keys of purged records.
        """
        cutoff = now_ms() - older_than_days * MS_PER_DAY
        with self._session() as session:
            stmt = select(StoredRecord).where(
                StoredRecord.deleted.is_(True),
                StoredRecord.mutated_at < cutoff,
            )
            rows = list(session.execute(stmt).scalars().all())
            keys = [row.key for row in rows]
            for row in rows:
                session.delete(row)
            session.commit()
            return keys

    def record_counts(self) -> dict[str, int]:
        """Count active and deleted records and the latest mutation time."""
        with self._session() as session:
            active = session.scalar(
                select(func.count()).select_from(StoredRecord).where(StoredRecord.deleted.is_(False))
            )
            deleted = session.scalar(
                select(func.count()).select_from(StoredRecord).where(StoredRecord.deleted.is_(True))
            )
            latest = session.scalar(select(func.max(StoredRecord.mutated_at)))
        return {
            "totalRecords": active or 0,
            "deletedRecords": deleted or 0,
            "lastModified": latest or 0,
        }

    # === Sync ===

    def apply_sync(self, payloads: list[Any], last_sync_time: int) -> SyncOutcome:
        """Merge uploaded records and collect the server's changes.

        Each uploaded record replaces the stored version only if it wins
        last-write-wins against it (ties go to the upload). The merged set is
        every stored record mutated after ``last_sync_time`` except those the
        client just sent unchanged, plus the winning version of every upload
        that lost.

        Args:
            payloads: Raw uploaded records.
            last_sync_time: Client watermark.

        Returns:
            SyncOutcome with the merged set and counts.
        """
        outcome = SyncOutcome()
        sent: dict[str, Record] = {}
        rejected: dict[str, Record] = {}

        with self._session() as session:
            for index, payload in enumerate(payloads):
                try:
                    record = Record.from_dict(payload)
                except InvalidDataError as e:
                    outcome.errors.append(f"Record #{index}: {e}")
                    continue
                sent[record.key] = record
                if record.deleted:
                    outcome.deletions_count += 1

                row = session.get(StoredRecord, record.key)
                existing = row.to_record() if row is not None else None
                if not is_newer(record, existing):
                    if existing is not None and existing != record:
                        rejected[record.key] = existing
                    continue
                if row is None:
                    row = StoredRecord(key=record.key)
                    session.add(row)
                row.assign(record)
                outcome.upload_count += 1
            session.commit()

            stmt = (
                select(StoredRecord)
                .where(StoredRecord.mutated_at > last_sync_time)
                .order_by(StoredRecord.mutated_at, StoredRecord.key)
            )
            for row in session.execute(stmt).scalars():
                stored = row.to_record()
                rejected.pop(stored.key, None)
                if sent.get(stored.key) == stored:
                    continue
                outcome.merged.append(stored)
            # Uploads that lost to a version older than the watermark
            outcome.merged.extend(rejected.values())

        return outcome

    # === Token operations ===

    def create_token(self, name: str) -> tuple[str, Token]:
        """Create a new bearer token.

        Args:
            name: Device or owner name for the token.

        Returns:
            Tuple of (raw_token, Token object). Only the hash is stored.
        """
        raw_token = TOKEN_PREFIX + secrets.token_urlsafe(32)
        with self._session() as session:
            token = Token(name=name, token_hash=hash_token(raw_token))
            session.add(token)
            session.commit()
            session.refresh(token)
            session.expunge(token)
        return raw_token, token

    def validate_token(self, raw_token: str) -> Token | None:
        """Validate a raw token.

        Returns:
            Token if valid and not revoked, None otherwise.
        """
        with self._session() as session:
            stmt = select(Token).where(Token.token_hash == hash_token(raw_token))
            token = session.execute(stmt).scalar_one_or_none()
            if token is None or token.revoked:
                return None
            session.expunge(token)
            return token

    def revoke_token(self, token_id: int) -> None:
        """Revoke a token."""
        with self._session() as session:
            token = session.get(Token, token_id)
            if token:
                token.revoked = True
                session.commit()

    # === Sync events ===

    def log_sync_event(
        self,
        *,
        client_ip: str | None,
        user_agent: str | None,
        changes_count: int,
        deletions_count: int,
        status: str,
        error: str | None = None,
    ) -> SyncEvent:
        """Record a sync request, keeping only the most recent events."""
        with self._session() as session:
            event = SyncEvent(
                id=uuid.uuid4().hex,
                timestamp=now_ms(),
                client_ip=client_ip,
                user_agent=user_agent,
                changes_count=changes_count,
                deletions_count=deletions_count,
                status=status,
                error=error,
            )
            session.add(event)
            session.flush()
            keep = (
                select(SyncEvent.id)
                .order_by(SyncEvent.timestamp.desc(), SyncEvent.id.desc())
                .limit(MAX_SYNC_EVENTS)
            )
            session.execute(delete(SyncEvent).where(SyncEvent.id.not_in(keep)))
            session.commit()
            session.refresh(event)
            session.expunge(event)
            return event

    def list_sync_events(self, limit: int = MAX_SYNC_EVENTS) -> list[SyncEvent]:
        """List sync events, newest first."""
        with self._session() as session:
            stmt = select(SyncEvent).order_by(SyncEvent.timestamp.desc()).limit(limit)
            events = list(session.execute(stmt).scalars().all())
            for event in events:
                session.expunge(event)
            return events
