"""Local state management for the sync client.

This module provides:
- LocalSyncState: SQLite-based storage for the sync watermark and the sync log

The sync log is stored as one JSON document per entry, ordered by insertion
sequence so eviction always removes the oldest entries.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class LocalSyncState:
    """SQLite-based local state for the sync client."""

    def __init__(self, db_path: Path) -> None:
        """Initialize local state database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # Lock for thread-safe database access
        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self._conn.execute("PRAGMA journal_mode=WAL")

        self._create_tables()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.executescript("""
            -- Key-value sync state
            CREATE TABLE IF NOT EXISTS sync_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            -- Sync log ring buffer
            CREATE TABLE IF NOT EXISTS sync_log (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE NOT NULL,
                payload TEXT NOT NULL
            );
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # === Sync state ===

    def get_state(self, key: str) -> str | None:
        """Get a sync state value."""
        with self._lock:
            cursor = self._conn.execute(
                "SELECT value FROM sync_state WHERE key = ?",
                (key,),
            )
            row = cursor.fetchone()
        return row["value"] if row else None

    def set_state(self, key: str, value: str) -> None:
        """Set a sync state value."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO sync_state (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_last_sync_time(self) -> int:
        """Get the watermark of the last fully successful sync (0 if never)."""
        value = self.get_state("last_sync_time")
        return int(value) if value else 0

    def set_last_sync_time(self, timestamp: int) -> None:
        """Set the watermark of the last fully successful sync."""
        self.set_state("last_sync_time", str(timestamp))

    # === Sync log ===

    def append_log(self, entry_id: str, payload: dict[str, Any], capacity: int) -> int:
        """Insert a log entry and evict the oldest beyond capacity.

        Returns:
            Number of evicted entries.
        """
        with self._lock:
            self._conn.execute(
                "INSERT INTO sync_log (id, payload) VALUES (?, ?)",
                (entry_id, json.dumps(payload)),
            )
            cursor = self._conn.execute(
                """
                DELETE FROM sync_log WHERE seq NOT IN (
                    SELECT seq FROM sync_log ORDER BY seq DESC LIMIT ?
                )
                """,
                (capacity,),
            )
            return cursor.rowcount

    def get_log(self, entry_id: str) -> dict[str, Any] | None:
        """Get one log entry payload by id."""
        with self._lock:
            row = self._conn.execute(
                "SELECT payload FROM sync_log WHERE id = ?",
                (entry_id,),
            ).fetchone()
        return json.loads(row["payload"]) if row else None

    def list_logs(self, limit: int | None = None) -> list[dict[str, Any]]:
        """List log entry payloads, newest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload FROM sync_log ORDER BY seq DESC LIMIT ?",
                (-1 if limit is None else limit,),
            ).fetchall()
        return [json.loads(row["payload"]) for row in rows]

    def update_log(self, entry_id: str, payload: dict[str, Any]) -> None:
        """Replace the payload of an existing log entry."""
        with self._lock:
            self._conn.execute(
                "UPDATE sync_log SET payload = ? WHERE id = ?",
                (json.dumps(payload), entry_id),
            )

    def clear_logs(self) -> None:
        """Delete every sync log entry."""
        with self._lock:
            self._conn.execute("DELETE FROM sync_log")
