"""Sync log and undo.

This module provides:
- SyncLog: append-only, capped history of sync passes
- undo(): reverse the local effect of one logged pass
- UndoResult: outcome of an undo

Undo moves forward in time: every restored snapshot is written with a fresh
mutated_at so the correction itself propagates on the next sync pass. Undoing
a CREATED change soft-deletes the record, since nothing existed before it.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from recordsync.client.state import LocalSyncState
from recordsync.client.store import RecordStore
from recordsync.core.errors import StorageError
from recordsync.core.types import (
    ChangeAction,
    SyncChange,
    SyncDirection,
    SyncLogEntry,
    SyncStatus,
    SyncSummary,
    now_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_LOG_CAPACITY = 50


class SyncLog:
    """Fixed-capacity history of sync log entries, persisted in local state."""

    def __init__(self, state: LocalSyncState, capacity: int = DEFAULT_LOG_CAPACITY) -> None:
        """Initialize the log.

        Args:
            state: Local state database holding the entries.
            capacity: Maximum number of entries kept; the oldest are evicted.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._state = state
        self._capacity = capacity

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, entry: SyncLogEntry) -> SyncLogEntry:
        """Append an entry, evicting the oldest once full."""
        evicted = self._state.append_log(entry.id, entry.to_dict(), self._capacity)
        if evicted:
            logger.debug("Sync log full, evicted %d oldest entries", evicted)
        return entry

    def entries(self, limit: int | None = None) -> list[SyncLogEntry]:
        """Entries, newest first."""
        return [SyncLogEntry.from_dict(p) for p in self._state.list_logs(limit)]

    def get(self, entry_id: str) -> SyncLogEntry | None:
        payload = self._state.get_log(entry_id)
        return SyncLogEntry.from_dict(payload) if payload else None

    def update(self, entry: SyncLogEntry) -> None:
        """Persist changes made to an existing entry."""
        self._state.update_log(entry.id, entry.to_dict())

    def __len__(self) -> int:
        return len(self._state.list_logs())


@dataclass
class UndoResult:
    """Outcome of an undo."""

    success: bool
    message: str
    restored_count: int = 0


def undo(log: SyncLog, store: RecordStore, entry_id: str) -> UndoResult:
    """Reverse the local effect of a logged sync pass.

    - UPDATED: the previous snapshot is written back.
    - DELETED: the previous (active) snapshot is written back.
    - CREATED: the record is soft-deleted.

    Each reversed change is flagged in the entry, and the entry is marked
    undone only when none failed; undoing it again retries the rest.

    Never raises; failures are reported in the message.
    """
    try:
        entry = log.get(entry_id)
    except (sqlite3.Error, ValueError, KeyError) as e:
        return UndoResult(False, f"Undo failed: cannot read log entry: {e}")
    if entry is None:
        return UndoResult(False, "Log entry not found")
    if entry.undone_at is not None:
        return UndoResult(False, "Log entry was already undone")
    if not entry.changes:
        return UndoResult(True, "Nothing to undo")

    restored = 0
    failures: list[str] = []
    applied: list[SyncChange] = []

    for change in entry.changes:
        if change.undone:
            continue
        try:
            result = _reverse(store, change)
        except StorageError as e:
            logger.warning("Undo of %s %s failed: %s", change.action.value, change.key, e)
            failures.append(f"{change.key}: {e}")
            continue
        change.undone = True
        if result is not None:
            applied.append(result)
            restored += 1

    timestamp = now_ms()
    if not failures:
        entry.undone_at = timestamp
    try:
        log.update(entry)
        if applied or failures:
            log.append(
                SyncLogEntry(
                    direction=SyncDirection.MANUAL,
                    status=SyncStatus.PARTIAL if failures else SyncStatus.SUCCESS,
                    changes=applied,
                    summary=SyncSummary(errors=len(failures)),
                    error=f"Undo of {entry_id}: {failures[0]}" if failures else None,
                    timestamp=timestamp,
                )
            )
    except sqlite3.Error as e:
        logger.warning("Could not record undo of %s: %s", entry_id, e)
        failures.append(f"log: {e}")

    if failures:
        return UndoResult(
            False,
            f"Undo failed for {len(failures)} changes ({'; '.join(failures)}); "
            f"undid {restored} changes",
            restored,
        )
    logger.info("Undid %d changes of sync log entry %s", restored, entry_id)
    return UndoResult(True, f"Undid {restored} changes", restored)


def _reverse(store: RecordStore, change: SyncChange) -> SyncChange | None:
    """Apply the reversal of one change.

    Returns:
        The change performed by the reversal, or None if nothing was needed.
    """
    current = store.find(change.key)

    if change.action is ChangeAction.CREATED:
        if current is None or current.deleted:
            return None
        tombstone = store.soft_delete(change.key)
        return SyncChange(change.key, ChangeAction.DELETED, previous=current, new=tombstone)

    # UPDATED and DELETED both restore the previous snapshot
    if change.previous is None:
        logger.warning("Cannot undo %s of %s: no previous snapshot", change.action.value, change.key)
        return None
    floor = current.mutated_at if current else change.previous.mutated_at
    written = store.put(change.previous.touched(max(now_ms(), floor + 1)))
    action = ChangeAction.CREATED if current is None else ChangeAction.UPDATED
    return SyncChange(change.key, action, previous=current, new=written)
