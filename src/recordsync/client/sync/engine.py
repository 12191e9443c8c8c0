"""Sync engine coordinating record synchronization.

This module provides:
- SyncEngine: Runs push/pull/merge/log passes between a RecordStore and a server

One pass:
1. collect local records (active and recycled) mutated after the watermark
2. POST them with the watermark; receive the server's records mutated since
3. merge each incoming record with the local version (last write wins)
4. persist the winners and classify them as created/updated/deleted
5. append one sync log entry
6. advance the watermark to the pass start only if no record failed

Only one pass runs per engine. The IDLE/SYNCING state field is the exclusion
mechanism; a request made while SYNCING is rejected, not queued.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from recordsync.client.api import (
    APIError,
    AuthenticationError,
    InvalidResponseError,
    SyncClient,
    TransportError,
)
from recordsync.client.history import SyncLog
from recordsync.client.state import LocalSyncState
from recordsync.client.store import RecordStore
from recordsync.client.sync.types import (
    StateCallback,
    SyncInProgressError,
    SyncResult,
)
from recordsync.core.conflict import merge
from recordsync.core.errors import StorageError
from recordsync.core.types import (
    ChangeAction,
    Record,
    SyncChange,
    SyncDirection,
    SyncLogEntry,
    SyncState,
    SyncStatus,
    now_ms,
)

logger = logging.getLogger(__name__)


def classify(previous: Record | None, new: Record) -> ChangeAction:
    """Classify a local write by comparing pre- and post-state."""
    if previous is None:
        return ChangeAction.CREATED
    if new.deleted and not previous.deleted:
        return ChangeAction.DELETED
    return ChangeAction.UPDATED


class SyncEngine:
    """Coordinates record synchronization between a local store and a server."""

    def __init__(
        self,
        store: RecordStore,
        client: SyncClient,
        state: LocalSyncState,
        log: SyncLog,
        clock: Callable[[], int] = now_ms,
        state_callback: StateCallback | None = None,
    ) -> None:
        """Initialize the sync engine.

        Args:
            store: Local record store.
            client: HTTP client for the sync endpoint.
            state: Local state database holding the watermark.
            log: Sync log receiving one entry per pass.
            clock: Wall clock in milliseconds.
            state_callback: Optional callback for state transitions.
        """
        self._store = store
        self._client = client
        self._state = state
        self._log = log
        self._clock = clock
        self._state_callback = state_callback
        self._status = SyncState.IDLE
        self._status_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self.last_result: SyncResult | None = None

    @property
    def status(self) -> SyncState:
        """Current engine state."""
        return self._status

    @property
    def is_syncing(self) -> bool:
        return self._status is SyncState.SYNCING

    def run(self) -> SyncResult:
        """Run one sync pass in the calling thread.

        Raises:
            SyncInProgressError: If a pass is already running.
        """
        self._begin()
        return self._execute()

    def submit(self) -> Future[SyncResult]:
        """Start one sync pass on the engine's worker thread.

        The in-flight check happens before scheduling, so a rejected request
        never reaches the worker.

        Raises:
            SyncInProgressError: If a pass is already running.
        """
        self._begin()
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="recordsync")
        try:
            return self._executor.submit(self._execute)
        except RuntimeError:
            self._set_status(SyncState.IDLE)
            raise

    def close(self) -> None:
        """Stop the worker thread, waiting for a running pass."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    # === State machine ===

    def _begin(self) -> None:
        with self._status_lock:
            if self._status is SyncState.SYNCING:
                raise SyncInProgressError("A sync pass is already running")
            self._status = SyncState.SYNCING
        self._notify(SyncState.SYNCING)

    def _set_status(self, status: SyncState) -> None:
        with self._status_lock:
            self._status = status
        self._notify(status)

    def _notify(self, status: SyncState) -> None:
        if self._state_callback is not None:
            try:
                self._state_callback(status)
            except Exception:
                logger.exception("State callback failed")

    def _execute(self) -> SyncResult:
        terminal = SyncState.ERROR
        try:
            result = self._run_pass()
            if result.status is not SyncStatus.FAILED:
                terminal = SyncState.SUCCESS
            self.last_result = result
            return result
        finally:
            self._set_status(terminal)
            self._set_status(SyncState.IDLE)

    # === Pass ===

    def _run_pass(self) -> SyncResult:
        started_at = self._clock()
        result = SyncResult(status=SyncStatus.SUCCESS, started_at=started_at)
        try:
            last_sync_time = self._state.get_last_sync_time()
        except sqlite3.Error as e:
            return self._fail(result, f"Could not read sync state: {e}", record=False)
        logger.info("Starting sync pass (lastSyncTime=%d)", last_sync_time)

        # 1. Local changes since the watermark
        try:
            outgoing = self._store.changed_since(last_sync_time)
        except StorageError as e:
            return self._fail(result, f"Could not read local changes: {e}")
        result.uploaded = [r.key for r in outgoing]

        # 2-3. Exchange with the server
        try:
            response = self._client.sync(outgoing, last_sync_time)
        except AuthenticationError as e:
            return self._fail(result, f"Authentication failed: {e}")
        except TransportError as e:
            return self._fail(result, f"Network error: {e}")
        except InvalidResponseError as e:
            return self._fail(result, str(e))
        except APIError as e:
            return self._fail(result, f"Server error ({e.status_code}): {e}")
        if not response.success:
            return self._fail(result, "Server reported an unsuccessful sync")
        result.upload_count = response.summary.uploaded

        # 4-5. Merge and persist incoming records
        for incoming in response.merged:
            try:
                change = self._apply(incoming)
            except StorageError as e:
                logger.warning("Failed to apply %s: %s", incoming.key, e)
                result.errors.append(f"Error syncing {incoming.key}: {e}")
                continue
            if change is not None:
                result.changes.append(change)
                result.downloaded.append(change.key)

        if result.errors:
            result.status = SyncStatus.PARTIAL

        # 6-7. Log the pass; advance the watermark only when every record landed
        try:
            result.log_entry_id = self._append_log(result)
            if not result.errors:
                self._state.set_last_sync_time(started_at)
                result.watermark_advanced = True
        except sqlite3.Error as e:
            return self._fail(result, f"Could not record sync pass: {e}", record=False)
        logger.info(result.message)
        return result

    def _apply(self, incoming: Record) -> SyncChange | None:
        """Merge one incoming record into the store.

        Returns:
            The applied change, or None when the local version is kept.
        """
        local = self._store.find(incoming.key)
        resolved = merge(local, incoming)
        if local is not None and resolved == local:
            return None
        self._store.put(resolved)
        return SyncChange(
            key=resolved.key,
            action=classify(local, resolved),
            previous=local,
            new=resolved,
        )

    def _fail(self, result: SyncResult, error: str, record: bool = True) -> SyncResult:
        """Abort the pass.

        With ``record`` false the sync log is left alone, for failures of the
        local state database itself.
        """
        logger.error("Sync pass failed: %s", error)
        result.status = SyncStatus.FAILED
        result.error = error
        result.errors.append(error)
        if record:
            try:
                result.log_entry_id = self._append_log(result)
            except sqlite3.Error as e:
                logger.warning("Could not record failed sync pass: %s", e)
                result.errors.append(f"Could not record sync pass: {e}")
        return result

    def _append_log(self, result: SyncResult) -> str:
        summary = result.summary
        direction = (
            SyncDirection.INCOMING
            if summary.downloaded >= summary.uploaded
            else SyncDirection.OUTGOING
        )
        entry = SyncLogEntry(
            direction=direction,
            status=result.status,
            changes=result.changes,
            summary=summary,
            remote_endpoint=self._client.server_url,
            error=result.error or (result.errors[0] if result.errors else None),
        )
        self._log.append(entry)
        return entry.id
