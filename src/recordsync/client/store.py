"""Caching layer over a storage backend.

Enumerating a remote or disk-backed namespace is expensive compared to point
lookups, so RecordStore keeps an in-memory key directory of each namespace.
A directory is valid for a bounded TTL; any write through the store
invalidates both directories immediately.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from recordsync.client.storage.base import ImportResult, StorageBackend
from recordsync.core.types import Record, now_ms

logger = logging.getLogger(__name__)

DEFAULT_INDEX_TTL = 30.0


class _Directory:
    """Snapshot of one namespace listing."""

    def __init__(self) -> None:
        self.records: dict[str, Record] = {}
        self.loaded_at: float | None = None

    def is_fresh(self, now: float, ttl: float) -> bool:
        return self.loaded_at is not None and now - self.loaded_at < ttl

    def clear(self) -> None:
        self.records = {}
        self.loaded_at = None


class RecordStore:
    """Record access with a time-boxed listing cache and write-through invalidation."""

    def __init__(
        self,
        backend: StorageBackend,
        ttl: float = DEFAULT_INDEX_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            backend: Storage backend holding the authoritative records.
            ttl: Seconds a listing stays valid before the next list() refreshes it.
            clock: Monotonic clock in seconds (injectable for tests).
        """
        self._backend = backend
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.RLock()
        self._active = _Directory()
        self._deleted = _Directory()

    @property
    def backend(self) -> StorageBackend:
        """Underlying storage backend."""
        return self._backend

    # === Reads ===

    def get(self, key: str) -> Record:
        """Get an active record (always read from the backend).

        Raises:
            NotFoundError: If no active record has this key.
        """
        return self._backend.get(key)

    def find(self, key: str) -> Record | None:
        """Get a record from either namespace, or None."""
        return self._backend.find(key)

    def list(self) -> list[Record]:
        """List active records, served from the index while it is fresh."""
        with self._lock:
            self._ensure(self._active, self._backend.list, "active")
            return list(self._active.records.values())

    def list_deleted(self) -> list[Record]:
        """List recycled records, served from the index while it is fresh."""
        with self._lock:
            self._ensure(self._deleted, self._backend.list_deleted, "recycled")
            return list(self._deleted.records.values())

    def keys(self) -> set[str]:
        """Keys of all active records."""
        with self._lock:
            self._ensure(self._active, self._backend.list, "active")
            return set(self._active.records)

    def changed_since(self, timestamp: int) -> list[Record]:
        """Active and recycled records with mutated_at > timestamp.

        Always bypasses the index: a sync pass must see every local write.
        """
        with self._lock:
            self.invalidate()
            records = self.list() + self.list_deleted()
        return sorted(
            (r for r in records if r.mutated_at > timestamp),
            key=lambda r: (r.mutated_at, r.key),
        )

    def export_all(self) -> bytes:
        """Export active records as an archive."""
        return self._backend.export_all()

    # === Writes (invalidate the index) ===

    def put(self, record: Record, touch: bool = False) -> Record:
        """Create or overwrite a record.

        Args:
            record: Record to persist.
            touch: Refresh mutated_at before writing (user edits, undo).

        Returns:
            The record as written.
        """
        if touch:
            record = record.touched(now_ms())
        with self._lock:
            try:
                self._backend.put(record)
            finally:
                self.invalidate()
        return record

    def soft_delete(self, key: str) -> Record:
        """Move a record to the recycle bin."""
        with self._lock:
            try:
                return self._backend.soft_delete(key)
            finally:
                self.invalidate()

    def restore(self, key: str) -> Record:
        """Move a record back from the recycle bin."""
        with self._lock:
            try:
                return self._backend.restore(key)
            finally:
                self.invalidate()

    def purge(self, key: str) -> None:
        """Irreversibly remove a record from the recycle bin."""
        with self._lock:
            try:
                self._backend.purge(key)
            finally:
                self.invalidate()

    def import_all(self, blob: bytes) -> ImportResult:
        """Import an archive into the backend."""
        with self._lock:
            try:
                return self._backend.import_all(blob)
            finally:
                self.invalidate()

    def invalidate(self) -> None:
        """Drop both listing directories."""
        with self._lock:
            self._active.clear()
            self._deleted.clear()

    def _ensure(
        self,
        directory: _Directory,
        loader: Callable[[], list[Record]],
        label: str,
    ) -> None:
        now = self._clock()
        if directory.is_fresh(now, self._ttl):
            return
        start = time.monotonic()
        records = loader()
        directory.records = {r.key: r for r in records}
        directory.loaded_at = now
        logger.debug(
            "Refreshed %s index: %d records in %.1fms",
            label,
            len(records),
            (time.monotonic() - start) * 1000,
        )
