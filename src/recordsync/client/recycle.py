"""Recycle bin lifecycle for soft-deleted records.

Deleted records stay in the recycle namespace for a retention window measured
from their deletion timestamp (the tombstone's mutated_at). Expired entries are
purged by sweep() and can no longer be restored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from recordsync.client.store import RecordStore
from recordsync.core.errors import NotFoundError
from recordsync.core.types import Record, now_ms

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30
MS_PER_DAY = 24 * 60 * 60 * 1000


class RecycleBin:
    """Soft delete, restore and retention purge over a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._retention_ms = retention_days * MS_PER_DAY
        self._clock = clock

    @property
    def retention_days(self) -> float:
        return self._retention_ms / MS_PER_DAY

    def expires_at(self, record: Record) -> int:
        """Time (ms) after which a recycled record is purged."""
        return record.mutated_at + self._retention_ms

    def is_expired(self, record: Record, now: int | None = None) -> bool:
        return self.expires_at(record) <= (self._clock() if now is None else now)

    def delete(self, key: str) -> Record:
        """Soft-delete a record."""
        tombstone = self._store.soft_delete(key)
        logger.info("Moved record %s to recycle bin", key)
        return tombstone

    def list(self) -> list[Record]:
        """Recycled records that are still within the retention window."""
        now = self._clock()
        return [r for r in self._store.list_deleted() if not self.is_expired(r, now)]

    def restore(self, key: str) -> Record:
        """Restore a recycled record to the active namespace.

        Raises:
            NotFoundError: If the record is not recycled or its window elapsed.
        """
        current = self._store.find(key)
        if current is not None and current.deleted and self.is_expired(current):
            self._store.purge(key)
            logger.info("Record %s expired in recycle bin, purged instead of restoring", key)
            raise NotFoundError(f"Record {key} expired from recycle bin", key)
        restored = self._store.restore(key)
        logger.info("Restored record %s from recycle bin", key)
        return restored

    def purge(self, key: str) -> None:
        """Permanently remove a recycled record."""
        self._store.purge(key)

    def sweep(self) -> list[str]:
        """Purge every recycled record past the retention window.

        Returns:
            Keys of purged records.
        """
        now = self._clock()
        expired = [r.key for r in self._store.list_deleted() if self.is_expired(r, now)]
        for key in expired:
            self._store.purge(key)
        if expired:
            logger.info("Recycle bin sweep purged %d records", len(expired))
        else:
            logger.debug("Recycle bin sweep: nothing older than %.0f days", self.retention_days)
        return expired
