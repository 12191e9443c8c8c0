"""Abstract record storage backend.

Every physical medium implements this contract once. Records live in one of
two namespaces: active records and the recycle bin (tombstones). A record is
in exactly one of them at a time.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from recordsync.core.archive import ImportResult, read_archive, write_archive
from recordsync.core.errors import NotFoundError, StorageError
from recordsync.core.naming import DEFAULT_NAME_FIELDS
from recordsync.core.types import Record, now_ms

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Durable per-device persistence of records.

    Methods raise StorageError subclasses only. ``put`` never rewrites
    ``mutated_at``; the caller owns timestamps.
    """

    name_fields: tuple[str, ...] = DEFAULT_NAME_FIELDS

    @abstractmethod
    def get(self, key: str) -> Record:
        """Get an active record.

        Raises:
            NotFoundError: If no active record has this key.
        """

    @abstractmethod
    def find(self, key: str) -> Record | None:
        """Get a record from either namespace, or None."""

    @abstractmethod
    def list(self) -> list[Record]:
        """List active records (tombstones excluded)."""

    @abstractmethod
    def put(self, record: Record) -> None:
        """Create or overwrite a record by key.

        Tombstones go to the recycle namespace and active records to the active
        one; any copy in the other namespace is removed.
        """

    @abstractmethod
    def list_deleted(self) -> list[Record]:
        """List records in the recycle namespace."""

    @abstractmethod
    def purge(self, key: str) -> None:
        """Irreversibly remove a record from the recycle namespace.

        Raises:
            NotFoundError: If the key is not in the recycle namespace.
        """

    def soft_delete(self, key: str) -> Record:
        """Move a record to the recycle namespace with a fresh mutated_at.

        Idempotent: deleting a tombstone returns it unchanged.

        Raises:
            NotFoundError: If the key exists in neither namespace.
        """
        current = self.find(key)
        if current is None:
            raise NotFoundError(f"Record not found: {key}", key)
        if current.deleted:
            return current
        tombstone = current.touched(now_ms(), deleted=True)
        self.put(tombstone)
        return tombstone

    def restore(self, key: str) -> Record:
        """Move a record back from the recycle namespace.

        Clears ``deleted`` and refreshes ``mutated_at`` so the restoration
        propagates on the next sync pass.

        Raises:
            NotFoundError: If the key is not in the recycle namespace.
        """
        current = self.find(key)
        if current is None or not current.deleted:
            raise NotFoundError(f"Record not in recycle bin: {key}", key)
        restored = current.touched(now_ms(), deleted=False)
        self.put(restored)
        return restored

    def changed_since(self, timestamp: int) -> list[Record]:
        """Active and recycled records with mutated_at > timestamp."""
        records = self.list() + self.list_deleted()
        return sorted(
            (r for r in records if r.mutated_at > timestamp),
            key=lambda r: (r.mutated_at, r.key),
        )

    def export_all(self) -> bytes:
        """Export active records as a ZIP of pretty-printed JSON files."""
        return write_archive(self.list(), self.name_fields)

    def import_all(self, blob: bytes) -> ImportResult:
        """Import records from an archive produced by export_all().

        Entries that are not JSON files are skipped, as are records whose
        stored version is at least as recent as the imported one.

        Raises:
            InvalidDataError: If ``blob`` is not a ZIP archive.
        """
        result = ImportResult()
        for entry in read_archive(blob):
            if entry.error is not None:
                result.errors.append(entry.error)
                continue
            record = entry.record
            if record is None:
                result.skipped += 1
                continue
            try:
                existing = self.find(record.key)
                if existing is not None and existing.mutated_at >= record.mutated_at:
                    result.skipped += 1
                    continue
                self.put(record)
                result.imported += 1
            except StorageError as e:
                result.errors.append(f"Error importing {entry.filename}: {e}")

        logger.info(
            "Imported %d records (%d skipped, %d errors)",
            result.imported,
            result.skipped,
            len(result.errors),
        )
        return result
