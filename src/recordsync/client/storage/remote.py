"""Remote storage backend over the server's record CRUD surface."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from recordsync.client.api import (
    APIError,
    AuthenticationError,
    BadRequestError,
    ConflictError,
    InvalidResponseError,
    ResourceNotFoundError,
    SyncClient,
    TransportError,
)
from recordsync.client.storage.base import ImportResult, StorageBackend
from recordsync.core.errors import (
    DuplicateError,
    InvalidDataError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    UnknownStorageError,
)
from recordsync.core.types import Record, validate_key

logger = logging.getLogger(__name__)

# APIError subclass -> StorageError subclass
_ERROR_MAP: dict[type[APIError], Callable[[str], StorageError]] = {
    TransportError: NetworkError,
    AuthenticationError: PermissionDeniedError,
    ResourceNotFoundError: NotFoundError,
    BadRequestError: InvalidDataError,
    InvalidResponseError: InvalidDataError,
    ConflictError: DuplicateError,
}


@contextmanager
def _storage_errors(key: str | None = None) -> Iterator[None]:
    """Translate API errors into the storage error taxonomy."""
    try:
        yield
    except APIError as e:
        factory = _ERROR_MAP.get(type(e), UnknownStorageError)
        error = factory(str(e))
        error.key = key
        raise error from e


class RemoteStorage(StorageBackend):
    """Storage backend performing every operation over HTTP."""

    def __init__(self, client: SyncClient) -> None:
        """Initialize the remote storage.

        Args:
            client: Authenticated HTTP client for the counterpart service.
        """
        self._client = client

    @property
    def location(self) -> str:
        """Human-readable location of the storage."""
        return self._client.server_url

    def get(self, key: str) -> Record:
        with _storage_errors(key):
            return self._client.get_record(key)

    def find(self, key: str) -> Record | None:
        try:
            return self.get(key)
        except NotFoundError:
            pass
        for record in self.list_deleted():
            if record.key == key:
                return record
        return None

    def list(self) -> list[Record]:
        with _storage_errors():
            return self._client.list_records()

    def put(self, record: Record) -> None:
        validate_key(record.key)
        with _storage_errors(record.key):
            self._client.save_record(record)

    def soft_delete(self, key: str) -> Record:
        try:
            with _storage_errors(key):
                return self._client.delete_record(key)
        except NotFoundError:
            # Already in the recycle bin counts as deleted
            for record in self.list_deleted():
                if record.key == key:
                    return record
            raise

    def list_deleted(self) -> list[Record]:
        with _storage_errors():
            return self._client.list_deleted()

    def restore(self, key: str) -> Record:
        with _storage_errors(key):
            return self._client.restore_record(key)

    def purge(self, key: str) -> None:
        with _storage_errors(key):
            self._client.purge_record(key)

    def export_all(self) -> bytes:
        with _storage_errors():
            return self._client.export_records()

    def import_all(self, blob: bytes) -> ImportResult:
        with _storage_errors():
            summary = self._client.import_records(blob)
        logger.info(
            "Remote import: %d imported, %d skipped, %d errors",
            summary.imported,
            summary.skipped,
            len(summary.errors),
        )
        return ImportResult(
            imported=summary.imported,
            skipped=summary.skipped,
            errors=summary.errors,
        )
