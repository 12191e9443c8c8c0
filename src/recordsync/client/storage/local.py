"""Local filesystem storage backend.

Layout under the storage root:
    records/   one pretty-printed JSON file per active record
    recycle/   one JSON file per tombstone

Filenames are ``{category}-{group}-{subgroup}-{key}.json``. Sanitized keys can
collide, so lookups always verify the key stored inside the file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator, Sequence
from pathlib import Path

from recordsync.client.storage.base import StorageBackend
from recordsync.core.errors import (
    DuplicateError,
    FilesystemError,
    InvalidDataError,
    NotFoundError,
    PermissionDeniedError,
)
from recordsync.core.naming import DEFAULT_NAME_FIELDS, RECORD_SUFFIX, key_suffix, record_filename
from recordsync.core.types import Record, validate_key

logger = logging.getLogger(__name__)

ACTIVE_DIR = "records"
RECYCLE_DIR = "recycle"


class LocalFileStorage(StorageBackend):
    """One-file-per-record storage on the local filesystem."""

    def __init__(self, root: Path, name_fields: Sequence[str] = DEFAULT_NAME_FIELDS) -> None:
        """Initialize the storage, creating directories as needed.

        Args:
            root: Storage root directory.
            name_fields: Record fields used for the filename segments.
        """
        self._root = Path(root)
        self.name_fields = tuple(name_fields)
        self._active = self._root / ACTIVE_DIR
        self._recycle = self._root / RECYCLE_DIR
        try:
            self._active.mkdir(parents=True, exist_ok=True)
            self._recycle.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise _map_os_error(e, str(self._root)) from e

    @property
    def location(self) -> str:
        """Human-readable location of the storage."""
        return str(self._root)

    # === Contract ===

    def get(self, key: str) -> Record:
        found = self._locate(self._active, key)
        if found is None:
            raise NotFoundError(f"Record not found: {key}", key)
        return found[1]

    def find(self, key: str) -> Record | None:
        found = self._locate(self._active, key) or self._locate(self._recycle, key)
        return found[1] if found else None

    def list(self) -> list[Record]:
        return sorted(
            (record for _, record in self._iter_dir(self._active)),
            key=lambda r: r.mutated_at,
            reverse=True,
        )

    def list_deleted(self) -> list[Record]:
        return sorted(
            (record for _, record in self._iter_dir(self._recycle)),
            key=lambda r: r.mutated_at,
            reverse=True,
        )

    def put(self, record: Record) -> None:
        validate_key(record.key)
        target_dir, other_dir = (
            (self._recycle, self._active) if record.deleted else (self._active, self._recycle)
        )
        filename = record_filename(record, self.name_fields)
        target = target_dir / filename

        occupant = self._read(target) if target.exists() else None
        if occupant is not None and occupant.key != record.key:
            raise DuplicateError(
                f"Filename {filename} already holds record {occupant.key!r}", record.key
            )

        # Fields in the filename may have changed: drop stale copies
        previous = self._locate(target_dir, record.key)
        self._write(target, record)
        if previous is not None and previous[0] != target:
            self._unlink(previous[0])
        stale = self._locate(other_dir, record.key)
        if stale is not None:
            self._unlink(stale[0])

    def purge(self, key: str) -> None:
        found = self._locate(self._recycle, key)
        if found is None:
            raise NotFoundError(f"Record not in recycle bin: {key}", key)
        self._unlink(found[0])
        logger.info("Purged record %s from recycle bin", key)

    # === File helpers ===

    def _locate(self, directory: Path, key: str) -> tuple[Path, Record] | None:
        """Find the file holding ``key`` in a namespace directory."""
        suffix = key_suffix(key)
        try:
            candidates = [p for p in directory.iterdir() if p.name.endswith(suffix)]
        except OSError as e:
            raise _map_os_error(e, str(directory)) from e
        for path in candidates:
            try:
                record = self._read(path)
            except InvalidDataError:
                logger.warning("Skipping unreadable record file %s", path.name)
                continue
            if record.key == key:
                return path, record
        return None

    def _iter_dir(self, directory: Path) -> Iterator[tuple[Path, Record]]:
        try:
            paths = sorted(p for p in directory.iterdir() if p.name.endswith(RECORD_SUFFIX))
        except OSError as e:
            raise _map_os_error(e, str(directory)) from e
        for path in paths:
            try:
                yield path, self._read(path)
            except InvalidDataError:
                logger.warning("Skipping unreadable record file %s", path.name)

    def _read(self, path: Path) -> Record:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise _map_os_error(e, path.name) from e
        try:
            return Record.from_dict(json.loads(content))
        except ValueError as e:
            raise InvalidDataError(f"Corrupt record file {path.name}: {e}") from e

    def _write(self, path: Path, record: Record) -> None:
        """Write atomically via a temp file in the same directory."""
        payload = json.dumps(record.to_dict(), indent=2, ensure_ascii=False)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".part")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise _map_os_error(e, record.key) from e

    def _unlink(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise _map_os_error(e, path.name) from e


def _map_os_error(error: OSError, subject: str) -> FilesystemError | PermissionDeniedError:
    """Translate an OSError into the storage error taxonomy."""
    if isinstance(error, PermissionError):
        return PermissionDeniedError(f"Permission denied for {subject}: {error}")
    return FilesystemError(f"Filesystem error for {subject}: {error}")
