"""ZIP archive format for record export and import.

An archive holds one pretty-printed JSON file per record, named with
``record_filename``. Both the client backends and the server read and write
this format.
"""

from __future__ import annotations

import io
import json
import zipfile
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from recordsync.core.errors import InvalidDataError
from recordsync.core.naming import DEFAULT_NAME_FIELDS, RECORD_SUFFIX, record_filename
from recordsync.core.types import Record


@dataclass
class ImportResult:
    """Outcome of importing an archive."""

    imported: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"imported": self.imported, "skipped": self.skipped, "errors": self.errors}


@dataclass
class ArchiveEntry:
    """One file of an archive: a parsed record, or the reason it was not parsed."""

    filename: str
    record: Record | None = None
    error: str | None = None


def write_archive(
    records: Iterable[Record],
    name_fields: tuple[str, ...] = DEFAULT_NAME_FIELDS,
) -> bytes:
    """Pack records into a ZIP archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for record in records:
            archive.writestr(
                record_filename(record, name_fields),
                json.dumps(record.to_dict(), indent=2, ensure_ascii=False),
            )
    return buffer.getvalue()


def read_archive(blob: bytes) -> Iterator[ArchiveEntry]:
    """Iterate over the record files of a ZIP archive.

    Directories are ignored. Files without the ``.json`` suffix are yielded
    with neither record nor error so callers can count them as skipped.

    Raises:
        InvalidDataError: If ``blob`` is not a ZIP archive.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(blob))
    except zipfile.BadZipFile as e:
        raise InvalidDataError(f"Import archive is not a ZIP file: {e}") from e

    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            if not PurePosixPath(info.filename).name.endswith(RECORD_SUFFIX):
                yield ArchiveEntry(info.filename)
                continue
            try:
                record = Record.from_dict(json.loads(archive.read(info).decode("utf-8")))
            except (ValueError, UnicodeDecodeError, InvalidDataError) as e:
                yield ArchiveEntry(info.filename, error=f"Failed to parse {info.filename}: {e}")
                continue
            yield ArchiveEntry(info.filename, record=record)
