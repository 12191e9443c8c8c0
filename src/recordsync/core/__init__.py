"""Core module - Shared record types, errors, conflict resolution and naming."""

from recordsync.core.archive import ImportResult, read_archive, write_archive
from recordsync.core.config import ServerConfig
from recordsync.core.conflict import is_newer, merge
from recordsync.core.errors import (
    DuplicateError,
    ErrorCode,
    FilesystemError,
    InvalidDataError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    UnknownStorageError,
)
from recordsync.core.naming import (
    parse_record_filename,
    record_filename,
    sanitize_segment,
)
from recordsync.core.types import (
    ChangeAction,
    Record,
    SyncChange,
    SyncDirection,
    SyncLogEntry,
    SyncState,
    SyncStatus,
    SyncSummary,
    now_ms,
)

__all__ = [
    # Archive
    "ImportResult",
    "read_archive",
    "write_archive",
    # Config
    "ServerConfig",
    # Conflict resolution
    "is_newer",
    "merge",
    # Errors
    "DuplicateError",
    "ErrorCode",
    "FilesystemError",
    "InvalidDataError",
    "NetworkError",
    "NotFoundError",
    "PermissionDeniedError",
    "StorageError",
    "UnknownStorageError",
    # Naming
    "parse_record_filename",
    "record_filename",
    "sanitize_segment",
    # Types
    "ChangeAction",
    "Record",
    "SyncChange",
    "SyncDirection",
    "SyncLogEntry",
    "SyncState",
    "SyncStatus",
    "SyncSummary",
    "now_ms",
]
