"""Storage error taxonomy shared by every backend.

Callers treat NetworkError and FilesystemError as retryable and every other
StorageError as permanent for the operation that raised it.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable storage error code."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_DATA = "INVALID_DATA"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    DUPLICATE = "DUPLICATE"
    NETWORK_ERROR = "NETWORK_ERROR"
    FILESYSTEM_ERROR = "FILESYSTEM_ERROR"
    UNKNOWN = "UNKNOWN"


RETRYABLE_CODES = frozenset({ErrorCode.NETWORK_ERROR, ErrorCode.FILESYSTEM_ERROR})


class StorageError(Exception):
    """Base exception for storage backend failures."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, key: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key

    @property
    def retryable(self) -> bool:
        """Whether the same operation may succeed if attempted again."""
        return self.code in RETRYABLE_CODES


class NotFoundError(StorageError):
    """Record does not exist in the requested namespace."""

    code = ErrorCode.NOT_FOUND


class InvalidDataError(StorageError):
    """Record payload is malformed or misses a required field."""

    code = ErrorCode.INVALID_DATA


class PermissionDeniedError(StorageError):
    """Backend refused the operation (credentials or file permissions)."""

    code = ErrorCode.PERMISSION_DENIED


class DuplicateError(StorageError):
    """Record already exists where it must not."""

    code = ErrorCode.DUPLICATE


class NetworkError(StorageError):
    """Remote backend could not be reached (includes timeouts)."""

    code = ErrorCode.NETWORK_ERROR


class FilesystemError(StorageError):
    """Local backend failed to read or write durable storage."""

    code = ErrorCode.FILESYSTEM_ERROR


class UnknownStorageError(StorageError):
    """Unclassified backend failure."""

    code = ErrorCode.UNKNOWN
