"""Shared types for recordsync.

This module defines the synchronized Record, the sync audit types and the
enums used by both client and server.
"""

from __future__ import annotations

import copy
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from recordsync.core.errors import InvalidDataError

# Control keys of the flat wire/disk representation
KEY = "key"
MUTATED_AT = "mutatedAt"
CREATED_AT = "createdAt"
DELETED = "deleted"
CONTROL_KEYS = frozenset({KEY, MUTATED_AT, CREATED_AT, DELETED})

# Path segments the record API routes on; a key may not collide with them
RESERVED_KEYS = frozenset({"deleted", "export", "import"})


def validate_key(key: Any) -> str:
    """Check that ``key`` can address a record in every backend.

    Raises:
        InvalidDataError: If the key is empty, not a string, contains ``/``
            or is one of RESERVED_KEYS.
    """
    if not isinstance(key, str) or not key:
        raise InvalidDataError("Record is missing required field 'key'")
    if "/" in key:
        raise InvalidDataError(f"Record key {key!r} must not contain '/'", key)
    if key in RESERVED_KEYS:
        raise InvalidDataError(f"Record key {key!r} is reserved", key)
    return key


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class SyncState(str, Enum):
    """State of a SyncEngine instance.

    A pass moves IDLE -> SYNCING -> SUCCESS or ERROR -> IDLE.
    """

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


class ChangeAction(str, Enum):
    """What a sync pass did to one record."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class SyncDirection(str, Enum):
    """Direction tag of a sync log entry."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"
    MANUAL = "manual"


class SyncStatus(str, Enum):
    """Terminal outcome of a sync pass."""

    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class Record:
    """A uniquely keyed, mutable unit of synchronized data.

    Attributes:
        key: Stable identifier chosen by the creating device.
        fields: Domain attributes, opaque to the sync engine.
        mutated_at: Last modification time (ms since epoch), the LWW tie-breaker.
        created_at: First write time, never updated after creation.
        deleted: Tombstone flag.
    """

    key: str
    fields: dict[str, Any] = field(default_factory=dict)
    mutated_at: int = 0
    created_at: int | None = None
    deleted: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> Record:
        """Create from the flat wire representation.

        Raises:
            InvalidDataError: If the payload is not an object, has no usable key,
                carries a non-integer timestamp or a non-boolean deleted flag.
        """
        if not isinstance(data, dict):
            raise InvalidDataError("Record payload must be a JSON object")
        key = validate_key(data.get(KEY))
        mutated_at = data.get(MUTATED_AT) or 0
        created_at = data.get(CREATED_AT)
        # bool is an int subclass and must not pass as a timestamp
        if not isinstance(mutated_at, int) or isinstance(mutated_at, bool):
            raise InvalidDataError(f"Record {key!r} has a non-integer mutatedAt", key)
        if created_at is not None and (
            not isinstance(created_at, int) or isinstance(created_at, bool)
        ):
            raise InvalidDataError(f"Record {key!r} has a non-integer createdAt", key)
        deleted = data.get(DELETED, False)
        if not isinstance(deleted, bool):
            raise InvalidDataError(f"Record {key!r} has a non-boolean deleted flag", key)
        fields = {k: copy.deepcopy(v) for k, v in data.items() if k not in CONTROL_KEYS}
        return cls(
            key=key,
            fields=fields,
            mutated_at=mutated_at,
            created_at=created_at,
            deleted=deleted,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the flat wire representation."""
        data: dict[str, Any] = copy.deepcopy(self.fields)
        data[KEY] = self.key
        data[MUTATED_AT] = self.mutated_at
        if self.created_at is not None:
            data[CREATED_AT] = self.created_at
        data[DELETED] = self.deleted
        return data

    def touched(self, timestamp: int | None = None, **changes: Any) -> Record:
        """Return a copy with a refreshed mutation timestamp.

        The new timestamp never goes below the current one plus one, so a
        touched copy always wins LWW against the original.
        """
        ts = now_ms() if timestamp is None else timestamp
        return replace(
            self,
            fields=copy.deepcopy(self.fields),
            mutated_at=max(ts, self.mutated_at + 1),
            **changes,
        )


@dataclass
class SyncChange:
    """One record affected by a sync pass.

    ``previous`` is None for CREATED changes. ``undone`` is set once an undo
    has reversed this change.
    """

    key: str
    action: ChangeAction
    previous: Record | None = None
    new: Record | None = None
    undone: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "action": self.action.value,
            "previousSnapshot": self.previous.to_dict() if self.previous else None,
            "newSnapshot": self.new.to_dict() if self.new else None,
            "undone": self.undone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncChange:
        previous = data.get("previousSnapshot")
        new = data.get("newSnapshot")
        return cls(
            key=data["key"],
            action=ChangeAction(data["action"]),
            previous=Record.from_dict(previous) if previous else None,
            new=Record.from_dict(new) if new else None,
            undone=bool(data.get("undone", False)),
        )


@dataclass
class SyncSummary:
    """Aggregate counts of a sync pass."""

    uploaded: int = 0
    downloaded: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "uploadCount": self.uploaded,
            "downloadCount": self.downloaded,
            "errorCount": self.errors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSummary:
        return cls(
            uploaded=int(data.get("uploadCount", 0)),
            downloaded=int(data.get("downloadCount", 0)),
            errors=int(data.get("errorCount", 0)),
        )


@dataclass
class SyncLogEntry:
    """Audit record of one sync pass (or one manual correction)."""

    direction: SyncDirection
    status: SyncStatus
    changes: list[SyncChange] = field(default_factory=list)
    summary: SyncSummary = field(default_factory=SyncSummary)
    remote_endpoint: str | None = None
    error: str | None = None
    timestamp: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    undone_at: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "direction": self.direction.value,
            "changes": [c.to_dict() for c in self.changes],
            "summary": self.summary.to_dict(),
            "remoteEndpoint": self.remote_endpoint,
            "status": self.status.value,
            "error": self.error,
            "undoneAt": self.undone_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncLogEntry:
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            direction=SyncDirection(data["direction"]),
            changes=[SyncChange.from_dict(c) for c in data.get("changes", [])],
            summary=SyncSummary.from_dict(data.get("summary") or {}),
            remote_endpoint=data.get("remoteEndpoint"),
            status=SyncStatus(data["status"]),
            error=data.get("error"),
            undone_at=data.get("undoneAt"),
        )
