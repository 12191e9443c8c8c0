"""Shared types for sync operations.

This module provides:
- SyncError, SyncInProgressError: Exception classes
- SyncResult: Outcome of one sync pass
- StateCallback: Type alias for engine state listeners
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from recordsync.core.types import SyncChange, SyncState, SyncStatus, SyncSummary


class SyncError(Exception):
    """Base exception for sync errors."""


class SyncInProgressError(SyncError):
    """A pass is already running on this engine; the new request is rejected."""


@dataclass
class SyncResult:
    """Outcome of one sync pass.

    Attributes:
        status: Terminal status of the pass.
        uploaded: Keys pushed to the server.
        downloaded: Keys whose server version was applied locally.
        errors: Per-record or fatal error messages.
        changes: Local changes applied by the pass.
        upload_count: Records the server reported as changed by the push.
        error: Fatal error that aborted the pass, if any.
        log_entry_id: Id of the sync log entry describing the pass.
        started_at: Pass start time (ms), the candidate watermark.
        watermark_advanced: Whether lastSyncTime moved to started_at.
    """

    status: SyncStatus
    uploaded: list[str] = field(default_factory=list)
    downloaded: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    changes: list[SyncChange] = field(default_factory=list)
    upload_count: int = 0
    error: str | None = None
    log_entry_id: str | None = None
    started_at: int = 0
    watermark_advanced: bool = False

    @property
    def summary(self) -> SyncSummary:
        """Aggregate counts of the pass."""
        return SyncSummary(
            uploaded=self.upload_count,
            downloaded=len(self.downloaded),
            errors=len(self.errors),
        )

    @property
    def message(self) -> str:
        """Human-readable one-line summary."""
        if self.status is SyncStatus.FAILED:
            return f"Sync failed: {self.error}"
        summary = self.summary
        text = f"{summary.uploaded} uploaded, {summary.downloaded} downloaded"
        if summary.errors:
            text += f", {summary.errors} errors (will retry)"
        return f"Sync {self.status.value}: {text}"


# Type alias for engine state listeners
StateCallback = Callable[[SyncState], None]
