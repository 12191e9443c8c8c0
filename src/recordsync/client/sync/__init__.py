"""Record synchronization.

This package provides:
- SyncEngine: one push/pull/merge/log pass at a time
- SyncScheduler: periodic passes
- SyncResult, SyncInProgressError: pass outcome and rejection
"""

from recordsync.client.sync.engine import SyncEngine, classify
from recordsync.client.sync.scheduler import DEFAULT_SYNC_INTERVAL, SyncScheduler
from recordsync.client.sync.types import (
    StateCallback,
    SyncError,
    SyncInProgressError,
    SyncResult,
)

__all__ = [
    "DEFAULT_SYNC_INTERVAL",
    "StateCallback",
    "SyncEngine",
    "SyncError",
    "SyncInProgressError",
    "SyncResult",
    "SyncScheduler",
    "classify",
]
