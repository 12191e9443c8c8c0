"""Periodic sync trigger.

This module provides:
- SyncScheduler: runs a sync pass every N seconds and, optionally, a recycle
  bin sweep once a day
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from recordsync.client.sync.types import SyncInProgressError

if TYPE_CHECKING:
    from recordsync.client.recycle import RecycleBin
    from recordsync.client.sync.engine import SyncEngine

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = 300


class SyncScheduler:
    """Background scheduler for automatic sync passes."""

    def __init__(
        self,
        engine: SyncEngine,
        interval_seconds: int = DEFAULT_SYNC_INTERVAL,
        recycle_bin: RecycleBin | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            engine: Engine running the passes.
            interval_seconds: Seconds between two passes.
            recycle_bin: If set, swept once a day.
        """
        self._engine = engine
        self._interval = interval_seconds
        self._recycle_bin = recycle_bin
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def _sync_job(self) -> None:
        """Job function for scheduled sync passes."""
        try:
            result = self._engine.run()
        except SyncInProgressError:
            logger.debug("Skipping scheduled sync: a pass is already running")
            return
        except Exception:
            logger.exception("Error during scheduled sync")
            return
        logger.info("Scheduled %s", result.message)

    def _sweep_job(self) -> None:
        """Job function for the daily recycle bin sweep."""
        if self._recycle_bin is None:
            return
        try:
            self._recycle_bin.sweep()
        except Exception:
            logger.exception("Error during scheduled recycle bin sweep")

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            return  # Already running

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._sync_job,
            trigger=IntervalTrigger(seconds=self._interval),
            id="sync_pass",
            name="Periodic sync pass",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if self._recycle_bin is not None:
            self._scheduler.add_job(
                self._sweep_job,
                trigger=IntervalTrigger(days=1),
                id="recycle_sweep",
                name="Daily recycle bin sweep",
                replace_existing=True,
            )
        self._scheduler.start()
        logger.info("Sync scheduler started (every %d seconds)", self._interval)

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Sync scheduler stopped")

    def run_now(self) -> None:
        """Run a sync pass immediately (manual trigger)."""
        self._sync_job()
