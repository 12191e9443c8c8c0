"""Scheduler for automatic recycle bin maintenance.

This module provides:
- Automatic daily purge of expired tombstones
- A manual purge function for CLI usage
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

if TYPE_CHECKING:
    from recordsync.server.database import Database

logger = logging.getLogger(__name__)


def purge_recycle(db: Database, older_than_days: int = 30) -> int:
    """Purge tombstones deleted more than ``older_than_days`` ago.

    Args:
        db: Database instance.
        older_than_days: Retention window in days.

    Returns:
        Number of records permanently deleted.
    """
    keys = db.purge_recycle(older_than_days)
    if keys:
        logger.info("Recycle purge completed: %d records deleted", len(keys))
    else:
        logger.debug("Recycle purge: no tombstones older than %d days", older_than_days)
    return len(keys)


class RecyclePurgeScheduler:
    """Runs the recycle purge once a day at a fixed time."""

    def __init__(
        self,
        db: Database,
        retention_days: int = 30,
        hour: int = 3,
        minute: int = 0,
    ) -> None:
        """Initialize the scheduler.

        Args:
            db: Database instance.
            retention_days: Number of days to retain tombstones.
            hour: Hour to run the purge job (0-23).
            minute: Minute to run the purge job (0-59).
        """
        self._db = db
        self._retention_days = retention_days
        self._hour = hour
        self._minute = minute
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def _purge_job(self) -> None:
        """Job function for scheduled recycle purge."""
        logger.info("Starting scheduled recycle purge (retention: %d days)", self._retention_days)
        try:
            purge_recycle(self._db, self._retention_days)
        except Exception:
            logger.exception("Error during scheduled recycle purge")

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            return

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._purge_job,
            trigger=CronTrigger(hour=self._hour, minute=self._minute),
            id="recycle_purge",
            name="Daily recycle purge",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            "Recycle purge scheduler started (daily at %02d:%02d, retention: %d days)",
            self._hour,
            self._minute,
            self._retention_days,
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Recycle purge scheduler stopped")

    def run_now(self) -> int:
        """Run the purge immediately (manual trigger).

        Returns:
            Number of records permanently deleted.
        """
        return purge_recycle(self._db, self._retention_days)
