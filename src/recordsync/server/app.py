"""FastAPI application for the recordsync server.

This module creates and configures the FastAPI application with:
- The sync endpoint (POST/GET /sync)
- Record CRUD, recycle bin and export/import routes
- A daily recycle purge job

Usage:
    uvicorn recordsync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from recordsync import __version__
from recordsync.server.api.errors import register_error_handlers
from recordsync.server.api.router import router as api_router
from recordsync.server.config import ServerSettings
from recordsync.server.database import Database
from recordsync.server.scheduler import RecyclePurgeScheduler

logger = logging.getLogger(__name__)


def setup_logging(log_path: Path, level: int = logging.INFO) -> None:
    """Configure logging to output to both file and stdout.

    Args:
        log_path: Path to the log file.
        level: Level of the ``recordsync`` logger.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger("recordsync")
    root_logger.setLevel(level)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(uvicorn_name).addHandler(file_handler)


def create_app(
    db: Database,
    settings: ServerSettings | None = None,
    enable_scheduler: bool = False,
) -> FastAPI:
    """Create FastAPI application with a given database.

    Args:
        db: Database instance.
        settings: Server settings; defaults apply when omitted.
        enable_scheduler: Run the daily recycle purge while the app is up.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or ServerSettings()
    purge_scheduler = RecyclePurgeScheduler(
        db,
        retention_days=settings.retention_days,
        hour=settings.purge_hour,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("recordsync server starting")
        logger.info("=" * 60)
        logger.info("  Database:  %s", db.path)
        logger.info("  Logs:      %s", settings.log_path.absolute())
        logger.info("  API key:   %s", "configured" if settings.api_key else "disabled")
        logger.info("  Retention: %d days", settings.retention_days)
        logger.info("=" * 60)
        if enable_scheduler:
            purge_scheduler.start()

        yield

        purge_scheduler.stop()
        logger.info("recordsync server shutting down")

    application = FastAPI(
        title="recordsync server",
        description="Last-write-wins record synchronization server",
        version=__version__,
        lifespan=lifespan,
    )

    application.state.db = db
    application.state.settings = settings

    register_error_handlers(application)
    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    settings = ServerSettings.from_env()
    setup_logging(settings.log_path)
    return create_app(
        db=Database(settings.db_path),
        settings=settings,
        enable_scheduler=True,
    )
