"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from recordsync.server.api import health, records, sync

router = APIRouter()

router.include_router(health.router)
router.include_router(sync.router)
router.include_router(records.router)
