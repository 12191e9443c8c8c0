"""Sync API routes.

POST /sync merges uploaded records and returns the server's changes since the
client watermark. GET /sync reports record counts, or recent sync events with
``?logs=true``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder

from recordsync.core.types import now_ms
from recordsync.server.api.deps import get_db, require_auth
from recordsync.server.database import Database
from recordsync.server.schemas import (
    SyncLogsResponse,
    SyncRequest,
    SyncResponse,
    SyncStatusResponse,
    SyncSummaryResponse,
    event_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else None)


@router.post("", response_model=SyncResponse)
def sync_records(
    body: SyncRequest,
    request: Request,
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> SyncResponse:
    """Merge uploaded records and return records changed since lastSyncTime."""
    client_ip = _client_ip(request)
    user_agent = request.headers.get("user-agent")
    try:
        outcome = db.apply_sync(body.records, body.last_sync_time)
    except Exception as e:
        db.log_sync_event(
            client_ip=client_ip,
            user_agent=user_agent,
            changes_count=len(body.records),
            deletions_count=0,
            status="error",
            error=str(e),
        )
        raise

    db.log_sync_event(
        client_ip=client_ip,
        user_agent=user_agent,
        changes_count=len(body.records),
        deletions_count=outcome.deletions_count,
        status="partial" if outcome.errors else "success",
        error="; ".join(outcome.errors) or None,
    )
    logger.info(
        "Sync from %s: %d received, %d applied, %d returned, %d invalid",
        client_ip,
        len(body.records),
        outcome.upload_count,
        len(outcome.merged),
        len(outcome.errors),
    )
    return SyncResponse(
        success=True,
        merged=[r.to_dict() for r in outcome.merged],
        summary=SyncSummaryResponse(
            uploadCount=outcome.upload_count,
            downloadCount=len(outcome.merged),
            errorCount=len(outcome.errors),
        ),
    )


@router.get("")
def sync_status(
    logs: bool = False,
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> dict[str, Any]:
    """Return record counts, or recent sync events with ``?logs=true``."""
    if logs:
        response: SyncLogsResponse | SyncStatusResponse = SyncLogsResponse(
            logs=[event_to_response(e) for e in db.list_sync_events()]
        )
    else:
        counts = db.record_counts()
        response = SyncStatusResponse(**counts, serverTime=now_ms())
    result: dict[str, Any] = jsonable_encoder(response, by_alias=True)
    return result
