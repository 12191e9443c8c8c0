"""Pydantic schemas for API request/response models.

Records travel as flat JSON objects (``key``, ``mutatedAt``, ``createdAt``,
``deleted`` plus domain fields), so they are typed as plain dicts here and
validated by ``Record.from_dict``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from recordsync.server.models import SyncEvent

# === Sync schemas ===


class SyncRequest(BaseModel):
    """Request body for POST /sync."""

    model_config = ConfigDict(populate_by_name=True)

    records: list[dict[str, Any]]
    last_sync_time: int = Field(default=0, alias="lastSyncTime", ge=0)


class SyncSummaryResponse(BaseModel):
    """Counts of one sync request."""

    model_config = ConfigDict(populate_by_name=True)

    upload_count: int = Field(alias="uploadCount")
    download_count: int = Field(alias="downloadCount")
    error_count: int = Field(alias="errorCount")


class SyncResponse(BaseModel):
    """Response for POST /sync."""

    success: bool
    merged: list[dict[str, Any]]
    summary: SyncSummaryResponse


class SyncEventResponse(BaseModel):
    """Sync event in GET /sync?logs=true."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    timestamp: int
    client_ip: str | None = Field(alias="clientIp")
    user_agent: str | None = Field(alias="userAgent")
    changes_count: int = Field(alias="changesCount")
    deletions_count: int = Field(alias="deletionsCount")
    status: str
    error: str | None = None


class SyncLogsResponse(BaseModel):
    """Response for GET /sync?logs=true."""

    logs: list[SyncEventResponse]


class SyncStatusResponse(BaseModel):
    """Response for GET /sync."""

    model_config = ConfigDict(populate_by_name=True)

    total_records: int = Field(alias="totalRecords")
    deleted_records: int = Field(alias="deletedRecords")
    last_modified: int = Field(alias="lastModified")
    server_time: int = Field(alias="serverTime")


# === Record schemas ===


class SaveRecordResponse(BaseModel):
    """Response for POST /records."""

    success: bool
    record: dict[str, Any]


class PurgeResponse(BaseModel):
    """Response for DELETE /records/deleted/{key}."""

    success: bool
    key: str


class ImportResponse(BaseModel):
    """Response for POST /records/import."""

    imported: int
    skipped: int
    errors: list[str]


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def event_to_response(event: SyncEvent) -> SyncEventResponse:
    """Convert SyncEvent to response model."""
    return SyncEventResponse(
        id=event.id,
        timestamp=event.timestamp,
        clientIp=event.client_ip,
        userAgent=event.user_agent,
        changesCount=event.changes_count,
        deletionsCount=event.deletions_count,
        status=event.status,
        error=event.error,
    )
