"""Record CRUD, recycle bin and export/import API routes."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, File, HTTPException, Response, UploadFile, status

from recordsync.core.archive import ImportResult, read_archive, write_archive
from recordsync.core.naming import DEFAULT_NAME_FIELDS
from recordsync.core.types import CREATED_AT, KEY, MUTATED_AT, Record, now_ms, validate_key
from recordsync.server.api.deps import get_db, get_settings, require_auth
from recordsync.server.config import ServerSettings
from recordsync.server.database import Database
from recordsync.server.schemas import ImportResponse, PurgeResponse, SaveRecordResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/records", tags=["records"])


def _not_found(key: str, where: str = "Record") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{where} not found: {key}",
    )


def _name_fields(settings: ServerSettings) -> tuple[str, ...]:
    return (settings.type_field, *DEFAULT_NAME_FIELDS[1:])


@router.get("")
def list_records(
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> list[dict[str, Any]]:
    """List active records."""
    return [r.to_dict() for r in db.list_records()]


@router.post("", response_model=SaveRecordResponse)
def save_record(
    payload: dict[str, Any] = Body(...),
    db: Database = Depends(get_db),
    settings: ServerSettings = Depends(get_settings),
    _auth: str = Depends(require_auth),
) -> SaveRecordResponse:
    """Create or overwrite a record.

    ``mutatedAt`` and ``createdAt`` are stamped when the payload lacks them;
    a payload carrying ``mutatedAt`` is stored as-is.
    """
    key = payload.get(KEY)
    if not isinstance(key, str) or not key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Record key is required")
    if not payload.get(settings.type_field):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Record field '{settings.type_field}' is required",
        )
    validate_key(key)

    data = dict(payload)
    if not data.get(MUTATED_AT):
        data[MUTATED_AT] = now_ms()
    if data.get(CREATED_AT) is None:
        existing = db.get_record(key, include_deleted=True)
        data[CREATED_AT] = existing.created_at if existing and existing.created_at else data[MUTATED_AT]

    record = db.save_record(Record.from_dict(data))
    logger.info("Saved record %s", record.key)
    return SaveRecordResponse(success=True, record=record.to_dict())


# === Recycle bin (declared before /{key} so the literal paths win) ===


@router.get("/deleted")
def list_deleted(
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> list[dict[str, Any]]:
    """List records in the recycle bin."""
    return [r.to_dict() for r in db.list_deleted()]


@router.post("/deleted/{key}/restore")
def restore_record(
    key: str,
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> dict[str, Any]:
    """Restore a record from the recycle bin."""
    restored = db.restore(key)
    if restored is None:
        raise _not_found(key, "Deleted record")
    logger.info("Restored record %s", key)
    return restored.to_dict()


@router.delete("/deleted/{key}", response_model=PurgeResponse)
def purge_record(
    key: str,
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> PurgeResponse:
    """Permanently delete a record from the recycle bin."""
    if not db.purge(key):
        raise _not_found(key, "Deleted record")
    logger.info("Purged record %s", key)
    return PurgeResponse(success=True, key=key)


# === Export / import ===


@router.get("/export")
def export_records(
    db: Database = Depends(get_db),
    settings: ServerSettings = Depends(get_settings),
    _auth: str = Depends(require_auth),
) -> Response:
    """Download active records as a ZIP archive."""
    blob = write_archive(db.list_records(), _name_fields(settings))
    return Response(
        content=blob,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="records-export.zip"'},
    )


@router.post("/import", response_model=ImportResponse)
def import_records(
    file: UploadFile = File(...),
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> ImportResponse:
    """Import a ZIP archive; stored records at least as recent are kept."""
    result = ImportResult()
    for entry in read_archive(file.file.read()):
        if entry.error is not None:
            result.errors.append(entry.error)
            continue
        if entry.record is None:
            result.skipped += 1
            continue
        existing = db.get_record(entry.record.key, include_deleted=True)
        if existing is not None and existing.mutated_at >= entry.record.mutated_at:
            result.skipped += 1
            continue
        db.save_record(entry.record)
        result.imported += 1

    logger.info(
        "Imported %d records (%d skipped, %d errors)",
        result.imported,
        result.skipped,
        len(result.errors),
    )
    return ImportResponse(imported=result.imported, skipped=result.skipped, errors=result.errors)


# === Single record ===


@router.get("/{key}")
def get_record(
    key: str,
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> dict[str, Any]:
    """Get an active record by key."""
    record = db.get_record(key)
    if record is None:
        raise _not_found(key)
    return record.to_dict()


@router.delete("/{key}")
def delete_record(
    key: str,
    db: Database = Depends(get_db),
    _auth: str = Depends(require_auth),
) -> dict[str, Any]:
    """Move a record to the recycle bin."""
    tombstone = db.soft_delete(key)
    if tombstone is None:
        raise _not_found(key)
    logger.info("Deleted record %s", key)
    return tombstone.to_dict()
