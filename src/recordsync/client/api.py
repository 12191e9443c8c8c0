"""HTTP client for the recordsync server API.

This module provides:
- SyncClient: HTTP client for communicating with the server
- Sync wire protocol (POST /sync, GET /sync?logs=true)
- Record CRUD, recycle bin and export/import operations
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from recordsync.core.config import ServerConfig
from recordsync.core.errors import InvalidDataError
from recordsync.core.types import Record, SyncSummary

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIError):
    """Credentials missing, malformed or rejected."""


class ResourceNotFoundError(APIError):
    """Resource not found."""


class ConflictError(APIError):
    """Resource conflict."""


class BadRequestError(APIError):
    """Server rejected the request payload."""


class InvalidResponseError(APIError):
    """Server answered with a payload that does not follow the protocol."""


class TransportError(APIError):
    """Request never completed (connection failure or timeout)."""


@dataclass
class SyncResponse:
    """Parsed response of POST /sync."""

    success: bool
    merged: list[Record]
    summary: SyncSummary

    @classmethod
    def from_dict(cls, data: Any) -> SyncResponse:
        """Create from API response dictionary.

        Raises:
            InvalidResponseError: If the payload does not follow the wire format.
        """
        try:
            if not isinstance(data["merged"], list):
                raise TypeError("merged must be a list")
            return cls(
                success=bool(data["success"]),
                merged=[Record.from_dict(r) for r in data["merged"]],
                summary=SyncSummary.from_dict(data.get("summary") or {}),
            )
        except (KeyError, TypeError, ValueError, InvalidDataError) as e:
            raise InvalidResponseError(f"Malformed sync response: {e}") from e


@dataclass
class ServerSyncEvent:
    """Sync event observed by the server (audit only)."""

    id: str
    timestamp: int
    client_ip: str | None
    changes_count: int
    deletions_count: int
    user_agent: str | None
    status: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServerSyncEvent:
        """Create from API response dictionary."""
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            client_ip=data.get("clientIp"),
            changes_count=data.get("changesCount", 0),
            deletions_count=data.get("deletionsCount", 0),
            user_agent=data.get("userAgent"),
            status=data["status"],
        )


@dataclass
class ImportSummary:
    """Result of an archive import on the server."""

    imported: int
    skipped: int
    errors: list[str]


class SyncClient:
    """HTTP client for the recordsync server API."""

    def __init__(self, config: ServerConfig, http: httpx.Client | None = None) -> None:
        """Initialize the sync client.

        Args:
            config: Server URL, credentials and timeouts.
            http: Optional preconfigured httpx client (e.g. a test client).
                Requests are made relative to ``config.server_url`` either way.
        """
        self._config = config
        self._owns_http = http is None
        self._client = http or httpx.Client(
            timeout=config.timeout,
            verify=config.verify_ssl,
        )

    @property
    def server_url(self) -> str:
        """Base URL of the server."""
        return self._config.server_url

    def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_http:
            self._client.close()

    def __enter__(self) -> SyncClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request and map failures to APIError."""
        headers = {**self._config.auth_headers, **kwargs.pop("headers", {})}
        try:
            response = self._client.request(
                method, f"{self._config.server_url}{path}", headers=headers, **kwargs
            )
        except httpx.RequestError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code < 400:
            return response
        detail = _error_detail(response)
        if response.status_code in (401, 403):
            raise AuthenticationError(detail or "Invalid or missing credentials", response.status_code)
        if response.status_code == 404:
            raise ResourceNotFoundError(detail or "Resource not found", 404)
        if response.status_code == 409:
            raise ConflictError(detail or "Conflict", 409)
        if response.status_code in (400, 422):
            raise BadRequestError(detail or "Bad request", response.status_code)
        raise APIError(detail or "Unknown error", response.status_code)

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(f"Response is not JSON: {e}") from e

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the server is healthy.

        Returns:
            True if server is healthy.
        """
        try:
            response = self._client.get(f"{self._config.server_url}/health")
            return response.status_code == 200
        except httpx.RequestError:
            return False

    # === Sync protocol ===

    def sync(self, records: list[Record], last_sync_time: int) -> SyncResponse:
        """Exchange changed records with the server.

        Args:
            records: Local records mutated since ``last_sync_time``.
            last_sync_time: Watermark of the last fully successful pass.

        Returns:
            Server-side records mutated since the watermark and pass counts.
        """
        response = self._request(
            "POST",
            "/sync",
            json={
                "records": [r.to_dict() for r in records],
                "lastSyncTime": last_sync_time,
            },
        )
        return SyncResponse.from_dict(self._json(response))

    def sync_logs(self) -> list[ServerSyncEvent]:
        """Get sync events recorded by the server."""
        response = self._request("GET", "/sync", params={"logs": "true"})
        data = self._json(response)
        return [ServerSyncEvent.from_dict(e) for e in data.get("logs", [])]

    def sync_status(self) -> dict[str, Any]:
        """Get server record counts."""
        result: dict[str, Any] = self._json(self._request("GET", "/sync"))
        return result

    # === Record operations ===

    def list_records(self) -> list[Record]:
        """List active records."""
        response = self._request("GET", "/records")
        return [Record.from_dict(r) for r in self._json(response)]

    def get_record(self, key: str) -> Record:
        """Get an active record by key.

        Raises:
            ResourceNotFoundError: If no active record has this key.
        """
        response = self._request("GET", f"/records/{quote(key, safe='')}")
        return Record.from_dict(self._json(response))

    def save_record(self, record: Record) -> Record:
        """Create or overwrite a record by key."""
        response = self._request("POST", "/records", json=record.to_dict())
        return Record.from_dict(self._json(response)["record"])

    def delete_record(self, key: str) -> Record:
        """Soft-delete a record (move to recycle bin)."""
        response = self._request("DELETE", f"/records/{quote(key, safe='')}")
        return Record.from_dict(self._json(response))

    # === Recycle bin operations ===

    def list_deleted(self) -> list[Record]:
        """List records in the recycle bin."""
        response = self._request("GET", "/records/deleted")
        return [Record.from_dict(r) for r in self._json(response)]

    def restore_record(self, key: str) -> Record:
        """Restore a record from the recycle bin."""
        response = self._request("POST", f"/records/deleted/{quote(key, safe='')}/restore")
        return Record.from_dict(self._json(response))

    def purge_record(self, key: str) -> None:
        """Permanently remove a record from the recycle bin."""
        self._request("DELETE", f"/records/deleted/{quote(key, safe='')}")

    # === Export / import ===

    def export_records(self) -> bytes:
        """Download a ZIP archive of all active records."""
        return self._request("GET", "/records/export").content

    def import_records(self, archive: bytes) -> ImportSummary:
        """Upload a ZIP archive of records."""
        response = self._request(
            "POST",
            "/records/import",
            files={"file": ("records.zip", archive, "application/zip")},
        )
        data = self._json(response)
        return ImportSummary(
            imported=data["imported"],
            skipped=data["skipped"],
            errors=list(data["errors"]),
        )


def _error_detail(response: httpx.Response) -> str | None:
    """Extract the error message of a non-2xx response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or None
    if isinstance(data, dict):
        detail = data.get("error") or data.get("detail")
        return str(detail) if detail else None
    return None
