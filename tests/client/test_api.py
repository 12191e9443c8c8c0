"""Tests for the recordsync HTTP client."""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from recordsync.client.api import (
    APIError,
    AuthenticationError,
    BadRequestError,
    InvalidResponseError,
    ResourceNotFoundError,
    ServerSyncEvent,
    SyncClient,
    SyncResponse,
    TransportError,
)
from recordsync.core.config import ServerConfig
from recordsync.core.types import Record


def make_config(server_url: str = "http://test", api_key: str = "key123") -> ServerConfig:
    """Create a ServerConfig for testing."""
    return ServerConfig(server_url=server_url, api_key=api_key)


class TestSyncResponse:
    """Tests for SyncResponse parsing."""

    def test_from_dict(self) -> None:
        data = {
            "success": True,
            "merged": [{"key": "S1", "mutatedAt": 100, "weight": 1000, "deleted": False}],
            "summary": {"uploadCount": 2, "downloadCount": 1, "errorCount": 0},
        }

        response = SyncResponse.from_dict(data)

        assert response.success is True
        assert response.merged == [Record("S1", {"weight": 1000}, mutated_at=100)]
        assert response.summary.uploaded == 2

    @pytest.mark.parametrize(
        "data",
        [
            {"merged": []},
            {"success": True, "merged": {"S1": {}}},
            {"success": True, "merged": [{"mutatedAt": 1}]},
            ["not", "an", "object"],
        ],
    )
    def test_malformed(self, data: object) -> None:
        with pytest.raises(InvalidResponseError):
            SyncResponse.from_dict(data)


class TestServerSyncEvent:
    """Tests for ServerSyncEvent parsing."""

    def test_from_dict(self) -> None:
        event = ServerSyncEvent.from_dict(
            {
                "id": "abc",
                "timestamp": 1000,
                "clientIp": "10.0.0.2",
                "userAgent": "recordsync",
                "changesCount": 3,
                "deletionsCount": 1,
                "status": "success",
            }
        )

        assert event.client_ip == "10.0.0.2"
        assert event.changes_count == 3
        assert event.deletions_count == 1


class TestSyncClient:
    """Tests for SyncClient HTTP calls."""

    def test_health_check_success(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://test/health", json={"status": "ok"})

        with SyncClient(make_config()) as client:
            assert client.health_check() is True

    def test_health_check_failure(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://test/health", status_code=500)

        with SyncClient(make_config()) as client:
            assert client.health_check() is False

    def test_sync_posts_records_and_watermark(self, httpx_mock: HTTPXMock) -> None:
        """The request carries the changed records and lastSyncTime."""
        httpx_mock.add_response(
            url="http://test/sync",
            method="POST",
            json={
                "success": True,
                "merged": [{"key": "S2", "mutatedAt": 300, "deleted": True}],
                "summary": {"uploadCount": 1, "downloadCount": 1, "errorCount": 0},
            },
        )

        with SyncClient(make_config()) as client:
            response = client.sync([Record("S1", {"weight": 1000}, mutated_at=100)], 50)

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["x-api-key"] == "key123"
        assert json.loads(request.content) == {
            "records": [{"key": "S1", "weight": 1000, "mutatedAt": 100, "deleted": False}],
            "lastSyncTime": 50,
        }
        assert response.merged[0].deleted is True
        assert response.summary.uploaded == 1

    def test_bearer_token(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://test/records", json=[])

        with SyncClient(ServerConfig(server_url="http://test", token="tok")) as client:
            assert client.list_records() == []

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["authorization"] == "Bearer tok"

    def test_sync_unauthorized(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/sync", method="POST", status_code=401, json={"error": "Invalid API key"}
        )

        with SyncClient(make_config()) as client, pytest.raises(AuthenticationError) as exc_info:
            client.sync([], 0)

        assert str(exc_info.value) == "Invalid API key"
        assert exc_info.value.status_code == 401

    def test_sync_malformed_response(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://test/sync", method="POST", json={"ok": True})

        with SyncClient(make_config()) as client, pytest.raises(InvalidResponseError):
            client.sync([], 0)

    def test_sync_non_json_response(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(url="http://test/sync", method="POST", text="<html>proxy</html>")

        with SyncClient(make_config()) as client, pytest.raises(InvalidResponseError):
            client.sync([], 0)

    def test_server_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/sync", method="POST", status_code=500, json={"error": "Internal server error"}
        )

        with SyncClient(make_config()) as client, pytest.raises(APIError) as exc_info:
            client.sync([], 0)

        assert exc_info.value.status_code == 500

    def test_connection_error(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        with SyncClient(make_config()) as client, pytest.raises(TransportError):
            client.sync([], 0)

    def test_sync_logs(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/sync?logs=true",
            json={
                "logs": [
                    {
                        "id": "e1",
                        "timestamp": 5,
                        "clientIp": "127.0.0.1",
                        "userAgent": None,
                        "changesCount": 2,
                        "deletionsCount": 0,
                        "status": "success",
                        "error": None,
                    }
                ]
            },
        )

        with SyncClient(make_config()) as client:
            events = client.sync_logs()

        assert [e.id for e in events] == ["e1"]

    def test_get_record_quotes_key(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/records/S%201", json={"key": "S 1", "mutatedAt": 1, "deleted": False}
        )

        with SyncClient(make_config()) as client:
            assert client.get_record("S 1").key == "S 1"

    def test_get_record_not_found(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/records/missing", status_code=404, json={"error": "Record not found: missing"}
        )

        with SyncClient(make_config()) as client, pytest.raises(ResourceNotFoundError) as exc_info:
            client.get_record("missing")

        assert "missing" in str(exc_info.value)

    def test_save_record(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/records",
            method="POST",
            json={"success": True, "record": {"key": "S1", "type": "PLA", "mutatedAt": 7, "deleted": False}},
        )

        with SyncClient(make_config()) as client:
            saved = client.save_record(Record("S1", {"type": "PLA"}, mutated_at=7))

        assert saved.fields == {"type": "PLA"}

    def test_save_record_rejected(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/records",
            method="POST",
            status_code=400,
            json={"error": "Record field 'type' is required"},
        )

        with SyncClient(make_config()) as client, pytest.raises(BadRequestError):
            client.save_record(Record("S1", mutated_at=7))

    def test_import_records_uploads_file(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url="http://test/records/import",
            method="POST",
            json={"imported": 2, "skipped": 1, "errors": ["bad.json"]},
        )

        with SyncClient(make_config()) as client:
            summary = client.import_records(b"PK\x03\x04")

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert summary.imported == 2
        assert summary.errors == ["bad.json"]
