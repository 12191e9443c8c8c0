"""Tests for FastAPI server endpoints."""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from recordsync.core.archive import write_archive
from recordsync.core.types import Record
from recordsync.server.database import Database


def pla(key: str, mutated_at: int, **fields: object) -> dict[str, object]:
    return {"key": key, "type": "PLA", "mutatedAt": mutated_at, "deleted": False, **fields}


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, api: TestClient) -> None:
        """Health endpoint should return OK without credentials."""
        response = api.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestAuthentication:
    """Tests for API key and bearer token checks."""

    def test_missing_credentials(self, api: TestClient) -> None:
        response = api.get("/records")
        assert response.status_code == 401
        assert response.json() == {"error": "Missing authentication credentials"}

    def test_wrong_api_key(self, api: TestClient) -> None:
        response = api.get("/records", headers={"x-api-key": "wrong"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid API key"}

    def test_valid_api_key(self, api: TestClient, api_headers: dict[str, str]) -> None:
        assert api.get("/records", headers=api_headers).status_code == 200

    def test_bearer_token(self, api: TestClient, db: Database) -> None:
        raw_token, _ = db.create_token("laptop")

        response = api.get("/records", headers={"Authorization": f"Bearer {raw_token}"})

        assert response.status_code == 200

    def test_revoked_token(self, api: TestClient, db: Database) -> None:
        raw_token, token = db.create_token("laptop")
        db.revoke_token(token.id)

        response = api.get("/records", headers={"Authorization": f"Bearer {raw_token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or revoked token"

    def test_unknown_route_uses_error_envelope(self, api: TestClient) -> None:
        response = api.get("/nope")
        assert response.status_code == 404
        assert "error" in response.json()


class TestRecordEndpoints:
    """Tests for record CRUD."""

    def test_save_and_get(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/records", json=pla("S1", 100, weight=1000), headers=api_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["record"]["createdAt"] == 100

        record = api.get("/records/S1", headers=api_headers).json()
        assert record["weight"] == 1000
        assert record["mutatedAt"] == 100

    def test_save_stamps_missing_timestamps(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/records", json={"key": "S1", "type": "PLA"}, headers=api_headers)

        record = response.json()["record"]
        assert record["mutatedAt"] > 0
        assert record["createdAt"] == record["mutatedAt"]

    def test_save_keeps_creation_time(self, api: TestClient, api_headers: dict[str, str]) -> None:
        api.post("/records", json={**pla("S1", 100), "createdAt": 50}, headers=api_headers)

        response = api.post("/records", json=pla("S1", 200, color="Red"), headers=api_headers)

        assert response.json()["record"]["createdAt"] == 50

    def test_save_requires_key(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/records", json={"type": "PLA"}, headers=api_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Record key is required"}

    def test_save_requires_type(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/records", json={"key": "S1"}, headers=api_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Record field 'type' is required"}

    def test_save_rejects_bad_timestamp(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/records", json=pla("S1", "yesterday"), headers=api_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATA"

    def test_get_missing(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.get("/records/nope", headers=api_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Record not found: nope"}

    @pytest.mark.parametrize("key", ["a/b", "deleted/S1", "deleted", "export", "import"])
    def test_save_rejects_unroutable_key(
        self, api: TestClient, api_headers: dict[str, str], db: Database, key: str
    ) -> None:
        response = api.post("/records", json=pla(key, 100), headers=api_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATA"
        assert db.get_record(key, include_deleted=True) is None

    def test_sync_rejects_unroutable_key(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        response = api.post(
            "/sync",
            json={"records": [pla("deleted/x", 100), pla("S1", 100)], "lastSyncTime": 0},
            headers=api_headers,
        )

        assert response.status_code == 200
        assert db.get_record("deleted/x") is None
        assert db.get_record("S1") is not None

    def test_key_with_space(self, api: TestClient, api_headers: dict[str, str]) -> None:
        api.post("/records", json=pla("S 1", 100), headers=api_headers)

        response = api.get("/records/S%201", headers=api_headers)

        assert response.status_code == 200
        assert response.json()["key"] == "S 1"

    def test_list_records(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA"}, mutated_at=100))
        db.save_record(Record("S2", {"type": "PLA"}, mutated_at=200, deleted=True))

        response = api.get("/records", headers=api_headers)

        assert [r["key"] for r in response.json()] == ["S1"]


class TestRecycleBinEndpoints:
    """Tests for soft delete, restore and purge."""

    def test_delete_moves_to_recycle_bin(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA"}, mutated_at=100))

        response = api.delete("/records/S1", headers=api_headers)

        assert response.status_code == 200
        assert response.json()["deleted"] is True
        assert api.get("/records/S1", headers=api_headers).status_code == 404
        deleted = api.get("/records/deleted", headers=api_headers).json()
        assert [r["key"] for r in deleted] == ["S1"]

    def test_delete_missing(self, api: TestClient, api_headers: dict[str, str]) -> None:
        assert api.delete("/records/nope", headers=api_headers).status_code == 404

    def test_restore(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA"}, mutated_at=100, deleted=True))

        response = api.post("/records/deleted/S1/restore", headers=api_headers)

        assert response.status_code == 200
        assert response.json()["deleted"] is False
        assert response.json()["mutatedAt"] > 100
        assert db.get_record("S1") is not None

    def test_restore_missing(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/records/deleted/nope/restore", headers=api_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Deleted record not found: nope"}

    def test_purge(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA"}, mutated_at=100, deleted=True))

        response = api.delete("/records/deleted/S1", headers=api_headers)

        assert response.json() == {"success": True, "key": "S1"}
        assert db.get_record("S1", include_deleted=True) is None

    def test_purge_active_record_refused(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA"}, mutated_at=100))

        assert api.delete("/records/deleted/S1", headers=api_headers).status_code == 404
        assert db.get_record("S1") is not None


class TestSyncEndpoint:
    """Tests for POST /sync and GET /sync."""

    def test_sync_uploads_and_returns_changes(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S2", {"type": "PLA"}, mutated_at=300))

        response = api.post(
            "/sync",
            json={"records": [pla("S1", 100)], "lastSyncTime": 0},
            headers=api_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert [r["key"] for r in body["merged"]] == ["S2"]
        assert body["summary"] == {"uploadCount": 1, "downloadCount": 1, "errorCount": 0}
        assert db.get_record("S1") is not None

    def test_sync_defaults_watermark(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/sync", json={"records": []}, headers=api_headers)

        assert response.status_code == 200
        assert response.json()["merged"] == []

    def test_sync_reports_invalid_records(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post(
            "/sync",
            json={"records": [{"mutatedAt": 5}, pla("S1", 100)]},
            headers=api_headers,
        )

        assert response.json()["summary"]["errorCount"] == 1
        assert response.json()["summary"]["uploadCount"] == 1

    def test_sync_rejects_malformed_body(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/sync", json={"records": "S1"}, headers=api_headers)

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request data")

    def test_sync_rejects_negative_watermark(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post("/sync", json={"records": [], "lastSyncTime": -1}, headers=api_headers)

        assert response.status_code == 400

    def test_sync_requires_auth(self, api: TestClient) -> None:
        assert api.post("/sync", json={"records": []}).status_code == 401

    def test_status(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", mutated_at=100))
        db.save_record(Record("S2", mutated_at=200, deleted=True))

        body = api.get("/sync", headers=api_headers).json()

        assert body["totalRecords"] == 1
        assert body["deletedRecords"] == 1
        assert body["lastModified"] == 200
        assert body["serverTime"] > 0

    def test_sync_events_are_logged(self, api: TestClient, api_headers: dict[str, str]) -> None:
        api.post(
            "/sync",
            json={"records": [pla("S1", 100), {**pla("S2", 100), "deleted": True}]},
            headers={**api_headers, "x-forwarded-for": "10.0.0.7, 10.0.0.1", "user-agent": "device-a"},
        )

        logs = api.get("/sync", params={"logs": "true"}, headers=api_headers).json()["logs"]

        assert len(logs) == 1
        assert logs[0]["clientIp"] == "10.0.0.7"
        assert logs[0]["userAgent"] == "device-a"
        assert logs[0]["changesCount"] == 2
        assert logs[0]["deletionsCount"] == 1
        assert logs[0]["status"] == "success"

    def test_partial_sync_event(self, api: TestClient, api_headers: dict[str, str]) -> None:
        api.post("/sync", json={"records": [{"mutatedAt": 5}]}, headers=api_headers)

        [event] = api.get("/sync?logs=true", headers=api_headers).json()["logs"]

        assert event["status"] == "partial"
        assert event["error"].startswith("Record #0")


class TestExportImport:
    """Tests for ZIP export and import."""

    def test_export(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA", "brand": "Acme", "color": "Red"}, mutated_at=100))
        db.save_record(Record("S2", {"type": "PLA"}, mutated_at=100, deleted=True))

        response = api.get("/records/export", headers=api_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/zip"
        with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
            assert archive.namelist() == ["PLA-Acme-Red-S1.json"]

    def test_import(self, api: TestClient, api_headers: dict[str, str], db: Database) -> None:
        db.save_record(Record("S1", {"type": "PLA", "color": "Red"}, mutated_at=500))
        blob = write_archive(
            [
                Record("S1", {"type": "PLA", "color": "Blue"}, mutated_at=100),
                Record("S2", {"type": "PLA"}, mutated_at=100),
            ]
        )

        response = api.post(
            "/records/import",
            files={"file": ("records.zip", blob, "application/zip")},
            headers=api_headers,
        )

        assert response.json() == {"imported": 1, "skipped": 1, "errors": []}
        assert db.get_record("S1").fields["color"] == "Red"
        assert db.get_record("S2") is not None

    def test_import_reports_unparseable_files(self, api: TestClient, api_headers: dict[str, str]) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("broken.json", "{not json")
            archive.writestr("notes.txt", "hello")

        response = api.post(
            "/records/import",
            files={"file": ("records.zip", buffer.getvalue(), "application/zip")},
            headers=api_headers,
        )

        body = response.json()
        assert body["imported"] == 0
        assert body["skipped"] == 1
        assert body["errors"][0].startswith("Failed to parse broken.json")

    def test_import_rejects_non_zip(self, api: TestClient, api_headers: dict[str, str]) -> None:
        response = api.post(
            "/records/import",
            files={"file": ("records.zip", b"not a zip", "application/zip")},
            headers=api_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_DATA"
