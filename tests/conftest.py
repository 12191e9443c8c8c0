"""Shared fixtures: a server database, the FastAPI app and clients bound to it."""

from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from recordsync.client.api import SyncClient
from recordsync.core.config import ServerConfig
from recordsync.server.app import create_app
from recordsync.server.config import ServerSettings
from recordsync.server.database import Database

API_KEY = "test-api-key"
SERVER_URL = "http://testserver"


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "server" / "test.db")
    yield database
    database.close()


@pytest.fixture
def settings(tmp_path: Path) -> ServerSettings:
    """Server settings with a known API key."""
    return ServerSettings(
        db_path=tmp_path / "server" / "test.db",
        log_path=tmp_path / "server" / "test.log",
        api_key=API_KEY,
    )


@pytest.fixture
def api(db: Database, settings: ServerSettings) -> Generator[TestClient, None, None]:
    """Test client for the server app."""
    with TestClient(create_app(db, settings)) as client:
        yield client


@pytest.fixture
def api_headers() -> dict[str, str]:
    """Headers authenticating with the API key."""
    return {"x-api-key": API_KEY}


@pytest.fixture
def server_config() -> ServerConfig:
    """Client-side connection settings for the test server."""
    return ServerConfig(server_url=SERVER_URL, api_key=API_KEY)


@pytest.fixture
def sync_client(api: TestClient, server_config: ServerConfig) -> Generator[SyncClient, None, None]:
    """SyncClient whose requests are served in-process by the test app."""
    client = SyncClient(server_config, http=api)
    yield client
    client.close()
