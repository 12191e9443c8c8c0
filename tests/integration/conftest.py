"""Pytest fixtures for integration tests.

Each simulated device owns a local file store, a state database and a sync
engine; all devices talk to one in-process server app through its TestClient.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from dataclasses import dataclass
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from recordsync.client.api import SyncClient
from recordsync.client.history import SyncLog
from recordsync.client.state import LocalSyncState
from recordsync.client.storage import LocalFileStorage
from recordsync.client.store import RecordStore
from recordsync.client.sync import SyncEngine, SyncResult
from recordsync.core.config import ServerConfig
from recordsync.core.types import Record


class FakeClock:
    """Millisecond wall clock shared by every device of a test."""

    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 1_000) -> int:
        self.now += ms
        return self.now


@dataclass
class Device:
    """Container for a simulated sync client."""

    name: str
    data_dir: Path
    store: RecordStore
    state: LocalSyncState
    log: SyncLog
    engine: SyncEngine

    def write(self, key: str, mutated_at: int, **fields: object) -> Record:
        """Create or edit a record as a user would, at a given time."""
        existing = self.store.find(key)
        created_at = existing.created_at if existing else mutated_at
        record = Record(key, {"type": "PLA", **fields}, mutated_at=mutated_at, created_at=created_at)
        return self.store.put(record)

    def delete(self, key: str, mutated_at: int) -> Record:
        """Soft-delete a record at a given time."""
        current = self.store.get(key)
        return self.store.put(current.touched(mutated_at, deleted=True))

    def sync(self) -> SyncResult:
        return self.engine.run()

    def close(self) -> None:
        self.engine.close()
        self.state.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_device(
    tmp_path: Path,
    api: TestClient,
    server_config: ServerConfig,
    clock: FakeClock,
) -> Generator[Callable[[str], Device], None, None]:
    """Factory creating devices bound to the shared test server."""
    devices: list[Device] = []

    def factory(name: str) -> Device:
        root = tmp_path / "devices" / name
        store = RecordStore(LocalFileStorage(root / "data"))
        state = LocalSyncState(root / "state.db")
        log = SyncLog(state)
        client = SyncClient(server_config, http=api)
        device = Device(
            name=name,
            data_dir=root / "data",
            store=store,
            state=state,
            log=log,
            engine=SyncEngine(store, client, state, log, clock=clock),
        )
        devices.append(device)
        return device

    yield factory
    for device in devices:
        device.close()


@pytest.fixture
def device_a(make_device: Callable[[str], Device]) -> Device:
    return make_device("a")


@pytest.fixture
def device_b(make_device: Callable[[str], Device]) -> Device:
    return make_device("b")
