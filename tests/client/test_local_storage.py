"""Tests specific to the local filesystem backend."""

import json
from pathlib import Path

import pytest

from recordsync.client.storage import LocalFileStorage
from recordsync.core.errors import DuplicateError
from recordsync.core.types import Record


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    """Create a local storage under a temporary directory."""
    return LocalFileStorage(tmp_path / "data")


def spool(key: str, color: str = "Red", mutated_at: int = 100) -> Record:
    return Record(key, {"type": "PLA", "brand": "Prusa", "color": color}, mutated_at=mutated_at)


class TestLayout:
    """On-disk layout."""

    def test_creates_namespace_directories(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        assert (tmp_path / "data" / "records").is_dir()
        assert (tmp_path / "data" / "recycle").is_dir()
        assert storage.location == str(tmp_path / "data")

    def test_writes_pretty_json_named_by_fields(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        storage.put(spool("S1", color="Galaxy Black"))

        path = tmp_path / "data" / "records" / "PLA-Prusa-GalaxyBlack-S1.json"
        assert path.exists()
        assert json.loads(path.read_text())["color"] == "Galaxy Black"
        assert path.read_text().startswith("{\n  ")

    def test_rename_on_field_change(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        """Changing a name field moves the file instead of duplicating it."""
        storage.put(spool("S1", color="Red"))
        storage.put(spool("S1", color="Blue", mutated_at=200))

        names = sorted(p.name for p in (tmp_path / "data" / "records").iterdir())
        assert names == ["PLA-Prusa-Blue-S1.json"]

    def test_tombstones_live_in_recycle_dir(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        storage.put(spool("S1"))
        storage.soft_delete("S1")

        assert list((tmp_path / "data" / "records").iterdir()) == []
        assert [p.name for p in (tmp_path / "data" / "recycle").iterdir()] == ["PLA-Prusa-Red-S1.json"]

    def test_no_temp_files_left_behind(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        storage.put(spool("S1"))

        leftovers = [p for p in (tmp_path / "data" / "records").iterdir() if p.name.startswith(".tmp-")]
        assert leftovers == []


class TestKeyCollisions:
    """Keys that sanitize to the same filename."""

    def test_colliding_key_is_rejected(self, storage: LocalFileStorage) -> None:
        storage.put(spool("ab"))

        with pytest.raises(DuplicateError):
            storage.put(spool("a_b"))
        assert storage.get("ab").key == "ab"

    def test_lookup_verifies_stored_key(self, storage: LocalFileStorage) -> None:
        """A file whose name matches but whose key differs is not returned."""
        storage.put(spool("ab"))

        assert storage.find("a_b") is None


class TestCorruptFiles:
    """Unreadable files do not break listings."""

    def test_corrupt_file_is_skipped(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        storage.put(spool("S1"))
        (tmp_path / "data" / "records" / "PLA-Prusa-Red-S2.json").write_text("{broken")

        assert [r.key for r in storage.list()] == ["S1"]
        assert storage.find("S2") is None

    def test_non_json_files_are_ignored(self, storage: LocalFileStorage, tmp_path: Path) -> None:
        (tmp_path / "data" / "records" / "notes.txt").write_text("hello")

        assert storage.list() == []

    def test_lists_newest_first(self, storage: LocalFileStorage) -> None:
        storage.put(spool("S1", mutated_at=100))
        storage.put(spool("S2", mutated_at=300))
        storage.put(spool("S3", mutated_at=200))

        assert [r.key for r in storage.list()] == ["S2", "S3", "S1"]
