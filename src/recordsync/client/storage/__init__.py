"""Storage backends for records.

This package provides:
- StorageBackend: the contract shared by every medium
- LocalFileStorage: one JSON file per record on the local filesystem
- RemoteStorage: the same operations over the server's HTTP API
"""

from recordsync.client.storage.base import ImportResult, StorageBackend
from recordsync.client.storage.local import LocalFileStorage
from recordsync.client.storage.remote import RemoteStorage

__all__ = [
    "ImportResult",
    "LocalFileStorage",
    "RemoteStorage",
    "StorageBackend",
]
