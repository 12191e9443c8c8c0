"""Configuration utilities for the recordsync CLI.

This module provides shared configuration functions used across CLI commands.
The config file is ``~/.recordsync/config.json``::

    {
      "server_url": "https://records.example.com",
      "api_key": "...",            # or "token": "..."
      "data_dir": "~/.recordsync/data",
      "sync_interval": 300
    }
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from recordsync.client.api import SyncClient
from recordsync.client.history import SyncLog
from recordsync.client.recycle import RecycleBin
from recordsync.client.state import LocalSyncState
from recordsync.client.storage import LocalFileStorage
from recordsync.client.store import RecordStore
from recordsync.client.sync import DEFAULT_SYNC_INTERVAL
from recordsync.core.config import ServerConfig


def get_config_dir() -> Path:
    """Get the configuration directory for recordsync.

    Returns:
        Path to ~/.recordsync.
    """
    return Path.home() / ".recordsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db() -> Path:
    """Get the path to the local state database."""
    return get_config_dir() / "state.db"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_data_dir(config: dict[str, Any] | None = None) -> Path:
    """Get the local record directory.

    Returns:
        Path to the data directory (configured or default ~/.recordsync/data).
    """
    config = load_config() if config is None else config
    if config.get("data_dir"):
        return Path(config["data_dir"]).expanduser().resolve()
    return get_config_dir() / "data"


def get_sync_interval(config: dict[str, Any]) -> int:
    return int(config.get("sync_interval") or DEFAULT_SYNC_INTERVAL)


def require_config() -> dict[str, Any]:
    """Load the config or exit if ``recordsync init`` was never run."""
    config = load_config()
    if not config.get("server_url"):
        click.echo("Error: recordsync not initialized. Run 'recordsync init' first.", err=True)
        sys.exit(1)
    return config


def server_config(config: dict[str, Any]) -> ServerConfig:
    """Build the server connection settings from the config file."""
    try:
        return ServerConfig(
            server_url=config["server_url"],
            api_key=config.get("api_key"),
            token=config.get("token"),
        )
    except ValueError as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)


def open_client(config: dict[str, Any]) -> SyncClient:
    return SyncClient(server_config(config))


def open_store(config: dict[str, Any]) -> RecordStore:
    """Open the local record store."""
    return RecordStore(LocalFileStorage(get_data_dir(config)))


def open_state() -> LocalSyncState:
    return LocalSyncState(get_state_db())


def open_log(state: LocalSyncState) -> SyncLog:
    return SyncLog(state)


def open_recycle_bin(store: RecordStore, config: dict[str, Any]) -> RecycleBin:
    """Open the recycle bin over the local store."""
    retention = config.get("retention_days")
    if retention is None:
        return RecycleBin(store)
    return RecycleBin(store, retention_days=int(retention))
