"""Server configuration from environment variables."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DB_PATH = "recordsync.db"
DEFAULT_LOG_PATH = "recordsync-server.log"
DEFAULT_TYPE_FIELD = "type"
DEFAULT_RETENTION_DAYS = 30


@dataclass
class ServerSettings:
    """Server settings.

    Attributes:
        db_path: SQLite database file.
        log_path: Log file.
        api_key: Shared key accepted in the ``x-api-key`` header. When unset
            only bearer tokens authenticate.
        type_field: Field every record created through POST /records must carry.
        retention_days: Tombstones older than this are purged.
        purge_hour: Hour of the daily purge job (0-23).
    """

    db_path: Path = Path(DEFAULT_DB_PATH)
    log_path: Path = Path(DEFAULT_LOG_PATH)
    api_key: str | None = None
    type_field: str = DEFAULT_TYPE_FIELD
    retention_days: int = DEFAULT_RETENTION_DAYS
    purge_hour: int = 3

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ServerSettings:
        """Build settings from ``RECORDSYNC_*`` environment variables.

        Raises:
            ValueError: If a numeric variable is not an integer.
        """
        env = os.environ if environ is None else environ
        return cls(
            db_path=Path(env.get("RECORDSYNC_DB_PATH", DEFAULT_DB_PATH)),
            log_path=Path(env.get("RECORDSYNC_LOG_PATH", DEFAULT_LOG_PATH)),
            api_key=env.get("RECORDSYNC_API_KEY") or None,
            type_field=env.get("RECORDSYNC_TYPE_FIELD", DEFAULT_TYPE_FIELD),
            retention_days=int(env.get("RECORDSYNC_RETENTION_DAYS", DEFAULT_RETENTION_DAYS)),
            purge_hour=int(env.get("RECORDSYNC_PURGE_HOUR", 3)),
        )
