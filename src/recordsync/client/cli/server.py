"""Server administration commands for the recordsync CLI.

Commands:
- server run: Start the HTTP server
- server purge-recycle: Purge expired tombstones
- server create-token: Issue a bearer token
- server logs: Show sync events recorded by the configured server
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from recordsync.client.cli.sync import format_timestamp
from recordsync.server.config import ServerSettings


def _settings(db_path: str | None) -> ServerSettings:
    settings = ServerSettings.from_env()
    if db_path:
        settings.db_path = Path(db_path)
    return settings


db_path_option = click.option(
    "--db-path",
    type=click.Path(),
    default=None,
    help="Path to database file (default: RECORDSYNC_DB_PATH or ./recordsync.db).",
)


@click.group()
def server() -> None:
    """Server management commands.

    These commands are for server administrators to manage the recordsync server.
    Settings come from RECORDSYNC_* environment variables.
    """


@server.command("run")
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", "-p", type=int, default=8000, show_default=True, help="Bind port.")
def run_cmd(host: str, port: int) -> None:
    """Start the recordsync server."""
    import uvicorn

    uvicorn.run("recordsync.server.app:app_factory", factory=True, host=host, port=port)


@server.command("purge-recycle")
@click.option(
    "--older-than-days",
    "-d",
    type=int,
    default=None,
    help="Delete tombstones older than N days (default: RECORDSYNC_RETENTION_DAYS or 30).",
)
@db_path_option
def purge_recycle_cmd(older_than_days: int | None, db_path: str | None) -> None:
    """Purge old records from the server recycle bin.

    This command can be run manually or via cron for scheduled cleanup.

    Examples:

        # Purge using server defaults (30 days)
        recordsync server purge-recycle

        # Purge tombstones older than 7 days
        recordsync server purge-recycle --older-than-days 7
    """
    from recordsync.server.database import Database
    from recordsync.server.scheduler import purge_recycle

    settings = _settings(db_path)
    days = older_than_days if older_than_days is not None else settings.retention_days

    if not settings.db_path.exists():
        click.echo(f"Error: Database not found: {settings.db_path}", err=True)
        click.echo("Make sure the server has been run at least once.", err=True)
        sys.exit(1)

    click.echo(f"Database: {settings.db_path}")
    click.echo(f"Purging tombstones older than {days} days...")

    db = Database(settings.db_path)
    try:
        purged = purge_recycle(db, days)
    finally:
        db.close()
    if purged:
        click.echo(f"Purged {purged} records.")
    else:
        click.echo("No records to purge.")


@server.command("create-token")
@click.argument("name")
@db_path_option
def create_token_cmd(name: str, db_path: str | None) -> None:
    """Issue a bearer token for a device.

    The raw token is printed once; only its hash is stored.
    """
    from recordsync.server.database import Database

    settings = _settings(db_path)
    db = Database(settings.db_path)
    try:
        raw_token, token = db.create_token(name)
    finally:
        db.close()
    click.echo(f"Token #{token.id} for '{name}':")
    click.echo(raw_token)


@server.command("logs")
@click.option("--limit", "-n", type=int, default=20, help="Number of events to show.")
def logs_cmd(limit: int) -> None:
    """Show sync events recorded by the configured server."""
    from recordsync.client.api import APIError
    from recordsync.client.cli.config import open_client, require_config

    config = require_config()
    with open_client(config) as client:
        try:
            events = client.sync_logs()
        except APIError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    if not events:
        click.echo("No sync events.")
        return
    for event in events[:limit]:
        click.echo(
            f"{format_timestamp(event.timestamp)}  {event.status:<7}  "
            f"{event.client_ip or '-':<15}  {event.changes_count} changes, "
            f"{event.deletions_count} deletions"
        )
