"""Sync commands for the recordsync CLI.

Commands:
- init: Write the client configuration
- sync: Run one sync pass, or keep syncing with --watch
- history: Show the sync log
- undo: Revert the changes of one sync log entry
"""

from __future__ import annotations

import sys
import time
from datetime import datetime

import click

from recordsync.client.cli.config import (
    get_config_file,
    get_data_dir,
    get_sync_interval,
    load_config,
    open_client,
    open_log,
    open_recycle_bin,
    open_state,
    open_store,
    require_config,
    save_config,
)
from recordsync.core.types import ChangeAction, SyncLogEntry, SyncStatus

ACTION_SYMBOLS = {
    ChangeAction.CREATED: "+",
    ChangeAction.UPDATED: "~",
    ChangeAction.DELETED: "✗",
}


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


@click.command()
@click.option("--server-url", "-s", required=True, help="Base URL of the recordsync server.")
@click.option("--api-key", default=None, help="Shared API key (sent as x-api-key).")
@click.option("--token", default=None, help="Bearer token issued by 'recordsync server create-token'.")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding local records (default: ~/.recordsync/data).",
)
@click.option("--sync-interval", type=int, default=None, help="Seconds between passes in watch mode.")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration.")
def init(
    server_url: str,
    api_key: str | None,
    token: str | None,
    data_dir: str | None,
    sync_interval: int | None,
    force: bool,
) -> None:
    """Configure this device to sync with a server."""
    if bool(api_key) == bool(token):
        click.echo("Error: provide exactly one of --api-key or --token.", err=True)
        sys.exit(1)

    config = load_config()
    if config.get("server_url") and not force:
        click.echo(f"Error: already configured ({get_config_file()}). Use --force to overwrite.", err=True)
        sys.exit(1)

    config = {"server_url": server_url.rstrip("/")}
    if api_key:
        config["api_key"] = api_key
    else:
        config["token"] = token
    if data_dir:
        config["data_dir"] = str(data_dir)
    if sync_interval:
        config["sync_interval"] = sync_interval
    save_config(config)

    data_path = get_data_dir(config)
    data_path.mkdir(parents=True, exist_ok=True)
    click.echo(f"Configuration saved to {get_config_file()}")
    click.echo(f"Records directory: {data_path}")


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep syncing periodically until interrupted.")
@click.option("--interval", "-i", type=int, default=None, help="Seconds between passes with --watch.")
def sync(watch: bool, interval: int | None) -> None:
    """Synchronize local records with the server.

    Uploads records changed since the last successful pass, downloads the
    server's changes and merges them (last write wins).
    """
    from recordsync.client.sync import SyncEngine, SyncScheduler

    config = require_config()
    store = open_store(config)
    state = open_state()
    client = open_client(config)
    engine = SyncEngine(store, client, state, open_log(state))

    click.echo(f"Syncing with {client.server_url}...")
    try:
        result = engine.run()
        for change in result.changes:
            click.echo(f"  {ACTION_SYMBOLS[change.action]} {change.key}")
        for error in result.errors:
            click.echo(click.style(f"  ! {error}", fg="red"), err=True)
        color = {"success": "green", "partial": "yellow", "failed": "red"}[result.status.value]
        click.echo(click.style(result.message, fg=color))

        if watch:
            seconds = interval or get_sync_interval(config)
            scheduler = SyncScheduler(engine, seconds, recycle_bin=open_recycle_bin(store, config))
            scheduler.start()
            click.echo(f"\nSyncing every {seconds} seconds... (Ctrl+C to stop)")
            try:
                while True:
                    time.sleep(1)
            except KeyboardInterrupt:
                click.echo("\nStopping...")
            finally:
                scheduler.stop()
        elif result.status is SyncStatus.FAILED:
            sys.exit(1)
    finally:
        engine.close()
        client.close()
        state.close()


def _format_entry(entry: SyncLogEntry) -> str:
    summary = entry.summary
    line = (
        f"{entry.id}  {format_timestamp(entry.timestamp)}  "
        f"{entry.direction.value:<8}  {entry.status.value:<7}  "
        f"↑{summary.uploaded} ↓{summary.downloaded} !{summary.errors}"
    )
    if entry.undone_at is not None:
        line += f"  (undone {format_timestamp(entry.undone_at)})"
    return line


@click.command()
@click.option("--limit", "-n", type=int, default=20, help="Number of entries to show.")
@click.option("--verbose", "-v", "show_changes", is_flag=True, help="List the changes of each entry.")
def history(limit: int, show_changes: bool) -> None:
    """Show recent sync log entries, newest first."""
    state = open_state()
    try:
        entries = open_log(state).entries(limit)
    finally:
        state.close()

    if not entries:
        click.echo("No sync history.")
        return
    for entry in entries:
        click.echo(_format_entry(entry))
        if entry.error:
            click.echo(click.style(f"    {entry.error}", fg="red"))
        if show_changes:
            for change in entry.changes:
                click.echo(f"    {ACTION_SYMBOLS[change.action]} {change.key}")


@click.command()
@click.argument("entry_id")
def undo(entry_id: str) -> None:
    """Revert the changes recorded in a sync log entry."""
    from recordsync.client.history import undo as undo_entry

    config = require_config()
    store = open_store(config)
    state = open_state()
    try:
        result = undo_entry(open_log(state), store, entry_id)
    finally:
        state.close()

    if result.success:
        click.echo(result.message)
    else:
        click.echo(f"Error: {result.message}", err=True)
        sys.exit(1)
