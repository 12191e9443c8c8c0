"""Command-line interface for recordsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- init: Configure this device
- sync: Synchronize records with the server
- history: Show the sync log
- undo: Revert a sync log entry
- trash: Recycle bin management
- export / import: ZIP archives of records
- server: Server administration commands
"""

from __future__ import annotations

import logging

import click

from recordsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_data_dir,
    load_config,
    save_config,
)
from recordsync.client.cli.records import export_cmd, import_cmd, trash
from recordsync.client.cli.server import server
from recordsync.client.cli.sync import history, init, undo
from recordsync.client.cli.sync import sync as sync_cmd


@click.group()
@click.version_option(package_name="recordsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """recordsync - Last-write-wins record synchronization."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Sync commands
cli.add_command(init)
cli.add_command(sync_cmd)
cli.add_command(history)
cli.add_command(undo)

# Record commands
cli.add_command(trash)
cli.add_command(export_cmd)
cli.add_command(import_cmd)

# Server admin commands
cli.add_command(server)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_data_dir",
    "load_config",
    "save_config",
]
