"""Record management commands for the recordsync CLI.

Commands:
- trash list|delete|restore|purge|sweep: Recycle bin management
- export: Write local records to a ZIP archive
- import: Load records from a ZIP archive
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from recordsync.client.cli.config import open_recycle_bin, open_store, require_config
from recordsync.client.cli.sync import format_timestamp
from recordsync.core.errors import StorageError


@click.group()
def trash() -> None:
    """Recycle bin commands.

    Deleted records stay in the recycle bin for the retention window
    (30 days by default) and can be restored until then.
    """


@trash.command("list")
def trash_list() -> None:
    """List records in the recycle bin."""
    config = require_config()
    bin_ = open_recycle_bin(open_store(config), config)
    records = bin_.list()
    if not records:
        click.echo("Recycle bin is empty.")
        return
    for record in records:
        click.echo(
            f"{record.key}  deleted {format_timestamp(record.mutated_at)}  "
            f"expires {format_timestamp(bin_.expires_at(record))}"
        )


@trash.command("delete")
@click.argument("key")
def trash_delete(key: str) -> None:
    """Move a record to the recycle bin."""
    config = require_config()
    try:
        open_recycle_bin(open_store(config), config).delete(key)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Moved {key} to the recycle bin")


@trash.command("restore")
@click.argument("key")
def trash_restore(key: str) -> None:
    """Restore a record from the recycle bin."""
    config = require_config()
    try:
        open_recycle_bin(open_store(config), config).restore(key)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Restored {key}")


@trash.command("purge")
@click.argument("key")
@click.confirmation_option(prompt="Permanently delete this record?")
def trash_purge(key: str) -> None:
    """Permanently delete a record from the recycle bin."""
    config = require_config()
    try:
        open_recycle_bin(open_store(config), config).purge(key)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Purged {key}")


@trash.command("sweep")
def trash_sweep() -> None:
    """Purge every record past the retention window."""
    config = require_config()
    purged = open_recycle_bin(open_store(config), config).sweep()
    if purged:
        click.echo(f"Purged {len(purged)} expired records.")
    else:
        click.echo("No expired records.")


@click.command("export")
@click.argument("output", type=click.Path(dir_okay=False, writable=True, path_type=Path))
def export_cmd(output: Path) -> None:
    """Export active records to a ZIP archive."""
    config = require_config()
    try:
        blob = open_store(config).export_all()
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    output.write_bytes(blob)
    click.echo(f"Exported records to {output}")


@click.command("import")
@click.argument("archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_cmd(archive: Path) -> None:
    """Import records from a ZIP archive.

    Records whose local version is at least as recent are skipped.
    """
    config = require_config()
    try:
        result = open_store(config).import_all(archive.read_bytes())
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for error in result.errors:
        click.echo(click.style(f"  ! {error}", fg="red"), err=True)
    click.echo(f"Imported {result.imported} records ({result.skipped} skipped, {len(result.errors)} errors)")
