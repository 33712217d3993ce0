"""
Backup command group: `notecase backup export` / `notecase backup restore`.

A backup is a single JSON document holding the full hierarchy. Restore
writes it back wholesale by id.
"""

import json
from pathlib import Path
from typing import Optional

import typer

from notecase.cli import common
from notecase.errors import BackupFormatError, NotecaseError
from notecase.logging_utils import log_verbose
from notecase.sync import backup_filename, export_backup, restore_backup

backup_app = typer.Typer(help="Snapshot and restore the whole hierarchy as JSON.")


# ---------------------------------------------------------------------------
# Command: notecase backup export
# ---------------------------------------------------------------------------
@backup_app.command("export")
def backup_export(
    notebook: Optional[str] = typer.Option(
        None, "--notebook", help="Only back up this notebook (default: all notebooks)."
    ),
    out: Path = typer.Option(
        Path("."),
        "--out",
        file_okay=False,
        dir_okay=True,
        help="Directory to write the backup to.",
    ),
    owner: Optional[str] = typer.Option(
        None, "--owner", help="Owner id (defaults to NOTECASE_OWNER_ID)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print progress messages."),
) -> None:
    """
    Write a JSON backup of all notebooks, or of one notebook.
    """
    try:
        client, owner_id = common.make_client(owner)
        log_verbose("Loading notebooks...", verbose)
        document = export_backup(client, owner_id, notebook)
    except (NotecaseError, RuntimeError) as e:
        common.fail(str(e))

    out.mkdir(parents=True, exist_ok=True)
    target = out / backup_filename(document, notebook)
    target.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")

    typer.echo(f"Backed up {len(document['notebooks'])} notebook(s) to: {target}")


# ---------------------------------------------------------------------------
# Command: notecase backup restore
# ---------------------------------------------------------------------------
@backup_app.command("restore")
def backup_restore(
    backup: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="JSON backup file.",
    ),
    owner: Optional[str] = typer.Option(
        None, "--owner", help="Owner id (defaults to NOTECASE_OWNER_ID)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print progress messages."),
) -> None:
    """
    Restore a JSON backup produced by `notecase backup export`.
    """
    try:
        document = json.loads(backup.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        common.fail(str(BackupFormatError(f"Invalid JSON in backup file: {backup}: {e}")))

    try:
        client, owner_id = common.make_client(owner)
        log_verbose(f"Restoring {backup}...", verbose)
        summary = restore_backup(client, owner_id, document)
    except (NotecaseError, RuntimeError) as e:
        common.fail(str(e))

    typer.echo("\n=== Restore Summary ===")
    for key, value in summary.items():
        typer.echo(f"{key}: {value}")
