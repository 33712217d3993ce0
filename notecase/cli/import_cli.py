"""
Import command group: `notecase import zip`.

Reads a ZIP of Markdown files and reconciles it into the store. Per-file
failures are listed after the summary; they do not stop the import.
"""

from pathlib import Path
from typing import Optional

import typer

from notecase.cli import common
from notecase.errors import NotecaseError
from notecase.logging_utils import log_verbose
from notecase.sync import import_archive

import_app = typer.Typer(
    help=(
        "Import a ZIP of Markdown notes.\n\n"
        "Notes are matched by the `id` in their frontmatter; missing notebooks, "
        "sections and items are created from the file path."
    )
)


# ---------------------------------------------------------------------------
# Command: notecase import zip
# ---------------------------------------------------------------------------
@import_app.command("zip")
def import_zip(
    archive: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="ZIP archive to import.",
    ),
    owner: Optional[str] = typer.Option(
        None, "--owner", help="Owner id (defaults to NOTECASE_OWNER_ID)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print progress messages."),
) -> None:
    """
    Import every .md file in ARCHIVE and print added/updated counts.
    """
    try:
        client, owner_id = common.make_client(owner)
        log_verbose(f"Reading archive {archive}...", verbose)
        summary = import_archive(client, owner_id, archive.read_bytes())
    except (NotecaseError, RuntimeError) as e:
        common.fail(str(e))

    typer.echo("\n=== Import Summary ===")
    typer.echo(f"added: {summary['added']}")
    typer.echo(f"updated: {summary['updated']}")
    typer.echo(f"unchanged: {summary['unchanged']}")
    typer.echo(f"skipped: {summary['skipped']}")
    typer.echo(f"errors: {len(summary['errors'])}")

    for entry in summary["errors"]:
        typer.echo(f"  {entry['path']}: {entry['message']}")

    if summary["errors"]:
        raise typer.Exit(code=2)
