"""
Export command group: `notecase export zip`.

Writes a notebook or a section to a ZIP of Markdown files with frontmatter.
"""

from pathlib import Path
from typing import Optional

import typer

from notecase.cli import common
from notecase.errors import NotecaseError
from notecase.logging_utils import log_verbose
from notecase.sync import build_archive, write_archive

export_app = typer.Typer(
    help=(
        "Export notes as a ZIP of Markdown files.\n\n"
        "Each note is written to {notebook}/{section}/{item}/{note}.md with a "
        "frontmatter block (id, title, created, updated, tags)."
    )
)


# ---------------------------------------------------------------------------
# Command: notecase export zip
# ---------------------------------------------------------------------------
@export_app.command("zip")
def export_zip(
    notebook: Optional[str] = typer.Option(
        None, "--notebook", help="Id of the notebook to export."
    ),
    section: Optional[str] = typer.Option(
        None, "--section", help="Id of the section to export."
    ),
    out: Path = typer.Option(
        Path("."),
        "--out",
        file_okay=False,
        dir_okay=True,
        help="Directory to write the archive to.",
    ),
    owner: Optional[str] = typer.Option(
        None, "--owner", help="Owner id (defaults to NOTECASE_OWNER_ID)."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print progress messages."),
) -> None:
    """
    Export exactly one notebook (--notebook) or one section (--section).
    """
    if bool(notebook) == bool(section):
        common.fail("Pass exactly one of --notebook or --section.")

    scope, scope_id = ("notebook", notebook) if notebook else ("section", section)

    try:
        client, owner_id = common.make_client(owner)
        log_verbose(f"Loading {scope} {scope_id}...", verbose)
        blob = build_archive(client, scope, owner_id, str(scope_id))
        target = write_archive(blob, out)
    except (NotecaseError, RuntimeError) as e:
        common.fail(str(e))

    typer.echo(f"Archive written to: {target}")
