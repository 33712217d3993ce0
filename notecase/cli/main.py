"""
Root entrypoint for the notecase CLI.

This module defines the top-level `notecase` command and mounts the
sub-apps from the other modules under notecase/cli/:

    • notecase/cli/export_cli.py  →  `notecase export zip ...`
    • notecase/cli/import_cli.py  →  `notecase import zip ...`
    • notecase/cli/backup_cli.py  →  `notecase backup export|restore ...`

Credentials come from SUPABASE_URL / SUPABASE_KEY and the owner from
NOTECASE_OWNER_ID, all loadable from a `.env` file.
"""

import typer

from notecase.logging_utils import configure_logging

from .backup_cli import backup_app
from .export_cli import export_app
from .import_cli import import_app

# ---------------------------------------------------------------------------
# Root CLI application
# ---------------------------------------------------------------------------
cli = typer.Typer(
    help=(
        "notecase command-line interface.\n\n"
        "  Export a notebook or section as Markdown in a ZIP:\n"
        "      notecase export zip --notebook <id>\n\n"
        "  Import a ZIP of Markdown notes:\n"
        "      notecase import zip <archive.zip>\n\n"
        "  Snapshot / restore everything as JSON:\n"
        "      notecase backup export | notecase backup restore <file.json>"
    )
)


@cli.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Show debug logging from the sync engine."),
) -> None:
    configure_logging(debug)


# ---------------------------------------------------------------------------
# Register sub-applications
# ---------------------------------------------------------------------------
cli.add_typer(export_app, name="export")
cli.add_typer(import_app, name="import")
cli.add_typer(backup_app, name="backup")

# ---------------------------------------------------------------------------
# Entry point for `python -m notecase.cli.main`
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    cli()
