"""
Shared helpers for the notecase CLI commands.

The CLI is responsible for dependency creation: it loads settings, builds
the Supabase client and passes it to the sync functions. Commands reach
these helpers through the module (`common.make_client(...)`) so tests can
substitute a fake client.
"""

from typing import NoReturn, Optional, Tuple

import typer

from notecase.config import load_settings
from notecase.supabase_client import SupabaseClient


def make_client(owner: Optional[str] = None) -> Tuple[SupabaseClient, str]:
    """
    Build the Supabase wrapper and resolve the owner id.

    Raises
    ------
    RuntimeError
        If credentials are missing or no owner is configured.
    """
    settings = load_settings(owner_id=owner)
    owner_id = settings["owner_id"]
    if not owner_id:
        raise RuntimeError("No owner configured. Pass --owner or set NOTECASE_OWNER_ID.")
    return SupabaseClient.from_settings(settings), owner_id


def fail(message: str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)
