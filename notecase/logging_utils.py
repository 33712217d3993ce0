"""
logging_utils.py

Logging helpers shared by the CLI and the sync engine.

Library modules log through the standard `logging` module
(`logging.getLogger(__name__)`), so per-file skips, failing tags and
overwritten export paths are visible without being printed by default.

The CLI additionally prints short, plain-English progress lines in verbose
mode through Typer, so they behave like every other CLI output.
"""

import logging

import typer

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(debug: bool = False) -> None:
    """
    Configure the root logger for a CLI run.

    Parameters
    ----------
    debug : bool
        When True, DEBUG and above is shown; otherwise only warnings.
    """
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING, format=LOG_FORMAT)


def log_verbose(message: str, verbose: bool) -> None:
    """
    Print a high-level progress message when verbose mode is enabled.

    Parameters
    ----------
    message : str
        A short description of what the command is doing
        (e.g., "Reading archive...", "Importing 12 notes...").
    verbose : bool
        Whether verbose mode is active. When False, nothing is printed.
    """
    if verbose:
        typer.echo(message)
