"""
Public sync API surface.

This module exposes the stable entry points for moving notes in and out of
the store. External callers (CLI, services, tests) should import from here
rather than reaching into submodules directly.

The sync subsystem includes:
    • build_archive / write_archive — ZIP export of a notebook or section
    • import_archive — ZIP import with per-file error isolation
    • export_backup / restore_backup — JSON snapshot and restore
    • upsert_note — the single-file hierarchy upsert used by import
"""

from .archive_reader import import_archive
from .archive_writer import build_archive, write_archive
from .backup import backup_filename, export_backup, restore_backup
from .hierarchy import upsert_note

__all__ = [
    "build_archive",
    "write_archive",
    "import_archive",
    "export_backup",
    "backup_filename",
    "restore_backup",
    "upsert_note",
]
