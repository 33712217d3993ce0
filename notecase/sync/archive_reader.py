"""
Archive reader and import orchestrator.

This module defines the import pipeline for an uploaded ZIP of Markdown
notes. Every `.md` member goes through the same linear stages:

    Parse → Resolve path → Resolve tags → Upsert → Tag-link → Tally

A failure at any stage only affects that one file: it is recorded in the
summary's `errors` list and the loop moves on. Only an unreadable archive
stops an import, and it does so before any file is processed.

There is no transaction around the archive. An interrupted or cancelled
import keeps whatever was written up to that point.
"""

import io
import logging
import threading
from typing import Iterator, List, Optional, Tuple
import zipfile

from notecase.errors import ArchiveError, MissingTitleError
from notecase.frontmatter_codec import field, parse_markdown, tag_names
from notecase.paths import MARKDOWN_SUFFIX
from notecase.supabase_client import SupabaseClient
from notecase.sync.hierarchy import upsert_note
from notecase.sync.tag_resolution import resolve_tags
from notecase.types import ImportErrorEntry, ImportSummary

logger = logging.getLogger(__name__)

# Resource forks added by the macOS archiver.
IGNORED_PREFIXES = ("__MACOSX/",)


# ============================================================================
# IMPORT REPORT — COUNTERS ACCUMULATED ACROSS FILES
# ============================================================================
class ImportReport:
    """
    Mutable counters for one import run.

    The orchestrator updates this per file and converts it into the
    ImportSummary returned to callers.
    """

    def __init__(self) -> None:
        # Notes inserted for the first time
        self.added = 0

        # Existing notes whose title, content or tags changed
        self.updated = 0

        # Existing notes that already matched the file
        self.unchanged = 0

        # Members ignored because they are not Markdown notes
        self.skipped = 0

        # Per-file failures (the file was not imported, or imported partially)
        self.errors: List[ImportErrorEntry] = []

        self.cancelled = False

    def record_error(self, path: str, message: str) -> None:
        logger.warning("Import of %s failed: %s", path, message)
        self.errors.append({"path": path, "message": message})

    def to_summary(self) -> ImportSummary:
        return {
            "added": self.added,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "cancelled": self.cancelled,
        }


# ============================================================================
# ARCHIVE MEMBERS
# ============================================================================
def _is_markdown_member(info: zipfile.ZipInfo) -> bool:
    if info.is_dir() or info.filename.startswith(IGNORED_PREFIXES):
        return False
    return info.filename.lower().endswith(MARKDOWN_SUFFIX)


def open_archive(zip_bytes: bytes) -> zipfile.ZipFile:
    """
    Open ZIP bytes for reading.

    Raises
    ------
    ArchiveError
        If the bytes are not a readable ZIP archive.
    """
    try:
        return zipfile.ZipFile(io.BytesIO(zip_bytes))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
        raise ArchiveError(f"Could not read archive: {e}") from e


def iter_markdown_members(
    archive: zipfile.ZipFile,
) -> Iterator[Tuple[str, Optional[bytes], Optional[str]]]:
    """
    Yield (path, raw_bytes, error) for every Markdown member.

    A member that cannot be read yields raw_bytes=None and an error message
    instead of raising.
    """
    for info in archive.infolist():
        if not _is_markdown_member(info):
            continue
        try:
            yield info.filename, archive.read(info), None
        except (zipfile.BadZipFile, OSError, ValueError, RuntimeError) as e:
            yield info.filename, None, f"Could not read member: {e}"


# ============================================================================
# PER-FILE PIPELINE
# ============================================================================
def import_markdown(
    client: SupabaseClient, owner_id: str, path: str, text: str
) -> Tuple[str, Optional[str]]:
    """
    Import one Markdown file.

    Returns
    -------
    (action, tag_error)
        The upsert action and the message of a tag-linkage failure, if any.

    Raises
    ------
    NotecaseError
        Any parse or store error for this file.
    """
    parsed = parse_markdown(text)
    frontmatter = parsed["frontmatter"]

    # The title is checked before any tag row is written.
    if not field(frontmatter, "title"):
        raise MissingTitleError(f"Missing title in frontmatter: {path}")

    tag_ids = resolve_tags(client, owner_id, tag_names(frontmatter))
    result = upsert_note(client, owner_id, path, frontmatter, parsed["body"], tag_ids)
    return result["action"], result["tag_error"]


# ============================================================================
# MAIN ORCHESTRATOR
# ============================================================================
def import_archive(
    client: SupabaseClient,
    owner_id: str,
    zip_bytes: bytes,
    cancel: Optional[threading.Event] = None,
) -> ImportSummary:
    """
    Import every Markdown note in a ZIP archive.

    Parameters
    ----------
    client : SupabaseClient
        Store wrapper.
    owner_id : str
        Owner the imported rows belong to.
    zip_bytes : bytes
        The uploaded archive.
    cancel : threading.Event | None
        Checked before each file. When set, the import stops and the
        summary is returned with `cancelled=True`.

    Returns
    -------
    ImportSummary
        Counts of added / updated / unchanged notes, skipped members and
        the per-file error list.

    Raises
    ------
    ArchiveError
        If the archive itself cannot be read.
    """
    report = ImportReport()

    with open_archive(zip_bytes) as archive:
        report.skipped = sum(
            1 for info in archive.infolist() if not info.is_dir() and not _is_markdown_member(info)
        )

        for path, raw, read_error in iter_markdown_members(archive):
            if cancel is not None and cancel.is_set():
                report.cancelled = True
                logger.info("Import cancelled before %s", path)
                break

            if raw is None:
                report.record_error(path, read_error or "Could not read member")
                continue

            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                report.record_error(path, f"File is not valid UTF-8: {e}")
                continue

            try:
                action, tag_error = import_markdown(client, owner_id, path, text)
            except Exception as e:
                # Non-fatal: record the failure and continue with the next file.
                report.record_error(path, str(e))
                continue

            if action == "created":
                report.added += 1
            elif action == "updated":
                report.updated += 1
            else:
                report.unchanged += 1

            if tag_error:
                report.record_error(path, tag_error)

    return report.to_summary()
