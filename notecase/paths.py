"""
Path resolution for exported notes.

Every note lives in an archive at

    {notebook}/{section}/{item}/{note}.md

where each segment is the slug of the corresponding title. `from_path`
reverses this for import and decides where files from under-specified paths
should go:

    • 3+ directories  → the deepest three are notebook / section / item
    • 2 directories   → notebook / section, item "Default"
    • 0–1 directories → the Imported / Imported Notes / Imported Items chain
"""

import re
from typing import List

from notecase.slugs import slugify, unslugify
from notecase.types import PathTitles

MARKDOWN_SUFFIX = ".md"

FALLBACK_NOTEBOOK = "Imported"
FALLBACK_SECTION = "Imported Notes"
FALLBACK_ITEM = "Imported Items"
DEFAULT_ITEM = "Default"

# A separator inside a title would add a path segment.
_SEPARATOR_RE = re.compile(r"[/\\]")


def segment(title: str) -> str:
    """Path segment for a title: its slug, with path separators replaced."""
    return _SEPARATOR_RE.sub("-", slugify(title))


def to_path(notebook_title: str, section_title: str, item_title: str, note_title: str) -> str:
    """
    Build the archive path for a note from its four titles.

    Example:
        to_path("Research", "Papers", "Paper A", "Summary")
            -> "research/papers/paper_a/summary.md"
    """
    segments = [segment(t) for t in (notebook_title, section_title, item_title, note_title)]
    return "/".join(segments) + MARKDOWN_SUFFIX


def _split(path: str) -> List[str]:
    normalized = path.replace("\\", "/")
    return [part for part in normalized.split("/") if part and part != "."]


def from_path(path: str) -> PathTitles:
    """
    Split an archive path into notebook, section, item and note titles.

    Titles come back in slug form with underscores turned into spaces; the
    original casing is not recoverable from a path.
    """
    segments = _split(path)
    filename = segments[-1] if segments else ""
    directories = segments[:-1]

    if filename.lower().endswith(MARKDOWN_SUFFIX):
        filename = filename[: -len(MARKDOWN_SUFFIX)]
    note_title = unslugify(filename)

    if len(directories) >= 3:
        notebook, section, item = directories[-3:]
        return {
            "notebook_title": unslugify(notebook),
            "section_title": unslugify(section),
            "item_title": unslugify(item),
            "note_title": note_title,
        }

    if len(directories) == 2:
        return {
            "notebook_title": unslugify(directories[0]),
            "section_title": unslugify(directories[1]),
            "item_title": DEFAULT_ITEM,
            "note_title": note_title,
        }

    return {
        "notebook_title": FALLBACK_NOTEBOOK,
        "section_title": FALLBACK_SECTION,
        "item_title": FALLBACK_ITEM,
        "note_title": note_title,
    }
