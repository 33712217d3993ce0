"""
Archive writer: export a notebook or a section as a ZIP of Markdown files.

Every note becomes one member at

    {notebook}/{section}/{item}/{note}.md

containing its frontmatter block and raw content. The subtree is read with
a single nested select; nothing is written server-side.

Two notes with the same title in the same item map to the same member path.
The later note replaces the earlier one in the archive (logged as a warning);
no suffix is added to disambiguate them.
"""

from datetime import datetime
import io
import logging
from pathlib import Path
from typing import Dict, Iterator, Tuple
import zipfile

from notecase.frontmatter_codec import serialize_note
from notecase.paths import segment, to_path
from notecase.supabase_client import SupabaseClient
from notecase.types import ArchiveBlob, NoteNode, SectionNode

logger = logging.getLogger(__name__)

SCOPES = ("notebook", "section")


# ---------------------------------------------------------------------------
# Member rendering
# ---------------------------------------------------------------------------
def _section_members(
    notebook_title: str, section: SectionNode
) -> Iterator[Tuple[str, NoteNode, str]]:
    """Yield (path, note, markdown) for every note under a section."""
    for item in section["items"]:
        for note in item["notes"]:
            path = to_path(notebook_title, section["title"], item["title"], note["title"])
            text = serialize_note(
                note,
                notebook_title=notebook_title,
                section_title=section["title"],
                item_title=item["title"],
            )
            yield path, note, text


def render_members(
    client: SupabaseClient, scope: str, owner_id: str, scope_id: str
) -> Tuple[str, Dict[str, str]]:
    """
    Load a scope's subtree and render its archive members.

    Returns
    -------
    (scope_title, members)
        The notebook or section title and a mapping path → Markdown text,
        in export order. Duplicate paths keep the last note.

    Raises
    ------
    ValueError
        If `scope` is not "notebook" or "section".
    NotFoundError
        If the notebook / section does not exist for this owner.
    """
    if scope not in SCOPES:
        raise ValueError(f"Unknown export scope: {scope!r} (expected one of {SCOPES})")

    if scope == "notebook":
        tree = client.load_notebook_tree(owner_id, scope_id)
        scope_title = tree["title"]
        rendered = (
            member
            for section in tree["sections"]
            for member in _section_members(tree["title"], section)
        )
    else:
        notebook, section = client.load_section_tree(owner_id, scope_id)
        scope_title = section["title"]
        rendered = _section_members(notebook.get("title", ""), section)

    members: Dict[str, str] = {}
    for path, note, text in rendered:
        if path in members:
            logger.warning(
                "Duplicate export path %s; note %s replaces the earlier one", path, note["id"]
            )
        members[path] = text

    return scope_title, members


def archive_filename(scope: str, scope_title: str, when: datetime | None = None) -> str:
    """
    Example:
        archive_filename("notebook", "Research") -> "notebook_research_2025-04-23.zip"
    """
    stamp = (when or datetime.now()).strftime("%Y-%m-%d")
    return f"{scope}_{segment(scope_title)}_{stamp}.zip"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def build_archive(client: SupabaseClient, scope: str, owner_id: str, scope_id: str) -> ArchiveBlob:
    """
    Export a notebook or section as an in-memory ZIP.

    Parameters
    ----------
    client : SupabaseClient
        Store wrapper used for the single subtree read.
    scope : str
        "notebook" or "section".
    owner_id : str
        Owner of the scope.
    scope_id : str
        Id of the notebook or section.

    Returns
    -------
    ArchiveBlob
        `filename` embeds the scope title and the date; `data` holds the
        ZIP bytes.
    """
    scope_title, members = render_members(client, scope, owner_id, scope_id)

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for path, text in members.items():
            zf.writestr(path, text.encode("utf-8"))

    logger.info("Exported %d notes from %s %s", len(members), scope, scope_id)
    return {"filename": archive_filename(scope, scope_title), "data": buffer.getvalue()}


def write_archive(blob: ArchiveBlob, directory: Path) -> Path:
    """Save an archive blob under `directory` and return the file path."""
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / blob["filename"]
    target.write_bytes(blob["data"])
    return target
