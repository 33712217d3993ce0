"""
Hierarchy upsert engine.

Given one parsed Markdown file (its archive path, frontmatter and body),
find or create the notebook → section → item chain it belongs to and
create or update the note itself.

Matching rules:

    • an `id` in frontmatter naming an existing note of this owner always
      wins: the note is updated in place and stays in its current item,
      even when the file now sits at a different path
    • otherwise ancestors are matched by slug under their parent
      (notebook by owner, section by notebook, item by section) and any
      missing ancestor is created at the end of its siblings
    • ancestor inserts tolerate unique-key races by reusing the winner

The engine writes through SupabaseClient only; it never talks to the SDK.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, cast

from notecase.errors import MissingTitleError, StoreError
from notecase.frontmatter_codec import field
from notecase.paths import from_path, segment
from notecase.slugs import slugify
from notecase.supabase_client import SupabaseClient
from notecase.sync.tag_resolution import replace_note_tags
from notecase.types import (
    FrontmatterValue,
    ItemRecord,
    NotebookRecord,
    NoteRecord,
    PathTitles,
    SectionRecord,
    UpsertResult,
)

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# ============================================================================
# 1 — TITLE RESOLUTION
# ============================================================================


def resolve_titles(path: str, frontmatter: Mapping[str, FrontmatterValue]) -> PathTitles:
    """
    Resolve the notebook / section / item titles for a file.

    Placement comes from the path. A frontmatter hint (`notebook`, `section`,
    `item`) only replaces the path-derived title when both produce the same
    path segment, so a hint can restore casing but never move a note.
    """
    titles = from_path(path)

    def prefer(key: str, derived: str) -> str:
        hint = field(frontmatter, key)
        return hint if hint and segment(hint) == segment(derived) else derived

    return {
        "notebook_title": prefer("notebook", titles["notebook_title"]),
        "section_title": prefer("section", titles["section_title"]),
        "item_title": prefer("item", titles["item_title"]),
        "note_title": titles["note_title"],
    }


# ============================================================================
# 2 — ANCESTOR FIND-OR-CREATE
# ============================================================================


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure(
    client: SupabaseClient,
    table: str,
    match: Mapping[str, Any],
    payload: Mapping[str, Any],
    siblings: Optional[Mapping[str, Any]] = None,
) -> Row:
    """
    Return the row matching `match`, inserting `payload` when there is none.

    When `siblings` is given, the new row is placed after them:
    position = max(sibling positions) + 1, or 0 for the first child.
    """
    existing = client.find_one(table, match)
    if existing is not None:
        return existing

    row_payload = dict(payload)
    if siblings is not None:
        top = client.max_position(table, siblings)
        row_payload["position"] = 0 if top is None else top + 1

    row, created = client.insert_or_get(table, row_payload, match)
    if created:
        logger.debug("Created %s row %s (%s)", table, row.get("id"), row.get("title"))
    return row


def ensure_hierarchy(
    client: SupabaseClient, owner_id: str, titles: PathTitles
) -> Tuple[NotebookRecord, SectionRecord, ItemRecord]:
    """
    Find or create the notebook, section and item for a set of titles.

    Sections are matched at notebook root (folder_id IS NULL); items are
    matched directly under their section.

    Returns
    -------
    (notebook, section, item)
        The three rows, existing or newly created.
    """
    notebook_title = titles["notebook_title"].strip()
    section_title = titles["section_title"].strip()
    item_title = titles["item_title"].strip()

    notebook_slug = slugify(notebook_title)
    notebook = _ensure(
        client,
        "notebooks",
        {"user_id": owner_id, "slug": notebook_slug},
        {
            "user_id": owner_id,
            "title": notebook_title,
            "slug": notebook_slug,
            "last_modified": _now_iso(),
        },
    )

    section_slug = slugify(section_title)
    section = _ensure(
        client,
        "sections",
        {"notebook_id": notebook["id"], "folder_id": None, "slug": section_slug},
        {
            "user_id": owner_id,
            "notebook_id": notebook["id"],
            "title": section_title,
            "slug": section_slug,
        },
        siblings={"notebook_id": notebook["id"], "folder_id": None},
    )

    item_slug = slugify(item_title)
    item = _ensure(
        client,
        "items",
        {"section_id": section["id"], "slug": item_slug},
        {
            "user_id": owner_id,
            "section_id": section["id"],
            "title": item_title,
            "slug": item_slug,
        },
        siblings={"section_id": section["id"]},
    )

    return (
        cast(NotebookRecord, notebook),
        cast(SectionRecord, section),
        cast(ItemRecord, item),
    )


# ============================================================================
# 3 — NOTE UPSERT
# ============================================================================


def _timestamp(value: Optional[str]) -> Optional[str]:
    """Return `value` as an ISO timestamp, or None when it does not parse."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable timestamp %r", value)
        return None
    return parsed.isoformat()


def _link_tags(
    client: SupabaseClient, note_id: str, tag_ids: Sequence[str], replace: bool
) -> Optional[str]:
    """
    Link tags after the note write; return an error message instead of raising.

    The note is already committed at this point and is kept even when the
    tag linkage fails.
    """
    try:
        if replace:
            replace_note_tags(client, note_id, tag_ids)
        elif tag_ids:
            client.link_tags(note_id, tag_ids)
    except StoreError as e:
        logger.warning("Tag linkage failed for note %s: %s", note_id, e)
        return f"Tag linkage failed: {e}"
    return None


def _touch(client: SupabaseClient, notebook_id: Optional[str]) -> None:
    if not notebook_id:
        return
    try:
        client.touch_notebook(notebook_id)
    except StoreError as e:
        logger.warning("Could not bump last_modified on notebook %s: %s", notebook_id, e)


def _update_existing(
    client: SupabaseClient,
    existing: NoteRecord,
    title: str,
    body: str,
    tag_ids: Sequence[str],
) -> UpsertResult:
    note_id = str(existing["id"])

    same_text = existing.get("title") == title and (existing.get("content") or "") == body
    same_tags = set(client.linked_tag_ids(note_id)) == set(tag_ids)
    if same_text and same_tags:
        return {"id": note_id, "action": "unchanged", "tag_error": None}

    client.update_note(note_id, title, body)
    tag_error = None if same_tags else _link_tags(client, note_id, tag_ids, replace=True)

    item_id = existing.get("item_id")
    if item_id:
        _touch(client, client.notebook_id_for_item(item_id))

    return {"id": note_id, "action": "updated", "tag_error": tag_error}


def upsert_note(
    client: SupabaseClient,
    owner_id: str,
    path: str,
    frontmatter: Mapping[str, FrontmatterValue],
    body: str,
    tag_ids: Sequence[str],
) -> UpsertResult:
    """
    Create or update one note from an imported file.

    Parameters
    ----------
    client : SupabaseClient
        Store wrapper.
    owner_id : str
        Owner every created row is assigned to.
    path : str
        The file's path inside the archive; decides placement for new notes.
    frontmatter : Mapping
        Parsed frontmatter. `title` is required; `id`, `created`, `updated`
        and the placement hints are optional.
    body : str
        Note content, stored verbatim.
    tag_ids : Sequence[str]
        Resolved tag ids; the note ends up linked to exactly these.

    Returns
    -------
    UpsertResult
        `action` is "created", "updated", or "unchanged" when the stored
        title, content and tag set already match the file.

    Raises
    ------
    MissingTitleError
        If the frontmatter has no title.
    StoreError
        If a note or ancestor write fails.
    """
    title = field(frontmatter, "title")
    if not title:
        raise MissingTitleError(f"Missing title in frontmatter: {path}")

    note_id = field(frontmatter, "id")

    # An id naming an existing note wins over path-derived placement.
    if note_id:
        existing = client.get_note(owner_id, note_id)
        if existing is not None:
            return _update_existing(client, existing, title, body, tag_ids)

    notebook, _, item = ensure_hierarchy(client, owner_id, resolve_titles(path, frontmatter))

    record: NoteRecord = {
        "user_id": owner_id,
        "item_id": item["id"],
        "title": title,
        "content": body,
    }
    if note_id:
        record["id"] = note_id

    created_at = _timestamp(field(frontmatter, "created"))
    if created_at:
        record["created_at"] = created_at
    updated_at = _timestamp(field(frontmatter, "updated"))
    if updated_at:
        record["updated_at"] = updated_at

    row = client.insert_note(record)
    new_id = str(row["id"])

    tag_error = _link_tags(client, new_id, tag_ids, replace=False)
    _touch(client, notebook.get("id"))

    return {"id": new_id, "action": "created", "tag_error": tag_error}
