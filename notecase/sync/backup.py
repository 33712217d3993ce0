"""
JSON backup: whole-hierarchy snapshot and restore.

Unlike the ZIP round trip, a backup is written and read wholesale:

    { "notebooks": [ { id, title, sections: [ { id, title, position,
        items: [ { id, title, position, notes: [ { id, title, content } ] } ]
    } ] } ] }

Restore upserts rows by id (rows without an id get a fresh one) and never
matches by slug. Restoring the same backup twice leaves the store as it was
after the first restore.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Mapping, Optional

from notecase.errors import BackupFormatError
from notecase.paths import segment
from notecase.slugs import slugify
from notecase.supabase_client import SupabaseClient
from notecase.types import (
    BackupDocument,
    BackupItem,
    BackupNotebook,
    BackupSection,
    NotebookNode,
    RestoreSummary,
)

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# 1 — EXPORT
# ============================================================================


def _to_backup_notebook(tree: NotebookNode) -> BackupNotebook:
    sections: List[BackupSection] = []
    for section in tree["sections"]:
        items: List[BackupItem] = [
            {
                "id": item["id"],
                "title": item["title"],
                "position": item["position"],
                "notes": [
                    {"id": note["id"], "title": note["title"], "content": note["content"]}
                    for note in item["notes"]
                ],
            }
            for item in section["items"]
        ]
        sections.append(
            {
                "id": section["id"],
                "title": section["title"],
                "position": section["position"],
                "items": items,
            }
        )
    return {"id": tree["id"], "title": tree["title"], "sections": sections}


def export_backup(
    client: SupabaseClient, owner_id: str, notebook_id: Optional[str] = None
) -> BackupDocument:
    """
    Snapshot all of an owner's notebooks (or just one) as a backup document.

    Notebooks are ordered by last_modified, newest first; sections and items
    by position.
    """
    trees = client.list_notebook_trees(owner_id, notebook_id)
    return {"notebooks": [_to_backup_notebook(tree) for tree in trees]}


def backup_filename(
    document: BackupDocument, notebook_id: Optional[str] = None, when: Optional[datetime] = None
) -> str:
    """
    Example:
        backup_filename(doc) -> "notes_export_2025-04-23.json"
        backup_filename(doc, "nb-1") -> "notebook_research_2025-04-23.json"
    """
    stamp = (when or datetime.now()).strftime("%Y-%m-%d")
    if notebook_id and document["notebooks"]:
        return f"notebook_{segment(document['notebooks'][0].get('title', ''))}_{stamp}.json"
    return f"notes_export_{stamp}.json"


# ============================================================================
# 2 — RESTORE
# ============================================================================


def validate_backup(document: Any) -> List[Mapping[str, Any]]:
    """
    Check the top-level shape of a backup before anything is written.

    Raises
    ------
    BackupFormatError
        If `notebooks` is not a list, or a notebook has no title.
    """
    if not isinstance(document, Mapping) or not isinstance(document.get("notebooks"), list):
        raise BackupFormatError("Invalid format: Expected an array of notebooks")

    notebooks = document["notebooks"]
    for index, notebook in enumerate(notebooks):
        if not isinstance(notebook, Mapping) or not notebook.get("title"):
            raise BackupFormatError(f"Invalid notebook at index {index}: Missing title")
    return notebooks


def _children(node: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    value = node.get(key)
    if not isinstance(value, list):
        return []
    return [child for child in value if isinstance(child, Mapping) and child.get("title")]


def _position(node: Mapping[str, Any], fallback: int) -> int:
    value = node.get("position")
    return value if isinstance(value, int) else fallback


def _write(client: SupabaseClient, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
    # Rows with an id are upserted in place; rows without one are inserted.
    if row.get("id"):
        rows = client.upsert(table, [row])
        return rows[0] if rows else row
    return client.insert(table, row)


def restore_backup(client: SupabaseClient, owner_id: str, document: Any) -> RestoreSummary:
    """
    Restore a backup document into the owner's store.

    Sections, items and notes without a title are skipped. Nothing spans the
    whole restore: a store failure part-way through leaves the rows written
    so far in place and propagates as StoreError.

    Returns
    -------
    RestoreSummary
        Number of notebooks, sections, items and notes written.
    """
    notebooks = validate_backup(document)
    summary: RestoreSummary = {"notebooks": 0, "sections": 0, "items": 0, "notes": 0}

    for notebook in notebooks:
        title = str(notebook["title"])
        notebook_row = _write(
            client,
            "notebooks",
            {
                **({"id": notebook["id"]} if notebook.get("id") else {}),
                "user_id": owner_id,
                "title": title,
                "slug": slugify(title),
                "last_modified": _now_iso(),
            },
        )
        summary["notebooks"] += 1

        for s_index, section in enumerate(_children(notebook, "sections")):
            section_title = str(section["title"])
            section_row = _write(
                client,
                "sections",
                {
                    **({"id": section["id"]} if section.get("id") else {}),
                    "user_id": owner_id,
                    "notebook_id": notebook_row["id"],
                    "title": section_title,
                    "slug": slugify(section_title),
                    "position": _position(section, s_index),
                },
            )
            summary["sections"] += 1

            for i_index, item in enumerate(_children(section, "items")):
                item_title = str(item["title"])
                item_row = _write(
                    client,
                    "items",
                    {
                        **({"id": item["id"]} if item.get("id") else {}),
                        "user_id": owner_id,
                        "section_id": section_row["id"],
                        "title": item_title,
                        "slug": slugify(item_title),
                        "position": _position(item, i_index),
                    },
                )
                summary["items"] += 1

                for note in _children(item, "notes"):
                    _write(
                        client,
                        "notes",
                        {
                            **({"id": note["id"]} if note.get("id") else {}),
                            "user_id": owner_id,
                            "item_id": item_row["id"],
                            "title": str(note["title"]),
                            "content": str(note.get("content") or ""),
                        },
                    )
                    summary["notes"] += 1

        logger.info("Restored notebook %s (%s)", notebook_row["id"], title)

    return summary
