"""
Typed Supabase wrapper for the notecase record store.

This wrapper is the only place in notecase that talks to Supabase. It
provides a stable, typed interface over the dynamic SDK query builder:

    • equality / null filtered selects, ordered and limited
    • insert-returning-row, update-by-id, delete-by-filter, upsert-on-conflict
    • an insert-or-get primitive that survives unique-key races
    • nested subtree reads converted into typed DTOs (NotebookNode, ...)

The class relies on the SupabaseClientInterface Protocol defined in
notecase/types.py, so injected clients (the real SDK or a test fake) only
need to expose `table(name)` returning a chainable builder.

Errors are normalized into notecase.errors.StoreError regardless of whether
the injected client raises (the real SDK raises postgrest APIError) or
returns an error payload (dict-style test doubles).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar, cast

from postgrest.exceptions import APIError
from supabase import create_client

from notecase.errors import NotFoundError, StoreError, UniqueViolationError
from notecase.types import (
    ItemNode,
    NoteNode,
    NoteRecord,
    NotebookNode,
    NotebookRecord,
    SectionNode,
    Settings,
    SupabaseClientInterface,
    TagRecord,
    TagRef,
)

T = TypeVar("T", bound=Dict[str, Any])

UNIQUE_VIOLATION = "23505"

# ---------------------------------------------------------------------------
# Nested select clauses
# ---------------------------------------------------------------------------
# PostgREST resource embedding: one request returns the whole subtree.
# `tags!note_tags` walks the many-to-many join table.
# ---------------------------------------------------------------------------
NOTE_COLUMNS = "id, title, content, created_at, updated_at, tags!note_tags(id, name)"
ITEM_COLUMNS = f"id, title, position, notes({NOTE_COLUMNS})"
SECTION_COLUMNS = f"id, title, position, items({ITEM_COLUMNS})"
NOTEBOOK_TREE_COLUMNS = f"id, title, last_modified, sections({SECTION_COLUMNS})"
SECTION_TREE_COLUMNS = f"{SECTION_COLUMNS}, notebooks(id, title, last_modified)"


# ---------------------------------------------------------------------------
# Helper: normalize Supabase responses
# ---------------------------------------------------------------------------


def _store_error(error: Any) -> StoreError:
    """Build the StoreError for a Supabase error payload or APIError."""
    if isinstance(error, Mapping):
        code = error.get("code")
        message = error.get("message") or str(error)
    else:
        code = getattr(error, "code", None)
        message = getattr(error, "message", None) or str(error)

    code = str(code) if code is not None else None
    if code == UNIQUE_VIOLATION:
        return UniqueViolationError(f"Supabase error: {message}", code=code)
    return StoreError(f"Supabase error: {message}", code=code)


def _extract_data(resp: Any) -> List[T]:
    """
    Normalize Supabase responses across:
        • real SDK APIResponse objects
        • dict-style responses from test fakes

    Always returns a list of row dictionaries.
    Raises StoreError (or UniqueViolationError) on any Supabase error.
    """

    # Dict-style response (test fakes)
    if isinstance(resp, dict):
        status = resp.get("status", 200)
        if status >= 400 or resp.get("error"):
            raise _store_error(resp.get("error") or {"message": str(resp)})
        data = resp.get("data", [])
        if data is None:
            return []
        return cast(List[T], data if isinstance(data, list) else [data])

    # SDK-style response
    error = getattr(resp, "error", None)
    if error:
        raise _store_error(error)

    data = getattr(resp, "data", None)
    if data is None:
        return []

    if isinstance(data, list):
        return cast(List[T], data)

    return cast(List[T], [data])


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# DTO conversion
# ---------------------------------------------------------------------------
# Nested rows arrive in whatever shape the select clause produced. These
# functions turn them into the stable tree types and fix sibling ordering,
# so nothing downstream depends on the select clause.
# ---------------------------------------------------------------------------


def _position(row: Mapping[str, Any]) -> int:
    value = row.get("position")
    return int(value) if value is not None else 0


def to_note_node(row: Mapping[str, Any]) -> NoteNode:
    tags: List[TagRef] = [
        {"id": str(tag["id"]), "name": str(tag["name"])} for tag in row.get("tags") or []
    ]
    return {
        "id": str(row["id"]),
        "title": row.get("title") or "",
        "content": row.get("content") or "",
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
        "tags": tags,
    }


def to_item_node(row: Mapping[str, Any]) -> ItemNode:
    notes = sorted(row.get("notes") or [], key=lambda n: (n.get("created_at") or "", n["id"]))
    return {
        "id": str(row["id"]),
        "title": row.get("title") or "",
        "position": _position(row),
        "notes": [to_note_node(n) for n in notes],
    }


def to_section_node(row: Mapping[str, Any]) -> SectionNode:
    items = sorted(row.get("items") or [], key=_position)
    return {
        "id": str(row["id"]),
        "title": row.get("title") or "",
        "position": _position(row),
        "items": [to_item_node(i) for i in items],
    }


def to_notebook_node(row: Mapping[str, Any]) -> NotebookNode:
    sections = sorted(row.get("sections") or [], key=_position)
    return {
        "id": str(row["id"]),
        "title": row.get("title") or "",
        "last_modified": row.get("last_modified"),
        "sections": [to_section_node(s) for s in sections],
    }


# ---------------------------------------------------------------------------
# Main wrapper class
# ---------------------------------------------------------------------------


class SupabaseClient:
    """
    A minimal, dependency-injected wrapper around a Supabase-compatible client.

    Every query is scoped by the owner's `user_id` where the table carries
    one. The wrapper never decides *what* to write; the sync engine does.
    """

    def __init__(self, client: Any = None) -> None:
        """
        Parameters
        ----------
        client : Any
            A Supabase-compatible client (real SDK or a test fake). `Any`
            because the SDK does not implement our Protocol nominally.
        """
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseClient":
        """Create the official SDK client from loaded settings and wrap it."""
        return cls(create_client(settings["supabase_url"], settings["supabase_key"]))

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _require_client(self) -> SupabaseClientInterface:
        """Return the configured Supabase client or raise StoreError."""
        if self.client is None:
            raise StoreError("Supabase client is not configured")
        return self.client

    def _execute(self, builder: Any) -> List[Dict[str, Any]]:
        try:
            resp = builder.execute()
        except APIError as e:
            raise _store_error(e) from e
        return _extract_data(resp)

    def _filtered(self, builder: Any, filters: Mapping[str, Any]) -> Any:
        # None means "IS NULL"; everything else is an equality filter.
        for key, value in filters.items():
            if value is None:
                builder = builder.is_(key, "null")
            else:
                builder = builder.eq(key, value)
        return builder

    # -----------------------------------------------------------------------
    # Generic row operations
    # -----------------------------------------------------------------------

    def select(
        self,
        table: str,
        filters: Mapping[str, Any],
        columns: str = "*",
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Select rows matching equality/null filters."""
        builder = self._require_client().table(table).select(columns)
        builder = self._filtered(builder, filters)
        if order:
            builder = builder.order(order, desc=desc)
        if limit is not None:
            builder = builder.limit(limit)
        return self._execute(builder)

    def find_one(self, table: str, filters: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the first row matching `filters`, or None."""
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def max_position(self, table: str, filters: Mapping[str, Any]) -> Optional[int]:
        """Highest `position` among rows matching `filters`, or None if there are none."""
        rows = self.select(table, filters, columns="position", order="position", desc=True, limit=1)
        if not rows or rows[0].get("position") is None:
            return None
        return int(rows[0]["position"])

    def insert(self, table: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert one row and return it as stored."""
        builder = self._require_client().table(table).insert(dict(payload))
        rows = self._execute(builder)
        if not rows:
            raise StoreError(f"Insert into {table} returned no rows")
        return rows[0]

    def insert_or_get(
        self,
        table: str,
        payload: Mapping[str, Any],
        match: Mapping[str, Any],
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Insert a row; on a unique-key conflict, return the existing row.

        This is the create-if-absent primitive used for ancestors and tags.
        Callers look the row up first; when the insert still collides with a
        unique index (another writer created the same row between the lookup
        and the insert) the winner is re-queried with `match` and reused.

        Returns
        -------
        (row, created)
            The stored row and whether this call inserted it.
        """
        try:
            return self.insert(table, payload), True
        except UniqueViolationError:
            winner = self.find_one(table, match)
            if winner is None:
                raise
            return winner, False

    def update(self, table: str, row_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Update a row by id and return it."""
        builder = self._require_client().table(table).update(dict(changes)).eq("id", row_id)
        rows = self._execute(builder)
        if not rows:
            raise NotFoundError(f"No {table} row with id={row_id!r}")
        return rows[0]

    def upsert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        on_conflict: str = "id",
    ) -> List[Dict[str, Any]]:
        """Upsert rows; idempotent on the `on_conflict` key."""
        if not rows:
            return []
        payload = [dict(r) for r in rows]
        builder = self._require_client().table(table).upsert(payload, on_conflict=on_conflict)
        return self._execute(builder)

    def delete(self, table: str, filters: Mapping[str, Any]) -> None:
        builder = self._filtered(self._require_client().table(table).delete(), filters)
        self._execute(builder)

    # -----------------------------------------------------------------------
    # Notes
    # -----------------------------------------------------------------------

    def get_note(self, owner_id: str, note_id: str) -> Optional[NoteRecord]:
        row = self.find_one("notes", {"id": note_id, "user_id": owner_id})
        return cast(Optional[NoteRecord], row)

    def insert_note(self, record: NoteRecord) -> NoteRecord:
        return cast(NoteRecord, self.insert("notes", record))

    def update_note(self, note_id: str, title: str, content: str) -> NoteRecord:
        changes = {"title": title, "content": content, "updated_at": _now_iso()}
        return cast(NoteRecord, self.update("notes", note_id, changes))

    def notebook_id_for_item(self, item_id: str) -> Optional[str]:
        """Walk item → section (or folder) → notebook."""
        item = self.find_one("items", {"id": item_id})
        if item is None:
            return None
        if item.get("section_id"):
            parent = self.find_one("sections", {"id": item["section_id"]})
        elif item.get("folder_id"):
            parent = self.find_one("folders", {"id": item["folder_id"]})
        else:
            return None
        return parent.get("notebook_id") if parent else None

    def touch_notebook(self, notebook_id: str) -> None:
        """Bump a notebook's last_modified timestamp."""
        self.update("notebooks", notebook_id, {"last_modified": _now_iso()})

    # -----------------------------------------------------------------------
    # Tags
    # -----------------------------------------------------------------------

    def ensure_tag(self, owner_id: str, name: str, slug: str) -> TagRecord:
        """Return the owner's tag with this slug, creating it if absent."""
        match = {"user_id": owner_id, "slug": slug}
        existing = self.find_one("tags", match)
        if existing is not None:
            return cast(TagRecord, existing)

        row, _ = self.insert_or_get(
            "tags",
            {"user_id": owner_id, "name": name, "slug": slug},
            match,
        )
        return cast(TagRecord, row)

    def linked_tag_ids(self, note_id: str) -> List[str]:
        rows = self.select("note_tags", {"note_id": note_id}, columns="tag_id")
        return [str(r["tag_id"]) for r in rows]

    def link_tags(self, note_id: str, tag_ids: Sequence[str]) -> None:
        """Attach tags to a note. Idempotent: upserts on (note_id, tag_id)."""
        payload = [{"note_id": note_id, "tag_id": tid} for tid in tag_ids]
        self.upsert("note_tags", payload, on_conflict="note_id,tag_id")

    def unlink_all_tags(self, note_id: str) -> None:
        """Detach every tag from a note. Idempotent."""
        self.delete("note_tags", {"note_id": note_id})

    # -----------------------------------------------------------------------
    # Subtree reads
    # -----------------------------------------------------------------------

    def load_notebook_tree(self, owner_id: str, notebook_id: str) -> NotebookNode:
        """Load a notebook with every section, item, note and tag in one request."""
        rows = self.select(
            "notebooks", {"id": notebook_id, "user_id": owner_id}, columns=NOTEBOOK_TREE_COLUMNS
        )
        if not rows:
            raise NotFoundError(f"Notebook not found: {notebook_id}")
        return to_notebook_node(rows[0])

    def load_section_tree(
        self, owner_id: str, section_id: str
    ) -> Tuple[NotebookRecord, SectionNode]:
        """
        Load one section's subtree together with its owning notebook.

        Returns
        -------
        (notebook, section)
            The notebook row (id, title, last_modified) and the section DTO.
        """
        rows = self.select(
            "sections", {"id": section_id, "user_id": owner_id}, columns=SECTION_TREE_COLUMNS
        )
        if not rows:
            raise NotFoundError(f"Section not found: {section_id}")

        row = rows[0]
        notebook = row.get("notebooks")
        if isinstance(notebook, list):
            notebook = notebook[0] if notebook else None
        if not notebook:
            raise NotFoundError(f"Notebook for section {section_id} not found")

        return cast(NotebookRecord, dict(notebook)), to_section_node(row)

    def list_notebook_trees(
        self, owner_id: str, notebook_id: Optional[str] = None
    ) -> List[NotebookNode]:
        """Load full trees for all of an owner's notebooks, newest first."""
        filters: Dict[str, Any] = {"user_id": owner_id}
        if notebook_id:
            filters["id"] = notebook_id
        rows = self.select(
            "notebooks",
            filters,
            columns=NOTEBOOK_TREE_COLUMNS,
            order="last_modified",
            desc=True,
        )
        return [to_notebook_node(r) for r in rows]
