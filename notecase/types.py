"""
notecase/types.py

Centralized type definitions for notecase.

This module defines the TypedDicts and Protocols shared by the Supabase
wrapper, the import/export engine, the CLI and the test doubles. Keeping them
in one place gives:

    • A single source of truth for row and DTO shapes
    • Clear contracts between the CLI, the sync engine and the store layer
    • Easy mocking and dependency injection in tests

When a Supabase table changes, this file should be updated first.
"""

from typing import Any, Dict, List, Literal, Optional, Protocol, TypedDict


# ---------------------------------------------------------------------------
# Row records
# ---------------------------------------------------------------------------
# One TypedDict per Supabase table, using the column names of the table.
#
# total=False allows partial construction (e.g., before Supabase assigns "id").
# ---------------------------------------------------------------------------
class NotebookRecord(TypedDict, total=False):
    id: str
    user_id: str
    title: str
    slug: str
    last_modified: Optional[str]


class SectionRecord(TypedDict, total=False):
    id: str
    user_id: str
    notebook_id: str
    folder_id: Optional[str]
    title: str
    slug: str
    position: int


class ItemRecord(TypedDict, total=False):
    # Exactly one of section_id / folder_id is set.
    id: str
    user_id: str
    section_id: Optional[str]
    folder_id: Optional[str]
    title: str
    slug: str
    position: int


class NoteRecord(TypedDict, total=False):
    id: str
    user_id: str
    item_id: str
    title: str
    content: str
    created_at: Optional[str]
    updated_at: Optional[str]


class TagRecord(TypedDict, total=False):
    id: str
    user_id: str
    name: str
    slug: str


# ---------------------------------------------------------------------------
# Tree DTOs
# ---------------------------------------------------------------------------
# Stable shapes produced from Supabase nested selects. The store wrapper
# converts the raw nested JSON into these before anything else sees it.
# ---------------------------------------------------------------------------
class TagRef(TypedDict):
    id: str
    name: str


class NoteNode(TypedDict):
    id: str
    title: str
    content: str
    created_at: Optional[str]
    updated_at: Optional[str]
    tags: List[TagRef]


class ItemNode(TypedDict):
    id: str
    title: str
    position: int
    notes: List[NoteNode]


class SectionNode(TypedDict):
    id: str
    title: str
    position: int
    items: List[ItemNode]


class NotebookNode(TypedDict):
    id: str
    title: str
    last_modified: Optional[str]
    sections: List[SectionNode]


# ---------------------------------------------------------------------------
# Codec / path shapes
# ---------------------------------------------------------------------------
FrontmatterValue = Any  # str | List[str]


class ParsedMarkdown(TypedDict):
    frontmatter: Dict[str, FrontmatterValue]
    body: str


class PathTitles(TypedDict):
    notebook_title: str
    section_title: str
    item_title: str
    note_title: str


# ---------------------------------------------------------------------------
# Engine results
# ---------------------------------------------------------------------------
UpsertAction = Literal["created", "updated", "unchanged"]


class UpsertResult(TypedDict):
    id: str
    action: UpsertAction
    # Message of a tag-linking failure that happened after the note write.
    tag_error: Optional[str]


class ImportErrorEntry(TypedDict):
    path: str
    message: str


# ---------------------------------------------------------------------------
# ImportSummary
# ---------------------------------------------------------------------------
# The structured result returned by import_archive().
#
# Consumed by:
#   • the `notecase import zip` command (human-readable output)
#   • tests asserting on counters
#
# The orchestrator always returns every field.
# ---------------------------------------------------------------------------
class ImportSummary(TypedDict):
    added: int
    updated: int
    unchanged: int
    skipped: int
    errors: List[ImportErrorEntry]
    cancelled: bool


class ArchiveBlob(TypedDict):
    filename: str
    data: bytes


# ---------------------------------------------------------------------------
# JSON backup document
# ---------------------------------------------------------------------------
class BackupNote(TypedDict, total=False):
    id: str
    title: str
    content: str


class BackupItem(TypedDict, total=False):
    id: str
    title: str
    position: int
    notes: List[BackupNote]


class BackupSection(TypedDict, total=False):
    id: str
    title: str
    position: int
    items: List[BackupItem]


class BackupNotebook(TypedDict, total=False):
    id: str
    title: str
    sections: List[BackupSection]


class BackupDocument(TypedDict):
    notebooks: List[BackupNotebook]


class RestoreSummary(TypedDict):
    notebooks: int
    sections: int
    items: int
    notes: int


# ---------------------------------------------------------------------------
# SupabaseExecuteResponse
# ---------------------------------------------------------------------------
# The normalized response returned from `.execute()` by dict-style test
# doubles. The real SDK returns an APIResponse object exposing `.data`;
# errors are raised as postgrest APIError instead of being returned.
# ---------------------------------------------------------------------------
class SupabaseExecuteResponse(TypedDict, total=False):
    status: int
    data: Any
    error: Optional[Any]


# ---------------------------------------------------------------------------
# SupabaseClientInterface
# ---------------------------------------------------------------------------
# Structural protocol for the subset of the Supabase SDK used by
# SupabaseClient (notecase/supabase_client.py):
#
#   client.table("notes").select("*").eq("id", x).execute()
#
# Any object that exposes `table(name)` returning a chainable builder is
# accepted, including the real SDK client and the test fakes.
# ---------------------------------------------------------------------------
class SupabaseClientInterface(Protocol):
    def table(self, name: str) -> Any:
        """
        Return a query builder for the given table.
        The returned object must support select/insert/update/upsert/delete,
        equality filters and .execute().
        """
        ...


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
# Runtime configuration loaded from the environment (see notecase/config.py).
# ---------------------------------------------------------------------------
class Settings(TypedDict):
    supabase_url: str
    supabase_key: str
    owner_id: Optional[str]
