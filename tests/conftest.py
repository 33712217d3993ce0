"""
Shared pytest configuration for the notecase test suite.

This file centralizes reusable testing utilities so that:
    • Store-level tests run against the in-memory FakeSupabase, wrapped in
      the real SupabaseClient, so the wrapper's query building is exercised
    • Archive tests build ZIP bytes the same way in every module
    • CLI tests share one Typer CliRunner

Nothing here touches the network.
"""

import io
from typing import Dict
import zipfile

import pytest
from typer.testing import CliRunner

from notecase.supabase_client import SupabaseClient
from tests.fixtures.fake_supabase import OWNER_ID, FakeSupabase


# ============================================================================
# 1 — SHARED TEST INFRASTRUCTURE
# ============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provides a fresh Typer CliRunner instance for CLI tests."""
    return CliRunner()


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


# ============================================================================
# 2 — IN-MEMORY STORE
# ============================================================================


@pytest.fixture
def fake_db() -> FakeSupabase:
    """Empty in-memory Supabase database."""
    return FakeSupabase()


@pytest.fixture
def client(fake_db: FakeSupabase) -> SupabaseClient:
    """SupabaseClient wired to the in-memory database."""
    return SupabaseClient(fake_db)


@pytest.fixture
def research_tree(fake_db: FakeSupabase) -> Dict[str, dict]:
    """
    Seed one notebook → section → item → note chain:

        Research / Papers / Paper A / Summary   (content "<p>hello</p>", tag "ml")
    """
    notebook = fake_db.seed("notebooks", user_id=OWNER_ID, title="Research", slug="research")
    section = fake_db.seed(
        "sections",
        user_id=OWNER_ID,
        notebook_id=notebook["id"],
        title="Papers",
        slug="papers",
        position=0,
    )
    item = fake_db.seed(
        "items",
        user_id=OWNER_ID,
        section_id=section["id"],
        title="Paper A",
        slug="paper_a",
        position=0,
    )
    note = fake_db.seed(
        "notes",
        user_id=OWNER_ID,
        item_id=item["id"],
        title="Summary",
        content="<p>hello</p>",
        created_at="2025-01-02T03:04:05+00:00",
        updated_at="2025-01-03T03:04:05+00:00",
    )
    tag = fake_db.seed("tags", user_id=OWNER_ID, name="ml", slug="ml")
    fake_db.seed("note_tags", note_id=note["id"], tag_id=tag["id"])
    return {"notebook": notebook, "section": section, "item": item, "note": note, "tag": tag}


# ============================================================================
# 3 — ARCHIVE HELPERS
# ============================================================================


@pytest.fixture
def make_zip():
    """Build ZIP bytes from a mapping of member path → text (or raw bytes)."""

    def _builder(members: Dict[str, object]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for path, content in members.items():
                data = content if isinstance(content, bytes) else str(content).encode("utf-8")
                zf.writestr(path, data)
        return buffer.getvalue()

    return _builder
