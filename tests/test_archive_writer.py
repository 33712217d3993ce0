"""
Tests for ZIP export (notecase.sync.archive_writer).
"""

from datetime import datetime
import io
import zipfile

import pytest

from notecase.errors import NotFoundError
from notecase.frontmatter_codec import parse_markdown, tag_names
from notecase.sync.archive_writer import archive_filename, build_archive, write_archive
from tests.fixtures.fake_supabase import OWNER_ID


def _members(data: bytes) -> dict:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {name: zf.read(name).decode("utf-8") for name in zf.namelist()}


def test_notebook_export_contains_one_file_per_note(client, research_tree) -> None:
    blob = build_archive(client, "notebook", OWNER_ID, research_tree["notebook"]["id"])
    members = _members(blob["data"])

    assert list(members) == ["research/papers/paper_a/summary.md"]

    text = members["research/papers/paper_a/summary.md"]
    assert 'title: "Summary"' in text
    assert 'tags: ["ml"]' in text
    assert text.endswith("---\n\n<p>hello</p>")

    parsed = parse_markdown(text)
    assert parsed["frontmatter"]["id"] == research_tree["note"]["id"]
    assert parsed["frontmatter"]["created"] == "2025-01-02T03:04:05+00:00"
    assert tag_names(parsed["frontmatter"]) == ["ml"]
    assert parsed["body"] == "<p>hello</p>"


def test_export_filename_embeds_scope_title_and_date(client, research_tree) -> None:
    blob = build_archive(client, "notebook", OWNER_ID, research_tree["notebook"]["id"])

    assert blob["filename"].startswith("notebook_research_")
    assert blob["filename"].endswith(".zip")
    assert archive_filename("section", "Paper Drafts", datetime(2025, 4, 23)) == (
        "section_paper_drafts_2025-04-23.zip"
    )


def test_section_export_uses_full_paths(client, research_tree) -> None:
    blob = build_archive(client, "section", OWNER_ID, research_tree["section"]["id"])

    assert list(_members(blob["data"])) == ["research/papers/paper_a/summary.md"]
    assert blob["filename"].startswith("section_papers_")


def test_duplicate_paths_keep_the_last_note(client, fake_db, research_tree, caplog) -> None:
    later = fake_db.seed(
        "notes",
        user_id=OWNER_ID,
        item_id=research_tree["item"]["id"],
        title="Summary",
        content="second",
        created_at="2025-06-01T00:00:00+00:00",
    )

    blob = build_archive(client, "notebook", OWNER_ID, research_tree["notebook"]["id"])
    members = _members(blob["data"])

    assert len(members) == 1
    parsed = parse_markdown(members["research/papers/paper_a/summary.md"])
    assert parsed["frontmatter"]["id"] == later["id"]
    assert "Duplicate export path" in caplog.text


def test_empty_notebook_exports_empty_archive(client, fake_db) -> None:
    notebook = fake_db.seed("notebooks", user_id=OWNER_ID, title="Empty", slug="empty")

    blob = build_archive(client, "notebook", OWNER_ID, notebook["id"])

    assert _members(blob["data"]) == {}


def test_unknown_scope_and_missing_rows(client) -> None:
    with pytest.raises(ValueError):
        build_archive(client, "item", OWNER_ID, "x")
    with pytest.raises(NotFoundError):
        build_archive(client, "notebook", OWNER_ID, "missing")
    with pytest.raises(NotFoundError):
        build_archive(client, "section", OWNER_ID, "missing")


def test_write_archive_saves_blob(tmp_path) -> None:
    blob = {"filename": "notebook_x_2025-01-01.zip", "data": b"PK"}
    target = write_archive(blob, tmp_path / "out")

    assert target == tmp_path / "out" / "notebook_x_2025-01-01.zip"
    assert target.read_bytes() == b"PK"
