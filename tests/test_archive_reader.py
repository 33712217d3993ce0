"""
Tests for ZIP import (notecase.sync.archive_reader).

The round-trip scenario exports the seeded Research notebook, imports the
archive into a fresh store and checks that the hierarchy, content and tags
survive. The remaining tests cover per-file isolation, fallback routing,
skipped members, cancellation and unreadable archives.
"""

import threading

import pytest

from notecase.errors import ArchiveError
from notecase.supabase_client import SupabaseClient
from notecase.sync.archive_reader import import_archive
from notecase.sync.archive_writer import build_archive
from tests.fixtures.fake_supabase import OWNER_ID, FakeSupabase


def _md(title: str, body: str = "body", extra: str = "") -> str:
    return f'---\ntitle: "{title}"\n{extra}---\n\n{body}'


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


def test_export_then_import_into_fresh_store(client, research_tree) -> None:
    blob = build_archive(client, "notebook", OWNER_ID, research_tree["notebook"]["id"])

    target_db = FakeSupabase()
    target = SupabaseClient(target_db)
    summary = import_archive(target, OWNER_ID, blob["data"])

    assert summary["added"] == 1
    assert summary["updated"] == 0
    assert summary["errors"] == []

    [notebook] = target_db.rows("notebooks")
    [section] = target_db.rows("sections")
    [item] = target_db.rows("items")
    [note] = target_db.rows("notes")
    assert (notebook["title"], section["title"], item["title"]) == ("Research", "Papers", "Paper A")
    assert note["id"] == research_tree["note"]["id"]
    assert note["item_id"] == item["id"]
    assert note["content"] == "<p>hello</p>"

    [tag] = target_db.rows("tags")
    assert tag["name"] == "ml"
    assert target.linked_tag_ids(note["id"]) == [tag["id"]]


def test_reimport_into_same_store_is_unchanged(client, fake_db, research_tree) -> None:
    blob = build_archive(client, "notebook", OWNER_ID, research_tree["notebook"]["id"])

    summary = import_archive(client, OWNER_ID, blob["data"])

    assert (summary["added"], summary["updated"], summary["unchanged"]) == (0, 0, 1)
    assert len(fake_db.rows("notes")) == 1
    assert len(fake_db.rows("tags")) == 1


def test_edited_file_updates_existing_note(client, fake_db, research_tree, make_zip) -> None:
    note_id = research_tree["note"]["id"]
    data = make_zip(
        {
            "research/papers/paper_a/summary.md": _md(
                "Summary", "<p>edited</p>", f'id: "{note_id}"\n'
            )
        }
    )

    summary = import_archive(client, OWNER_ID, data)

    assert summary["updated"] == 1
    [note] = fake_db.rows("notes")
    assert note["content"] == "<p>edited</p>"
    assert client.linked_tag_ids(note_id) == []


# ---------------------------------------------------------------------------
# Per-file isolation
# ---------------------------------------------------------------------------


def test_file_without_title_does_not_stop_the_import(client, fake_db, make_zip) -> None:
    data = make_zip(
        {
            "nb/sec/item/a.md": _md("A"),
            "nb/sec/item/broken.md": "no frontmatter here",
            "nb/sec/item/c.md": _md("C"),
        }
    )

    summary = import_archive(client, OWNER_ID, data)

    assert summary["added"] == 2
    assert len(summary["errors"]) == 1
    assert summary["errors"][0]["path"] == "nb/sec/item/broken.md"
    assert "Missing title" in summary["errors"][0]["message"]
    assert len(fake_db.rows("notes")) == 2


def test_untitled_file_creates_no_tags(client, fake_db, make_zip) -> None:
    data = make_zip({"a/b/c/x.md": "---\nid: n1\ntags: [orphan]\n---\n\nbody"})

    summary = import_archive(client, OWNER_ID, data)

    assert len(summary["errors"]) == 1
    assert "Missing title" in summary["errors"][0]["message"]
    assert fake_db.rows("tags") == []
    assert fake_db.rows("notebooks") == []


def test_store_failure_is_recorded_per_file(client, fake_db, make_zip) -> None:
    fake_db.fail("notes", "insert", when=lambda row: row["title"] == "B")
    data = make_zip({"nb/sec/item/a.md": _md("A"), "nb/sec/item/b.md": _md("B")})

    summary = import_archive(client, OWNER_ID, data)

    assert summary["added"] == 1
    assert [e["path"] for e in summary["errors"]] == ["nb/sec/item/b.md"]


def test_tag_link_failure_counts_note_and_reports_error(client, fake_db, make_zip) -> None:
    fake_db.fail("note_tags", "upsert")
    data = make_zip({"nb/sec/item/a.md": _md("A", extra='tags: ["x"]\n')})

    summary = import_archive(client, OWNER_ID, data)

    assert summary["added"] == 1
    assert "Tag linkage failed" in summary["errors"][0]["message"]


def test_invalid_utf8_is_recorded(client, make_zip) -> None:
    data = make_zip({"nb/sec/item/a.md": b"\xff\xfe\x00bad", "nb/sec/item/b.md": _md("B")})

    summary = import_archive(client, OWNER_ID, data)

    assert summary["added"] == 1
    assert "UTF-8" in summary["errors"][0]["message"]


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


def test_files_in_same_item_share_ancestors(client, fake_db, make_zip) -> None:
    data = make_zip(
        {
            "research/papers/paper_a/one.md": _md("One"),
            "research/papers/paper_a/two.md": _md("Two"),
            "research/papers/paper_b/three.md": _md("Three"),
        }
    )

    import_archive(client, OWNER_ID, data)

    assert len(fake_db.rows("notebooks")) == 1
    assert len(fake_db.rows("sections")) == 1
    assert sorted((i["title"], i["position"]) for i in fake_db.rows("items")) == [
        ("paper a", 0),
        ("paper b", 1),
    ]


def test_shallow_paths_use_fallback_hierarchy(client, fake_db, make_zip) -> None:
    summary = import_archive(client, OWNER_ID, make_zip({"note.md": _md("Loose")}))

    assert summary["added"] == 1
    assert fake_db.rows("notebooks")[0]["title"] == "Imported"
    assert fake_db.rows("sections")[0]["title"] == "Imported Notes"
    assert fake_db.rows("items")[0]["title"] == "Imported Items"


def test_non_markdown_members_are_skipped(client, fake_db, make_zip) -> None:
    data = make_zip(
        {
            "nb/sec/item/a.md": _md("A"),
            "nb/sec/item/image.png": b"\x89PNG",
            "__MACOSX/nb/sec/item/._a.md": b"\x00\x05",
            "nb/empty/": "",
        }
    )

    summary = import_archive(client, OWNER_ID, data)

    assert summary["added"] == 1
    assert summary["skipped"] == 2
    assert summary["errors"] == []


# ---------------------------------------------------------------------------
# Whole-archive behavior
# ---------------------------------------------------------------------------


def test_corrupt_archive_raises_before_any_write(client, fake_db) -> None:
    with pytest.raises(ArchiveError):
        import_archive(client, OWNER_ID, b"this is not a zip file")

    assert fake_db.calls == []


def test_cancelled_import_stops_before_next_file(client, fake_db, make_zip) -> None:
    cancel = threading.Event()
    cancel.set()

    data = make_zip({"nb/sec/item/a.md": _md("A")})
    summary = import_archive(client, OWNER_ID, data, cancel=cancel)

    assert summary["cancelled"] is True
    assert summary["added"] == 0
    assert fake_db.rows("notes") == []
