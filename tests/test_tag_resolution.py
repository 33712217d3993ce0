"""
Tests for tag normalization, resolution and note linkage.
"""

from notecase.sync.tag_resolution import normalize_tag_names, replace_note_tags, resolve_tags
from tests.fixtures.fake_supabase import OWNER_ID


def test_normalize_trims_drops_blanks_and_dedupes_by_slug() -> None:
    assert normalize_tag_names(["ML", " ml ", "", "   ", "Deep  Learning"]) == {
        "ml": "ML",
        "deep_learning": "Deep  Learning",
    }


def test_resolve_tags_creates_then_reuses(client, fake_db) -> None:
    first = resolve_tags(client, OWNER_ID, ["ml", "nlp"])
    second = resolve_tags(client, OWNER_ID, ["NLP", "ml"])

    assert len(first) == 2
    assert second == [first[1], first[0]]
    assert len(fake_db.rows("tags", user_id=OWNER_ID)) == 2


def test_resolve_tags_is_scoped_to_owner(client, fake_db) -> None:
    theirs = fake_db.seed("tags", user_id="someone-else", name="ml", slug="ml")

    [tag_id] = resolve_tags(client, OWNER_ID, ["ml"])

    assert tag_id != theirs["id"]


def test_failing_tag_is_skipped(client, fake_db, caplog) -> None:
    fake_db.fail("tags", "insert", when=lambda row: row["slug"] == "bad")

    tag_ids = resolve_tags(client, OWNER_ID, ["good", "bad", "also good"])

    assert len(tag_ids) == 2
    assert [t["name"] for t in fake_db.rows("tags")] == ["good", "also good"]
    assert "Could not resolve tag 'bad'" in caplog.text


def test_resolve_tags_reuses_concurrently_created_tag(client, fake_db) -> None:
    winner = {}
    fake_db.before_insert["tags"] = lambda db: winner.update(
        db.seed("tags", user_id=OWNER_ID, name="ml", slug="ml")
    )

    assert resolve_tags(client, OWNER_ID, ["ml"]) == [winner["id"]]


def test_replace_note_tags_sets_exact_set(client) -> None:
    client.link_tags("n-1", ["t-1", "t-2"])

    replace_note_tags(client, "n-1", ["t-2", "t-3"])
    assert sorted(client.linked_tag_ids("n-1")) == ["t-2", "t-3"]

    replace_note_tags(client, "n-1", [])
    assert client.linked_tag_ids("n-1") == []
