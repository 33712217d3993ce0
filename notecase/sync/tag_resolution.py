"""
Tag normalization, resolution and note linkage.

Tag names parsed from frontmatter are normalized (trimmed, non-empty,
deduplicated by slug), resolved to the owner's tag rows (created on first
use), and linked to a note so that the note's final tag set is exactly the
parsed set.

Tags are never deleted here, even when nothing references them any more.
"""

import logging
from typing import Dict, List, Sequence

from notecase.errors import StoreError
from notecase.slugs import slugify
from notecase.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Normalize tag names
# ---------------------------------------------------------------------------
def normalize_tag_names(names: Sequence[str]) -> Dict[str, str]:
    """
    Map slug → display name for a list of raw tag names.

    Normalization rules:
        • Ignore None, empty and whitespace-only names
        • Strip surrounding whitespace
        • Deduplicate by slug; the first spelling wins

    Insertion order follows the input order.
    """
    by_slug: Dict[str, str] = {}

    for name in names:
        if not name:
            continue

        normalized = name.strip()
        if not normalized:
            continue

        by_slug.setdefault(slugify(normalized), normalized)

    return by_slug


# ---------------------------------------------------------------------------
# Resolve tag names → tag ids
# ---------------------------------------------------------------------------
def resolve_tags(client: SupabaseClient, owner_id: str, tag_names: Sequence[str]) -> List[str]:
    """
    Upsert the owner's tags for the given names and return their ids.

    An existing tag with the same (owner, slug) is reused; otherwise a new
    tag is created. A store failure on one tag does not stop the others:
    the failing tag is logged and left out of the result.

    Args:
        client:
            The Supabase wrapper.
        owner_id:
            Owner whose tag namespace is used.
        tag_names:
            Raw names from frontmatter.

    Returns:
        Tag ids in the order the names first appeared.
    """
    tag_ids: List[str] = []

    for slug, name in normalize_tag_names(tag_names).items():
        try:
            tag = client.ensure_tag(owner_id, name, slug)
        except StoreError as e:
            logger.warning("Could not resolve tag %r: %s", name, e)
            continue

        tag_id = str(tag["id"])
        if tag_id not in tag_ids:
            tag_ids.append(tag_id)

    return tag_ids


# ---------------------------------------------------------------------------
# Replace a note's tag set
# ---------------------------------------------------------------------------
def replace_note_tags(client: SupabaseClient, note_id: str, tag_ids: Sequence[str]) -> None:
    """
    Make the note's linked tags exactly `tag_ids`.

    Always unlinks everything first and then relinks, so the result is
    never a superset of the requested set.
    """
    client.unlink_all_tags(note_id)
    if tag_ids:
        client.link_tags(note_id, tag_ids)
