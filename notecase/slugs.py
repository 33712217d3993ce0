"""
Slug helpers.

A slug is the lowercase title with every whitespace run collapsed to a single
underscore. This mirrors the `*_set_slug` triggers on the Supabase tables, so
slugs computed here always match the ones stored in the database.
"""

import re

_WHITESPACE_RE = re.compile(r"\s+")


def slugify(title: str) -> str:
    """
    Convert a title into its slug.

    Example:
        slugify("Paper A") -> "paper_a"
    """
    return _WHITESPACE_RE.sub("_", title.lower())


def unslugify(slug: str) -> str:
    """Reverse the underscore join. Case is not recovered."""
    return slug.replace("_", " ")
