"""
Frontmatter codec for exported notes.

Converts a note into Markdown text with a `---`-delimited frontmatter block,
and parses such text back into (frontmatter, body).

The parser has to cope with files that were edited by hand after export:

    • a leading byte-order mark
    • Windows line endings around the delimiters
    • tag lists written as `tags: ["a", "b"]`, `tags: [a, b]`, `tags: a, b`
      or as a YAML block list
    • blocks that YAML itself rejects (e.g. `title: Notes: part 2`)
    • an opening `---` with no closing delimiter

None of these raise. A file whose frontmatter cannot be found is returned as
body text with empty frontmatter; the caller decides what to do with it.

The block is loaded with the YAML handler shipped by python-frontmatter,
using PyYAML's BaseLoader so unquoted titles such as `No` or `010` come back
exactly as written.

The serializer writes the block itself so that the layout stays fixed
(`tags: ["a", "b"]` on one line, one blank line before the body) and the body
round-trips byte for byte.
"""

from datetime import datetime, timezone
import json
import re
from typing import Any, Dict, List, Mapping, Optional

from frontmatter.default_handlers import YAMLHandler
import yaml

from notecase.types import FrontmatterValue, ParsedMarkdown

BOM = "\ufeff"

# Opening delimiter on the first line, closing delimiter on a line of its own.
# The block group keeps its trailing newline; the match consumes the line
# break after the closing delimiter when there is one.
_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<block>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

_YAML = YAMLHandler()

# A top-level `key: value` line whose unquoted value contains " #".
_COMMENTED_LINE_RE = re.compile(
    r"^(?P<key>[^\s:#-][^:\n]*?)[ \t]*:(?![ \t]*[\"'])[^\n]*?[ \t]#", re.MULTILINE
)


# ============================================================================
# 1 — SERIALIZE
# ============================================================================


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _quote(value: Any) -> str:
    # JSON string syntax is a valid YAML double-quoted scalar.
    return json.dumps(str(value), ensure_ascii=False)


def serialize_note(
    note: Mapping[str, Any],
    notebook_title: Optional[str] = None,
    section_title: Optional[str] = None,
    item_title: Optional[str] = None,
) -> str:
    """
    Render a note as Markdown with a frontmatter block.

    Parameters
    ----------
    note : Mapping
        A NoteNode-shaped mapping: id, title, content, created_at,
        updated_at and tags (a list of {"id", "name"} or plain names).
    notebook_title, section_title, item_title : str | None
        Optional placement hints written after the core keys. Import uses
        them to restore the original casing of ancestor titles.

    Returns
    -------
    str
        The frontmatter block, one blank line, then the raw note content.
    """
    names = [
        tag["name"] if isinstance(tag, Mapping) else str(tag) for tag in note.get("tags") or []
    ]

    lines = [
        "---",
        f"id: {_quote(note['id'])}",
        f"title: {_quote(note.get('title', ''))}",
        f"created: {_quote(note.get('created_at') or _now_iso())}",
        f"updated: {_quote(note.get('updated_at') or _now_iso())}",
    ]

    # The tags line is omitted entirely for an empty tag set.
    if names:
        lines.append("tags: [" + ", ".join(_quote(name) for name in names) + "]")

    hints = (("notebook", notebook_title), ("section", section_title), ("item", item_title))
    for key, title in hints:
        if title is not None:
            lines.append(f"{key}: {_quote(title)}")

    lines.append("---")
    lines.append("")

    return "\n".join(lines) + "\n" + (note.get("content") or "")


# ============================================================================
# 2 — PARSE
# ============================================================================


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _normalize_value(value: Any) -> FrontmatterValue:
    """Coerce a YAML value into str or list[str]."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return [str(_normalize_value(v)) for v in value]
    if isinstance(value, dict):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def _load_lines(block: str) -> Dict[str, FrontmatterValue]:
    """
    Line-based `key: value` reader used when YAML rejects the block.

    Splits each line on its first colon. Lines without a colon, and
    continuation lines, are ignored.
    """
    result: Dict[str, FrontmatterValue] = {}
    for line in block.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key or key.startswith(("#", "-")):
            continue
        result[key] = _unquote(value)
    return result


def _load_block(block: str) -> Dict[str, FrontmatterValue]:
    # BaseLoader keeps every scalar a string: "No", "010" and "null" stay as written.
    try:
        loaded = _YAML.load(block, Loader=yaml.BaseLoader)
    except yaml.YAMLError:
        return _load_lines(block)

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        return _load_lines(block)

    result = {str(key): _normalize_value(value) for key, value in loaded.items()}

    # YAML drops " #..." from unquoted values as a comment; titles like
    # "Notes #2" are read back from the raw line instead.
    commented = {m.group("key") for m in _COMMENTED_LINE_RE.finditer(block)}
    if commented:
        for key, value in _load_lines(block).items():
            if key in commented and not isinstance(result.get(key), list):
                result[key] = value

    return result


def parse_markdown(text: str) -> ParsedMarkdown:
    """
    Split Markdown text into frontmatter and body.

    Returns
    -------
    ParsedMarkdown
        `frontmatter` maps every key found in the block to a str or a
        list[str]; unknown keys are preserved. `body` is everything after
        the block, minus the single blank separator line.

    A missing block, or an opening `---` with no closing delimiter, yields
    empty frontmatter and the whole input (without BOM) as body.
    """
    if text.startswith(BOM):
        text = text[len(BOM):]

    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {"frontmatter": {}, "body": text}

    frontmatter = _load_block(match.group("block"))

    body = text[match.end():]
    if body.startswith("\r\n"):
        body = body[2:]
    elif body.startswith("\n"):
        body = body[1:]

    return {"frontmatter": frontmatter, "body": body}


# ============================================================================
# 3 — FRONTMATTER FIELD HELPERS
# ============================================================================


def tag_names(frontmatter: Mapping[str, FrontmatterValue]) -> List[str]:
    """
    Extract tag names from parsed frontmatter.

    Accepts a list (YAML list or inline array) or a scalar. A scalar may
    still look like an array when it came through the line-based reader,
    e.g. '["a", "b"]'. Each tag is trimmed and unquoted; blanks are dropped.
    """
    raw = frontmatter.get("tags")
    if not raw:
        return []

    if isinstance(raw, list):
        candidates = [str(v) for v in raw]
    else:
        text = str(raw).strip()
        if text.startswith("[") and text.endswith("]"):
            text = text[1:-1]
        candidates = text.split(",")

    names: List[str] = []
    for candidate in candidates:
        name = _unquote(candidate).strip()
        if name:
            names.append(name)
    return names


def field(frontmatter: Mapping[str, FrontmatterValue], key: str) -> Optional[str]:
    """Return a scalar frontmatter field as a stripped string, or None if blank."""
    value = frontmatter.get(key)
    if value is None or isinstance(value, list):
        return None
    value = str(value).strip()
    return value or None
