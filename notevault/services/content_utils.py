"""Content processing utilities: front-matter tags, tag sanitizing, previews.

Everything here is pure string work on ``str`` (Unicode code points), so
truncation never splits a multi-byte character.
"""

import re
from typing import List

MAX_TAG_LENGTH = 50
"""Tags longer than this after sanitizing are dropped, not truncated."""

PREVIEW_LENGTH = 100
"""Characters kept in list previews before the ellipsis."""

ELLIPSIS = "..."

PREVIEW_SOURCE_LENGTH = 200
"""Leading characters of the trimmed content that a list preview is built from."""

SNIPPET_LEAD = 50
"""Characters shown before a content match in search snippets."""

# Leading block: a line of "---", anything, then a "---" line.
_FRONT_MATTER = re.compile(r"^---\s*\n(.*?)\n---", re.DOTALL)
_TAGS_LINE = re.compile(r"^tags:\s*(.+)$", re.MULTILINE)

_TAG_DISALLOWED = re.compile(r"[^\w\s-]|_")
_WHITESPACE = re.compile(r"\s+")

_CODE_FENCE = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]*`")
_HTML_TAG = re.compile(r"<[^>]*>")
# A tag cut open by the source window.
_PARTIAL_TAG = re.compile(r"<[^>]*\Z")
# Control characters other than \n and \r; line breaks are handled below.
_CONTROL = re.compile(r"[\x00-\x09\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_tag(tag: str) -> str:
    """Keep letters, digits, whitespace and hyphens; collapse spaces; lowercase.

    >>> sanitize_tag("  Project: X!! ")
    'project x'
    """
    tag = _TAG_DISALLOWED.sub("", tag)
    tag = _WHITESPACE.sub(" ", tag)
    return tag.strip(" -").lower()


def is_valid_tag(tag: str) -> bool:
    return bool(tag) and len(tag) <= MAX_TAG_LENGTH


def extract_tags(content: str) -> List[str]:
    """Derive the tag set of a note from its front matter.

    Returns sanitized, deduplicated tags in first-seen order. Content without
    a leading ``---`` block, or a block without a ``tags:`` line, has no tags.
    """
    if not content:
        return []
    front = _FRONT_MATTER.match(content)
    if not front:
        return []
    line = _TAGS_LINE.search(front.group(1))
    if not line:
        return []

    tags: List[str] = []
    for candidate in line.group(1).split(","):
        candidate = candidate.strip()
        if not candidate:
            continue
        tag = sanitize_tag(candidate)
        if is_valid_tag(tag) and tag not in tags:
            tags.append(tag)
    return tags


def truncate(text: str, length: int = PREVIEW_LENGTH) -> str:
    if len(text) <= length:
        return text
    return text[:length] + ELLIPSIS


def clean_preview(content: str) -> str:
    """One-line plain-text preview of markdown content.

    Only the first ``PREVIEW_SOURCE_LENGTH`` characters of the trimmed
    content are looked at. From those it strips fenced and inline code, HTML
    tags and control characters, collapses all whitespace (line breaks
    included) to single spaces, and truncates to ``PREVIEW_LENGTH``
    characters plus an ellipsis.
    """
    text = (content or "").strip()[:PREVIEW_SOURCE_LENGTH]
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CODE_FENCE.sub("", text)
    text = _INLINE_CODE.sub("", text)
    text = text.replace("`", "")
    text = _HTML_TAG.sub("", text)
    text = _PARTIAL_TAG.sub("", text)
    text = _CONTROL.sub("", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return truncate(text)


def search_snippet(content: str, query: str) -> str:
    """Window of ``content`` around the first case-insensitive ``query`` match.

    Falls back to the head of the content when there is no match.
    """
    content = content or ""
    pos = content.lower().find(query.lower())
    if pos < 0:
        return head_snippet(content)

    start = max(0, pos - SNIPPET_LEAD)
    length = len(query) + PREVIEW_LENGTH
    snippet = content[start:start + length]
    if start > 0:
        snippet = ELLIPSIS + snippet
    if start + length < len(content):
        snippet += ELLIPSIS
    return snippet


def head_snippet(content: str) -> str:
    """First ``PREVIEW_LENGTH`` characters, always followed by an ellipsis."""
    return (content or "")[:PREVIEW_LENGTH] + ELLIPSIS
