from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging
import re

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TagMatch:
    tag_name: str
    attrs: str         # raw attribute substring of the opening tag
    inner: str         # raw content between opening and closing tag ("" when self-closing)
    start: int
    end: int           # index just past the closing tag (or the opening tag when self-closing)
    self_closing: bool = False
    closed: bool = True  # False when no </Tag> was found and the rest of the source was taken


def canonical_tag_name(logical: str) -> str:
    """Capitalize the first letter of a logical name ("action" -> "Action")."""
    name = logical.strip()
    return name[:1].upper() + name[1:]


def _open_pattern(tag_name: str) -> "re.Pattern[str]":
    # tag name must end at whitespace, "/" or ">" so Text never matches TextArea
    return re.compile(r"<" + re.escape(tag_name) + r"(?=[\s/>])")


def _close_pattern(tag_name: str) -> "re.Pattern[str]":
    return re.compile(r"</" + re.escape(tag_name) + r"\s*>")


def _scan_opening_tag(source: str, pos: int) -> Tuple[int, int, bool, bool]:
    """Scan attributes starting at `pos` (just after the tag name).

    Quote and brace aware, so `iconL={<Plus />}` or `title="a > b"` never end the tag.
    Returns (attrs_end, tag_end, self_closing, terminated).
    """
    depth = 0
    quote: Optional[str] = None
    i = pos
    n = len(source)
    while i < n:
        ch = source[i]
        if quote:
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(0, depth - 1)
        elif ch == ">" and depth == 0:
            if i > pos and source[i - 1] == "/":
                return i - 1, i + 1, True, True
            return i, i + 1, False, True
        i += 1
    return n, n, True, False


def find_tag(source: str, tag_name: str, start: int = 0) -> Optional[TagMatch]:
    """Return the first `<tag_name ...>...</tag_name>` or `<tag_name ... />` at or after `start`.

    Matching is case-sensitive. The closing tag is the first `</tag_name>` after the opening
    tag (no depth tracking), so same-named tags nested inside each other are not supported.
    """
    m = _open_pattern(tag_name).search(source, start)
    if m is None:
        return None
    attrs_end, tag_end, self_closing, terminated = _scan_opening_tag(source, m.end())
    attrs = source[m.end():attrs_end]
    if not terminated:
        logger.debug(f"Unterminated <{tag_name}> at {m.start()}; using rest of source as attributes")
        return TagMatch(tag_name, attrs, "", m.start(), len(source), self_closing=True, closed=False)
    if self_closing:
        return TagMatch(tag_name, attrs, "", m.start(), tag_end, self_closing=True)

    close = _close_pattern(tag_name).search(source, tag_end)
    if close is None:
        logger.debug(f"No </{tag_name}> after offset {tag_end}; taking rest of source as content")
        return TagMatch(tag_name, attrs, source[tag_end:], m.start(), len(source), closed=False)
    return TagMatch(tag_name, attrs, source[tag_end:close.start()], m.start(), close.end())


def find_all_tags(source: str, tag_name: str) -> List[TagMatch]:
    """Every occurrence of `tag_name` in source order. Empty list when there is none."""
    out: List[TagMatch] = []
    pos = 0
    while pos < len(source):
        match = find_tag(source, tag_name, pos)
        if match is None:
            break
        out.append(match)
        pos = max(match.end, match.start + 1)
    return out
