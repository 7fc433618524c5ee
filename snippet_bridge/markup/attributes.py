from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple, Union
import logging
import re

logger = logging.getLogger(__name__)

STRING = "string"
BOOLEAN = "boolean"
NUMBER = "number"
ELEMENT = "element"

# Reserved key for a tag's inner text content
CONTENT_KEY = "children"

# Element-reference keys that only signal an icon slot
ICON_FLAGS: Mapping[str, str] = {
    "iconL": "withLeftIcon",
    "leftIcon": "withLeftIcon",
    "iconLeft": "withLeftIcon",
    "startIcon": "withLeftIcon",
    "iconR": "withRightIcon",
    "rightIcon": "withRightIcon",
    "iconRight": "withRightIcon",
    "endIcon": "withRightIcon",
}


@dataclass(frozen=True)
class AttributeValue:
    kind: str  # string | boolean | number | element
    value: Union[str, bool, int, float]

    @classmethod
    def string(cls, value: str) -> "AttributeValue":
        return cls(STRING, value)

    @classmethod
    def boolean(cls, value: bool) -> "AttributeValue":
        return cls(BOOLEAN, bool(value))

    @classmethod
    def number(cls, value: Union[int, float]) -> "AttributeValue":
        return cls(NUMBER, value)

    @classmethod
    def element(cls, name: str) -> "AttributeValue":
        return cls(ELEMENT, name)

    def as_text(self) -> str:
        if self.kind == BOOLEAN:
            return "true" if self.value else "false"
        return str(self.value)

    def to_json(self) -> Any:
        if self.kind == ELEMENT:
            return {"element": self.value}
        return self.value


@dataclass(frozen=True)
class AttributeToken:
    key: Optional[str]  # None for spreads like {...props}
    value: Optional[AttributeValue]  # None when the expression could not be categorized
    raw: str


_KEY = re.compile(r"[A-Za-z_$][\w$.:-]*")
_UNQUOTED = re.compile(r"[^\s/>]+")
_NUMBER = re.compile(r"-?\d+(?:\.\d+)?\Z")
_ELEMENT = re.compile(r"<\s*([A-Za-z_$][\w$.]*)")
_EMPTY_STRING_MARKER = re.compile(r"\{\s*(['\"`])\s*\1\s*\}")
_WS = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Strip {" "} / {''} interpolation artifacts, collapse whitespace, trim."""
    text = _EMPTY_STRING_MARKER.sub("", text)
    return _WS.sub(" ", text).strip()


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _read_quoted(text: str, i: int) -> Tuple[str, int]:
    quote = text[i]
    end = text.find(quote, i + 1)
    if end < 0:
        return text[i + 1:], len(text)
    return text[i + 1:end], end + 1


def _read_braced(text: str, i: int) -> Tuple[str, int]:
    depth = 0
    quote: Optional[str] = None
    j = i
    while j < len(text):
        ch = text[j]
        if quote:
            if ch == "\\":
                j += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[i + 1:j], j + 1
        j += 1
    return text[i + 1:], len(text)


def _classify_expression(raw: str) -> Optional[AttributeValue]:
    s = raw.strip()
    if s.startswith("<"):
        m = _ELEMENT.match(s)
        return AttributeValue.element(m.group(1)) if m else None
    if s in ("true", "false"):
        return AttributeValue.boolean(s == "true")
    if _NUMBER.match(s):
        return AttributeValue.number(float(s) if "." in s else int(s))
    if len(s) >= 2 and s[0] in "\"'`" and s[-1] == s[0]:
        return AttributeValue.string(s[1:-1])
    return None


def tokenize_attributes(text: str) -> Iterator[AttributeToken]:
    """Single left-to-right pass over an attribute substring.

    Each attribute is categorized exactly once by its syntax:
    quoted value -> string, {<Name />} -> element, bare key or {true|false} -> boolean,
    {123} -> number. Other brace expressions yield a token with value None.
    """
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isspace() or ch == "/":
            i += 1
            continue
        if ch == "{":
            raw, i = _read_braced(text, i)
            yield AttributeToken(None, None, raw)
            continue
        m = _KEY.match(text, i)
        if m is None:
            i += 1
            continue
        key = m.group(0)
        j = _skip_ws(text, m.end())
        if j >= n or text[j] != "=":
            i = m.end()
            yield AttributeToken(key, AttributeValue.boolean(True), key)
            continue
        j = _skip_ws(text, j + 1)
        if j >= n:
            i = j
            yield AttributeToken(key, None, "")
        elif text[j] in "\"'":
            raw, i = _read_quoted(text, j)
            yield AttributeToken(key, AttributeValue.string(raw), raw)
        elif text[j] == "{":
            raw, i = _read_braced(text, j)
            yield AttributeToken(key, _classify_expression(raw), raw)
        else:
            um = _UNQUOTED.match(text, j)
            raw = um.group(0) if um else ""
            i = um.end() if um else j + 1
            yield AttributeToken(key, AttributeValue.string(raw), raw)


def parse_attributes(text: str, icon_flags: Mapping[str, str] = ICON_FLAGS) -> Dict[str, AttributeValue]:
    """Parse an attribute substring into an ordered key -> AttributeValue map.

    The first occurrence of a key wins. Icon element references are stored as boolean
    flags (iconL={<Plus />} -> withLeftIcon=True).
    """
    values: Dict[str, AttributeValue] = {}
    for tok in tokenize_attributes(text):
        if tok.key is None or tok.value is None:
            logger.debug(f"Skipping uncategorized attribute expression: {tok.key}={{{tok.raw}}}")
            continue
        key, value = tok.key, tok.value
        if value.kind == ELEMENT and key in icon_flags:
            key, value = icon_flags[key], AttributeValue.boolean(True)
        if key in values:
            logger.debug(f"Ignoring repeated attribute '{key}'")
            continue
        values[key] = value
    return values
