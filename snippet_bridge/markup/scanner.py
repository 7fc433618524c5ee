from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import logging

from snippet_bridge.markup.attributes import AttributeValue, CONTENT_KEY, clean_text, parse_attributes
from snippet_bridge.markup.kinds import get_profile, kind_for_tag
from snippet_bridge.markup.locator import TagMatch, find_all_tags, find_tag

logger = logging.getLogger(__name__)

# (kind, tag name, repeated) scanned inside a container, in this fixed order
NESTED_KINDS: Tuple[Tuple[str, str, bool], ...] = (
    ("heading", "Heading", False),
    ("text", "Text", True),
    ("action", "Action", True),
)


@dataclass(frozen=True)
class ComponentDescriptor:
    tag_name: str
    kind: str
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)
    inner_text: str = ""
    children: Tuple["ComponentDescriptor", ...] = ()

    def children_of(self, kind: str) -> List["ComponentDescriptor"]:
        return [c for c in self.children if c.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag_name": self.tag_name,
            "kind": self.kind,
            "attributes": {k: v.to_json() for k, v in self.attributes.items()},
            "children": [c.to_dict() for c in self.children],
        }


def build_descriptor(match: TagMatch, kind: Optional[str] = None, nested: bool = False) -> ComponentDescriptor:
    attributes = parse_attributes(match.attrs)
    children: Tuple[ComponentDescriptor, ...] = ()
    if nested:
        children = tuple(scan_children(match.inner))
    else:
        text = clean_text(match.inner)
        if text and CONTENT_KEY not in attributes:
            attributes[CONTENT_KEY] = AttributeValue.string(text)
    return ComponentDescriptor(
        tag_name=match.tag_name,
        kind=kind or kind_for_tag(match.tag_name),
        attributes=attributes,
        inner_text=match.inner,
        children=children,
    )


def scan_children(inner: str) -> List[ComponentDescriptor]:
    """Locate heading, body-text and action children inside a container body.

    Returns descriptors in source order. Only the first heading is taken; body text and
    actions may repeat.
    """
    found: List[Tuple[int, ComponentDescriptor]] = []
    for kind, tag_name, repeated in NESTED_KINDS:
        if repeated:
            matches = find_all_tags(inner, tag_name)
        else:
            first = find_tag(inner, tag_name)
            matches = [first] if first else []
        for m in matches:
            found.append((m.start, build_descriptor(m, kind=kind)))
        if matches:
            logger.debug(f"Found {len(matches)} nested <{tag_name}>")
    found.sort(key=lambda pair: pair[0])
    return [d for _, d in found]


def parse_component(source: str, kind: str) -> Optional[ComponentDescriptor]:
    """Locate the first tag for a logical kind and build its descriptor.

    None when the source has no such tag (a normal outcome, not an error).
    """
    profile = get_profile(kind)
    match = find_tag(source, profile.tag_name)
    if match is None:
        return None
    if not match.closed:
        logger.info(f"<{profile.tag_name}> is not closed; parsed leniently")
    return build_descriptor(match, kind=profile.kind, nested=profile.nested)
