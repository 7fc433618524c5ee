from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Tuple

from snippet_bridge.markup.locator import canonical_tag_name


@dataclass(frozen=True)
class KindProfile:
    kind: str
    example: str
    role_hints: Tuple[str, ...] = ()   # text leaf name hints, most specific first
    defaults: Tuple[Tuple[str, str], ...] = ()  # semantic defaults for absent keys
    nested: bool = False  # scan Heading/Text/Action children

    @property
    def tag_name(self) -> str:
        return canonical_tag_name(self.kind)


KINDS: Dict[str, KindProfile] = {
    "container": KindProfile(
        kind="container",
        example='<Container padding="6" borderRadius="xl">\n  <Heading>Card Title</Heading>\n  <Text>Card content</Text>\n</Container>',
        role_hints=("title", "heading"),
        nested=True,
    ),
    "action": KindProfile(
        kind="action",
        example='<Action size="lg" intent="primary" variant="filled">Button Text</Action>',
        role_hints=("label", "text", "button"),
        defaults=(("size", "lg"), ("variant", "filled"), ("intent", "primary"), ("state", "default")),
    ),
    "heading": KindProfile(
        kind="heading",
        example='<Heading size="h_xl">Section title</Heading>',
        role_hints=("title", "heading"),
    ),
    "text": KindProfile(
        kind="text",
        example='<Text size="b_md">Body copy</Text>',
        role_hints=("body", "text", "content"),
    ),
    "avatar": KindProfile(
        kind="avatar",
        example='<Avatar initials="JD" size="lg" imageUrl="https://example.com/jd.png" />',
        role_hints=("initials", "name"),
    ),
}


def get_profile(kind: str) -> KindProfile:
    key = (kind or "").strip().lower()
    if key not in KINDS:
        raise ValueError(f"unknown component kind '{kind}' (expected one of: {', '.join(KINDS)})")
    return KINDS[key]


def kind_for_tag(tag_name: str) -> str:
    for profile in KINDS.values():
        if profile.tag_name == tag_name:
            return profile.kind
    return tag_name.lower()
