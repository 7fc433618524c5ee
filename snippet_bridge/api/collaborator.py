from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence
import logging

from snippet_bridge.resolver.text import TextLeaf
from snippet_bridge.strategy.chain import PropertyRejected

logger = logging.getLogger(__name__)

VARIANT = "VARIANT"
TEXT = "TEXT"
BOOLEAN = "BOOLEAN"
PROPERTY_KINDS = (VARIANT, TEXT, BOOLEAN)

__all__ = [
    "VARIANT", "TEXT", "BOOLEAN", "PROPERTY_KINDS",
    "PropertyRejected", "CollaboratorError", "InstanceTarget", "SchemaTarget",
]


class CollaboratorError(Exception):
    """A collaborator operation failed (image fetch, font load, text write...)."""


class InstanceTarget(Protocol):
    """An instantiated component owned by the host system."""

    def list_available_properties(self) -> Mapping[str, str]: ...

    def apply_properties(self, props: Mapping[str, Any]) -> None: ...

    def list_text_leaves(self) -> Sequence[TextLeaf]: ...

    def set_text(self, leaf: TextLeaf, value: str) -> None: ...

    def apply_image(self, url: str) -> None: ...

    def list_children(self, kind: str) -> Sequence["InstanceTarget"]: ...


class SchemaTarget:
    """In-memory collaborator described by plain data.

    Shape:
        {"properties": {"✏️ label#1:0": "TEXT", "variant": "VARIANT", ...},
         "options": {"variant": ["filled", "outlined"]},   # accepted VARIANT values
         "rejects": [{"variant": "outlined", "intent": "secondary"}],  # refused combinations
         "text_leaves": [{"id": "1:2", "name": "Label", "bound_variable": "label"}],
         "children": {"action": [ {...nested target...} ]},
         "image_error": "404 Not Found"}
    Applied properties, text writes and images are recorded on the instance.
    """

    def __init__(
        self,
        properties: Optional[Mapping[str, str]] = None,
        options: Optional[Mapping[str, Sequence[Any]]] = None,
        rejects: Optional[Sequence[Mapping[str, Any]]] = None,
        text_leaves: Optional[Sequence[TextLeaf]] = None,
        children: Optional[Mapping[str, Sequence["SchemaTarget"]]] = None,
        image_error: Optional[str] = None,
        name: str = "instance",
    ):
        self.name = name
        self.properties: Dict[str, str] = dict(properties or {})
        self.options = {k: list(v) for k, v in (options or {}).items()}
        self.rejects = [dict(r) for r in (rejects or [])]
        self.text_leaves: List[TextLeaf] = list(text_leaves or [])
        self.children = {k: list(v) for k, v in (children or {}).items()}
        self.image_error = image_error
        self.applied: Dict[str, Any] = {}
        self.texts: Dict[str, str] = {}
        self.images: List[str] = []
        self.apply_calls = 0

    @staticmethod
    def from_dict(data: Mapping[str, Any], name: str = "instance") -> "SchemaTarget":
        props = {str(k): str(v).upper() for k, v in (data.get("properties") or {}).items()}
        unknown = {v for v in props.values() if v not in PROPERTY_KINDS}
        if unknown:
            raise ValueError(f"unknown property kinds: {', '.join(sorted(unknown))}")
        leaves = [
            TextLeaf(
                id=str(leaf.get("id", i)),
                name=str(leaf.get("name", "Text")),
                bound_variable=leaf.get("bound_variable"),
                characters=str(leaf.get("characters", "")),
            )
            for i, leaf in enumerate(data.get("text_leaves") or [])
        ]
        children = {
            str(kind): [SchemaTarget.from_dict(c, name=f"{name}/{kind}[{i}]") for i, c in enumerate(items or [])]
            for kind, items in (data.get("children") or {}).items()
        }
        return SchemaTarget(
            properties=props,
            options=data.get("options"),
            rejects=data.get("rejects"),
            text_leaves=leaves,
            children=children,
            image_error=data.get("image_error"),
            name=name,
        )

    def list_available_properties(self) -> Mapping[str, str]:
        return dict(self.properties)

    def apply_properties(self, props: Mapping[str, Any]) -> None:
        self.apply_calls += 1
        for key, value in props.items():
            if key not in self.properties:
                raise PropertyRejected(f"unknown property '{key}'")
            allowed = self.options.get(key)
            if allowed is not None and value not in allowed:
                raise PropertyRejected(f"'{value}' is not a valid option for '{key}'")
        for combo in self.rejects:
            if combo and all(props.get(k) == v for k, v in combo.items()):
                raise PropertyRejected(f"unsupported combination {combo}")
        self.applied.update(props)
        logger.debug(f"{self.name}: applied {dict(props)}")

    def list_text_leaves(self) -> Sequence[TextLeaf]:
        return list(self.text_leaves)

    def set_text(self, leaf: TextLeaf, value: str) -> None:
        if leaf not in self.text_leaves:
            raise CollaboratorError(f"text leaf '{leaf.id}' is not part of {self.name}")
        self.texts[leaf.id] = value

    def apply_image(self, url: str) -> None:
        if self.image_error:
            raise CollaboratorError(f"failed to fetch image: {self.image_error}")
        self.images.append(url)

    def list_children(self, kind: str) -> Sequence["SchemaTarget"]:
        return list(self.children.get(kind, []))

    def snapshot(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "applied": dict(self.applied),
            "texts": dict(self.texts),
            "images": list(self.images),
            "children": {k: [c.snapshot() for c in v] for k, v in self.children.items()},
        }
