from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence
import logging

from snippet_bridge.resolver.core import normalize_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextLeaf:
    id: str
    name: str
    bound_variable: Optional[str] = None  # property the leaf's characters are bound to, if any
    characters: str = ""


@dataclass(frozen=True)
class TextTarget:
    leaf: TextLeaf
    reason: str  # single | bound | hint:<hint> | first


def select_text_leaf(leaves: Sequence[TextLeaf], prop: str, hints: Iterable[str] = ()) -> Optional[TextTarget]:
    """Pick the leaf that receives the text value for `prop`.

    Order: the only candidate; a leaf bound to a variable for `prop`; a leaf whose name
    contains a role hint (`prop` itself first); the first leaf. None when there are no leaves.
    """
    if not leaves:
        return None
    if len(leaves) == 1:
        return TextTarget(leaves[0], "single")

    wanted = normalize_name(prop)
    for leaf in leaves:
        if leaf.bound_variable and normalize_name(leaf.bound_variable) == wanted:
            return TextTarget(leaf, "bound")

    ordered: List[str] = []
    for hint in (wanted, *hints):
        h = hint.strip().lower()
        if h and h not in ordered:
            ordered.append(h)
    for hint in ordered:
        for leaf in leaves:
            if hint in leaf.name.lower():
                return TextTarget(leaf, f"hint:{hint}")

    logger.debug(f"No bound or hinted leaf for '{prop}'; using first of {len(leaves)}")
    return TextTarget(leaves[0], "first")
