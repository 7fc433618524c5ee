from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional
import logging
import re

from snippet_bridge.mapper.engine import MappingTables

logger = logging.getLogger(__name__)

_LEADING_DECORATION = re.compile(r"^[^\w]+")


def normalize_name(name: str) -> str:
    """Base form of a live property name: "✏️ initials#262:0" -> "initials"."""
    base = _LEADING_DECORATION.sub("", name)
    return base.split("#", 1)[0].strip().lower()


def match_target_name(canonical: str, available: Iterable[str]) -> Optional[tuple[str, str]]:
    """Find `canonical` among live names. Returns (name, reason) or None.

    Exact membership first, then the first name whose normalized form equals the
    lower-cased canonical name.
    """
    names = list(available)
    if canonical in names:
        return canonical, "exact"
    wanted = canonical.strip().lower()
    for name in names:
        if normalize_name(name) == wanted:
            return name, "normalized"
    return None


@dataclass(frozen=True)
class NameResolution:
    semantic_key: str
    canonical: Optional[str]
    target: Optional[str]
    reason: str  # exact | normalized | unmapped | unresolved

    @property
    def ok(self) -> bool:
        return self.target is not None


class PropertyNameResolver:
    def __init__(self, tables: MappingTables):
        self.tables = tables

    def resolve_name(self, semantic_key: str, available: Iterable[str]) -> NameResolution:
        canonical = self.tables.canonical(semantic_key)
        if canonical is None:
            logger.debug(f"No mapping for semantic key '{semantic_key}'")
            return NameResolution(semantic_key, None, None, "unmapped")
        hit = match_target_name(canonical, available)
        if hit is None:
            logger.debug(f"Canonical '{canonical}' not among live properties")
            return NameResolution(semantic_key, canonical, None, "unresolved")
        target, reason = hit
        return NameResolution(semantic_key, canonical, target, reason)

    def resolve(self, semantic_key: str, available: Iterable[str]) -> Optional[str]:
        return self.resolve_name(semantic_key, available).target
