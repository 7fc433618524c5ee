from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MAPPING_PATH = Path(__file__).with_name("mapping_default.json")


@dataclass(frozen=True)
class MappingTables:
    properties: Mapping[str, str]  # semantic key -> canonical key (many-to-one)
    values: Mapping[str, Mapping[str, str]] = field(default_factory=dict)  # canonical -> raw -> display

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "MappingTables":
        props = {str(k): str(v) for k, v in (data.get("properties") or {}).items()}
        values = {
            str(canonical): MappingProxyType({str(raw): str(shown) for raw, shown in table.items()})
            for canonical, table in (data.get("values") or {}).items()
        }
        return MappingTables(properties=MappingProxyType(props), values=MappingProxyType(values))

    @staticmethod
    def from_json_path(path: str | Path) -> "MappingTables":
        return MappingTables.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))

    def canonical(self, semantic_key: str) -> Optional[str]:
        return self.properties.get(semantic_key)

    def normalize(self, canonical_key: str, raw: Any) -> Any:
        """Display value for `raw` under `canonical_key`, or `raw` unchanged when unmapped.

        Lookup uses the text form of the value (6 -> "6", True -> "true").
        """
        table = self.values.get(canonical_key)
        if not table:
            return raw
        key = ("true" if raw else "false") if isinstance(raw, bool) else str(raw)
        shown = table.get(key)
        if shown is None:
            logger.debug(f"No display value for '{key}' in '{canonical_key}'; passing through")
            return raw
        return shown


def load_tables(path: str | Path | None = None) -> MappingTables:
    return MappingTables.from_json_path(path or DEFAULT_MAPPING_PATH)
