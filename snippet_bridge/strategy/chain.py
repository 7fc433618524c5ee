from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import json
import logging
from pathlib import Path

from snippet_bridge.mapper.engine import DEFAULT_MAPPING_PATH

logger = logging.getLogger(__name__)


class PropertyRejected(Exception):
    """Raised by a collaborator when it refuses a property combination."""


@dataclass(frozen=True)
class Pairing:
    match: Mapping[str, Any]
    replace: Mapping[str, Any]


@dataclass(frozen=True)
class StrategyConfig:
    unsupported_pairings: Tuple[Pairing, ...] = ()
    optional_key: str = "size"
    variant_key: str = "variant"
    variant_substitutes: Mapping[str, str] = field(default_factory=dict)
    forced_variant: str = "filled"
    safe_default: Mapping[str, Any] = field(default_factory=dict)
    enable_fallback: bool = True  # False: only the exact map is attempted

    @staticmethod
    def from_dict(data: Dict[str, Any], enable_fallback: bool = True) -> "StrategyConfig":
        return StrategyConfig(
            unsupported_pairings=tuple(
                Pairing(match=dict(p.get("match", {})), replace=dict(p.get("replace", {})))
                for p in data.get("unsupported_pairings", [])
            ),
            optional_key=data.get("optional_key", "size"),
            variant_key=data.get("variant_key", "variant"),
            variant_substitutes=dict(data.get("variant_substitutes", {})),
            forced_variant=data.get("forced_variant", "filled"),
            safe_default=dict(data.get("safe_default", {})),
            enable_fallback=enable_fallback,
        )

    @staticmethod
    def from_json_path(path: str | Path | None = None, enable_fallback: bool = True) -> "StrategyConfig":
        data = json.loads(Path(path or DEFAULT_MAPPING_PATH).read_text(encoding="utf-8"))
        return StrategyConfig.from_dict(data.get("strategies", {}), enable_fallback=enable_fallback)


@dataclass(frozen=True)
class Attempt:
    index: int
    name: str
    props: Dict[str, Any]
    error: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.error is None


@dataclass
class StrategyOutcome:
    requested: Dict[str, Any]
    index: Optional[int] = None  # 1-based index of the accepted strategy
    accepted: Optional[Dict[str, Any]] = None
    attempts: List[Attempt] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.accepted is not None

    @property
    def rejected_keys(self) -> set:
        """Requested keys whose value did not make it into the accepted map."""
        if self.accepted is None:
            return set(self.requested)
        return {k for k, v in self.requested.items() if self.accepted.get(k, object()) != v}


Variant = Callable[[Dict[str, Any], Dict[str, str], StrategyConfig], Optional[Dict[str, Any]]]


def _exact(props, names, cfg):
    return dict(props)


def _pairing_downgrade(props, names, cfg):
    for pairing in cfg.unsupported_pairings:
        if pairing.match and all(props.get(k) == v for k, v in pairing.match.items()):
            return {**props, **pairing.replace}
    return None


def _drop_optional(props, names, cfg):
    if cfg.optional_key not in props:
        return None
    return {k: v for k, v in props.items() if k != cfg.optional_key}


def _substitute_variant(props, names, cfg):
    current = props.get(cfg.variant_key)
    if current is None or current not in cfg.variant_substitutes:
        return None
    return {**props, cfg.variant_key: cfg.variant_substitutes[current]}


def _force_variant(props, names, cfg):
    if cfg.variant_key not in names:
        return None
    return {**props, cfg.variant_key: cfg.forced_variant}


def _safe_default(props, names, cfg):
    out = {k: v for k, v in cfg.safe_default.items() if k in names}
    return out or None


STRATEGIES: Tuple[Tuple[str, Variant], ...] = (
    ("exact", _exact),
    ("pairing_downgrade", _pairing_downgrade),
    ("drop_optional", _drop_optional),
    ("substitute_variant", _substitute_variant),
    ("force_variant", _force_variant),
    ("safe_default", _safe_default),
)


def select_strategy(
    props: Dict[str, Any],
    names: Dict[str, str],
    apply: Callable[[Dict[str, Any]], None],
    config: Optional[StrategyConfig] = None,
) -> StrategyOutcome:
    """Try property-set variants in a fixed order until the collaborator accepts one.

    `props` is keyed by canonical key; `names` maps canonical keys to live target names and
    `apply` receives the target-named map. A variant that does not apply, or that repeats an
    already attempted map, is skipped without calling `apply`. Only PropertyRejected counts as
    a rejection; anything else propagates.
    """
    cfg = config or StrategyConfig()
    outcome = StrategyOutcome(requested=dict(props))
    if not props:
        return outcome

    strategies = STRATEGIES if cfg.enable_fallback else STRATEGIES[:1]
    tried: List[Dict[str, Any]] = []
    for index, (name, variant) in enumerate(strategies, start=1):
        candidate = variant(dict(props), names, cfg)
        if not candidate or candidate in tried:
            continue
        tried.append(candidate)
        target_map = {names.get(k, k): v for k, v in candidate.items()}
        try:
            apply(target_map)
        except PropertyRejected as e:
            logger.info(f"Strategy {index} ({name}) rejected: {e}")
            outcome.attempts.append(Attempt(index, name, candidate, str(e) or "rejected"))
            continue
        outcome.attempts.append(Attempt(index, name, candidate))
        outcome.index = index
        outcome.accepted = candidate
        logger.info(f"Strategy {index} ({name}) accepted: {candidate}")
        break
    else:
        logger.warning(f"Every strategy was rejected for {props}")
    return outcome
