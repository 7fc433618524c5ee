from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union
import logging

from snippet_bridge.api.collaborator import BOOLEAN, TEXT, CollaboratorError, InstanceTarget
from snippet_bridge.config.env import BridgeConfig
from snippet_bridge.mapper.engine import MappingTables, load_tables
from snippet_bridge.markup.attributes import BOOLEAN as BOOLEAN_VALUE, CONTENT_KEY, AttributeValue
from snippet_bridge.markup.kinds import get_profile
from snippet_bridge.markup.scanner import ComponentDescriptor, NESTED_KINDS, parse_component
from snippet_bridge.resolver.core import PropertyNameResolver
from snippet_bridge.resolver.text import select_text_leaf
from snippet_bridge.strategy.chain import Attempt, StrategyConfig, select_strategy

logger = logging.getLogger(__name__)

IMAGE_KEY = "imageUrl"

# Issue codes
UNMAPPED_KEY = "unmapped_key"
UNRESOLVED_NAME = "unresolved_name"
REJECTED_COMBINATION = "rejected_combination"
MISSING_TEXT_LEAF = "missing_text_leaf"
COLLABORATOR_FAILURE = "collaborator_failure"
CONFLICTING_TEXT = "conflicting_text"


@dataclass(frozen=True)
class Issue:
    code: str
    key: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "key": self.key, "message": self.message}


@dataclass(frozen=True)
class ParseMiss:
    kind: str
    tag_name: str
    example: str

    @property
    def message(self) -> str:
        return (
            f"No {self.tag_name} component found in the pasted code.\n\n"
            f"Make sure your code includes something like:\n{self.example}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "tag_name": self.tag_name, "example": self.example, "message": self.message}


@dataclass(frozen=True)
class InstantiationRequest:
    semantic_props: Dict[str, AttributeValue]
    component_kind: str
    raw_source: str
    descriptor: Optional[ComponentDescriptor] = None

    def to_message(self) -> Dict[str, Any]:
        return {
            "semanticProps": {k: v.to_json() for k, v in self.semantic_props.items()},
            "componentKind": self.component_kind,
            "rawSource": self.raw_source,
        }


@dataclass
class ApplicationResult:
    kind: str
    applied_canonical_keys: Set[str] = field(default_factory=set)
    strategy_index_used: Optional[int] = None
    rejected_keys: Set[str] = field(default_factory=set)
    text_assignments: Dict[str, str] = field(default_factory=dict)
    issues: List[Issue] = field(default_factory=list)
    attempts: List[Attempt] = field(default_factory=list)
    children: List["ApplicationResult"] = field(default_factory=list)

    def issue(self, code: str, key: Optional[str], message: str) -> None:
        logger.warning(f"[{self.kind}] {code}: {message}")
        self.issues.append(Issue(code, key, message))

    def all_issues(self) -> List[Issue]:
        out = list(self.issues)
        for child in self.children:
            out.extend(child.all_issues())
        return out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "applied_canonical_keys": sorted(self.applied_canonical_keys),
            "strategy_index_used": self.strategy_index_used,
            "rejected_keys": sorted(self.rejected_keys),
            "text_assignments": dict(self.text_assignments),
            "issues": [i.to_dict() for i in self.issues],
            "attempts": [
                {"index": a.index, "name": a.name, "props": a.props, "error": a.error} for a in self.attempts
            ],
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class PropertyPlan:
    props: Dict[str, Any] = field(default_factory=dict)   # canonical -> value for non-text targets
    names: Dict[str, str] = field(default_factory=dict)   # canonical -> live target name
    texts: Dict[str, str] = field(default_factory=dict)   # property being set -> text value
    image_url: Optional[str] = None
    issues: List[Issue] = field(default_factory=list)

    def add_text(self, prop: str, value: str, key: str) -> None:
        # first value per text property wins
        if prop in self.texts:
            if self.texts[prop] != value:
                self.issues.append(Issue(
                    CONFLICTING_TEXT, key, f"'{key}' also targets '{prop}'; kept '{self.texts[prop]}', dropped '{value}'"
                ))
            return
        self.texts[prop] = value


def build_request(source: str, kind: str, kind_defaults: bool = True) -> Union[InstantiationRequest, ParseMiss]:
    """Parse pasted markup for one logical kind into the outbound instantiation request.

    Returns ParseMiss (with an example snippet for the kind) when no such tag exists.
    Raises ValueError for an unknown kind.
    """
    profile = get_profile(kind)
    descriptor = parse_component(source or "", profile.kind)
    if descriptor is None:
        logger.info(f"No <{profile.tag_name}> in pasted source ({len(source or '')} chars)")
        return ParseMiss(profile.kind, profile.tag_name, profile.example)
    return request_from_descriptor(descriptor, source, kind_defaults=kind_defaults)


def request_from_descriptor(
    descriptor: ComponentDescriptor, source: str, kind_defaults: bool = True
) -> InstantiationRequest:
    props = dict(descriptor.attributes)
    if kind_defaults:
        for key, value in get_profile(descriptor.kind).defaults:
            props.setdefault(key, AttributeValue.string(value))
    return InstantiationRequest(props, descriptor.kind, source, descriptor)


def _coerce_boolean(value: AttributeValue) -> bool:
    if value.kind == BOOLEAN_VALUE:
        return bool(value.value)
    if isinstance(value.value, str):
        return value.value.strip().lower() not in ("false", "0", "no", "off", "")
    return bool(value.value)


def plan_properties(
    semantic_props: Dict[str, AttributeValue],
    schema: Dict[str, str],
    resolver: PropertyNameResolver,
    tables: MappingTables,
    content_prop: str = "label",
) -> PropertyPlan:
    """Route each semantic attribute to a property assignment, a text value or the image.

    VARIANT targets get normalized display values, TEXT targets the raw text, BOOLEAN
    targets a bool. The content key goes to `content_prop` unless it resolves to a live
    TEXT property itself.
    """
    plan = PropertyPlan()
    available = list(schema)
    for key, value in semantic_props.items():
        if key == IMAGE_KEY:
            plan.image_url = value.as_text()
            continue

        res = resolver.resolve_name(key, available)
        if key == CONTENT_KEY and (not res.ok or schema.get(res.target) == TEXT):
            plan.add_text(res.canonical if res.ok else content_prop, value.as_text(), key)
            continue
        if res.reason == "unmapped":
            plan.issues.append(Issue(UNMAPPED_KEY, key, f"No mapping found for prop key '{key}'"))
            continue
        if not res.ok:
            plan.issues.append(
                Issue(UNRESOLVED_NAME, key, f"Property '{res.canonical}' not found in available properties")
            )
            continue

        canonical, target = res.canonical, res.target
        target_kind = schema[target]
        if target_kind == TEXT:
            plan.add_text(canonical, value.as_text(), key)
        elif target_kind == BOOLEAN:
            plan.props[canonical] = _coerce_boolean(value)
            plan.names[canonical] = target
        else:
            raw = value.value if value.kind != BOOLEAN_VALUE else value.as_text()
            plan.props[canonical] = tables.normalize(canonical, raw)
            plan.names[canonical] = target
        logger.debug(f"'{key}' -> '{target}' ({res.reason}, {target_kind})")
    return plan


def instantiate(
    request: InstantiationRequest,
    target: InstanceTarget,
    tables: Optional[MappingTables] = None,
    strategy: Optional[StrategyConfig] = None,
    config: Optional[BridgeConfig] = None,
) -> ApplicationResult:
    """Apply a request to one collaborator instance, best effort.

    Partial failures are recorded as issues on the result; already applied mutations are
    never undone. Only unexpected internal faults raise.
    """
    config = config or BridgeConfig()
    tables = tables or load_tables(config.mapping_path)
    strategy = strategy or StrategyConfig.from_json_path(config.mapping_path, enable_fallback=config.enable_fallback)
    profile = get_profile(request.component_kind)
    result = ApplicationResult(kind=profile.kind)

    try:
        schema = dict(target.list_available_properties())
    except CollaboratorError as e:
        result.issue(COLLABORATOR_FAILURE, None, f"Could not list properties: {e}")
        schema = {}
    plan = plan_properties(
        request.semantic_props,
        schema,
        PropertyNameResolver(tables),
        tables,
        content_prop=profile.role_hints[0] if profile.role_hints else "label",
    )
    for issue in plan.issues:
        result.issue(issue.code, issue.key, issue.message)

    try:
        outcome = select_strategy(plan.props, plan.names, target.apply_properties, strategy)
    except CollaboratorError as e:
        result.issue(COLLABORATOR_FAILURE, None, f"Applying properties failed: {e}")
        result.rejected_keys = set(plan.props)
        outcome = None
    if outcome is not None:
        result.attempts = list(outcome.attempts)
        result.strategy_index_used = outcome.index
        if outcome.accepted is not None:
            result.applied_canonical_keys = set(outcome.accepted)
    if outcome is not None and plan.props:
        result.rejected_keys = outcome.rejected_keys
        if not outcome.succeeded:
            last = outcome.attempts[-1].error if outcome.attempts else "rejected"
            result.issue(
                REJECTED_COMBINATION,
                None,
                f"Some properties could not be set: {last}",
            )

    _write_texts(plan.texts, target, profile.role_hints, result)

    if plan.image_url:
        try:
            target.apply_image(plan.image_url)
            result.applied_canonical_keys.add(IMAGE_KEY)
        except CollaboratorError as e:
            result.issue(COLLABORATOR_FAILURE, IMAGE_KEY, f"Failed to load image: {e}")

    if profile.nested and config.nested_content:
        descriptor = request.descriptor or parse_component(request.raw_source, profile.kind)
        if descriptor is not None:
            _instantiate_children(descriptor, request.raw_source, target, tables, strategy, config, result)
    return result


def _write_texts(texts: Dict[str, str], target: InstanceTarget, hints, result: ApplicationResult) -> None:
    for prop, value in texts.items():
        try:
            leaves = target.list_text_leaves()
        except CollaboratorError as e:
            result.issue(COLLABORATOR_FAILURE, prop, f"Could not list text nodes for '{prop}': {e}")
            continue
        chosen = select_text_leaf(leaves, prop, hints)
        if chosen is None:
            result.issue(MISSING_TEXT_LEAF, prop, f"No text nodes found for '{prop}'")
            continue
        try:
            target.set_text(chosen.leaf, value)
        except CollaboratorError as e:
            result.issue(COLLABORATOR_FAILURE, prop, f"Error updating '{prop}': {e}")
            continue
        result.text_assignments[chosen.leaf.id] = value
        logger.debug(f"Text '{prop}' -> leaf {chosen.leaf.name} ({chosen.reason})")


def _instantiate_children(
    descriptor: ComponentDescriptor,
    source: str,
    target: InstanceTarget,
    tables: MappingTables,
    strategy: StrategyConfig,
    config: BridgeConfig,
    result: ApplicationResult,
) -> None:
    for kind, tag_name, _ in NESTED_KINDS:
        occurrences = descriptor.children_of(kind)
        if not occurrences:
            continue
        try:
            slots = list(target.list_children(kind))
        except CollaboratorError as e:
            result.issue(COLLABORATOR_FAILURE, kind, f"Could not list {tag_name} slots: {e}")
            continue
        if len(occurrences) > len(slots):
            logger.debug(f"{len(occurrences) - len(slots)} extra <{tag_name}> ignored ({len(slots)} slots)")
        for child, slot in zip(occurrences, slots):
            child_request = request_from_descriptor(child, source, kind_defaults=config.kind_defaults)
            result.children.append(instantiate(child_request, slot, tables, strategy, config))
