"""
tcu-client — field rule registry

File: src/tcu_client/validation/rules.py
Last updated: 2026-10-18

Purpose
- Immutable lookup from wire field name to its syntactic rule.

What should be included in this file
- Registry type with O(1) ``rule_for`` lookups.
- YAML catalog parsing with strict structural checks and alias expansion.
- Loader for the bundled ``field_rules.yaml``.

Functional requirements
- Catalog defects (unknown keys, bad patterns, dangling list item references,
  duplicate names) fail at load time with a located message.

Non-functional requirements
- The registry is read-only after construction and safe to share across threads.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from types import MappingProxyType
from typing import Final, cast

import yaml

from tcu_client.catalog import FIELD_RULES_RESOURCE, read_bundled
from tcu_client.domain.models import FieldRule, FieldRuleKind
from tcu_client.errors import CatalogError

_REQUIRED_RULE_KEYS: Final[frozenset[str]] = frozenset({"name", "kind"})
_OPTIONAL_RULE_KEYS: Final[frozenset[str]] = frozenset(
    {
        "aliases",
        "allowed",
        "description",
        "items",
        "max_length",
        "maximum",
        "minimum",
        "pattern",
        "separator",
    }
)
_ALLOWED_RULE_KEYS: Final[frozenset[str]] = _REQUIRED_RULE_KEYS | _OPTIONAL_RULE_KEYS


class FieldRuleRegistry:
    """Read-only field name -> FieldRule table."""

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[FieldRule]) -> None:
        table: dict[str, FieldRule] = {}
        for rule in rules:
            if not isinstance(rule, FieldRule):
                raise TypeError(f"expected FieldRule, got {type(rule).__name__}")
            if rule.name in table:
                raise CatalogError(f"duplicate field rule: {rule.name}")
            table[rule.name] = rule
        self._rules: Mapping[str, FieldRule] = MappingProxyType(table)

    def rule_for(self, name: str) -> FieldRule | None:
        return self._rules.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._rules))

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[FieldRule]:
        return iter(self._rules.values())

    @classmethod
    def from_document(cls, document: object, *, source: str = "<memory>") -> FieldRuleRegistry:
        """Build a registry from a parsed ``{"rules": [...]}`` document."""

        return cls(_parse_document(document, source=source))

    @classmethod
    def from_yaml_text(cls, text: str, *, source: str = "<memory>") -> FieldRuleRegistry:
        return cls.from_document(_safe_load(text, source=source), source=source)

    @classmethod
    def from_path(cls, path: str | Path) -> FieldRuleRegistry:
        resolved = Path(path)
        try:
            text = resolved.read_text(encoding="utf-8")
        except OSError as exc:
            raise CatalogError(f"unable to read field rules {resolved}: {exc}") from exc
        return cls.from_yaml_text(text, source=str(resolved))


def load_field_rules(path: str | Path | None = None) -> FieldRuleRegistry:
    """Load the bundled field rules, or a replacement catalog from ``path``."""

    if path is not None:
        return FieldRuleRegistry.from_path(path)
    return FieldRuleRegistry.from_yaml_text(
        read_bundled(FIELD_RULES_RESOURCE), source=FIELD_RULES_RESOURCE
    )


def _safe_load(text: str, *, source: str) -> object:
    try:
        return cast("object", yaml.safe_load(text))
    except yaml.YAMLError as exc:
        raise CatalogError(f"{source}: invalid YAML ({exc})") from exc


def _parse_document(document: object, *, source: str) -> list[FieldRule]:
    if not isinstance(document, Mapping) or "rules" not in document:
        raise CatalogError(f"{source}: expected a mapping with a 'rules' sequence")
    entries = document["rules"]
    if not isinstance(entries, list):
        raise CatalogError(f"{source}.rules: expected a sequence")

    parsed: list[tuple[str, Mapping[str, object]]] = []
    for index, entry in enumerate(entries):
        location = f"{source}.rules[{index}]"
        parsed.append((location, _as_rule_mapping(entry, location)))

    # Plain rules first so list_of entries can reference any of them.
    by_name: dict[str, FieldRule] = {}
    ordered: list[FieldRule] = []
    deferred: list[tuple[str, Mapping[str, object]]] = []
    for location, entry in parsed:
        kind = _coerce_kind(entry["kind"], f"{location}.kind")
        if kind is FieldRuleKind.LIST_OF:
            deferred.append((location, entry))
            continue
        for rule in _expand(entry, kind=kind, location=location, item_rule=None):
            _register(by_name, ordered, rule, location)

    for location, entry in deferred:
        item_name = _coerce_str(entry.get("items"), f"{location}.items")
        item_rule = by_name.get(item_name)
        if item_rule is None:
            raise CatalogError(f"{location}.items: unknown rule {item_name!r}")
        for rule in _expand(
            entry, kind=FieldRuleKind.LIST_OF, location=location, item_rule=item_rule
        ):
            _register(by_name, ordered, rule, location)

    return ordered


def _register(
    by_name: dict[str, FieldRule],
    ordered: list[FieldRule],
    rule: FieldRule,
    location: str,
) -> None:
    if rule.name in by_name:
        raise CatalogError(f"{location}: duplicate field rule {rule.name!r}")
    by_name[rule.name] = rule
    ordered.append(rule)


def _expand(
    entry: Mapping[str, object],
    *,
    kind: FieldRuleKind,
    location: str,
    item_rule: FieldRule | None,
) -> list[FieldRule]:
    names = [_coerce_str(entry["name"], f"{location}.name")]
    names.extend(_coerce_str_list(entry.get("aliases", []), f"{location}.aliases"))

    description = entry.get("description", "")
    if not isinstance(description, str):
        raise CatalogError(f"{location}.description: expected string")
    separator = entry.get("separator", ",")
    if not isinstance(separator, str):
        raise CatalogError(f"{location}.separator: expected string")
    pattern = entry.get("pattern")
    if pattern is not None and not isinstance(pattern, str):
        raise CatalogError(f"{location}.pattern: expected string")

    rules: list[FieldRule] = []
    for name in names:
        try:
            rules.append(
                FieldRule(
                    name=name,
                    kind=kind,
                    description=description,
                    pattern=pattern,
                    minimum=_coerce_optional_int(entry.get("minimum"), f"{location}.minimum"),
                    maximum=_coerce_optional_int(entry.get("maximum"), f"{location}.maximum"),
                    allowed=frozenset(
                        _coerce_str_list(entry.get("allowed", []), f"{location}.allowed")
                    ),
                    item_rule=item_rule,
                    separator=separator,
                    max_length=_coerce_optional_int(
                        entry.get("max_length"), f"{location}.max_length"
                    ),
                )
            )
        except (TypeError, ValueError) as exc:
            raise CatalogError(f"{location}: {exc}") from exc
    return rules


def _as_rule_mapping(value: object, location: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        raise CatalogError(f"{location}: expected mapping, got {type(value).__name__}")
    keys = {str(key) for key in value}
    missing = sorted(_REQUIRED_RULE_KEYS - keys)
    if missing:
        raise CatalogError(f"{location}: missing required fields: {missing}")
    unknown = sorted(keys - _ALLOWED_RULE_KEYS)
    if unknown:
        raise CatalogError(f"{location}: unexpected fields: {unknown}")
    return cast("Mapping[str, object]", value)


def _coerce_kind(value: object, location: str) -> FieldRuleKind:
    try:
        return FieldRuleKind(str(value))
    except ValueError as exc:
        expected = ", ".join(item.value for item in FieldRuleKind)
        raise CatalogError(
            f"{location}: invalid kind {value!r}; expected one of: {expected}"
        ) from exc


def _coerce_str(value: object, location: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{location}: expected non-empty string")
    return value.strip()


def _coerce_str_list(value: object, location: str) -> list[str]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise CatalogError(f"{location}: expected a sequence of strings")
    return [_coerce_str(item, f"{location}[{index}]") for index, item in enumerate(value)]


def _coerce_optional_int(value: object, location: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise CatalogError(f"{location}: expected integer")
    return value


__all__ = ["FieldRuleRegistry", "load_field_rules"]
