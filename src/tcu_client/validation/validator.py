"""
tcu-client — request payload validator

File: src/tcu_client/validation/validator.py
Last updated: 2026-10-18

Purpose
- Apply field rules and per-operation field declarations to a tagged payload.

What should be included in this file
- Pure per-rule value checks.
- Presence, shape and unknown-field checks keyed on the operation descriptor.
- Batch validation that tags every violation with its subject index.

Functional requirements
- Empty strings, whitespace and ``None`` count as absent.
- Pattern, enumerated and integer values are matched exactly as given; surrounding
  whitespace is a violation, not something to trim.
- One violation per offending field per subject; every subject is checked.
- Fails closed: undeclared fields are rejected, passthrough fields are not checked.

Non-functional requirements
- No I/O and no shared mutable state; safe to call concurrently.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Final

from tcu_client.domain.models import (
    FieldRule,
    FieldRuleKind,
    RequestPayload,
    ValidationResult,
    Violation,
)
from tcu_client.validation.rules import FieldRuleRegistry

if TYPE_CHECKING:
    from tcu_client.dispatch.operations import OperationCatalog, OperationDescriptor

# Characters that XML 1.0 cannot carry even when escaped.
_XML_ILLEGAL_CHARS: Final[re.Pattern[str]] = re.compile(
    "[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]"
)

_PAYLOAD_FIELD: Final[str] = "(payload)"

# Plain ASCII decimal; rules out "1_000", "+5" and non-ASCII digits.
_DECIMAL_INTEGER: Final[re.Pattern[str]] = re.compile("-?[0-9]+")


def is_absent(value: object) -> bool:
    """Return True when a value should be treated as not supplied."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return all(is_absent(item) for item in value)
    return False


def check_value(rule: FieldRule, value: object) -> str | None:
    """Return a failure reason for ``value`` under ``rule``, or None when it passes."""

    if rule.kind is FieldRuleKind.LIST_OF:
        return _check_list(rule, value)
    if rule.kind is FieldRuleKind.INTEGER_RANGE:
        return _check_integer(rule, value)

    text = _as_text(value)
    if text is None:
        return f"expected a text value, got {type(value).__name__}"

    if rule.kind is FieldRuleKind.PATTERN:
        regex = rule.regex
        if regex is None or regex.fullmatch(text) is None:
            hint = rule.description or rule.pattern
            return f"invalid format {text!r} (expected {hint})"
        return None
    if rule.kind is FieldRuleKind.ENUMERATED:
        if text not in rule.allowed:
            return f"must be one of: {', '.join(sorted(rule.allowed))}"
        return None
    # text
    stripped = text.strip()
    if not stripped:
        return "cannot be blank"
    if rule.max_length is not None and len(stripped) > rule.max_length:
        return f"must be at most {rule.max_length} characters"
    return None


class Validator:
    """Validates tagged payloads against the operation catalog and field rules."""

    __slots__ = ("_catalog", "_registry")

    def __init__(self, registry: FieldRuleRegistry, catalog: OperationCatalog) -> None:
        self._registry = registry
        self._catalog = catalog

    @property
    def registry(self) -> FieldRuleRegistry:
        return self._registry

    def validate(self, operation: str, payload: RequestPayload) -> ValidationResult:
        descriptor = self._catalog.get(operation)
        if payload.operation != descriptor.name:
            return ValidationResult(
                (
                    Violation(
                        field=_PAYLOAD_FIELD,
                        rule="operation",
                        reason=(
                            f"payload is tagged for {payload.operation!r}, "
                            f"not {descriptor.name!r}"
                        ),
                    ),
                )
            )

        shape_violation = _check_shape(descriptor, payload)
        if shape_violation is not None:
            return ValidationResult((shape_violation,))

        violations: list[Violation] = []
        for position, subject in enumerate(payload.subjects):
            index = position if payload.is_batch else None
            violations.extend(self._validate_subject(descriptor, subject, index=index))
        return ValidationResult(tuple(violations))

    def _validate_subject(
        self,
        descriptor: OperationDescriptor,
        subject: Mapping[str, object],
        *,
        index: int | None,
    ) -> list[Violation]:
        violations: list[Violation] = []

        for name in descriptor.field_order:
            value = subject.get(name)
            if is_absent(value):
                if name in descriptor.required:
                    violations.append(
                        Violation(name, "required", f"{name} is required", index=index)
                    )
                continue
            reason = self._check_field(descriptor, name, value)
            if reason is not None:
                rule = self._registry.rule_for(name)
                rule_name = "xml_text" if rule is None else rule.kind.value
                violations.append(Violation(name, rule_name, reason, index=index))

        for name in subject:
            if not descriptor.accepts(name):
                violations.append(
                    Violation(
                        name,
                        "unknown_field",
                        f"field is not accepted by {descriptor.name}",
                        index=index,
                    )
                )
        return violations

    def _check_field(self, descriptor: OperationDescriptor, name: str, value: object) -> str | None:
        illegal = _illegal_text_reason(value)
        if illegal is not None:
            return illegal
        if descriptor.is_passthrough(name):
            return None

        rule = self._registry.rule_for(name)
        if rule is None:
            # OperationCatalog refuses to load such descriptors.
            return "no rule is registered for this field"

        if name in descriptor.repeatable and _is_sequence(value):
            items = list(value)  # type: ignore[call-overload]
            for position, item in enumerate(items):
                reason = check_value(rule, item)
                if reason is not None:
                    return f"item {position}: {reason}"
            return None
        if _is_sequence(value) and rule.kind is not FieldRuleKind.LIST_OF:
            return "expected a single value, got a list"
        return check_value(rule, value)


def _check_shape(descriptor: OperationDescriptor, payload: RequestPayload) -> Violation | None:
    if descriptor.batch and not payload.is_batch:
        return Violation(_PAYLOAD_FIELD, "shape", f"{descriptor.name} expects a list of subjects")
    if not descriptor.batch and payload.is_batch:
        return Violation(_PAYLOAD_FIELD, "shape", f"{descriptor.name} expects a single subject")
    if not payload.subjects:
        return Violation(_PAYLOAD_FIELD, "shape", "at least one subject is required")
    return None


def _check_list(rule: FieldRule, value: object) -> str | None:
    if isinstance(value, str):
        items = value.split(rule.separator)
    elif _is_sequence(value):
        items = list(value)  # type: ignore[call-overload]
    else:
        return f"expected a list or {rule.separator!r}-separated text"

    item_rule = rule.item_rule
    if item_rule is None:
        return "list rule has no item rule"
    for position, item in enumerate(items):
        text = _as_text(item)
        if text is None or not text.strip():
            return f"item {position}: empty item"
        reason = check_value(item_rule, text)
        if reason is not None:
            return f"item {position}: {reason}"
    return None


def _check_integer(rule: FieldRule, value: object) -> str | None:
    if isinstance(value, bool):
        return "expected an integer"
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        if _DECIMAL_INTEGER.fullmatch(value) is None:
            return "expected a decimal integer"
        number = int(value)
    else:
        return "expected an integer"
    if rule.minimum is not None and number < rule.minimum:
        return f"must be >= {rule.minimum}"
    if rule.maximum is not None and number > rule.maximum:
        return f"must be <= {rule.maximum}"
    return None


def _as_text(value: object) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    return None


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _illegal_text_reason(value: object) -> str | None:
    values = list(value) if _is_sequence(value) else [value]  # type: ignore[call-overload]
    for item in values:
        if isinstance(item, str) and _XML_ILLEGAL_CHARS.search(item):
            return "contains characters that cannot be sent in XML"
    return None


__all__ = ["Validator", "check_value", "is_absent"]
