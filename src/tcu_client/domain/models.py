"""
tcu-client — canonical domain models

File: src/tcu_client/domain/models.py
Last updated: 2026-10-18

Purpose
- Immutable value types shared by validation, marshalling and dispatch.

What should be included in this file
- Field rule definitions and validation results.
- Tagged request payloads, identity, parameter blocks and envelopes.
- Response envelopes, outcome categories and typed call results.
- Call records handed to observability sinks.

Functional requirements
- Every Envelope carries exactly one Identity and at least one ParameterBlock.
- ValidationResult is either valid or carries a non-empty ordered violation list.
- Identity never renders its session credential.

Non-functional requirements
- Models are frozen; request-scoped values are copied on construction so callers
  cannot mutate them mid-dispatch.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import TypeAlias

from tcu_client.security.redaction import REDACTED_VALUE, redact_text

JSONScalar: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

WireValue: TypeAlias = str | tuple[str, ...]
Record: TypeAlias = Mapping[str, object]


class OutcomeCategory(StrEnum):
    SUCCESS = "success"
    BUSINESS_CONDITION = "business_condition"
    VALIDATION_FAILURE = "validation_failure"
    AUTHENTICATION_FAILURE = "authentication_failure"
    TRANSIENT_NETWORK_FAILURE = "transient_network_failure"
    UNCLASSIFIED_REMOTE_ERROR = "unclassified_remote_error"


class FieldRuleKind(StrEnum):
    PATTERN = "pattern"
    INTEGER_RANGE = "integer_range"
    ENUMERATED = "enumerated"
    LIST_OF = "list_of"
    TEXT = "text"


class ResponseShape(StrEnum):
    RECORD = "record"
    RECORDS = "records"
    NONE = "none"


# Outcomes that mean the remote system processed the request.
_SETTLED_OUTCOMES = frozenset(
    {OutcomeCategory.SUCCESS.value, OutcomeCategory.BUSINESS_CONDITION.value}
)


def _validate_non_empty_str(value: str, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{field_name} cannot be empty")
    return normalized


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Declarative syntactic rule for one wire field."""

    name: str
    kind: FieldRuleKind
    description: str = ""
    pattern: str | None = None
    minimum: int | None = None
    maximum: int | None = None
    allowed: frozenset[str] = frozenset()
    item_rule: FieldRule | None = None
    separator: str = ","
    max_length: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _validate_non_empty_str(self.name, "name"))
        object.__setattr__(self, "kind", FieldRuleKind(self.kind))
        object.__setattr__(self, "allowed", frozenset(self.allowed))

        if self.kind is FieldRuleKind.PATTERN:
            if self.pattern is None:
                raise ValueError(f"rule {self.name}: pattern rules require a pattern")
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"rule {self.name}: invalid pattern ({exc})") from exc
        elif self.kind is FieldRuleKind.INTEGER_RANGE:
            if (
                self.minimum is not None
                and self.maximum is not None
                and self.minimum > self.maximum
            ):
                raise ValueError(f"rule {self.name}: minimum must be <= maximum")
        elif self.kind is FieldRuleKind.ENUMERATED:
            if not self.allowed:
                raise ValueError(f"rule {self.name}: enumerated rules require allowed values")
        elif self.kind is FieldRuleKind.LIST_OF:
            if self.item_rule is None:
                raise ValueError(f"rule {self.name}: list rules require an item rule")
            if not self.separator:
                raise ValueError(f"rule {self.name}: separator cannot be empty")
        elif self.kind is FieldRuleKind.TEXT:
            if self.max_length is not None and self.max_length <= 0:
                raise ValueError(f"rule {self.name}: max_length must be > 0")

    @property
    def regex(self) -> re.Pattern[str] | None:
        if self.pattern is None:
            return None
        return re.compile(self.pattern)


@dataclass(frozen=True, slots=True)
class Violation:
    """One failed rule. ``index`` locates the batch subject, None for single payloads."""

    field: str
    rule: str
    reason: str
    index: int | None = None

    def render(self) -> str:
        if self.index is None:
            return f"{self.field}: {self.reason}"
        return f"subject {self.index}: {self.field}: {self.reason}"

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "field": self.field,
            "rule": self.rule,
            "reason": self.reason,
            "index": self.index,
        }


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Either valid (no violations) or an ordered, non-empty violation list."""

    violations: tuple[Violation, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "violations", tuple(self.violations))

    @classmethod
    def valid(cls) -> ValidationResult:
        return cls(())

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def fields(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for violation in self.violations:
            seen.setdefault(violation.field, None)
        return tuple(seen)


@dataclass(frozen=True, slots=True)
class RequestPayload:
    """Caller input tagged with the operation it belongs to.

    Single-subject payloads hold exactly one subject; batch payloads hold one
    subject per record, in caller order.
    """

    operation: str
    subjects: tuple[Record, ...]
    is_batch: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "operation", _validate_non_empty_str(self.operation, "operation"))
        frozen: list[Record] = []
        for index, subject in enumerate(self.subjects):
            if not isinstance(subject, Mapping):
                raise TypeError(f"subject {index} must be a mapping")
            frozen.append(MappingProxyType(dict(subject)))
        object.__setattr__(self, "subjects", tuple(frozen))
        if not self.is_batch and len(self.subjects) != 1:
            raise ValueError("single-subject payloads must hold exactly one subject")

    @classmethod
    def single(cls, operation: str, fields: Record) -> RequestPayload:
        return cls(operation=operation, subjects=(fields,), is_batch=False)

    @classmethod
    def batch(cls, operation: str, subjects: Sequence[Record]) -> RequestPayload:
        if isinstance(subjects, Mapping):
            raise TypeError("batch payloads take a sequence of subjects")
        return cls(operation=operation, subjects=tuple(subjects), is_batch=True)


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated principal. The credential is excluded from repr."""

    username: str
    session_token: str = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "username", _validate_non_empty_str(self.username, "username"))
        object.__setattr__(
            self, "session_token", _validate_non_empty_str(self.session_token, "session_token")
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"username": self.username, "session_token": REDACTED_VALUE}


@dataclass(frozen=True, slots=True)
class ParameterBlock:
    """Flat ordered field mapping for one subject; tuple values repeat the element."""

    fields: tuple[tuple[str, WireValue], ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def get(self, name: str) -> WireValue | None:
        for key, value in self.fields:
            if key == name:
                return value
        return None

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            key: list(value) if isinstance(value, tuple) else value for key, value in self.fields
        }


@dataclass(frozen=True, slots=True)
class Envelope:
    """Wire request: exactly one identity and one or more parameter blocks."""

    operation: str
    identity: Identity
    blocks: tuple[ParameterBlock, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.identity, Identity):
            raise TypeError("identity must be an Identity")
        object.__setattr__(self, "blocks", tuple(self.blocks))
        if not self.blocks:
            raise ValueError("envelope requires at least one parameter block")


@dataclass(frozen=True, slots=True)
class ResponseBlock:
    """One decoded ``ResponseParameters`` element."""

    status_code: int | None
    status_description: str | None
    fields: Record


@dataclass(frozen=True, slots=True)
class ResponseEnvelope:
    """Decoded response. ``status_code`` alone decides the outcome."""

    status_code: int
    status_description: str
    payload: Record | tuple[Record, ...] | None = None
    blocks: tuple[ResponseBlock, ...] = ()


@dataclass(frozen=True, slots=True)
class Acknowledgement:
    """Per-subject status echoed back for a batch request."""

    index: int
    status_code: int | None
    status_description: str | None
    category: OutcomeCategory | None
    fields: Record

    def to_dict(self) -> dict[str, object]:
        return {
            "index": self.index,
            "status_code": self.status_code,
            "status_description": self.status_description,
            "category": None if self.category is None else self.category.value,
            "fields": dict(self.fields),
        }


@dataclass(frozen=True, slots=True)
class TypedResult:
    """Status-aware outcome of one dispatched operation."""

    operation: str
    category: OutcomeCategory
    status_code: int
    status_description: str
    status_message: str | None = None
    payload: Record | tuple[Record, ...] | None = None
    acknowledgements: tuple[Acknowledgement, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.category is OutcomeCategory.SUCCESS

    @property
    def is_business_condition(self) -> bool:
        return self.category is OutcomeCategory.BUSINESS_CONDITION

    @property
    def records(self) -> tuple[Record, ...]:
        if self.payload is None:
            return ()
        if isinstance(self.payload, Mapping):
            return (self.payload,)
        return self.payload

    def to_dict(self) -> dict[str, object]:
        payload: object
        if self.payload is None:
            payload = None
        elif isinstance(self.payload, Mapping):
            payload = dict(self.payload)
        else:
            payload = [dict(item) for item in self.payload]
        return {
            "operation": self.operation,
            "category": self.category.value,
            "status_code": self.status_code,
            "status_description": self.status_description,
            "status_message": self.status_message,
            "payload": payload,
            "acknowledgements": [item.to_dict() for item in self.acknowledgements],
        }


@dataclass(frozen=True, slots=True)
class CallRecord:
    """One dispatched call as seen by observability sinks.

    ``outcome`` is an OutcomeCategory value, or the error code for failures that
    have no category (``response_invalid``, ``unknown_operation``).
    """

    operation: str
    outcome: str
    status_code: int | None
    duration_ms: float
    request_size: int
    response_size: int
    error_detail: str | None = None
    call_id: str = ""
    path: str = ""
    http_status: int | None = None
    attempts: int = 0
    recorded_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError("duration_ms must be >= 0")
        if self.request_size < 0 or self.response_size < 0:
            raise ValueError("payload sizes must be >= 0")
        if self.error_detail is not None:
            object.__setattr__(self, "error_detail", redact_text(self.error_detail))

    @property
    def succeeded(self) -> bool:
        return self.outcome in _SETTLED_OUTCOMES

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "call_id": self.call_id,
            "operation": self.operation,
            "path": self.path,
            "outcome": self.outcome,
            "status_code": self.status_code,
            "http_status": self.http_status,
            "duration_ms": self.duration_ms,
            "request_size": self.request_size,
            "response_size": self.response_size,
            "attempts": self.attempts,
            "error_detail": self.error_detail,
            "recorded_at": self.recorded_at.isoformat().replace("+00:00", "Z"),
        }


__all__ = [
    "Acknowledgement",
    "CallRecord",
    "Envelope",
    "FieldRule",
    "FieldRuleKind",
    "Identity",
    "JSONScalar",
    "JSONValue",
    "OutcomeCategory",
    "ParameterBlock",
    "Record",
    "RequestPayload",
    "ResponseBlock",
    "ResponseEnvelope",
    "ResponseShape",
    "TypedResult",
    "ValidationResult",
    "Violation",
    "WireValue",
]
