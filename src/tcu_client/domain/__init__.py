"""Canonical immutable domain models for the TCU client."""

from tcu_client.domain.models import (
    Acknowledgement,
    CallRecord,
    Envelope,
    FieldRule,
    FieldRuleKind,
    Identity,
    OutcomeCategory,
    ParameterBlock,
    Record,
    RequestPayload,
    ResponseBlock,
    ResponseEnvelope,
    ResponseShape,
    TypedResult,
    ValidationResult,
    Violation,
    WireValue,
)

__all__ = [
    "Acknowledgement",
    "CallRecord",
    "Envelope",
    "FieldRule",
    "FieldRuleKind",
    "Identity",
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
