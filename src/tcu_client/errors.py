"""
tcu-client — error taxonomy

File: src/tcu_client/errors.py
Last updated: 2026-10-18

Purpose
- Normalized failure types raised by the dispatcher and its collaborators.

What should be included in this file
- A base error with deterministic machine-readable fields and message.
- One subclass per failure kind: local validation, authentication, transient
  network, malformed response, remote service, unknown operation.
- Retryability classification.

Functional requirements
- Error messages never carry a credential in cleartext.
- Business conditions are results, not errors; nothing here models them.

Non-functional requirements
- Stable ``code`` strings so callers and sinks can branch without parsing text.
"""

from __future__ import annotations

from collections.abc import Sequence

from tcu_client.domain.models import OutcomeCategory, Violation
from tcu_client.security.redaction import redact_text


class TCUError(RuntimeError):
    """Base normalized client error with deterministic machine-readable fields."""

    category: OutcomeCategory | None = None

    def __init__(
        self,
        *,
        operation: str,
        code: str,
        detail: str,
        retryable: bool,
        http_status: int | None = None,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation.strip() or "unknown"
        self.code = code
        self.detail = _normalize_detail(detail)
        self.retryable = bool(retryable)
        self.http_status = http_status
        self.status_code = status_code

        parts = [
            f"operation={self.operation}",
            f"code={self.code}",
            f"retryable={str(self.retryable).lower()}",
        ]
        if self.http_status is not None:
            parts.append(f"http_status={self.http_status}")
        if self.status_code is not None:
            parts.append(f"status_code={self.status_code}")
        parts.append(f"detail={self.detail}")
        super().__init__(" ".join(parts))


class ValidationFailure(TCUError):
    """Local, pre-network rejection carrying the full violation list."""

    category = OutcomeCategory.VALIDATION_FAILURE

    def __init__(self, violations: Sequence[Violation], *, operation: str) -> None:
        self.violations = tuple(violations)
        if not self.violations:
            raise ValueError("ValidationFailure requires at least one violation")
        super().__init__(
            operation=operation,
            code="validation",
            detail="; ".join(item.render() for item in self.violations),
            retryable=False,
        )

    @property
    def fields(self) -> tuple[str, ...]:
        seen: dict[str, None] = {}
        for violation in self.violations:
            seen.setdefault(violation.field, None)
        return tuple(seen)


class AuthenticationFailure(TCUError):
    """Credential rejected or expired. Never retried."""

    category = OutcomeCategory.AUTHENTICATION_FAILURE

    def __init__(
        self,
        detail: str,
        *,
        operation: str,
        http_status: int | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            operation=operation,
            code="auth",
            detail=detail,
            retryable=False,
            http_status=http_status,
            status_code=status_code,
        )


class TransientNetworkFailure(TCUError):
    """Connection or timeout failure surfaced after the retry budget is spent."""

    category = OutcomeCategory.TRANSIENT_NETWORK_FAILURE

    def __init__(self, detail: str, *, operation: str, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            operation=operation,
            code="transient_network",
            detail=f"{detail} (after {attempts} attempt{'s' if attempts != 1 else ''})",
            retryable=True,
        )


class MalformedResponseFailure(TCUError):
    """Response bytes could not be decoded into the expected envelope shape."""

    def __init__(self, detail: str, *, operation: str, raw: bytes) -> None:
        self.raw = bytes(raw)
        super().__init__(
            operation=operation,
            code="response_invalid",
            detail=detail,
            retryable=False,
        )


class RemoteServiceError(TCUError):
    """HTTP-level failure other than authentication."""

    category = OutcomeCategory.UNCLASSIFIED_REMOTE_ERROR

    def __init__(self, detail: str, *, operation: str, http_status: int) -> None:
        super().__init__(
            operation=operation,
            code="remote_service",
            detail=detail,
            retryable=False,
            http_status=http_status,
        )


class UnknownOperationError(TCUError):
    """Operation name is not present in the operation catalog."""

    def __init__(self, name: str) -> None:
        super().__init__(
            operation=name,
            code="unknown_operation",
            detail=f"operation {name!r} is not registered",
            retryable=False,
        )


class CatalogError(ValueError):
    """Raised when a bundled or supplied rule/operation catalog is inconsistent."""


def is_retryable_error(error: BaseException) -> bool:
    """Return retryability classification for normalized client errors."""

    return isinstance(error, TCUError) and error.retryable


def _normalize_detail(value: object) -> str:
    text = str(value).strip()
    if not text:
        return "unknown error"
    return redact_text(" ".join(text.split()))


__all__ = [
    "AuthenticationFailure",
    "CatalogError",
    "MalformedResponseFailure",
    "RemoteServiceError",
    "TCUError",
    "TransientNetworkFailure",
    "UnknownOperationError",
    "ValidationFailure",
    "is_retryable_error",
]
