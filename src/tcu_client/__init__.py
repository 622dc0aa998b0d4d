"""
tcu-client — package root

File: src/tcu_client/__init__.py
Last updated: 2026-10-18

Purpose
- Client library for the TCU admissions XML API: field validation, envelope
  marshalling, status classification and data-driven operation dispatch.

What should be included in this file
- Version export and a small public API surface: the client, core models and errors.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).

Non-functional requirements
- Keep import time fast; heavy collaborators (``requests``) load only with the
  HTTP transport.
"""

from __future__ import annotations

from tcu_client.client import TCUClient
from tcu_client.domain.models import (
    Identity,
    OutcomeCategory,
    RequestPayload,
    TypedResult,
)
from tcu_client.errors import (
    AuthenticationFailure,
    MalformedResponseFailure,
    RemoteServiceError,
    TCUError,
    TransientNetworkFailure,
    UnknownOperationError,
    ValidationFailure,
)

__version__ = "0.1.0"

__all__ = [
    "AuthenticationFailure",
    "Identity",
    "MalformedResponseFailure",
    "OutcomeCategory",
    "RemoteServiceError",
    "RequestPayload",
    "TCUClient",
    "TCUError",
    "TransientNetworkFailure",
    "TypedResult",
    "UnknownOperationError",
    "ValidationFailure",
    "__version__",
]
