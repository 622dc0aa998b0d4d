"""
tcu-client — transport contract

File: src/tcu_client/transport/base.py
Last updated: 2026-10-18

Purpose
- The seam between the dispatcher and whatever moves bytes to the remote API.

What should be included in this file
- Transport protocol and response value type.
- Network-level error types the dispatcher treats as transient.

Functional requirements
- Implementations raise TransportTimeoutError/TransportConnectionError for
  network failures and return non-2xx HTTP statuses as responses, not errors.

Non-functional requirements
- No third-party imports; fakes implement the protocol without extra deps.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol, runtime_checkable


class TransportError(RuntimeError):
    """Network-level failure; the request may not have reached the server."""


class TransportTimeoutError(TransportError):
    """Connect or read deadline exceeded."""


class TransportConnectionError(TransportError):
    """Connection refused, reset, DNS failure or TLS handshake failure."""


@dataclass(frozen=True, slots=True)
class TransportResponse:
    status: int
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.status, bool) or not isinstance(self.status, int):
            raise TypeError("status must be an integer")
        object.__setattr__(self, "body", bytes(self.body))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@runtime_checkable
class Transport(Protocol):
    def send(self, path: str, method: str, body: bytes, timeout: float) -> TransportResponse: ...


__all__ = [
    "Transport",
    "TransportConnectionError",
    "TransportError",
    "TransportResponse",
    "TransportTimeoutError",
]
