"""
tcu-client — transports

File: src/tcu_client/transport/__init__.py
Last updated: 2026-10-18

Purpose
- Transport contract plus the default ``requests`` implementation.

What should be included in this file
- Contract types only; ``RequestsTransport`` is imported from its module so the
  HTTP stack loads on demand.

Functional requirements
- Network failures surface as TransportError subclasses.

Non-functional requirements
- Importing the contract never imports ``requests``.
"""

from tcu_client.transport.base import (
    Transport,
    TransportConnectionError,
    TransportError,
    TransportResponse,
    TransportTimeoutError,
)

__all__ = [
    "Transport",
    "TransportConnectionError",
    "TransportError",
    "TransportResponse",
    "TransportTimeoutError",
]
