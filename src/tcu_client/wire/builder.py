"""
tcu-client — request envelope builder

File: src/tcu_client/wire/builder.py
Last updated: 2026-10-18

Purpose
- Turn an identity plus a validated payload into the fixed request envelope.

What should be included in this file
- Payload -> Envelope splitting (one ParameterBlock per subject, caller order).
- Envelope -> XML bytes serialization.
- A redacted rendering for logs and debugging.

Functional requirements
- Every envelope has exactly one identity and at least one parameter block.
- Element text is escaped so values cannot alter envelope structure.
- The session token appears only in the bytes handed to the transport.

Non-functional requirements
- Deterministic output for identical inputs (element order is stable).
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Collection, Mapping, Sequence
from typing import Final

from tcu_client.constants import (
    IDENTITY_TAG,
    PARAMETER_BLOCK_TAG,
    REQUEST_ROOT_TAG,
    SESSION_TOKEN_TAG,
    USERNAME_TAG,
    XML_ENCODING,
)
from tcu_client.domain.models import (
    Envelope,
    Identity,
    ParameterBlock,
    Record,
    RequestPayload,
    WireValue,
)
from tcu_client.security.redaction import REDACTED_VALUE

XML_DECLARATION: Final[bytes] = f'<?xml version="1.0" encoding="{XML_ENCODING}"?>'.encode("ascii")
_DECIMAL_INTEGER: Final[re.Pattern[str]] = re.compile("-?[0-9]+")


class EnvelopeBuilder:
    """Builds and serializes request envelopes.

    ``field_order`` puts known fields first in a stable order; remaining fields
    follow in caller order. ``joiners`` maps list-valued fields that travel as
    one separated string (for example ``SelectedProgrammes``) to their separator;
    any other list value is written as repeated sibling elements. Fields named in
    ``integer_fields`` are written in canonical decimal form (``"007"`` becomes ``7``).
    """

    __slots__ = ()

    def build(
        self,
        identity: Identity,
        operation: str,
        payload: RequestPayload,
        *,
        field_order: Sequence[str] = (),
        joiners: Mapping[str, str] | None = None,
        integer_fields: Collection[str] = (),
    ) -> Envelope:
        if payload.operation != operation:
            raise ValueError(
                f"payload is tagged for {payload.operation!r}, not {operation!r}"
            )
        blocks = tuple(
            _to_block(
                subject,
                field_order=field_order,
                joiners=joiners or {},
                integer_fields=integer_fields,
            )
            for subject in payload.subjects
        )
        return Envelope(operation=operation, identity=identity, blocks=blocks)

    def serialize(self, envelope: Envelope) -> bytes:
        return _render(envelope, session_token=envelope.identity.session_token)

    def render_redacted(self, envelope: Envelope) -> str:
        """Return the envelope XML with the session token masked."""

        return _render(envelope, session_token=REDACTED_VALUE).decode(XML_ENCODING)


def to_wire_value(
    value: object, *, separator: str | None = None, integer: bool = False
) -> WireValue | None:
    """Normalize one caller value; None means the field is omitted."""

    if value is None:
        return None
    if integer and not isinstance(value, (list, tuple)):
        return _integer_text(value) or None
    if isinstance(value, (list, tuple)):
        items = [text for text in (_scalar_text(item) for item in value) if text]
        if not items:
            return None
        if separator is not None:
            return separator.join(items)
        return tuple(items)
    text = _scalar_text(value)
    return text or None


def _scalar_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value).strip()


def _integer_text(value: object) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str) and _DECIMAL_INTEGER.fullmatch(value):
        return str(int(value))
    return _scalar_text(value)


def _to_block(
    subject: Record,
    *,
    field_order: Sequence[str],
    joiners: Mapping[str, str],
    integer_fields: Collection[str],
) -> ParameterBlock:
    ordered = [name for name in field_order if name in subject]
    ordered.extend(name for name in subject if name not in ordered)

    fields: list[tuple[str, WireValue]] = []
    for name in ordered:
        wire_value = to_wire_value(
            subject[name], separator=joiners.get(name), integer=name in integer_fields
        )
        if wire_value is not None:
            fields.append((name, wire_value))
    return ParameterBlock(fields=tuple(fields))


def _render(envelope: Envelope, *, session_token: str) -> bytes:
    root = ET.Element(REQUEST_ROOT_TAG)
    identity = ET.SubElement(root, IDENTITY_TAG)
    ET.SubElement(identity, USERNAME_TAG).text = envelope.identity.username
    ET.SubElement(identity, SESSION_TOKEN_TAG).text = session_token

    for block in envelope.blocks:
        element = ET.SubElement(root, PARAMETER_BLOCK_TAG)
        for name, value in block.fields:
            values = value if isinstance(value, tuple) else (value,)
            for item in values:
                ET.SubElement(element, name).text = item

    body = ET.tostring(root, encoding=XML_ENCODING.lower(), xml_declaration=False)
    return XML_DECLARATION + body


__all__ = ["XML_DECLARATION", "EnvelopeBuilder", "to_wire_value"]
