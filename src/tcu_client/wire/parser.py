"""
tcu-client — response envelope parser

File: src/tcu_client/wire/parser.py
Last updated: 2026-10-18

Purpose
- Decode response bytes into a ResponseEnvelope and shape the payload per operation.

What should be included in this file
- Flat layout: Response/StatusCode, StatusDescription, Data.
- Block layout: repeated Response/ResponseParameters, first block authoritative.
- Element-tree to mapping decoding with repeated siblings as lists.

Functional requirements
- Any structural defect raises MalformedResponseFailure carrying the raw bytes.
- Payload presence is never used to infer the outcome.

Non-functional requirements
- Document type declarations are refused so entity expansion never runs.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Final, TypeAlias

from tcu_client.constants import (
    RESPONSE_BLOCK_TAG,
    RESPONSE_DATA_TAG,
    RESPONSE_ROOT_TAG,
    STATUS_CODE_TAG,
    STATUS_DESCRIPTION_TAG,
)
from tcu_client.domain.models import Record, ResponseBlock, ResponseEnvelope, ResponseShape
from tcu_client.errors import MalformedResponseFailure

_STATUS_TAGS: Final[frozenset[str]] = frozenset({STATUS_CODE_TAG, STATUS_DESCRIPTION_TAG})

_FailFactory: TypeAlias = Callable[[str], MalformedResponseFailure]


def parse(raw: bytes, *, operation: str = "unknown") -> ResponseEnvelope:
    """Decode one response body."""

    def fail(detail: str) -> MalformedResponseFailure:
        return MalformedResponseFailure(detail, operation=operation, raw=raw)

    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError("response body must be bytes")
    if not raw.strip():
        raise fail("empty response body")
    if b"<!DOCTYPE" in raw or b"<!ENTITY" in raw:
        raise fail("document type declarations are not accepted")

    try:
        root = ET.fromstring(bytes(raw))
    except ET.ParseError as exc:
        raise fail(f"invalid XML ({exc})") from exc

    if root.tag != RESPONSE_ROOT_TAG:
        raise fail(f"unexpected root element <{root.tag}>")

    block_elements = root.findall(RESPONSE_BLOCK_TAG)
    if block_elements:
        return _parse_blocks(block_elements, fail=fail)
    return _parse_flat(root, fail=fail)


def shape_payload(
    envelope: ResponseEnvelope,
    *,
    shape: ResponseShape,
    record_tag: str | None = None,
) -> Record | tuple[Record, ...] | None:
    """Project a decoded payload onto an operation's declared response shape."""

    if shape is ResponseShape.NONE:
        return None

    if record_tag is not None:
        records = _find_records(envelope.payload, record_tag)
        if shape is ResponseShape.RECORD:
            return records[0] if records else None
        return records

    if isinstance(envelope.payload, Mapping):
        records = (envelope.payload,)
    elif envelope.payload is None:
        records = ()
    else:
        records = envelope.payload

    if shape is ResponseShape.RECORD:
        return records[0] if records else None
    return tuple(records)


def element_to_value(element: ET.Element) -> object:
    """Leaf -> stripped text; container -> mapping with repeated tags as lists."""

    children = list(element)
    if not children:
        return (element.text or "").strip()

    grouped: dict[str, list[object]] = {}
    for child in children:
        grouped.setdefault(child.tag, []).append(element_to_value(child))
    decoded: dict[str, object] = {
        tag: values[0] if len(values) == 1 else tuple(values) for tag, values in grouped.items()
    }
    return MappingProxyType(decoded)


def _parse_flat(root: ET.Element, *, fail: _FailFactory) -> ResponseEnvelope:
    status_code = _status_code(root, fail=fail, location="Response")
    description = _status_description(root, fail=fail, location="Response")

    data = root.find(RESPONSE_DATA_TAG)
    payload: Record | None
    if data is not None:
        payload = _as_record(element_to_value(data))
    else:
        extras = [child for child in root if child.tag not in _STATUS_TAGS]
        if extras:
            payload = _as_record(_children_to_mapping(extras))
        else:
            payload = None
    return ResponseEnvelope(
        status_code=status_code,
        status_description=description,
        payload=payload,
    )


def _parse_blocks(elements: list[ET.Element], *, fail: _FailFactory) -> ResponseEnvelope:
    # The first block carries the authoritative status for the whole call.
    status_code = _status_code(elements[0], fail=fail, location=f"{RESPONSE_BLOCK_TAG}[0]")
    description = _status_description(
        elements[0], fail=fail, location=f"{RESPONSE_BLOCK_TAG}[0]"
    )

    blocks: list[ResponseBlock] = []
    for index, element in enumerate(elements):
        code: int | None = None
        if element.find(STATUS_CODE_TAG) is not None:
            code = _status_code(element, fail=fail, location=f"{RESPONSE_BLOCK_TAG}[{index}]")
        description_node = element.find(STATUS_DESCRIPTION_TAG)
        block_description = None
        if description_node is not None:
            block_description = (description_node.text or "").strip()
        fields = _children_to_mapping(
            [child for child in element if child.tag not in _STATUS_TAGS]
        )
        blocks.append(
            ResponseBlock(status_code=code, status_description=block_description, fields=fields)
        )

    return ResponseEnvelope(
        status_code=status_code,
        status_description=description,
        payload=tuple(block.fields for block in blocks),
        blocks=tuple(blocks),
    )


def _status_code(element: ET.Element, *, fail: _FailFactory, location: str) -> int:
    node = element.find(STATUS_CODE_TAG)
    if node is None:
        raise fail(f"{location}: missing <{STATUS_CODE_TAG}>")
    text = (node.text or "").strip()
    try:
        return int(text, 10)
    except ValueError as exc:
        raise fail(f"{location}: non-integer status code {text!r}") from exc


def _status_description(element: ET.Element, *, fail: _FailFactory, location: str) -> str:
    node = element.find(STATUS_DESCRIPTION_TAG)
    if node is None:
        raise fail(f"{location}: missing <{STATUS_DESCRIPTION_TAG}>")
    return (node.text or "").strip()


def _children_to_mapping(children: list[ET.Element]) -> Record:
    holder = ET.Element("_")
    holder.extend(children)
    decoded = element_to_value(holder)
    if isinstance(decoded, Mapping):
        return decoded
    return MappingProxyType({})


def _as_record(value: object) -> Record | None:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, str):
        return MappingProxyType({RESPONSE_DATA_TAG: value}) if value else None
    return None


def _find_records(payload: object, tag: str) -> tuple[Record, ...]:
    """Depth-first search for ``tag``; returns every mapping found under it."""

    if payload is None:
        return ()
    if isinstance(payload, Mapping):
        if tag in payload:
            return _records_from(payload[tag])
        found: list[Record] = []
        for value in payload.values():
            found.extend(_find_records(value, tag))
        return tuple(found)
    if isinstance(payload, tuple):
        collected: list[Record] = []
        for item in payload:
            collected.extend(_find_records(item, tag))
        return tuple(collected)
    return ()


def _records_from(value: object) -> tuple[Record, ...]:
    if isinstance(value, Mapping):
        return (value,)
    if isinstance(value, tuple):
        return tuple(item for item in value if isinstance(item, Mapping))
    return ()


__all__ = ["element_to_value", "parse", "shape_payload"]
