"""
tcu-client — wire format

File: src/tcu_client/wire/__init__.py
Last updated: 2026-10-18

Purpose
- Request envelope building, response parsing and status classification.

What should be included in this file
- Public builder/parser/taxonomy entrypoints.

Functional requirements
- The wire format is a fixed external contract; nothing here negotiates it.

Non-functional requirements
- Standard library XML only.
"""

from tcu_client.wire.builder import XML_DECLARATION, EnvelopeBuilder, to_wire_value
from tcu_client.wire.parser import element_to_value, parse, shape_payload
from tcu_client.wire.status import (
    BUNDLED_STATUS_CODES,
    DEFAULT_STATUS_TAXONOMY,
    UNKNOWN_STATUS_MESSAGE,
    StatusCodeInfo,
    StatusCodeTaxonomy,
)

__all__ = [
    "BUNDLED_STATUS_CODES",
    "DEFAULT_STATUS_TAXONOMY",
    "UNKNOWN_STATUS_MESSAGE",
    "XML_DECLARATION",
    "EnvelopeBuilder",
    "StatusCodeInfo",
    "StatusCodeTaxonomy",
    "element_to_value",
    "parse",
    "shape_payload",
    "to_wire_value",
]
