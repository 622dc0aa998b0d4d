"""
tcu-client — field rules and payload validation

File: src/tcu_client/validation/__init__.py
Last updated: 2026-10-18

Purpose
- Field Rule Registry and the Validator built on it.

What should be included in this file
- Public registry/validator types and the bundled rule loader.

Functional requirements
- Rules are data; adding a field never touches validation logic.

Non-functional requirements
- Import-time side effects limited to module definitions.
"""

from tcu_client.validation.rules import FieldRuleRegistry, load_field_rules
from tcu_client.validation.validator import Validator, check_value, is_absent

__all__ = [
    "FieldRuleRegistry",
    "Validator",
    "check_value",
    "is_absent",
    "load_field_rules",
]
