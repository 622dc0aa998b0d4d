"""Credential redaction helpers shared by logging, errors and sinks."""

from tcu_client.security.redaction import (
    DEFAULT_REDACTION_CONFIG,
    DEFAULT_SENSITIVE_KEY_DENYLIST,
    REDACTED_VALUE,
    RedactionConfig,
    SecretFinding,
    is_sensitive_key,
    mask_known_secrets,
    redact_structure,
    redact_text,
    scan_for_secrets,
)

__all__ = [
    "DEFAULT_REDACTION_CONFIG",
    "DEFAULT_SENSITIVE_KEY_DENYLIST",
    "REDACTED_VALUE",
    "RedactionConfig",
    "SecretFinding",
    "is_sensitive_key",
    "mask_known_secrets",
    "redact_structure",
    "redact_text",
    "scan_for_secrets",
]
