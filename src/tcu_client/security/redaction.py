"""
tcu-client — credential redaction utilities

File: src/tcu_client/security/redaction.py
Last updated: 2026-10-18

Purpose
- Mask session credentials before they reach log records, error messages,
  sink payloads or debug renderings of wire envelopes.

What should be included in this file
- Sensitive key denylist and text patterns (XML ``SessionToken`` elements,
  ``key=value`` assignments, bearer headers).
- Literal masking of known secrets so a credential is hidden wherever it appears.
- Deterministic redaction of nested structures.

Functional requirements
- Must ensure no credential leaks into logs/errors by default.

Non-functional requirements
- Redaction is idempotent and never raises for ordinary input.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Final

REDACTED_VALUE: Final[str] = "***REDACTED***"

DEFAULT_SENSITIVE_KEY_DENYLIST: Final[frozenset[str]] = frozenset(
    {
        "access_token",
        "api_key",
        "auth_token",
        "authorization",
        "credential",
        "credentials",
        "password",
        "passwd",
        "secret",
        "security_token",
        "session_token",
        "token",
    }
)

_SENSITIVE_KEY_SUFFIXES: Final[tuple[str, ...]] = (
    "_password",
    "_secret",
    "_token",
)

# ``*_env`` keys hold env var names, not values.
_SAFE_KEY_SUFFIXES: Final[tuple[str, ...]] = ("_env",)

_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True, slots=True)
class SecretFinding:
    """One secret-like match discovered during scanning."""

    rule: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class _TextRule:
    name: str
    pattern: re.Pattern[str]
    sensitive_group: int | None = None


_TEXT_RULES: Final[tuple[_TextRule, ...]] = (
    _TextRule(
        name="session_token_element",
        pattern=re.compile(r"(<SessionToken\s*>)([^<]+)(</SessionToken\s*>)"),
        sensitive_group=2,
    ),
    _TextRule(
        name="authorization_bearer",
        pattern=re.compile(r"(?i)(\bauthorization\s*:\s*bearer\s+)([A-Za-z0-9\-._~+/=]{8,})"),
        sensitive_group=2,
    ),
    _TextRule(
        name="explicit_secret_assignment",
        pattern=re.compile(
            r"(?i)(\b(?:password|passwd|secret|session[_-]?token|security[_-]?token|"
            r"access[_-]?token|api[_-]?key)\b\s*[:=]\s*[\"']?)"
            r"([^\s\"',;<>]{4,})"
        ),
        sensitive_group=2,
    ),
)


@dataclass(frozen=True, slots=True)
class RedactionConfig:
    """Policy that controls redaction behavior."""

    replacement: str = REDACTED_VALUE
    key_denylist: frozenset[str] = DEFAULT_SENSITIVE_KEY_DENYLIST
    key_allowlist: frozenset[str] = frozenset()
    known_secrets: tuple[str, ...] = ()


DEFAULT_REDACTION_CONFIG: Final[RedactionConfig] = RedactionConfig()


def scan_for_secrets(text: str) -> tuple[SecretFinding, ...]:
    """Scan text for credential-like patterns in deterministic order."""

    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")

    findings: list[SecretFinding] = []
    for rule in _TEXT_RULES:
        for match in rule.pattern.finditer(text):
            start, end = match.span(rule.sensitive_group or 0)
            findings.append(SecretFinding(rule=rule.name, start=start, end=end))
    findings.sort(key=lambda item: (item.start, item.end, item.rule))
    return tuple(findings)


def is_sensitive_key(key: str, *, config: RedactionConfig | None = None) -> bool:
    """Return whether ``key`` names a credential (``SessionToken`` -> ``session_token``)."""

    resolved = config if config is not None else DEFAULT_REDACTION_CONFIG
    normalized = _normalize_key(key)
    if not normalized or normalized in resolved.key_allowlist:
        return False
    if normalized.endswith(_SAFE_KEY_SUFFIXES):
        return False
    if normalized in resolved.key_denylist:
        return True
    return normalized.endswith(_SENSITIVE_KEY_SUFFIXES)


def mask_known_secrets(
    text: str,
    secrets: Iterable[str],
    *,
    replacement: str = REDACTED_VALUE,
) -> str:
    """Replace every literal occurrence of each non-empty secret."""

    masked = text
    # Longest first so a secret that contains another is masked whole.
    for secret in sorted({item for item in secrets if item}, key=len, reverse=True):
        masked = masked.replace(secret, replacement)
    return masked


def redact_text(text: str, *, config: RedactionConfig | None = None) -> str:
    """Redact credential-like text. Deterministic and idempotent."""

    if not isinstance(text, str):
        raise TypeError(f"text must be a string, got {type(text).__name__}")

    resolved = config if config is not None else DEFAULT_REDACTION_CONFIG
    redacted = mask_known_secrets(text, resolved.known_secrets, replacement=resolved.replacement)
    for rule in _TEXT_RULES:
        redacted = _apply_text_rule(redacted, rule=rule, replacement=resolved.replacement)
    return redacted


def redact_structure(value: object, *, config: RedactionConfig | None = None) -> object:
    """Return a deep-redacted copy of nested mappings, lists and tuples."""

    resolved = config if config is not None else DEFAULT_REDACTION_CONFIG
    return _redact_structure(value, resolved=resolved)


def _apply_text_rule(text: str, *, rule: _TextRule, replacement: str) -> str:
    def repl(match: re.Match[str]) -> str:
        if rule.sensitive_group is None:
            return replacement
        full = match.group(0)
        start, end = match.span(rule.sensitive_group)
        offset_start = start - match.start(0)
        offset_end = end - match.start(0)
        return f"{full[:offset_start]}{replacement}{full[offset_end:]}"

    return rule.pattern.sub(repl, text)


def _redact_structure(value: object, *, resolved: RedactionConfig) -> object:
    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        return redact_text(value, config=resolved)

    if isinstance(value, bytes):
        return redact_text(value.decode("utf-8", errors="replace"), config=resolved)

    if isinstance(value, Mapping):
        out: dict[object, object] = {}
        for key, item in value.items():
            if isinstance(key, str) and is_sensitive_key(key, config=resolved):
                out[key] = resolved.replacement
            else:
                out[key] = _redact_structure(item, resolved=resolved)
        return out

    if isinstance(value, list):
        return [_redact_structure(item, resolved=resolved) for item in value]

    if isinstance(value, tuple):
        return tuple(_redact_structure(item, resolved=resolved) for item in value)

    return value


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


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
