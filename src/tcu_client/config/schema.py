"""
tcu-client — configuration schema and validation.

File: src/tcu_client/config/schema.py
Last updated: 2026-10-18

Purpose
- Define the three config sections (meta, api, observability), their defaults and
  the check applied to every key.

What should be included in this file
- TypedDict shapes and built-in defaults.
- One field table per section; each entry normalizes a value or rejects it.
- Deep merge and redaction helpers for layered loading and log dumps.

Functional requirements
- Report every problem at once as (dotted path, message) pairs.
- Unknown keys are rejected; keys that look like credentials get a pointer to the
  ``*_env`` indirection instead.

Non-functional requirements
- Issue order is stable: root keys first, then sections in declaration order.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict
from urllib.parse import urlsplit

from tcu_client.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SECURITY_TOKEN_ENV,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")
REDACTED_CONFIG_VALUE: Final[str] = "<redacted>"

# Relative values resolve against the directory holding the config file.
PATH_FIELDS: Final[tuple[tuple[str, str], ...]] = (
    ("observability", "log_dir"),
    ("observability", "call_log_path"),
)

_ENV_NAME = re.compile(r"[A-Z_][A-Z0-9_]*")
_SECRET_KEY = re.compile(r"token|secret|passw(or)?d|api_?key|credential|private", re.IGNORECASE)
_EMBEDDED_SECRET_MESSAGE: Final[str] = (
    "embedded secret values are forbidden; use an *_env key with an env var name"
)


class MetaConfig(TypedDict):
    schema_version: int


class ApiConfig(TypedDict):
    base_url: str
    username: str
    security_token_env: str
    timeout_seconds: float
    retry_attempts: int
    retry_delay_seconds: float
    verify_tls: bool
    user_agent: str


class ObservabilityConfig(TypedDict):
    log_level: str
    log_dir: str
    log_to_stdout: bool
    redact_secrets: bool
    call_log_enabled: bool
    call_log_path: str


class ClientConfig(TypedDict):
    meta: MetaConfig
    api: ApiConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ClientConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "api": {
        "base_url": DEFAULT_BASE_URL,
        "username": "",
        "security_token_env": DEFAULT_SECURITY_TOKEN_ENV,
        "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
        "retry_attempts": DEFAULT_RETRY_ATTEMPTS,
        "retry_delay_seconds": DEFAULT_RETRY_DELAY_SECONDS,
        "verify_tls": True,
        "user_agent": DEFAULT_USER_AGENT,
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs",
        "log_to_stdout": False,
        "redact_secrets": True,
        "call_log_enabled": False,
        "call_log_path": "state/tcu_calls.sqlite",
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        lines = [f"- {item.path}: {item.message}" for item in self.issues]
        super().__init__("invalid config:\n" + ("\n".join(lines) or "- <root>: unknown failure"))


class _Invalid(ValueError):
    pass


# Field checks: return the normalized value or raise _Invalid with the message.
_Check = Callable[[object], object]


def _type_name(value: object) -> str:
    return type(value).__name__


def _text(value: object) -> str:
    if not isinstance(value, str):
        raise _Invalid(f"expected string, got {_type_name(value)}")
    stripped = value.strip()
    if not stripped:
        raise _Invalid("must not be empty")
    return stripped


def _username(value: object) -> str:
    # Blank is allowed here; build_settings insists on it once env overrides are in.
    if not isinstance(value, str):
        raise _Invalid(f"expected string, got {_type_name(value)}")
    return value.strip()


def _base_url(value: object) -> str:
    url = _text(value)
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"} or not parts.netloc:
        raise _Invalid("must be an http(s) URL (example: https://api.tcu.go.tz)")
    return url.rstrip("/")


def _env_name(value: object) -> str:
    name = _text(value)
    if _ENV_NAME.fullmatch(name) is None:
        raise _Invalid("must be an env var name (example: TCU_SECURITY_TOKEN)")
    return name


def _path_text(value: object) -> str:
    path = _text(value)
    if "\x00" in path:
        raise _Invalid("must not contain NUL bytes")
    return path


def _flag(value: object) -> bool:
    if not isinstance(value, bool):
        raise _Invalid(f"expected boolean, got {_type_name(value)}")
    return value


def _log_level(value: object) -> str:
    level = _text(value).upper()
    if level not in LOG_LEVELS:
        expected = ", ".join(sorted(LOG_LEVELS))
        raise _Invalid(f"invalid value {level!r}; expected one of: {expected}")
    return level


def _whole(minimum: int) -> Callable[[object], int]:
    def check(value: object) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _Invalid(f"expected integer, got {_type_name(value)}")
        if value < minimum:
            raise _Invalid(f"must be >= {minimum}")
        return value

    return check


def _seconds(*, allow_zero: bool) -> Callable[[object], float]:
    def check(value: object) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise _Invalid(f"expected number, got {_type_name(value)}")
        seconds = float(value)
        if not math.isfinite(seconds):
            raise _Invalid("must be finite")
        if allow_zero and seconds < 0.0:
            raise _Invalid("must be >= 0.0")
        if not allow_zero and seconds <= 0.0:
            raise _Invalid("must be > 0.0")
        return seconds

    return check


def _schema_version(value: object) -> int:
    version = _whole(1)(value)
    if version != ConfigSchemaVersion:
        raise _Invalid(migration_guidance(version))
    return version


_SECTIONS: Final[Mapping[str, Mapping[str, _Check]]] = {
    "meta": {"schema_version": _schema_version},
    "api": {
        "base_url": _base_url,
        "username": _username,
        "security_token_env": _env_name,
        "timeout_seconds": _seconds(allow_zero=False),
        "retry_attempts": _whole(1),
        "retry_delay_seconds": _seconds(allow_zero=True),
        "verify_tls": _flag,
        "user_agent": _text,
    },
    "observability": {
        "log_level": _log_level,
        "log_dir": _path_text,
        "log_to_stdout": _flag,
        "redact_secrets": _flag,
        "call_log_enabled": _flag,
        "call_log_path": _path_text,
    },
}


def default_config() -> ClientConfig:
    """Return a fresh copy of the built-in defaults."""

    return merge_config({}, DEFAULT_CONFIG)  # type: ignore[return-value]


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade tcu_client.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the tcu-client package"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto ``base``; neither input is modified."""

    merged: dict[str, Any] = {key: _plain(value) for key, value in base.items()}
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = _plain(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Check every section and key, collecting all issues."""

    if not isinstance(config, Mapping):
        issue = ConfigValidationIssue("<root>", f"expected object, got {_type_name(config)}")
        return ConfigValidationResult(config=None, issues=(issue,))

    issues: list[ConfigValidationIssue] = []
    for key in sorted(str(name) for name in config if name not in _SECTIONS):
        issues.append(_unexpected(key, key))

    normalized: dict[str, Any] = {}
    for section, fields in _SECTIONS.items():
        raw = config.get(section)
        if raw is None:
            issues.append(ConfigValidationIssue(section, "missing required field"))
        elif not isinstance(raw, Mapping):
            issues.append(ConfigValidationIssue(section, f"expected object, got {_type_name(raw)}"))
        else:
            normalized[section] = _check_section(section, raw, fields, issues)

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def redact_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Copy of ``config`` with credential-looking keys masked, for dumps and logs."""

    if not isinstance(config, Mapping):
        return {}
    return _redact_mapping(config)


def _check_section(
    section: str,
    raw: Mapping[object, object],
    fields: Mapping[str, _Check],
    issues: list[ConfigValidationIssue],
) -> dict[str, Any]:
    for key in sorted(str(name) for name in raw if name not in fields):
        issues.append(_unexpected(f"{section}.{key}", key))

    out: dict[str, Any] = {}
    for key, check in fields.items():
        path = f"{section}.{key}"
        if key not in raw:
            issues.append(ConfigValidationIssue(path, "missing required field"))
            continue
        try:
            out[key] = check(raw[key])
        except _Invalid as exc:
            issues.append(ConfigValidationIssue(path, str(exc)))
    return out


def _unexpected(path: str, key: str) -> ConfigValidationIssue:
    if _is_secret_key(key):
        return ConfigValidationIssue(path, _EMBEDDED_SECRET_MESSAGE)
    return ConfigValidationIssue(path, "unknown field")


def _is_secret_key(key: str) -> bool:
    # security_token_env names a variable; redact_secrets is a switch.
    if key.lower().endswith("_env") or key == "redact_secrets":
        return False
    return _SECRET_KEY.search(key) is not None


def _plain(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _redact_mapping(value: Mapping[Any, object]) -> dict[str, Any]:
    return {
        key: REDACTED_CONFIG_VALUE if _is_secret_key(str(key)) else _redact(item)
        for key, item in sorted(value.items(), key=lambda pair: str(pair[0]))
    }


def _redact(value: object) -> object:
    if isinstance(value, Mapping):
        return _redact_mapping(value)
    if isinstance(value, (list, tuple)):
        return [_redact(item) for item in value]
    return value


__all__ = [
    "ApiConfig",
    "ClientConfig",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "ObservabilityConfig",
    "PATH_FIELDS",
    "REDACTED_CONFIG_VALUE",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "validate_config",
]
