"""
tcu-client — runtime config loader.

File: src/tcu_client/config/loader.py
Last updated: 2026-10-18

Purpose
- Turn tcu_client.toml, TCU_* environment variables and caller overrides into the
  immutable ClientSettings a client is built from.

What should be included in this file
- Layering: defaults, then the file, then env vars, then overrides.
- One env var per api/observability key, e.g. TCU_API_TIMEOUT_SECONDS, coerced to
  the type of the key's default.
- Log and call log paths resolved against the config file's directory.
- The session token read from the variable named by ``api.security_token_env``.

Functional requirements
- A missing username or session token fails here, never at call time.
- The session token never appears in repr, dumps or error text.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from tcu_client.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
)
from tcu_client.domain.models import Identity

DEFAULT_CONFIG_FILE: Final[str] = "tcu_client.toml"
ENV_PREFIX: Final[str] = "TCU_"

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})

_ENV_SECTIONS: Final[tuple[str, ...]] = ("api", "observability")


class ConfigLoadError(ValueError):
    """Raised when config cannot be loaded or overrides cannot be coerced."""


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Everything a client needs, read once at construction."""

    username: str
    session_token: str = field(repr=False)
    base_url: str
    timeout_seconds: float
    retry_attempts: int
    retry_delay_seconds: float
    verify_tls: bool = True
    user_agent: str = ""
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_to_stdout: bool = False
    redact_secrets: bool = True
    call_log_path: str | None = None

    def identity(self) -> Identity:
        return Identity(username=self.username, session_token=self.session_token)

    def observability_section(self) -> dict[str, object]:
        return {
            "log_level": self.log_level,
            "log_dir": self.log_dir,
            "log_to_stdout": self.log_to_stdout,
            "redact_secrets": self.redact_secrets,
        }


def load_config(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Layer defaults, the TOML file, ``TCU_*`` env vars and ``overrides`` (last wins).

    The file is validated on its own first so an embedded credential is reported
    against the file even when a later layer would have replaced it.
    """

    path = _resolve_config_path(config_path)
    env = os.environ if environ is None else environ

    config = assert_valid_config(
        merge_config(default_config(), _read_toml(path, required=config_path is not None))
    )
    config = merge_config(config, _env_layer(env))
    config = merge_config(config, _override_layer(overrides or {}))
    config = assert_valid_config(config)
    return assert_valid_config(normalize_paths(config, base_dir=path.parent))


def build_settings(
    config: Mapping[str, Any],
    *,
    environ: Mapping[str, str] | None = None,
) -> ClientSettings:
    """Resolve a validated config into ClientSettings, reading the credential from env."""

    validated = assert_valid_config(config)
    env = os.environ if environ is None else environ
    api = validated["api"]
    observability = validated["observability"]

    if not api["username"]:
        raise ConfigLoadError(
            f"api.username is required "
            f"(set it in {DEFAULT_CONFIG_FILE} or {env_var_for('api', 'username')})"
        )
    token_env = api["security_token_env"]
    token = env.get(token_env, "").strip()
    if not token:
        raise ConfigLoadError(
            f"missing session token: environment variable {token_env} is unset or empty"
        )

    return ClientSettings(
        username=api["username"],
        session_token=token,
        base_url=api["base_url"],
        timeout_seconds=api["timeout_seconds"],
        retry_attempts=api["retry_attempts"],
        retry_delay_seconds=api["retry_delay_seconds"],
        verify_tls=api["verify_tls"],
        user_agent=api["user_agent"],
        log_level=observability["log_level"],
        log_dir=observability["log_dir"],
        log_to_stdout=observability["log_to_stdout"],
        redact_secrets=observability["redact_secrets"],
        call_log_path=(
            observability["call_log_path"] if observability["call_log_enabled"] else None
        ),
    )


def load_settings(
    config_path: str | Path | None = None,
    *,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> ClientSettings:
    config = load_config(config_path, overrides=overrides, environ=environ)
    return build_settings(config, environ=environ)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Resolve the log directory and call log path against ``base_dir``."""

    normalized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        values = normalized.get(section)
        if isinstance(values, dict) and isinstance(values.get(key), str):
            values[key] = _absolute(values[key], base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Stable single-line JSON of the redacted config."""

    return json.dumps(
        redact_config(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def env_var_for(section: str, key: str) -> str:
    return f"{ENV_PREFIX}{section.upper()}_{key.upper()}"


def _resolve_config_path(config_path: str | Path | None) -> Path:
    if config_path is None:
        return (Path.cwd() / DEFAULT_CONFIG_FILE).resolve()
    return Path(config_path).expanduser().resolve()


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for section in _ENV_SECTIONS:
        for key, default in DEFAULT_CONFIG[section].items():  # type: ignore[literal-required]
            name = env_var_for(section, key)
            raw = environ.get(name)
            if raw is not None:
                layer.setdefault(section, {})[key] = _coerce(raw.strip(), type(default), name)
    return layer


def _coerce(raw: str, kind: type, env_name: str) -> object:
    if kind is bool:
        lowered = raw.lower()
        if lowered in _BOOLEAN_TRUE:
            return True
        if lowered in _BOOLEAN_FALSE:
            return False
        raise ConfigLoadError(f"{env_name} must be a boolean (true/false/1/0/yes/no/on/off)")
    if kind is int:
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} must be an integer") from exc
    if kind is float:
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigLoadError(f"{env_name} must be a number") from exc
    return raw


def _override_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    # Keys are either section names or dotted "section.key" paths.
    layer: dict[str, Any] = {}
    for dotted, value in overrides.items():
        section, dot, key = dotted.partition(".")
        if not section or (dot and not key):
            raise ConfigLoadError(f"invalid override key {dotted!r}")
        update: object = {key: value} if key else value
        layer = merge_config(layer, {section: update})
    return layer


def _absolute(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ClientSettings",
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "build_settings",
    "dump_effective_config",
    "env_var_for",
    "load_config",
    "load_settings",
    "normalize_paths",
]
