"""
tcu-client — configuration package

File: src/tcu_client/config/__init__.py
Last updated: 2026-10-18

Purpose
- Public API for config schema validation, loading and settings resolution.

What should be included in this file
- Re-exports of schema and loader entry points.

Functional requirements
- Must not load any config at import time.

Non-functional requirements
- Keep the public surface small and stable.
"""

from tcu_client.config.loader import (
    ClientSettings,
    ConfigLoadError,
    build_settings,
    dump_effective_config,
    load_config,
    load_settings,
    normalize_paths,
)
from tcu_client.config.schema import (
    DEFAULT_CONFIG,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    redact_config,
    validate_config,
)

__all__ = [
    "ClientSettings",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "assert_valid_config",
    "build_settings",
    "default_config",
    "dump_effective_config",
    "load_config",
    "load_settings",
    "merge_config",
    "normalize_paths",
    "redact_config",
    "validate_config",
]
