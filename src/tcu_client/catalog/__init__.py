"""Bundled YAML catalogs: field rules and operation descriptors."""

from __future__ import annotations

from importlib import resources
from typing import Final

FIELD_RULES_RESOURCE: Final[str] = "field_rules.yaml"
OPERATIONS_RESOURCE: Final[str] = "operations.yaml"


def read_bundled(name: str) -> str:
    """Return the text of one bundled catalog file."""

    return resources.files(__name__).joinpath(name).read_text(encoding="utf-8")


__all__ = ["FIELD_RULES_RESOURCE", "OPERATIONS_RESOURCE", "read_bundled"]
