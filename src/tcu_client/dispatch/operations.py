"""
tcu-client — operation descriptor catalog

File: src/tcu_client/dispatch/operations.py
Last updated: 2026-10-18

Purpose
- Declarative per-operation metadata that drives the one generic dispatcher.

What should be included in this file
- OperationDescriptor: name, group, path, method, field lists, batch flag,
  response shape and record tag.
- OperationCatalog: immutable name -> descriptor table cross-checked against the
  field rule registry.
- Loader for the bundled ``operations.yaml``.

Functional requirements
- A declared required/optional field without a registered rule is a catalog defect
  and fails at load time, never at call time.
- Unknown operation names raise UnknownOperationError.

Non-functional requirements
- Adding an operation is a data change; no dispatch code is touched.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Final, cast

import yaml

from tcu_client.catalog import OPERATIONS_RESOURCE, read_bundled
from tcu_client.constants import DEFAULT_HTTP_METHOD
from tcu_client.domain.models import ResponseShape
from tcu_client.errors import CatalogError, UnknownOperationError
from tcu_client.validation.rules import FieldRuleRegistry

_REQUIRED_KEYS: Final[frozenset[str]] = frozenset({"name", "path"})
_OPTIONAL_KEYS: Final[frozenset[str]] = frozenset(
    {
        "batch",
        "method",
        "optional",
        "passthrough",
        "record_tag",
        "repeatable",
        "required",
        "response",
        "summary",
    }
)
_ALLOWED_METHODS: Final[frozenset[str]] = frozenset({"GET", "POST", "PUT"})


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    """Everything the dispatcher needs to know about one remote operation."""

    name: str
    path: str
    method: str = DEFAULT_HTTP_METHOD
    summary: str = ""
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    passthrough: tuple[str, ...] = ()
    repeatable: frozenset[str] = frozenset()
    batch: bool = False
    response: ResponseShape = ResponseShape.RECORD
    record_tag: str | None = None
    group: str = field(init=False)

    def __post_init__(self) -> None:
        group, sep, method_name = self.name.partition(".")
        if not sep or not group or not method_name:
            raise ValueError(f"operation name must be 'group.method': {self.name!r}")
        object.__setattr__(self, "group", group)
        if not self.path.startswith("/"):
            raise ValueError(f"{self.name}: path must start with '/'")
        method = self.method.upper()
        if method not in _ALLOWED_METHODS:
            raise ValueError(f"{self.name}: unsupported method {self.method!r}")
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "required", tuple(self.required))
        object.__setattr__(self, "optional", tuple(self.optional))
        object.__setattr__(self, "passthrough", tuple(self.passthrough))
        object.__setattr__(self, "repeatable", frozenset(self.repeatable))
        object.__setattr__(self, "response", ResponseShape(self.response))

        declared = (*self.required, *self.optional, *self.passthrough)
        duplicates = sorted({name for name in declared if declared.count(name) > 1})
        if duplicates:
            raise ValueError(f"{self.name}: fields declared more than once: {duplicates}")
        stray = sorted(self.repeatable - set(self.required) - set(self.optional))
        if stray:
            raise ValueError(f"{self.name}: repeatable fields must be declared: {stray}")
        if self.batch and self.repeatable:
            raise ValueError(f"{self.name}: batch operations cannot declare repeatable fields")

    @property
    def validated_fields(self) -> tuple[str, ...]:
        return (*self.required, *self.optional)

    @property
    def field_order(self) -> tuple[str, ...]:
        """Wire order for parameter block elements."""

        return (*self.required, *self.optional, *self.passthrough)

    def accepts(self, field_name: str) -> bool:
        return field_name in self.field_order

    def is_passthrough(self, field_name: str) -> bool:
        return field_name in self.passthrough


class OperationCatalog:
    """Immutable name -> OperationDescriptor table."""

    __slots__ = ("_by_name",)

    def __init__(
        self,
        descriptors: Iterable[OperationDescriptor],
        *,
        registry: FieldRuleRegistry,
    ) -> None:
        table: dict[str, OperationDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in table:
                raise CatalogError(f"duplicate operation: {descriptor.name}")
            missing = [name for name in descriptor.validated_fields if name not in registry]
            if missing:
                raise CatalogError(
                    f"{descriptor.name}: fields without a registered rule: {sorted(missing)}"
                )
            table[descriptor.name] = descriptor
        self._by_name: Mapping[str, OperationDescriptor] = MappingProxyType(table)

    def get(self, name: str) -> OperationDescriptor:
        descriptor = self._by_name.get(name)
        if descriptor is None:
            raise UnknownOperationError(name)
        return descriptor

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_name))

    def groups(self) -> tuple[str, ...]:
        return tuple(sorted({item.group for item in self._by_name.values()}))

    def in_group(self, group: str) -> tuple[OperationDescriptor, ...]:
        return tuple(
            item for name, item in sorted(self._by_name.items()) if item.group == group
        )

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self._by_name.values())

    @classmethod
    def from_yaml_text(
        cls,
        text: str,
        *,
        registry: FieldRuleRegistry,
        source: str = "<memory>",
    ) -> OperationCatalog:
        try:
            document = cast("object", yaml.safe_load(text))
        except yaml.YAMLError as exc:
            raise CatalogError(f"{source}: invalid YAML ({exc})") from exc
        return cls(_parse_document(document, source=source), registry=registry)


def load_operation_catalog(
    registry: FieldRuleRegistry,
    path: str | Path | None = None,
) -> OperationCatalog:
    """Load the bundled operation catalog, or a replacement from ``path``."""

    if path is None:
        return OperationCatalog.from_yaml_text(
            read_bundled(OPERATIONS_RESOURCE), registry=registry, source=OPERATIONS_RESOURCE
        )
    resolved = Path(path)
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogError(f"unable to read operation catalog {resolved}: {exc}") from exc
    return OperationCatalog.from_yaml_text(text, registry=registry, source=str(resolved))


def _parse_document(document: object, *, source: str) -> list[OperationDescriptor]:
    if not isinstance(document, Mapping) or "operations" not in document:
        raise CatalogError(f"{source}: expected a mapping with an 'operations' sequence")
    entries = document["operations"]
    if not isinstance(entries, list):
        raise CatalogError(f"{source}.operations: expected a sequence")
    return [
        _parse_entry(entry, location=f"{source}.operations[{index}]")
        for index, entry in enumerate(entries)
    ]


def _parse_entry(entry: object, *, location: str) -> OperationDescriptor:
    if not isinstance(entry, Mapping):
        raise CatalogError(f"{location}: expected mapping, got {type(entry).__name__}")
    keys = {str(key) for key in entry}
    missing = sorted(_REQUIRED_KEYS - keys)
    if missing:
        raise CatalogError(f"{location}: missing required fields: {missing}")
    unknown = sorted(keys - _REQUIRED_KEYS - _OPTIONAL_KEYS)
    if unknown:
        raise CatalogError(f"{location}: unexpected fields: {unknown}")

    batch = entry.get("batch", False)
    if not isinstance(batch, bool):
        raise CatalogError(f"{location}.batch: expected boolean")
    record_tag = entry.get("record_tag")
    if record_tag is not None and not isinstance(record_tag, str):
        raise CatalogError(f"{location}.record_tag: expected string")
    response = entry.get("response", ResponseShape.RECORD.value)
    try:
        shape = ResponseShape(str(response))
    except ValueError as exc:
        expected = ", ".join(item.value for item in ResponseShape)
        raise CatalogError(
            f"{location}.response: invalid shape {response!r}; expected one of: {expected}"
        ) from exc

    try:
        return OperationDescriptor(
            name=_as_str(entry["name"], f"{location}.name"),
            path=_as_str(entry["path"], f"{location}.path"),
            method=_as_str(entry.get("method", DEFAULT_HTTP_METHOD), f"{location}.method"),
            summary=str(entry.get("summary", "")).strip(),
            required=tuple(_as_str_list(entry.get("required", []), f"{location}.required")),
            optional=tuple(_as_str_list(entry.get("optional", []), f"{location}.optional")),
            passthrough=tuple(
                _as_str_list(entry.get("passthrough", []), f"{location}.passthrough")
            ),
            repeatable=frozenset(
                _as_str_list(entry.get("repeatable", []), f"{location}.repeatable")
            ),
            batch=batch,
            response=shape,
            record_tag=record_tag,
        )
    except (TypeError, ValueError) as exc:
        if isinstance(exc, CatalogError):
            raise
        raise CatalogError(f"{location}: {exc}") from exc


def _as_str(value: object, location: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{location}: expected non-empty string")
    return value.strip()


def _as_str_list(value: object, location: str) -> list[str]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise CatalogError(f"{location}: expected a sequence of strings")
    return [_as_str(item, f"{location}[{index}]") for index, item in enumerate(value)]


__all__ = ["OperationCatalog", "OperationDescriptor", "load_operation_catalog"]
