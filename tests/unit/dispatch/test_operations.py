"""
tcu-client — unit tests for the operation catalog

File: tests/unit/dispatch/test_operations.py
Last updated: 2026-10-18

Purpose
- Validate the bundled operation catalog and descriptor invariants.

What this test file should cover
- All eleven groups and thirty-three operations load.
- Every declared field resolves to a registered rule.
- Malformed descriptors and catalogs are rejected at load time.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tcu_client.dispatch.operations import (
    OperationCatalog,
    OperationDescriptor,
    load_operation_catalog,
)
from tcu_client.domain.models import ResponseShape
from tcu_client.errors import CatalogError, UnknownOperationError
from tcu_client.validation.rules import load_field_rules

REGISTRY = load_field_rules()

EXPECTED_GROUPS = {
    "admissions": 7,
    "applicants": 7,
    "dashboard": 1,
    "enrollment": 3,
    "foreign_applicants": 3,
    "graduates": 1,
    "non_degree": 2,
    "postgraduate": 3,
    "staff": 1,
    "transfers": 4,
    "verification": 1,
}


def test_bundled_catalog_covers_every_group() -> None:
    catalog = load_operation_catalog(REGISTRY)

    assert len(catalog) == 33
    assert catalog.groups() == tuple(sorted(EXPECTED_GROUPS))
    assert {group: len(catalog.in_group(group)) for group in catalog.groups()} == EXPECTED_GROUPS


def test_every_validated_field_has_a_rule() -> None:
    catalog = load_operation_catalog(REGISTRY)

    for descriptor in catalog:
        assert all(name in REGISTRY for name in descriptor.validated_fields), descriptor.name
        assert descriptor.path.startswith("/")
        assert descriptor.method == "POST"


def test_descriptor_details() -> None:
    catalog = load_operation_catalog(REGISTRY)

    check = catalog.get("applicants.check_status")
    assert check.path == "/applicants/checkStatus"
    assert check.repeatable == frozenset({"f4indexno"})
    assert not check.batch

    add = catalog.get("applicants.add")
    assert add.batch
    assert add.field_order[:4] == ("f4indexno", "f6indexno", "Gender", "Category")

    programmes = catalog.get("admissions.get_programmes")
    assert programmes.required == ()
    assert programmes.response is ResponseShape.RECORDS
    assert programmes.record_tag == "Programme"

    dropouts = catalog.get("enrollment.submit_dropouts")
    assert dropouts.is_passthrough("Remarks")
    assert dropouts.accepts("Remarks")
    assert not dropouts.accepts("Nickname")


def test_unknown_operation() -> None:
    catalog = load_operation_catalog(REGISTRY)

    with pytest.raises(UnknownOperationError):
        catalog.get("applicants.delete")
    assert "applicants.delete" not in catalog


@pytest.mark.parametrize(
    ("kwargs", "fragment"),
    [
        ({"name": "nodot", "path": "/x"}, "group.method"),
        ({"name": "a.b", "path": "x"}, "must start with '/'"),
        ({"name": "a.b", "path": "/x", "method": "DELETE"}, "unsupported method"),
        ({"name": "a.b", "path": "/x", "required": ("A",), "optional": ("A",)}, "more than once"),
        ({"name": "a.b", "path": "/x", "repeatable": frozenset({"A"})}, "must be declared"),
        (
            {
                "name": "a.b",
                "path": "/x",
                "batch": True,
                "required": ("A",),
                "repeatable": frozenset({"A"}),
            },
            "batch operations cannot declare repeatable fields",
        ),
    ],
)
def test_descriptor_invariants(kwargs: dict[str, object], fragment: str) -> None:
    with pytest.raises(ValueError, match=fragment):
        OperationDescriptor(**kwargs)  # type: ignore[arg-type]


def test_descriptor_group_and_method_normalization() -> None:
    descriptor = OperationDescriptor(name="staff.submit", path="/s", method="put")

    assert descriptor.group == "staff"
    assert descriptor.method == "PUT"


def test_field_without_rule_fails_at_load() -> None:
    text = "operations:\n  - name: a.b\n    path: /x\n    required: [NoSuchField]\n"

    with pytest.raises(CatalogError, match="fields without a registered rule"):
        OperationCatalog.from_yaml_text(text, registry=REGISTRY)


def test_passthrough_fields_need_no_rule() -> None:
    text = "operations:\n  - name: a.b\n    path: /x\n    passthrough: [Anything]\n"

    catalog = OperationCatalog.from_yaml_text(text, registry=REGISTRY)

    assert catalog.names() == ("a.b",)


@pytest.mark.parametrize(
    ("text", "fragment"),
    [
        ("ops: []", "expected a mapping with an 'operations' sequence"),
        ("operations: {}", "operations: expected a sequence"),
        ("operations:\n  - path: /x\n", "missing required fields"),
        ("operations:\n  - name: a.b\n    path: /x\n    colour: red\n", "unexpected fields"),
        ("operations:\n  - name: a.b\n    path: /x\n    batch: 'yes'\n", "expected boolean"),
        ("operations:\n  - name: a.b\n    path: /x\n    response: table\n", "invalid shape"),
        ("operations:\n  - name: a.b\n    path: /x\n    required: F\n", "sequence of strings"),
        (
            "operations:\n  - name: a.b\n    path: /x\n  - name: a.b\n    path: /y\n",
            "duplicate operation: a.b",
        ),
        ("operations:\n  - name: a\n    path: /x\n", "group.method"),
        ("operations: [", "invalid YAML"),
    ],
)
def test_malformed_catalogs(text: str, fragment: str) -> None:
    with pytest.raises(CatalogError) as excinfo:
        OperationCatalog.from_yaml_text(text, registry=REGISTRY, source="ops.yaml")

    assert fragment in str(excinfo.value)


def test_load_from_path(tmp_path: Path) -> None:
    path = tmp_path / "ops.yaml"
    path.write_text(
        "operations:\n  - name: staff.list\n    path: /staff/list\n    response: none\n",
        encoding="utf-8",
    )

    catalog = load_operation_catalog(REGISTRY, path)

    assert catalog.get("staff.list").response is ResponseShape.NONE


def test_missing_catalog_file(tmp_path: Path) -> None:
    with pytest.raises(CatalogError, match="unable to read operation catalog"):
        load_operation_catalog(REGISTRY, tmp_path / "absent.yaml")
