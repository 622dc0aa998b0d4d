"""
tcu-client — unit tests for resource group facades

File: tests/unit/dispatch/test_resources.py
Last updated: 2026-10-18

Purpose
- Validate that facades cover the catalog and shape arguments into field mappings.

What this test file should cover
- One facade method per catalogued operation, and nothing extra.
- Argument to field mapping for the scalar-argument methods.
"""

from __future__ import annotations

import inspect
from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from tcu_client.dispatch.operations import load_operation_catalog
from tcu_client.dispatch.resources import (
    RESOURCE_GROUPS,
    Admissions,
    Applicants,
    Dashboard,
    Enrollment,
    ResourceGroup,
    Transfers,
)
from tcu_client.domain.models import OutcomeCategory, Record, TypedResult
from tcu_client.validation.rules import load_field_rules

CATALOG = load_operation_catalog(load_field_rules())


@dataclass(slots=True)
class _RecordingDispatcher:
    calls: list[tuple[str, object]] = field(default_factory=list)

    def call(self, operation: str, data: Record | Sequence[Record]) -> TypedResult:
        self.calls.append((operation, data))
        return TypedResult(
            operation=operation,
            category=OutcomeCategory.SUCCESS,
            status_code=200,
            status_description="ok",
        )


def _bind(group_type: type[ResourceGroup]) -> tuple[ResourceGroup, _RecordingDispatcher]:
    dispatcher = _RecordingDispatcher()
    return group_type(dispatcher), dispatcher  # type: ignore[arg-type]


def _public_methods(group_type: type[ResourceGroup]) -> set[str]:
    return {
        name
        for name, member in inspect.getmembers(group_type, inspect.isfunction)
        if not name.startswith("_")
    }


def test_groups_match_catalog_groups() -> None:
    assert sorted(group_type.group for group_type in RESOURCE_GROUPS) == list(CATALOG.groups())


@pytest.mark.parametrize("group_type", RESOURCE_GROUPS, ids=lambda item: item.group)
def test_every_operation_has_exactly_one_facade_method(
    group_type: type[ResourceGroup],
) -> None:
    expected = {
        descriptor.name.partition(".")[2] for descriptor in CATALOG.in_group(group_type.group)
    }

    assert _public_methods(group_type) == expected


def test_check_status_single_and_many() -> None:
    applicants, dispatcher = _bind(Applicants)
    assert isinstance(applicants, Applicants)

    applicants.check_status("S0101/0001/2019")
    applicants.check_status("S0101/0001/2019", "S0101/0002/2019")

    assert dispatcher.calls == [
        ("applicants.check_status", {"f4indexno": "S0101/0001/2019"}),
        ("applicants.check_status", {"f4indexno": ["S0101/0001/2019", "S0101/0002/2019"]}),
    ]


def test_admissions_argument_mapping() -> None:
    admissions, dispatcher = _bind(Admissions)
    assert isinstance(admissions, Admissions)

    admissions.confirm("S0101/0001/2019", "A5267Y")
    admissions.unconfirm("S0101/0001/2019", "Changed programme")
    admissions.get_programmes()
    admissions.request_confirmation_code("S0101/0001/2019", mobile_number="0712345678")
    admissions.restore_cancelled_admission("S0101/0001/2019", "UD023")

    assert dispatcher.calls == [
        ("admissions.confirm", {"f4indexno": "S0101/0001/2019", "ConfirmationCode": "A5267Y"}),
        ("admissions.unconfirm", {"f4indexno": "S0101/0001/2019", "Reason": "Changed programme"}),
        ("admissions.get_programmes", {}),
        (
            "admissions.request_confirmation_code",
            {"f4indexno": "S0101/0001/2019", "MobileNumber": "0712345678", "EmailAddress": None},
        ),
        (
            "admissions.restore_cancelled_admission",
            {"f4indexno": "S0101/0001/2019", "ProgrammeCode": "UD023", "Reason": None},
        ),
    ]


def test_dashboard_populate_mapping() -> None:
    dashboard, dispatcher = _bind(Dashboard)
    assert isinstance(dashboard, Dashboard)

    dashboard.populate("UD023", 120, 98)

    assert dispatcher.calls == [
        ("dashboard.populate", {"ProgrammeCode": "UD023", "Males": 120, "Females": 98})
    ]


def test_programme_lookups_and_batches_forward_unchanged() -> None:
    transfers, dispatcher = _bind(Transfers)
    assert isinstance(transfers, Transfers)
    enrollment, enrollment_dispatcher = _bind(Enrollment)
    assert isinstance(enrollment, Enrollment)
    students = [{"f4indexno": "S0101/0001/2019"}]

    transfers.get_internal_status("UD023")
    transfers.submit_internal(students)
    enrollment.submit_dropouts(students)

    assert dispatcher.calls == [
        ("transfers.get_internal_status", {"ProgrammeCode": "UD023"}),
        ("transfers.submit_internal", students),
    ]
    assert enrollment_dispatcher.calls == [("enrollment.submit_dropouts", students)]
