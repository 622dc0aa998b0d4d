"""
tcu-client — resource group facades

File: src/tcu_client/dispatch/resources.py
Last updated: 2026-10-18

Purpose
- Typed, named entry points per resource group over the one dispatcher.

What should be included in this file
- One facade class per catalog group; one method per catalogued operation.
- Batch methods take a sequence of field mappings; lookups take scalar arguments.

Functional requirements
- Facades only shape arguments into field mappings. Validation, marshalling and
  status mapping all happen in the dispatcher.

Non-functional requirements
- Method names match the operation names in ``catalog/operations.yaml``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import ClassVar, Final

from tcu_client.dispatch.dispatcher import ResourceDispatcher
from tcu_client.domain.models import Record, TypedResult

Subjects = Sequence[Mapping[str, object]]


class ResourceGroup:
    """Base facade bound to one dispatcher."""

    group: ClassVar[str] = ""

    __slots__ = ("_dispatcher",)

    def __init__(self, dispatcher: ResourceDispatcher) -> None:
        self._dispatcher = dispatcher

    def _call(self, method: str, data: Record | Subjects) -> TypedResult:
        return self._dispatcher.call(f"{self.group}.{method}", data)

    def _by_programme(self, method: str, programme_code: str) -> TypedResult:
        return self._call(method, {"ProgrammeCode": programme_code})


class Applicants(ResourceGroup):
    group = "applicants"
    __slots__ = ()

    def check_status(self, *f4indexno: str) -> TypedResult:
        """Prior-admission status for one or more form four index numbers."""

        value: object = f4indexno[0] if len(f4indexno) == 1 else list(f4indexno)
        return self._call("check_status", {"f4indexno": value})

    def add(self, applicants: Subjects) -> TypedResult:
        return self._call("add", applicants)

    def submit_programme(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_programme", applicants)

    def resubmit(self, applicants: Subjects) -> TypedResult:
        return self._call("resubmit", applicants)

    def get_status(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_status", programme_code)

    def get_confirmed(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_confirmed", programme_code)

    def get_admitted(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_admitted", programme_code)


class Admissions(ResourceGroup):
    group = "admissions"
    __slots__ = ()

    def confirm(self, f4indexno: str, confirmation_code: str) -> TypedResult:
        return self._call(
            "confirm", {"f4indexno": f4indexno, "ConfirmationCode": confirmation_code}
        )

    def unconfirm(self, f4indexno: str, reason: str) -> TypedResult:
        return self._call("unconfirm", {"f4indexno": f4indexno, "Reason": reason})

    def get_admitted(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_admitted", programme_code)

    def get_programmes(self) -> TypedResult:
        return self._call("get_programmes", {})

    def request_confirmation_code(
        self,
        f4indexno: str,
        *,
        mobile_number: str | None = None,
        email_address: str | None = None,
    ) -> TypedResult:
        return self._call(
            "request_confirmation_code",
            {
                "f4indexno": f4indexno,
                "MobileNumber": mobile_number,
                "EmailAddress": email_address,
            },
        )

    def reject(self, f4indexno: str, reason: str) -> TypedResult:
        return self._call("reject", {"f4indexno": f4indexno, "Reason": reason})

    def restore_cancelled_admission(
        self, f4indexno: str, programme_code: str, *, reason: str | None = None
    ) -> TypedResult:
        return self._call(
            "restore_cancelled_admission",
            {"f4indexno": f4indexno, "ProgrammeCode": programme_code, "Reason": reason},
        )


class Dashboard(ResourceGroup):
    group = "dashboard"
    __slots__ = ()

    def populate(self, programme_code: str, males: int, females: int) -> TypedResult:
        return self._call(
            "populate", {"ProgrammeCode": programme_code, "Males": males, "Females": females}
        )


class Transfers(ResourceGroup):
    group = "transfers"
    __slots__ = ()

    def submit_internal(self, transfers: Subjects) -> TypedResult:
        return self._call("submit_internal", transfers)

    def submit_inter_institutional(self, transfers: Subjects) -> TypedResult:
        return self._call("submit_inter_institutional", transfers)

    def get_internal_status(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_internal_status", programme_code)

    def get_inter_institutional_status(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_inter_institutional_status", programme_code)


class Verification(ResourceGroup):
    group = "verification"
    __slots__ = ()

    def get_status(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_status", programme_code)


class Enrollment(ResourceGroup):
    group = "enrollment"
    __slots__ = ()

    def submit_enrolled(self, students: Subjects) -> TypedResult:
        return self._call("submit_enrolled", students)

    def submit_dropouts(self, students: Subjects) -> TypedResult:
        return self._call("submit_dropouts", students)

    def submit_postponed(self, students: Subjects) -> TypedResult:
        return self._call("submit_postponed", students)


class Graduates(ResourceGroup):
    group = "graduates"
    __slots__ = ()

    def submit(self, graduates: Subjects) -> TypedResult:
        return self._call("submit", graduates)


class Staff(ResourceGroup):
    group = "staff"
    __slots__ = ()

    def submit(self, staff: Subjects) -> TypedResult:
        return self._call("submit", staff)


class NonDegree(ResourceGroup):
    group = "non_degree"
    __slots__ = ()

    def submit_admitted(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_admitted", applicants)

    def get_admitted_status(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_admitted_status", programme_code)


class Postgraduate(ResourceGroup):
    group = "postgraduate"
    __slots__ = ()

    def submit_applicants(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_applicants", applicants)

    def submit_admitted(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_admitted", applicants)

    def get_admitted_status(self, programme_code: str) -> TypedResult:
        return self._by_programme("get_admitted_status", programme_code)


class ForeignApplicants(ResourceGroup):
    group = "foreign_applicants"
    __slots__ = ()

    def submit_applicants(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_applicants", applicants)

    def submit_admitted_direct(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_admitted_direct", applicants)

    def submit_admitted_equivalent(self, applicants: Subjects) -> TypedResult:
        return self._call("submit_admitted_equivalent", applicants)


RESOURCE_GROUPS: Final[tuple[type[ResourceGroup], ...]] = (
    Applicants,
    Admissions,
    Dashboard,
    Transfers,
    Verification,
    Enrollment,
    Graduates,
    Staff,
    NonDegree,
    Postgraduate,
    ForeignApplicants,
)


__all__ = [
    "Admissions",
    "Applicants",
    "Dashboard",
    "Enrollment",
    "ForeignApplicants",
    "Graduates",
    "NonDegree",
    "Postgraduate",
    "RESOURCE_GROUPS",
    "ResourceGroup",
    "Staff",
    "Subjects",
    "Transfers",
    "Verification",
]
