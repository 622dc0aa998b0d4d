"""
tcu-client — status code taxonomy

File: src/tcu_client/wire/status.py
Last updated: 2026-10-18

Purpose
- Map remote numeric status codes onto the local outcome categories.

What should be included in this file
- The bundled code table (symbolic name, known message, category).
- A pure, immutable classifier with graceful handling of unmapped codes.

Functional requirements
- Same code always yields the same category.
- Unmapped codes classify as UNCLASSIFIED_REMOTE_ERROR and never raise.

Non-functional requirements
- Tables are read-only after construction; safe to share across threads.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final

from tcu_client.domain.models import OutcomeCategory

UNKNOWN_STATUS_MESSAGE: Final[str] = "Unknown response code"


@dataclass(frozen=True, slots=True)
class StatusCodeInfo:
    code: int
    name: str
    message: str
    category: OutcomeCategory


_S = OutcomeCategory.SUCCESS
_B = OutcomeCategory.BUSINESS_CONDITION
_V = OutcomeCategory.VALIDATION_FAILURE
_A = OutcomeCategory.AUTHENTICATION_FAILURE

BUNDLED_STATUS_CODES: Final[tuple[StatusCodeInfo, ...]] = (
    StatusCodeInfo(200, "SUCCESS", "Operation was performed successfully.", _S),
    StatusCodeInfo(
        201, "PRIOR_ADMISSION", "Applicant record was found in prior admission list.", _B
    ),
    StatusCodeInfo(202, "CLEAR", "Applicant has no prior admission.", _S),
    StatusCodeInfo(
        203,
        "ALREADY_ADMITTED",
        "Applicant is already admitted in current admission cycle.",
        _B,
    ),
    StatusCodeInfo(
        204,
        "SESSION_TOKEN_DOES_NOT_EXIST",
        "The given session token does not exist in system, please contact system administrator.",
        _A,
    ),
    StatusCodeInfo(205, "MALFORMED_XML_REQUEST", "Invalid xml request.", _V),
    StatusCodeInfo(
        206, "EMPTY_FORM_FOUR_INDEX_NUMBER", "Form four index number cannot be null.", _V
    ),
    StatusCodeInfo(207, "OPERATION_FAIL", "Data was not successfully submitted to TCU.", _B),
    StatusCodeInfo(
        208, "DUPLICATE_RECORD", "The applicant has already been submitted previously.", _B
    ),
    StatusCodeInfo(
        209,
        "RE_SUBMITTED_SUCCESSFUL",
        "The applicant has already been re-submitted previously.",
        _S,
    ),
    StatusCodeInfo(210, "NOT_FOUND", "No record found", _B),
    StatusCodeInfo(211, "MANDATORY_PARAMETERS", "Empty mandatory parameters", _V),
    StatusCodeInfo(212, "CONFIRMED_SUCCESSFUL", "Applicant successfully confirmed", _S),
    StatusCodeInfo(
        213, "CONFIRM_TO_OTHER_HLI", "Applicant has already confirmed to other institution", _B
    ),
    StatusCodeInfo(
        214, "CONFIRM_TO_YOUR_HLI", "Applicant has already confirmed to this institution", _B
    ),
    StatusCodeInfo(215, "NO_MULTIPLE_ADMISSION", "The applicant has no multiple admission", _B),
    StatusCodeInfo(
        216,
        "PROGRAMME_CAPACITY_IS_FULL",
        "The programme capacity is full. No more confirmations are allowed",
        _B,
    ),
    StatusCodeInfo(217, "INVALID_CONFIRMATION_CODE", "Invalid confirmation code", _V),
    StatusCodeInfo(218, "UNCONFIRMED_SUCCESSFULLY", "Un-confirmed successfully", _S),
    StatusCodeInfo(219, "OPERATION_FAILED", "Failed to un-confirm the admission", _B),
    StatusCodeInfo(
        220,
        "NOT_CONFIRMED",
        "The applicant has not confirmed admission to any institution",
        _B,
    ),
    StatusCodeInfo(
        221,
        "FAILED_TO_UN_CONFIRM",
        "Unable to un-confirm since the applicant has not confirmed to this institution",
        _B,
    ),
    StatusCodeInfo(
        222,
        "CONFIRMATION_CODE_SENT_TO_EMAIL",
        "Confirmation code has been sent to your email address.",
        _S,
    ),
    StatusCodeInfo(
        223,
        "CONFIRMATION_CODE_SENT_TO_EMAIL_AND_SMS",
        "Confirmation code has been sent to your email address and mobile number.",
        _S,
    ),
    StatusCodeInfo(224, "NO_ADMISSION_FOUND", "You have no admission to this institution", _B),
    StatusCodeInfo(225, "MULTIPLE_ADMISSION", "The applicant has multiple admissions", _B),
    StatusCodeInfo(226, "SINGLE_ADMISSION", "The applicant has single admission", _S),
    StatusCodeInfo(227, "OPERATION_NOT_ALLOWED", "Operation not allowed at the moment", _B),
    StatusCodeInfo(
        228,
        "NOT_CANCELLED_ADMISSION_HERE",
        "Applicant have not cancelled admission in this programme",
        _B,
    ),
    StatusCodeInfo(
        229,
        "NOT_CANCELLED_ADMISSION_ANYWHERE",
        "Applicant have not cancelled admission in any institution",
        _B,
    ),
    StatusCodeInfo(230, "ADMISSION_RESTORED", "Applicant admission restored successfully", _S),
    StatusCodeInfo(231, "APPLICANT_CLEARED", "Applicant cleared by the Commission", _S),
    StatusCodeInfo(232, "APPLICANT_NOT_CLEARED", "Applicant NOT cleared by the Commission", _B),
    StatusCodeInfo(
        233,
        "CONFIRMED_ADMISSION_IN_THIS_PROGRAMME",
        "Applicant confirmed in this programme",
        _S,
    ),
    StatusCodeInfo(
        234,
        "CONFIRMED_ADMISSION_TO_OTHER_INSTITUTION",
        "Applicant Confirmed to other HLI",
        _B,
    ),
)


class StatusCodeTaxonomy:
    """Immutable code -> StatusCodeInfo table with a total classifier."""

    __slots__ = ("_by_code",)

    def __init__(self, entries: Iterable[StatusCodeInfo]) -> None:
        table: dict[int, StatusCodeInfo] = {}
        for entry in entries:
            if isinstance(entry.code, bool) or not isinstance(entry.code, int):
                raise TypeError("status codes must be integers")
            if entry.code in table:
                raise ValueError(f"duplicate status code: {entry.code}")
            table[entry.code] = entry
        self._by_code: Mapping[int, StatusCodeInfo] = MappingProxyType(table)

    def classify(self, code: int) -> OutcomeCategory:
        entry = self._by_code.get(code)
        if entry is None:
            return OutcomeCategory.UNCLASSIFIED_REMOTE_ERROR
        return entry.category

    def describe(self, code: int) -> str:
        entry = self._by_code.get(code)
        return UNKNOWN_STATUS_MESSAGE if entry is None else entry.message

    def info(self, code: int) -> StatusCodeInfo | None:
        return self._by_code.get(code)

    def codes_for(self, category: OutcomeCategory) -> tuple[int, ...]:
        return tuple(
            sorted(code for code, item in self._by_code.items() if item.category is category)
        )

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __iter__(self) -> Iterator[StatusCodeInfo]:
        return iter(self._by_code.values())

    def __len__(self) -> int:
        return len(self._by_code)


DEFAULT_STATUS_TAXONOMY: Final[StatusCodeTaxonomy] = StatusCodeTaxonomy(BUNDLED_STATUS_CODES)


__all__ = [
    "BUNDLED_STATUS_CODES",
    "DEFAULT_STATUS_TAXONOMY",
    "StatusCodeInfo",
    "StatusCodeTaxonomy",
    "UNKNOWN_STATUS_MESSAGE",
]
