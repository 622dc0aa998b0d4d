"""
tcu-client — unit tests for payload validation

File: tests/unit/validation/test_validator.py
Last updated: 2026-10-18

Purpose
- Validate per-operation field checks against the bundled rules and catalog.

What this test file should cover
- Index number and confirmation code acceptance/rejection.
- Required fields, blank values, unknown and passthrough fields.
- Batch ordering with subject index tagging and payload shape checks.
- Repeatable and list_of fields, integer ranges, XML-illegal characters.
- Property checks for the index number rule.

Functional requirements
- Offline; no transport is involved.

Non-functional requirements
- Deterministic.
"""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tcu_client.dispatch.operations import load_operation_catalog
from tcu_client.domain.models import RequestPayload, ValidationResult
from tcu_client.errors import UnknownOperationError
from tcu_client.validation.rules import load_field_rules
from tcu_client.validation.validator import Validator, check_value, is_absent

REGISTRY = load_field_rules()
CATALOG = load_operation_catalog(REGISTRY)
VALIDATOR = Validator(REGISTRY, CATALOG)


def _single(operation: str, **fields: object) -> ValidationResult:
    return VALIDATOR.validate(operation, RequestPayload.single(operation, fields))


def _applicant(f4indexno: str = "S0101/0001/2019") -> dict[str, object]:
    return {
        "f4indexno": f4indexno,
        "f6indexno": "S0101/0501/2021",
        "Gender": "F",
        "Category": "A",
    }


@pytest.mark.parametrize(
    "index_number", ["S0101/0001/2019", "P5501/0002/2020", "E1234/5678/2001"]
)
def test_valid_index_numbers_pass(index_number: str) -> None:
    result = _single("applicants.check_status", f4indexno=index_number)

    assert result.is_valid
    assert result.violations == ()


@pytest.mark.parametrize(
    "index_number", ["S0101/001/2019", "s0101/0001/2019", "S0101-0001-2019", "0101/0001/2019"]
)
def test_malformed_index_number_yields_exactly_one_violation(index_number: str) -> None:
    result = _single("applicants.check_status", f4indexno=index_number)

    assert not result.is_valid
    assert len(result.violations) == 1
    violation = result.violations[0]
    assert violation.field == "f4indexno"
    assert violation.rule == "pattern"
    assert violation.index is None


@pytest.mark.parametrize("code", ["A5267Y", "AB12CD", "123456"])
def test_confirmation_code_accepts_both_formats(code: str) -> None:
    result = _single("admissions.confirm", f4indexno="S0101/0001/2019", ConfirmationCode=code)

    assert result.is_valid


@pytest.mark.parametrize("code", ["a5267y", "invalid_code", "A5267", "A5267YY"])
def test_confirmation_code_rejects_lowercase_and_wrong_length(code: str) -> None:
    result = _single("admissions.confirm", f4indexno="S0101/0001/2019", ConfirmationCode=code)

    assert result.fields == ("ConfirmationCode",)


@pytest.mark.parametrize("reason", ["", "   ", None])
def test_blank_required_field_is_reported_as_required(reason: object) -> None:
    result = _single("admissions.unconfirm", f4indexno="S0101/0001/2019", Reason=reason)

    assert len(result.violations) == 1
    violation = result.violations[0]
    assert violation.rule == "required"
    assert violation.reason == "Reason is required"


def test_missing_required_fields_are_reported_in_declared_order() -> None:
    result = _single("admissions.confirm")

    assert [item.field for item in result.violations] == ["f4indexno", "ConfirmationCode"]
    assert all(item.rule == "required" for item in result.violations)


def test_batch_validation_tags_only_the_invalid_subject() -> None:
    subjects = [_applicant(), _applicant("S0101/01/2019"), _applicant("S0101/0003/2019")]

    result = VALIDATOR.validate(
        "applicants.add", RequestPayload.batch("applicants.add", subjects)
    )

    assert len(result.violations) == 1
    violation = result.violations[0]
    assert violation.index == 1
    assert violation.field == "f4indexno"
    assert violation.render().startswith("subject 1: f4indexno:")


def test_batch_violations_keep_subject_order() -> None:
    first = _applicant()
    first["Gender"] = "X"
    third = _applicant()
    third["Category"] = "Z"

    result = VALIDATOR.validate(
        "applicants.add", RequestPayload.batch("applicants.add", [first, _applicant(), third])
    )

    assert [(item.index, item.field) for item in result.violations] == [
        (0, "Gender"),
        (2, "Category"),
    ]


def test_batch_operation_rejects_single_subject_payload() -> None:
    result = VALIDATOR.validate(
        "applicants.add", RequestPayload.single("applicants.add", _applicant())
    )

    assert [item.rule for item in result.violations] == ["shape"]


def test_single_operation_rejects_batch_payload() -> None:
    payload = RequestPayload.batch(
        "admissions.confirm", [{"f4indexno": "S0101/0001/2019", "ConfirmationCode": "A5267Y"}]
    )

    result = VALIDATOR.validate("admissions.confirm", payload)

    assert [item.rule for item in result.violations] == ["shape"]


def test_empty_batch_is_rejected() -> None:
    result = VALIDATOR.validate("applicants.add", RequestPayload.batch("applicants.add", []))

    assert len(result.violations) == 1
    assert result.violations[0].reason == "at least one subject is required"


def test_unknown_field_is_rejected() -> None:
    result = _single(
        "admissions.confirm",
        f4indexno="S0101/0001/2019",
        ConfirmationCode="A5267Y",
        Nickname="Bob",
    )

    assert [(item.field, item.rule) for item in result.violations] == [
        ("Nickname", "unknown_field")
    ]


def test_passthrough_field_is_sent_unvalidated() -> None:
    student = {
        "f4indexno": "S0101/0001/2019",
        "ProgrammeCode": "UD023",
        "DropOutDate": "2025-03-01",
        "Reason": "Financial",
        "Remarks": "any free text ### without a rule",
    }

    result = VALIDATOR.validate(
        "enrollment.submit_dropouts",
        RequestPayload.batch("enrollment.submit_dropouts", [student]),
    )

    assert result.is_valid


def test_repeatable_field_checks_every_item() -> None:
    result = _single(
        "applicants.check_status", f4indexno=["S0101/0001/2019", "bad", "S0101/0003/2019"]
    )

    assert len(result.violations) == 1
    assert result.violations[0].reason.startswith("item 1:")


def test_list_for_non_repeatable_field_is_rejected() -> None:
    result = _single(
        "admissions.confirm",
        f4indexno=["S0101/0001/2019", "S0101/0002/2019"],
        ConfirmationCode="A5267Y",
    )

    assert result.violations[0].reason == "expected a single value, got a list"


@pytest.mark.parametrize(
    ("value", "valid"),
    [
        ("UD023,UD024", True),
        (["UD023", "UD024"], True),
        ("UD023,,UD024", False),
        ("UD023,ud024", False),
        ("UD023, UD024", False),
    ],
)
def test_selected_programmes_list_rule(value: object, valid: bool) -> None:
    rule = REGISTRY.rule_for("SelectedProgrammes")
    assert rule is not None

    assert (check_value(rule, value) is None) is valid


@pytest.mark.parametrize(
    ("value", "reason"),
    [
        (12, None),
        ("12", None),
        (0, None),
        (-1, "must be >= 0"),
        (100001, "must be <= 100000"),
        (True, "expected an integer"),
        ("twelve", "expected a decimal integer"),
        ("-1", "must be >= 0"),
        ("1_000", "expected a decimal integer"),
        ("\u0663", "expected a decimal integer"),
        ("+5", "expected a decimal integer"),
        (" 5", "expected a decimal integer"),
        ("5\n", "expected a decimal integer"),
        ("", "expected a decimal integer"),
    ],
)
def test_integer_range_rule(value: object, reason: str | None) -> None:
    rule = REGISTRY.rule_for("Males")
    assert rule is not None

    assert check_value(rule, value) == reason


def test_dashboard_counts_are_validated() -> None:
    result = _single("dashboard.populate", ProgrammeCode="UD023", Males=-3, Females="7")

    assert [(item.field, item.rule) for item in result.violations] == [
        ("Males", "integer_range")
    ]


def test_xml_illegal_characters_are_rejected_before_rule_checks() -> None:
    result = _single("admissions.unconfirm", f4indexno="S0101/0001/2019", Reason="late\x00fee")

    assert result.violations[0].reason == "contains characters that cannot be sent in XML"


def test_text_rule_enforces_max_length() -> None:
    result = _single("admissions.unconfirm", f4indexno="S0101/0001/2019", Reason="x" * 501)

    assert result.violations[0].reason == "must be at most 500 characters"


def test_mobile_number_accepts_local_and_country_code_forms() -> None:
    rule = REGISTRY.rule_for("MobileNumber")
    assert rule is not None

    assert check_value(rule, "0712345678") is None
    assert check_value(rule, "+255712345678") is None
    assert check_value(rule, "255712345678") is None
    assert check_value(rule, "71234567") is not None


def test_unknown_operation_raises() -> None:
    with pytest.raises(UnknownOperationError) as excinfo:
        VALIDATOR.validate("applicants.nope", RequestPayload.single("applicants.nope", {}))

    assert excinfo.value.code == "unknown_operation"


def test_payload_tagged_for_another_operation_is_rejected() -> None:
    payload = RequestPayload.single("admissions.reject", {"f4indexno": "S0101/0001/2019"})

    result = VALIDATOR.validate("admissions.unconfirm", payload)

    assert [item.rule for item in result.violations] == ["operation"]


@pytest.mark.parametrize(
    ("value", "absent"),
    [
        (None, True),
        ("", True),
        ("  ", True),
        ([], True),
        (["", None], True),
        ("x", False),
        (0, False),
    ],
)
def test_is_absent(value: object, absent: bool) -> None:
    assert is_absent(value) is absent


_INDEX_NUMBERS = st.builds(
    lambda letter, school, candidate, year: f"{letter}{school}/{candidate}/{year}",
    st.sampled_from("SPE"),
    st.from_regex(r"[0-9]{4}", fullmatch=True),
    st.from_regex(r"[0-9]{4}", fullmatch=True),
    st.from_regex(r"[0-9]{4}", fullmatch=True),
)


@settings(max_examples=50, deadline=None)
@given(index_number=_INDEX_NUMBERS)
def test_generated_index_numbers_always_validate(index_number: str) -> None:
    rule = REGISTRY.rule_for("f4indexno")
    assert rule is not None

    assert check_value(rule, index_number) is None


_PADDING = st.text(alphabet=" \t\r\n", min_size=1, max_size=3)

_NEAR_MISSES = st.one_of(
    st.tuples(_INDEX_NUMBERS, _PADDING).map(lambda pair: pair[1] + pair[0]),
    st.tuples(_INDEX_NUMBERS, _PADDING).map(lambda pair: pair[0] + pair[1]),
    _INDEX_NUMBERS.map(lambda value: value[0].lower() + value[1:]),
    st.builds(
        lambda school, candidate, year: f"S{school}/{candidate}/{year}",
        st.from_regex(r"[0-9]{3}|[0-9]{5}", fullmatch=True),
        st.from_regex(r"[0-9]{4}", fullmatch=True),
        st.from_regex(r"[0-9]{4}", fullmatch=True),
    ),
    st.builds(
        lambda school, candidate, year: f"S{school}/{candidate}/{year}",
        st.from_regex(r"[0-9]{4}", fullmatch=True),
        st.from_regex(r"[0-9]{1,3}", fullmatch=True),
        st.from_regex(r"[0-9]{2}", fullmatch=True),
    ),
    _INDEX_NUMBERS.map(lambda value: value.replace("/", "-")),
    st.text(alphabet=st.characters(exclude_characters="/"), max_size=30),
)


@settings(max_examples=100, deadline=None)
@given(text=_NEAR_MISSES)
def test_near_miss_index_numbers_never_validate(text: str) -> None:
    rule = REGISTRY.rule_for("f4indexno")
    assert rule is not None

    assert check_value(rule, text) is not None


@settings(max_examples=50, deadline=None)
@given(index_number=_INDEX_NUMBERS, before=_PADDING, after=_PADDING)
def test_padded_index_number_yields_one_violation(
    index_number: str, before: str, after: str
) -> None:
    for value in (before + index_number, index_number + after, before + index_number + after):
        result = _single("applicants.check_status", f4indexno=value)

        assert [(item.field, item.rule) for item in result.violations] == [
            ("f4indexno", "pattern")
        ]


@pytest.mark.parametrize("code", [" A5267Y", "A5267Y\n"])
def test_padded_confirmation_code_is_rejected(code: str) -> None:
    result = _single("admissions.confirm", f4indexno="S0101/0001/2019", ConfirmationCode=code)

    assert [item.field for item in result.violations] == ["ConfirmationCode"]


def test_padded_enumerated_value_is_rejected() -> None:
    rule = REGISTRY.rule_for("Gender")
    assert rule is not None

    assert check_value(rule, "F") is None
    assert check_value(rule, " F") is not None
