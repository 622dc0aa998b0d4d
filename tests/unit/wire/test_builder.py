"""
tcu-client — unit tests for the request envelope builder

File: tests/unit/wire/test_builder.py
Last updated: 2026-10-18

Purpose
- Validate envelope construction and XML serialization.

What this test file should cover
- One identity block and one parameter block per subject.
- Stable field ordering, list joining and repeated elements.
- Escaping of markup characters in values.
- Redacted rendering never contains the session token.

Functional requirements
- Offline; serialized bytes are inspected with the standard library parser.

Non-functional requirements
- Deterministic.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from tcu_client.domain.models import Envelope, Identity, ParameterBlock, RequestPayload
from tcu_client.security.redaction import REDACTED_VALUE
from tcu_client.wire.builder import XML_DECLARATION, EnvelopeBuilder, to_wire_value

IDENTITY = Identity(username="UDSM", session_token="tok-3f9a1c")
BUILDER = EnvelopeBuilder()


def _subject(position: int) -> dict[str, object]:
    return {
        "f4indexno": f"S0101/{position:04d}/2019",
        "f6indexno": "S0101/0501/2021",
        "Gender": "M",
        "Category": "A",
    }


def _serialize(
    payload: RequestPayload,
    *,
    field_order: tuple[str, ...] = (),
    joiners: dict[str, str] | None = None,
    integer_fields: frozenset[str] = frozenset(),
) -> ET.Element:
    envelope = BUILDER.build(
        IDENTITY,
        payload.operation,
        payload,
        field_order=field_order,
        joiners=joiners,
        integer_fields=integer_fields,
    )
    raw = BUILDER.serialize(envelope)
    assert raw.startswith(XML_DECLARATION)
    return ET.fromstring(raw)


@pytest.mark.parametrize("count", [1, 2, 100])
def test_one_identity_and_one_block_per_subject(count: int) -> None:
    payload = RequestPayload.batch("applicants.add", [_subject(i) for i in range(count)])

    root = _serialize(payload)

    assert root.tag == "Request"
    assert len(root.findall("UsernameToken")) == 1
    blocks = root.findall("RequestParameters")
    assert len(blocks) == count
    assert [block.findtext("f4indexno") for block in blocks] == [
        f"S0101/{i:04d}/2019" for i in range(count)
    ]


def test_identity_block_carries_username_and_token() -> None:
    root = _serialize(RequestPayload.single("admissions.get_programmes", {}))

    token = root.find("UsernameToken")
    assert token is not None
    assert token.findtext("Username") == "UDSM"
    assert token.findtext("SessionToken") == "tok-3f9a1c"
    assert [child.tag for child in root.findall("RequestParameters")[0]] == []


def test_markup_in_values_is_escaped() -> None:
    payload = RequestPayload.single(
        "admissions.unconfirm",
        {"f4indexno": "S0101/0001/2019", "Reason": "</Reason><SessionToken>x</SessionToken> & co"},
    )
    envelope = BUILDER.build(IDENTITY, "admissions.unconfirm", payload)

    raw = BUILDER.serialize(envelope)
    root = ET.fromstring(raw)

    assert b"&lt;/Reason&gt;" in raw
    assert b"&amp; co" in raw
    assert root.findall("RequestParameters/SessionToken") == []
    assert root.findtext("RequestParameters/Reason") == (
        "</Reason><SessionToken>x</SessionToken> & co"
    )


def test_field_order_puts_declared_fields_first() -> None:
    payload = RequestPayload.single(
        "admissions.confirm", {"Extra": "1", "ConfirmationCode": "A5267Y", "f4indexno": "S1"}
    )

    root = _serialize(payload, field_order=("f4indexno", "ConfirmationCode"))

    assert [child.tag for child in root.find("RequestParameters")] == [  # type: ignore[union-attr]
        "f4indexno",
        "ConfirmationCode",
        "Extra",
    ]


def test_joined_lists_and_repeated_elements() -> None:
    payload = RequestPayload.single(
        "applicants.check_status",
        {
            "f4indexno": ["S0101/0001/2019", "S0101/0002/2019"],
            "SelectedProgrammes": ["UD023", "UD024"],
        },
    )

    root = _serialize(payload, joiners={"SelectedProgrammes": ","})

    block = root.find("RequestParameters")
    assert block is not None
    assert [item.text for item in block.findall("f4indexno")] == [
        "S0101/0001/2019",
        "S0101/0002/2019",
    ]
    assert block.findtext("SelectedProgrammes") == "UD023,UD024"


def test_integer_fields_are_written_in_canonical_form() -> None:
    payload = RequestPayload.single(
        "dashboard.populate",
        {"ProgrammeCode": "UD023", "Males": "0042", "Females": 7, "Remarks": "0042"},
    )

    root = _serialize(payload, integer_fields=frozenset({"Males", "Females"}))

    block = root.find("RequestParameters")
    assert block is not None
    assert block.findtext("Males") == "42"
    assert block.findtext("Females") == "7"
    assert block.findtext("Remarks") == "0042"


def test_blank_values_are_omitted() -> None:
    payload = RequestPayload.single(
        "applicants.add", {"f4indexno": "S0101/0001/2019", "AVN": "  ", "Otherf4indexno": None}
    )

    root = _serialize(payload)

    assert [child.tag for child in root.find("RequestParameters")] == [  # type: ignore[union-attr]
        "f4indexno"
    ]


def test_redacted_rendering_masks_the_token() -> None:
    payload = RequestPayload.single("admissions.get_programmes", {})
    envelope = BUILDER.build(IDENTITY, "admissions.get_programmes", payload)

    rendered = BUILDER.render_redacted(envelope)

    assert "tok-3f9a1c" not in rendered
    assert f"<SessionToken>{REDACTED_VALUE}</SessionToken>" in rendered
    assert b"tok-3f9a1c" in BUILDER.serialize(envelope)


def test_serialization_is_deterministic() -> None:
    payload = RequestPayload.batch("applicants.add", [_subject(1), _subject(2)])
    envelope = BUILDER.build(IDENTITY, "applicants.add", payload)

    assert BUILDER.serialize(envelope) == BUILDER.serialize(envelope)


def test_mismatched_payload_tag_is_refused() -> None:
    payload = RequestPayload.single("admissions.reject", {"f4indexno": "S1"})

    with pytest.raises(ValueError, match="admissions.reject"):
        BUILDER.build(IDENTITY, "admissions.unconfirm", payload)


def test_envelope_requires_a_block() -> None:
    with pytest.raises(ValueError, match="at least one parameter block"):
        Envelope(operation="admissions.confirm", identity=IDENTITY, blocks=())


def test_identity_repr_hides_the_token() -> None:
    assert "tok-3f9a1c" not in repr(IDENTITY)
    assert IDENTITY.to_dict()["session_token"] == REDACTED_VALUE


@pytest.mark.parametrize(
    ("value", "separator", "expected"),
    [
        (None, None, None),
        ("", None, None),
        (" UD023 ", None, "UD023"),
        (12, None, "12"),
        (True, None, "1"),
        (["A", "", "B"], None, ("A", "B")),
        (["A", "B"], ";", "A;B"),
        ([], None, None),
    ],
)
def test_to_wire_value(value: object, separator: str | None, expected: object) -> None:
    assert to_wire_value(value, separator=separator) == expected


def test_parameter_block_lookup() -> None:
    block = ParameterBlock(fields=(("f4indexno", ("S1", "S2")), ("Reason", "late")))

    assert block.get("Reason") == "late"
    assert block.get("Missing") is None
    assert block.to_dict() == {"f4indexno": ["S1", "S2"], "Reason": "late"}
