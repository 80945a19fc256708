from __future__ import annotations

from datetime import datetime, timezone

import pytest

from credwallet.disclosure import (
    EMPTY_SELECTION_ERROR,
    PRESET_FIELDS,
    apply_disclosure,
    build_presentation,
    build_presentation_request,
    decode_presentation,
    decode_presentation_request,
    disclose,
    encode_presentation,
    encode_presentation_request,
    fields_for_level,
    level_for_fields,
    required_fields_for_type,
    validate_disclosure,
)
from credwallet.errors import InvalidLevel, MalformedCredential
from credwallet.normalizer import normalize
from credwallet.types import DisclosureLevel

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)

FULL_PERSON = {
    "firstName": "Ada",
    "lastName": "Lovelace",
    "dateOfBirth": "1815-12-10",
    "uniqueId": "U1",
    "gender": "F",
    "nationality": "GB",
    "placeOfBirth": "London",
}


def _credential(subject: dict | None = None):
    return normalize(
        {
            "issuer": "did:prism:issuer",
            "type": ["VerifiableCredential", "RealPerson"],
            "issuanceDate": "2025-01-01T00:00:00Z",
            "credentialSubject": dict(subject if subject is not None else FULL_PERSON),
        },
        now=NOW,
    )


@pytest.mark.parametrize("level", [DisclosureLevel.MINIMAL, DisclosureLevel.STANDARD, DisclosureLevel.FULL])
def test_level_round_trip(level: DisclosureLevel) -> None:
    assert level_for_fields(fields_for_level(level)) == level
    assert level_for_fields(fields_for_level(level), FULL_PERSON.keys()) == level


def test_presets_are_nested() -> None:
    minimal = fields_for_level(DisclosureLevel.MINIMAL)
    standard = fields_for_level(DisclosureLevel.STANDARD)
    full = fields_for_level(DisclosureLevel.FULL)
    assert minimal <= standard <= full


def test_fields_for_level_accepts_strings() -> None:
    assert fields_for_level("minimal") == frozenset({"uniqueId"})


def test_fields_for_custom_level_is_invalid() -> None:
    with pytest.raises(InvalidLevel):
        fields_for_level(DisclosureLevel.CUSTOM)
    with pytest.raises(InvalidLevel):
        fields_for_level("everything")


def test_selection_equal_to_preset_reports_preset() -> None:
    assert level_for_fields({"firstName", "lastName"}) == DisclosureLevel.STANDARD
    assert level_for_fields({"firstName", "lastName", "uniqueId"}) == DisclosureLevel.STANDARD


def test_level_for_fields_picks_smallest_covering_preset() -> None:
    assert level_for_fields(set()) == DisclosureLevel.MINIMAL
    assert level_for_fields({"uniqueId"}) == DisclosureLevel.MINIMAL
    assert level_for_fields({"gender"}) == DisclosureLevel.FULL


def test_superset_of_full_is_custom() -> None:
    assert level_for_fields(PRESET_FIELDS[DisclosureLevel.FULL] | {"favouriteColour"}) == DisclosureLevel.CUSTOM


def test_level_for_fields_ignores_fields_missing_from_subject() -> None:
    assert level_for_fields({"uniqueId", "favouriteColour"}, {"uniqueId"}) == DisclosureLevel.MINIMAL


def test_apply_disclosure_is_an_intersection() -> None:
    subject = {"firstName": "Ada", "uniqueId": "U1", "gender": "F"}
    view = apply_disclosure(subject, {"firstName", "missing"})
    assert view == {"firstName": "Ada"}
    assert set(view) <= {"firstName", "missing"} & set(subject)


def test_apply_disclosure_never_reveals_reserved_keys() -> None:
    subject = {"id": "did:holder", "@context": "ctx", "uniqueId": "U1"}
    assert apply_disclosure(subject, {"id", "@context", "uniqueId"}) == {"uniqueId": "U1"}


def test_apply_disclosure_keeps_values_unmodified() -> None:
    address = {"street": "1 Main St", "city": "London"}
    view = apply_disclosure({"address": address}, {"address"})
    assert view["address"] == address

    view["address"]["city"] = "Paris"
    assert address["city"] == "London"


def test_editing_redacted_view_leaves_credential_and_raw_input_alone() -> None:
    raw = {
        "issuer": "did:prism:issuer",
        "credentialSubject": {"uniqueId": "U1", "address": {"city": "London"}},
    }
    credential = normalize(raw, now=NOW)

    result = disclose(credential, fields=["address"])
    result.redacted_view["address"]["city"] = "Paris"

    assert raw["credentialSubject"]["address"]["city"] == "London"
    assert credential.subject["address"]["city"] == "London"


def test_empty_selection_shares_nothing() -> None:
    result = disclose(_credential(), fields=[])
    assert result.redacted_view == {}
    assert result.level == DisclosureLevel.CUSTOM
    assert result.shares_nothing is True
    assert result.hidden_fields == frozenset(FULL_PERSON)


def test_disclose_with_preset_level() -> None:
    result = disclose(_credential(), level=DisclosureLevel.STANDARD)
    assert result.level == DisclosureLevel.STANDARD
    assert result.fields == frozenset({"firstName", "lastName", "uniqueId"})
    assert result.redacted_view == {"firstName": "Ada", "lastName": "Lovelace", "uniqueId": "U1"}
    assert "dateOfBirth" in result.hidden_fields


def test_disclose_clips_preset_to_subject() -> None:
    result = disclose(_credential({"uniqueId": "U1", "lastName": "Lovelace"}), level="full")
    assert result.fields == frozenset({"uniqueId", "lastName"})
    assert result.level == DisclosureLevel.STANDARD


def test_disclose_custom_selection() -> None:
    subject = dict(FULL_PERSON, employer="Analytical Engines Ltd")
    result = disclose(_credential(subject), fields=["uniqueId", "employer"])
    assert result.level == DisclosureLevel.CUSTOM
    assert result.redacted_view == {"uniqueId": "U1", "employer": "Analytical Engines Ltd"}


def test_disclose_requires_exactly_one_selector() -> None:
    with pytest.raises(ValueError):
        disclose(_credential())
    with pytest.raises(ValueError):
        disclose(_credential(), level="minimal", fields=["uniqueId"])


def test_presentation_carries_only_revealed_fields() -> None:
    credential = _credential()
    result = disclose(credential, level=DisclosureLevel.MINIMAL)

    presentation = build_presentation(credential, result, now=NOW)
    assert presentation["credentialSubject"] == {"uniqueId": "U1"}
    assert presentation["issuer"] == "did:prism:issuer"
    assert presentation["disclosure"]["proofLevel"] == "minimal"
    assert presentation["disclosure"]["revealedFields"] == ["uniqueId"]
    assert presentation["disclosure"]["timestamp"] == "2026-01-01T00:00:00Z"
    assert presentation["expirationDate"] is None

    decoded = decode_presentation(encode_presentation(credential, result, now=NOW))
    assert decoded == presentation
    assert "firstName" not in str(decoded)


def test_decode_presentation_rejects_garbage() -> None:
    with pytest.raises(MalformedCredential):
        decode_presentation("not base64 json!")
    with pytest.raises(MalformedCredential):
        decode_presentation("WzFd")  # "[1]"


def test_empty_selection_presentation_is_not_a_preset() -> None:
    credential = _credential()
    presentation = build_presentation(credential, disclose(credential, fields=[]), now=NOW)
    assert presentation["disclosure"]["proofLevel"] == "custom"
    assert presentation["disclosure"]["revealedFields"] == []
    with pytest.raises(InvalidLevel):
        fields_for_level(presentation["disclosure"]["proofLevel"])


def test_validate_disclosure_reports_missing_fields() -> None:
    result = validate_disclosure(_credential({"uniqueId": "U1"}), ["uniqueId", "employer", "employer", "gender"])
    assert result.is_valid is False
    assert result.errors == (
        "Revealed field 'employer' not found in credential",
        "Revealed field 'gender' not found in credential",
    )


def test_validate_disclosure_requires_a_field() -> None:
    result = validate_disclosure(_credential(), [])
    assert result.errors == (EMPTY_SELECTION_ERROR,)


def test_validate_disclosure_accepts_present_fields() -> None:
    result = validate_disclosure(_credential(), ["firstName", "uniqueId"])
    assert result.is_valid is True
    assert result.issuer == "did:prism:issuer"


def test_required_fields_for_type() -> None:
    assert required_fields_for_type("RealPerson") == ("firstName", "lastName", "uniqueId", "dateOfBirth", "gender")
    assert "clearanceLevel" in required_fields_for_type("SecurityClearance")
    assert required_fields_for_type("EmployeeRole") == ()


def test_presentation_request_shape() -> None:
    request = build_presentation_request("RealPerson", now=NOW)

    assert request["type"] == ["VerifiablePresentationRequest"]
    assert request["credential_type"] == "RealPerson"
    assert request["required_fields"] == list(required_fields_for_type("RealPerson"))
    assert request["created"] == "2026-01-01T00:00:00Z"

    definition = request["presentation_definition"]
    assert definition["id"] == "realperson-request-1767225600000"
    descriptor = definition["input_descriptors"][0]
    assert descriptor["id"] == "realperson-descriptor"
    assert descriptor["constraints"]["fields"][0]["path"] == [
        "$.credentialSubject.firstName",
        "$.vc.credentialSubject.firstName",
    ]


def test_presentation_request_attachment_decodes() -> None:
    encoded = encode_presentation_request("SecurityClearance", ["clearanceLevel"], now=NOW)
    assert "=" not in encoded

    decoded = decode_presentation_request(encoded)
    assert decoded == build_presentation_request("SecurityClearance", ["clearanceLevel"], now=NOW)
    assert decoded["required_fields"] == ["clearanceLevel"]


def test_decode_presentation_request_rejects_credentials() -> None:
    credential = _credential()
    presentation = encode_presentation(credential, disclose(credential, level="minimal"), now=NOW)
    with pytest.raises(MalformedCredential):
        decode_presentation_request(presentation)
    with pytest.raises(MalformedCredential):
        decode_presentation_request("%%%")
