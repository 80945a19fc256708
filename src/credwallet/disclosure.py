"""Field-granular selective disclosure over normalized credentials."""

from __future__ import annotations

import base64
import copy
import json
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from credwallet.errors import InvalidLevel, MalformedCredential
from credwallet.types import (
    RESERVED_SUBJECT_KEYS,
    DisclosureLevel,
    DisclosureResult,
    JsonDict,
    NormalizedCredential,
    ValidationResult,
    utc_now,
)

PRESET_FIELDS: dict[DisclosureLevel, frozenset[str]] = {
    DisclosureLevel.MINIMAL: frozenset({"uniqueId"}),
    DisclosureLevel.STANDARD: frozenset({"firstName", "lastName", "uniqueId"}),
    DisclosureLevel.FULL: frozenset(
        {"firstName", "lastName", "dateOfBirth", "uniqueId", "gender", "nationality", "placeOfBirth"}
    ),
}

PRESET_ORDER = (DisclosureLevel.MINIMAL, DisclosureLevel.STANDARD, DisclosureLevel.FULL)

PRESET_LABELS = {
    DisclosureLevel.MINIMAL: "Minimal (ID Only)",
    DisclosureLevel.STANDARD: "Standard (Name & ID)",
    DisclosureLevel.FULL: "Full Profile",
}

FIELD_LABELS = {
    "firstName": "First Name",
    "lastName": "Last Name",
    "dateOfBirth": "Date of Birth",
    "uniqueId": "Unique ID",
    "gender": "Gender",
    "nationality": "Nationality",
    "placeOfBirth": "Place of Birth",
}

PRESENTATION_CONTEXT = ["https://www.w3.org/2018/credentials/v1"]
PRESENTATION_REQUEST_CONTEXT = [
    "https://www.w3.org/2018/credentials/v1",
    "https://identity.foundation/presentation-exchange/v2",
]

REQUIRED_FIELDS = {
    "RealPerson": ("firstName", "lastName", "uniqueId", "dateOfBirth", "gender"),
    "SecurityClearance": ("clearanceLevel", "clearanceId", "issuedAt", "expiresAt", "publicKeyFingerprint"),
}

EMPTY_SELECTION_ERROR = "At least one field must be revealed"


def _coerce_level(level: DisclosureLevel | str) -> DisclosureLevel:
    try:
        return DisclosureLevel(level)
    except ValueError:
        raise InvalidLevel(f"Unknown disclosure level: {level!r}") from None


def fields_for_level(level: DisclosureLevel | str) -> frozenset[str]:
    resolved = _coerce_level(level)
    if resolved is DisclosureLevel.CUSTOM:
        raise InvalidLevel("The custom disclosure level has no preset field list")
    return PRESET_FIELDS[resolved]


def level_for_fields(
    fields: Iterable[str],
    subject_keys: Iterable[str] | None = None,
) -> DisclosureLevel:
    """Smallest preset covering the selection, else ``custom``.

    When ``subject_keys`` is given only fields the subject actually carries
    count toward the selection.
    """
    selected = frozenset(fields)
    if subject_keys is not None:
        selected &= frozenset(subject_keys)
    for level in PRESET_ORDER:
        if selected <= PRESET_FIELDS[level]:
            return level
    return DisclosureLevel.CUSTOM


def apply_disclosure(subject: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Copy of the selected fields; values are deep-copied so the view can be edited freely."""
    wanted = frozenset(fields) - RESERVED_SUBJECT_KEYS
    return {key: copy.deepcopy(value) for key, value in subject.items() if key in wanted}


def disclose(
    credential: NormalizedCredential,
    *,
    level: DisclosureLevel | str | None = None,
    fields: Iterable[str] | None = None,
) -> DisclosureResult:
    """Compute the revealed subset for a preset ``level`` or an explicit ``fields`` selection.

    Preset fields the subject does not carry are dropped, so ``fields`` in the
    result always names exactly what will be shared. A selection that reveals
    nothing is reported as ``custom``; no preset describes it.
    """
    if (level is None) == (fields is None):
        raise ValueError("disclose() requires exactly one of level or fields")

    subject_keys = frozenset(credential.subject)
    if fields is None:
        requested = fields_for_level(level)  # type: ignore[arg-type]
    else:
        requested = frozenset(fields)

    revealed = (requested & subject_keys) - RESERVED_SUBJECT_KEYS
    return DisclosureResult(
        fields=revealed,
        level=level_for_fields(revealed) if revealed else DisclosureLevel.CUSTOM,
        redacted_view=apply_disclosure(credential.subject, revealed),
        hidden_fields=subject_keys - revealed,
    )


def validate_disclosure(credential: NormalizedCredential, fields: Sequence[str]) -> ValidationResult:
    """Check a field selection before sharing it.

    Unlike ``disclose``, which silently drops fields the subject does not
    carry, every missing field is reported, as is an empty selection.
    """
    errors = [
        f"Revealed field '{field}' not found in credential"
        for field in dict.fromkeys(fields)
        if field not in credential.subject
    ]
    if not fields:
        errors.append(EMPTY_SELECTION_ERROR)
    return ValidationResult(
        errors=tuple(errors),
        issuer=credential.issuer,
        issued_at=credential.issued_at,
        expires_at=credential.expires_at,
    )


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _encode_json(payload: Mapping[str, Any]) -> str:
    raw = json.dumps(payload, sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode_json(value: str, description: str) -> Any:
    pad = len(value) % 4
    padded = value if pad == 0 else value + ("=" * (4 - pad))
    try:
        return json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
    except (ValueError, UnicodeError) as error:
        raise MalformedCredential(f"{description} is not valid base64url JSON: {error}") from error


def build_presentation(
    credential: NormalizedCredential,
    result: DisclosureResult,
    *,
    now: datetime | None = None,
) -> JsonDict:
    return JsonDict({
        "@context": list(PRESENTATION_CONTEXT),
        "type": list(credential.credential_type),
        "credentialSubject": dict(result.redacted_view),
        "issuer": credential.issuer,
        "issuanceDate": _iso(credential.issued_at),
        "expirationDate": _iso(credential.expires_at),
        "disclosure": {
            "proofLevel": result.level.value,
            "revealedFields": sorted(result.fields),
            "timestamp": _iso(utc_now(now)),
        },
    })


def encode_presentation(
    credential: NormalizedCredential,
    result: DisclosureResult,
    *,
    now: datetime | None = None,
) -> str:
    return _encode_json(build_presentation(credential, result, now=now))


def decode_presentation(value: str) -> JsonDict:
    decoded = _decode_json(value, "Presentation attachment")
    if not isinstance(decoded, dict) or not isinstance(decoded.get("credentialSubject"), dict):
        raise MalformedCredential("Presentation attachment has no credentialSubject")
    return JsonDict(decoded)


def required_fields_for_type(credential_type: str) -> tuple[str, ...]:
    return REQUIRED_FIELDS.get(credential_type, ())


def build_presentation_request(
    credential_type: str,
    required_fields: Sequence[str] | None = None,
    *,
    now: datetime | None = None,
) -> JsonDict:
    """Presentation-exchange request asking a holder for ``credential_type``.

    ``required_fields`` defaults to the fields known for the type.
    """
    created = utc_now(now)
    fields = list(required_fields if required_fields is not None else required_fields_for_type(credential_type))
    slug = credential_type.lower()
    return JsonDict({
        "@context": list(PRESENTATION_REQUEST_CONTEXT),
        "type": ["VerifiablePresentationRequest"],
        "presentation_definition": {
            "id": f"{slug}-request-{int(created.timestamp() * 1000)}",
            "name": f"{credential_type} Credential Request",
            "purpose": f"Please provide your {credential_type} credential for verification",
            "input_descriptors": [
                {
                    "id": f"{slug}-descriptor",
                    "name": f"{credential_type} Credential",
                    "purpose": f"{credential_type} verification required",
                    "constraints": {
                        "fields": [
                            {
                                "path": [f"$.credentialSubject.{field}", f"$.vc.credentialSubject.{field}"],
                                "purpose": f"{field} is required for verification",
                            }
                            for field in fields
                        ]
                    },
                }
            ],
        },
        "credential_type": credential_type,
        "required_fields": fields,
        "created": _iso(created),
    })


def encode_presentation_request(
    credential_type: str,
    required_fields: Sequence[str] | None = None,
    *,
    now: datetime | None = None,
) -> str:
    return _encode_json(build_presentation_request(credential_type, required_fields, now=now))


def decode_presentation_request(value: str) -> JsonDict:
    decoded = _decode_json(value, "Presentation request attachment")
    if not isinstance(decoded, dict) or not isinstance(decoded.get("presentation_definition"), dict):
        raise MalformedCredential("Presentation request attachment has no presentation_definition")
    if not isinstance(decoded.get("required_fields", []), list):
        raise MalformedCredential("Presentation request required_fields must be a list")
    return JsonDict(decoded)
