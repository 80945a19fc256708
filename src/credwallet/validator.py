"""Structural and issuer-trust validation of normalized credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from credwallet.normalizer import classify
from credwallet.trust import TrustRegistry
from credwallet.types import (
    KNOWN_SCHEMAS,
    UNKNOWN_ISSUER,
    ClaimsCredential,
    JsonLdCredential,
    NormalizedCredential,
    ValidationResult,
    utc_now,
)

EMPTY_SUBJECT_ERROR = "Credential subject is empty"
MISSING_ISSUER_ERROR = "Credential issuer is missing"
INVALID_VALIDITY_WINDOW_ERROR = "Credential expiration date must be after its issuance date"
EXPIRED_ERROR = "Credential has expired"

PRESENTATION_REQUEST_WARNING = "This appears to be a presentation request rather than a direct credential"
NONSTANDARD_STRUCTURE_WARNING = "Credential structure does not include standard credentialSubject or claims fields"
MISSING_TYPE_WARNING = "Credential type not specified"
UNKNOWN_SCHEMA_WARNING = "Unknown or different credential schema - credential will be displayed as-is"

_FALLBACK_ISSUERS = frozenset({UNKNOWN_ISSUER, "Unknown", ""})
_SCHEMA_FIELDS = {
    "RealPerson": ("firstName", "lastName", "uniqueId", "dateOfBirth", "gender", "nationality", "placeOfBirth"),
    "SecurityClearance": ("clearanceLevel", "clearanceId", "publicKeyFingerprint", "securityLevel"),
}


def detect_known_schemas(credential: NormalizedCredential) -> tuple[str, ...]:
    """Known schemas matched by type name, a ``credentialType`` claim or subject fields."""
    declared = credential.subject.get("credentialType")
    names = list(credential.credential_type)
    if isinstance(declared, str):
        names.append(declared)

    found = []
    for schema in KNOWN_SCHEMAS:
        if any(schema in name for name in names) or any(
            field in credential.subject for field in _SCHEMA_FIELDS[schema]
        ):
            found.append(schema)
    return tuple(found)


def _is_presentation_request(raw: Any) -> bool:
    return isinstance(raw, Mapping) and raw.get("presentation_definition") is not None


def _has_standard_subject(raw: Any) -> bool:
    try:
        return isinstance(classify(raw), (JsonLdCredential, ClaimsCredential))
    except Exception:  # noqa: BLE001
        return False


def validate(
    credential: NormalizedCredential,
    *,
    now: datetime | None = None,
    trust_registry: TrustRegistry | None = None,
    raw: Any = None,
) -> ValidationResult:
    """Run every check and collect failures in a fixed order.

    The errors are meant to be shown to the user verbatim. Nothing here
    raises: a degraded normalization simply shows up as errors. Passing the
    ``raw`` document the credential was normalized from enables the
    structural warnings.
    """
    now_value = utc_now(now)
    errors: list[str] = []

    if not credential.subject:
        errors.append(EMPTY_SUBJECT_ERROR)

    issuer_present = credential.issuer.strip() not in _FALLBACK_ISSUERS
    if not issuer_present:
        errors.append(MISSING_ISSUER_ERROR)

    if credential.expires_at is not None:
        if credential.expires_at <= credential.issued_at:
            errors.append(INVALID_VALIDITY_WINDOW_ERROR)
        if now_value >= credential.expires_at:
            errors.append(EXPIRED_ERROR)

    if trust_registry is not None and issuer_present:
        trusted = trust_registry.get(credential.issuer)
        credential_type = credential.primary_type
        if trusted is None:
            errors.append(f"Issuer {credential.issuer} is not in the trust registry")
        elif credential_type is not None and credential_type not in trusted.authorized_credential_types:
            errors.append(f"Issuer {trusted.name} is not authorized to issue {credential_type} credentials")

    warnings: list[str] = []
    if raw is not None:
        if _is_presentation_request(raw):
            warnings.append(PRESENTATION_REQUEST_WARNING)
        if not _has_standard_subject(raw):
            warnings.append(NONSTANDARD_STRUCTURE_WARNING)
    if credential.primary_type is None:
        warnings.append(MISSING_TYPE_WARNING)
    schemas = detect_known_schemas(credential)
    if not schemas:
        warnings.append(UNKNOWN_SCHEMA_WARNING)

    return ValidationResult(
        errors=tuple(errors),
        issuer=credential.issuer if issuer_present else None,
        issued_at=credential.issued_at,
        expires_at=credential.expires_at,
        warnings=tuple(warnings),
        schemas=schemas,
    )
