"""Credential normalization across the encodings the wallet receives.

Three raw shapes reach the wallet:

* W3C / JSON-LD documents with a ``credentialSubject`` map (also found nested
  under ``vc`` in JWT payloads, or ``credentialData`` in stored records),
* SDK credential objects exposing a ``claims`` sequence whose first entry is
  the subject map,
* offer previews carrying ``[{name, value, media_type}]`` attribute lists.

Anything else is searched one level deep for a nested object holding person
fields (``firstName``, ``lastName``, ``uniqueId``, ``dateOfBirth``).

``classify`` resolves the shape once at the boundary; ``normalize`` maps any of
them to a ``NormalizedCredential`` and never raises.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Sequence

from credwallet.types import (
    DEFAULT_CREDENTIAL_TYPE,
    UNKNOWN_ISSUER,
    AttributeListCredential,
    ClaimsCredential,
    CredentialAttribute,
    EmbeddedSubjectCredential,
    JsonLdCredential,
    NormalizedCredential,
    RawCredentialVariant,
    UnrecognizedCredential,
    ensure_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

_VARIANTS = (
    JsonLdCredential,
    ClaimsCredential,
    AttributeListCredential,
    EmbeddedSubjectCredential,
    UnrecognizedCredential,
)
_ATTRIBUTE_PATHS = (
    ("attributes",),
    ("body", "attributes"),
    ("credential_preview", "body", "attributes"),
)
_ISSUED_KEYS = ("issuanceDate", "validFrom", "issued", "iat", "nbf")
_EXPIRES_KEYS = ("expirationDate", "validUntil", "exp")
_MILLISECONDS_THRESHOLD = 1_000_000_000_000
_PERSON_HINT_FIELDS = ("firstName", "lastName", "uniqueId", "dateOfBirth")


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(name)
    if isinstance(raw, (str, bytes, list, tuple)) or raw is None:
        return None
    return getattr(raw, name, None)


def _path(raw: Any, path: Sequence[str]) -> Any:
    value = raw
    for name in path:
        value = _field(value, name)
        if value is None:
            return None
    return value


def _subject_map(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (list, tuple)) and value and isinstance(value[0], Mapping):
        return value[0]
    return None


def _json_ld_subject(raw: Any) -> Mapping[str, Any] | None:
    for path in (("credentialSubject",), ("vc", "credentialSubject"), ("credentialData", "credentialSubject")):
        subject = _subject_map(_path(raw, path))
        if subject is not None:
            return subject
    return None


def _claims_subject(raw: Any) -> Mapping[str, Any] | None:
    claims = _field(raw, "claims")
    if not isinstance(claims, (list, tuple)) or not claims:
        return None
    first = claims[0]
    if not isinstance(first, Mapping):
        return None
    nested = _subject_map(first.get("credentialSubject"))
    if nested is None:
        nested = _subject_map(_path(first, ("credentialData", "credentialSubject")))
    return nested if nested is not None else first


def _attribute_entries(raw: Any) -> Sequence[Any] | None:
    if isinstance(raw, (list, tuple)):
        return raw
    for path in _ATTRIBUTE_PATHS:
        value = _path(raw, path)
        if isinstance(value, (list, tuple)):
            return value
    return None


def _embedded_subject(raw: Any) -> Mapping[str, Any] | None:
    if not isinstance(raw, Mapping):
        return None
    for value in raw.values():
        if isinstance(value, Mapping) and any(name in value for name in _PERSON_HINT_FIELDS):
            return value
    return None


def _to_attribute(entry: Any) -> CredentialAttribute | None:
    if not isinstance(entry, Mapping):
        return None
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        return None
    media_type = entry.get("media_type", entry.get("mime-type"))
    return CredentialAttribute(
        name=name,
        value=entry.get("value"),
        media_type=str(media_type) if media_type is not None else None,
    )


def classify(raw: Any) -> RawCredentialVariant:
    """Resolve which encoding ``raw`` uses. Already-classified input passes through."""
    if isinstance(raw, _VARIANTS):
        return raw

    subject = _json_ld_subject(raw)
    if subject is not None:
        return JsonLdCredential(document=raw, subject=subject)

    subject = _claims_subject(raw)
    if subject is not None:
        return ClaimsCredential(document=raw, subject=subject)

    entries = _attribute_entries(raw)
    if entries is not None:
        attributes = tuple(attr for attr in map(_to_attribute, entries) if attr is not None)
        return AttributeListCredential(document=raw, attributes=attributes)

    subject = _embedded_subject(raw)
    if subject is not None:
        return EmbeddedSubjectCredential(document=raw, subject=subject)

    return UnrecognizedCredential(document=raw)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse ISO-8601 strings, datetimes and epoch seconds or milliseconds as UTC."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value >= _MILLISECONDS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            return parse_timestamp(int(text))
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return ensure_utc(parsed)
    return None


def _metadata_sources(document: Any) -> list[Any]:
    sources = [document]
    for name in ("vc", "credentialData"):
        nested = _field(document, name)
        if nested is not None:
            sources.append(nested)
    return sources


def _first(sources: Iterable[Any], *names: str) -> Any:
    for source in sources:
        for name in names:
            value = _field(source, name)
            if value is not None:
                return value
    return None


def _issuer(sources: list[Any]) -> str:
    value = _first(sources, "issuer", "iss")
    if isinstance(value, Mapping):
        value = value.get("id")
    if value is not None and not isinstance(value, str):
        value = str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return UNKNOWN_ISSUER


def _credential_type(sources: list[Any]) -> tuple[str, ...]:
    value = _first(sources, "type", "@type")
    if isinstance(value, str) and value:
        return (value,)
    if isinstance(value, (list, tuple)):
        types = tuple(item for item in value if isinstance(item, str) and item)
        if types:
            return types
    return DEFAULT_CREDENTIAL_TYPE


def _credential_id(sources: list[Any]) -> str | None:
    value = _first(sources, "id", "jti")
    if isinstance(value, str) and value:
        return value
    return None


def _fallback(now: datetime) -> NormalizedCredential:
    return NormalizedCredential(
        subject={},
        issuer=UNKNOWN_ISSUER,
        credential_type=DEFAULT_CREDENTIAL_TYPE,
        issued_at=now,
    )


def _from_document(document: Any, subject: Mapping[str, Any], now: datetime) -> NormalizedCredential:
    sources = _metadata_sources(document)
    return NormalizedCredential(
        subject=dict(subject),
        issuer=_issuer(sources),
        credential_type=_credential_type(sources),
        issued_at=parse_timestamp(_first(sources, *_ISSUED_KEYS)) or now,
        expires_at=parse_timestamp(_first(sources, *_EXPIRES_KEYS)),
        id=_credential_id(sources),
    )


def _from_attributes(variant: AttributeListCredential, now: datetime) -> NormalizedCredential:
    subject = {attribute.name: attribute.value for attribute in variant.attributes}
    credential_type = DEFAULT_CREDENTIAL_TYPE
    declared = subject.get("credentialType")
    if isinstance(declared, str) and declared:
        credential_type = DEFAULT_CREDENTIAL_TYPE + (declared,)
    return NormalizedCredential(
        subject=subject,
        issuer=UNKNOWN_ISSUER,
        credential_type=credential_type,
        issued_at=now,
    )


def normalize(raw: Any, *, now: datetime | None = None) -> NormalizedCredential:
    now_value = utc_now(now)
    try:
        variant = classify(raw)
        if isinstance(variant, (JsonLdCredential, ClaimsCredential, EmbeddedSubjectCredential)):
            return _from_document(variant.document, variant.subject, now_value)
        if isinstance(variant, AttributeListCredential):
            return _from_attributes(variant, now_value)
        logger.debug("Unrecognized credential encoding: %s", type(raw).__name__)
    except Exception:  # noqa: BLE001
        logger.debug("Credential normalization degraded to fallback", exc_info=True)
    return _fallback(now_value)


_UPPERCASE = re.compile(r"([A-Z])")


def format_attribute_name(name: str) -> str:
    """``dateOfBirth`` -> ``Date Of Birth``. Display only; never feed back into data."""
    spaced = _UPPERCASE.sub(r" \1", name).strip()
    if not spaced:
        return spaced
    return spaced[0].upper() + spaced[1:]


def _type_suffix(subject: Mapping[str, Any]) -> str:
    declared = subject.get("credentialType")
    if not declared:
        return ""
    if declared == "RealPersonIdentity":
        return " (ID)"
    if declared == "SecurityClearance":
        level = subject.get("clearanceLevel")
        return f" ({level})" if level else " (Clearance)"
    return f" ({declared})"


def _expiry_hint(expires_at: datetime | None, now: datetime) -> str:
    if expires_at is None:
        return ""
    days = (expires_at - now) // timedelta(days=1)
    if days < 0:
        return " [EXPIRED]"
    if days < 30:
        return f" [Exp: {days}d]"
    if days < 365:
        return f" [Exp: {days // 30}mo]"
    return f" [Exp: {days // 365}yr]"


def display_name(credential: NormalizedCredential, *, now: datetime | None = None) -> str:
    subject = credential.subject
    expires_at = credential.expires_at or parse_timestamp(subject.get("expiryDate"))
    suffix = _type_suffix(subject) + _expiry_hint(expires_at, utc_now(now))

    first_name = subject.get("firstName")
    last_name = subject.get("lastName")
    if first_name and last_name:
        return f"{first_name} {last_name}{suffix}"
    if first_name:
        return f"{first_name}{suffix}"
    if subject.get("holderName"):
        return f"{subject['holderName']}{suffix}"
    if subject.get("uniqueId"):
        return f"ID: {subject['uniqueId']}{suffix}"
    if credential.issuer != UNKNOWN_ISSUER:
        issuer = credential.issuer
        shown = f"...{issuer[-15:]}" if len(issuer) > 30 else issuer
        return f"Issued by: {shown}{suffix}"
    return "Unnamed Credential"
