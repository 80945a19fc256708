"""Shared datatypes for the credwallet core."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

UNKNOWN_ISSUER = "Unknown Issuer"
DEFAULT_CREDENTIAL_TYPE: Tuple[str, ...] = ("VerifiableCredential",)
RESERVED_SUBJECT_KEYS = frozenset({"id", "@context"})

CREATE_NEW_DID = "create-new"

KNOWN_SCHEMAS = ("RealPerson", "SecurityClearance")


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def utc_now(now: datetime | None = None) -> datetime:
    return ensure_utc(now) if now is not None else datetime.now(timezone.utc)


class DisclosureLevel(str, Enum):
    MINIMAL = "minimal"
    STANDARD = "standard"
    FULL = "full"
    CUSTOM = "custom"


class CredentialStatus(str, Enum):
    VALID = "valid"
    REVOKED = "revoked"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


class OfferState(str, Enum):
    PENDING = "pending"
    NEEDS_DID_CHOICE = "needs_did_choice"
    ACCEPTING = "accepting"
    REJECTING = "rejecting"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (OfferState.ACCEPTED, OfferState.REJECTED, OfferState.FAILED)

    @property
    def in_flight(self) -> bool:
        return self in (OfferState.ACCEPTING, OfferState.REJECTING)


class OfferOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class JsonLdCredential:
    """Credential carrying a ``credentialSubject`` map (W3C JSON-LD shape)."""

    document: Any
    subject: Mapping[str, Any]


@dataclass(frozen=True)
class ClaimsCredential:
    """SDK credential object whose ``claims[0]`` is the subject map."""

    document: Any
    subject: Mapping[str, Any]


@dataclass(frozen=True)
class AttributeListCredential:
    """Offer-preview style ``[{name, value, media_type}]`` list."""

    document: Any
    attributes: Tuple["CredentialAttribute", ...]


@dataclass(frozen=True)
class EmbeddedSubjectCredential:
    """No standard subject location; a nested object carrying person fields stands in."""

    document: Any
    subject: Mapping[str, Any]


@dataclass(frozen=True)
class UnrecognizedCredential:
    document: Any


RawCredentialVariant = Union[
    JsonLdCredential,
    ClaimsCredential,
    AttributeListCredential,
    EmbeddedSubjectCredential,
    UnrecognizedCredential,
]


@dataclass(frozen=True)
class CredentialAttribute:
    name: str
    value: Any
    media_type: str | None = None


@dataclass(frozen=True)
class NormalizedCredential:
    subject: Mapping[str, Any]
    issuer: str
    credential_type: Tuple[str, ...]
    issued_at: datetime
    expires_at: datetime | None = None
    id: str | None = None

    def __post_init__(self) -> None:
        cleaned = {
            key: copy.deepcopy(value)
            for key, value in self.subject.items()
            if key not in RESERVED_SUBJECT_KEYS
        }
        object.__setattr__(self, "subject", MappingProxyType(cleaned))
        object.__setattr__(self, "credential_type", tuple(self.credential_type))
        object.__setattr__(self, "issued_at", ensure_utc(self.issued_at))
        if self.expires_at is not None:
            object.__setattr__(self, "expires_at", ensure_utc(self.expires_at))

    @property
    def primary_type(self) -> str | None:
        for value in self.credential_type:
            if value != "VerifiableCredential":
                return value
        return None


@dataclass(frozen=True)
class DisclosureResult:
    fields: frozenset[str]
    level: DisclosureLevel
    redacted_view: Mapping[str, Any]
    hidden_fields: frozenset[str] = frozenset()

    @property
    def shares_nothing(self) -> bool:
        return not self.redacted_view


@dataclass(frozen=True)
class ValidationResult:
    """``warnings`` are informational and never affect ``is_valid``."""

    errors: Tuple[str, ...]
    issuer: str | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    warnings: Tuple[str, ...] = ()
    schemas: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ExistingDID:
    did: str
    alias: str | None = None


DIDChoice = str


@dataclass(frozen=True)
class PendingOffer:
    id: str
    raw_message: Any
    from_identifier: str
    received_at: datetime
    preview_attributes: Tuple[CredentialAttribute, ...] = ()
    schema_id: str | None = None
    credential_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "received_at", ensure_utc(self.received_at))


@dataclass
class OfferWorkflow:
    """Per-offer state; owned by the coordinator, replaced on every offer."""

    offer: PendingOffer
    state: OfferState = OfferState.PENDING
    did_choice: Optional[DIDChoice] = None
    existing_dids: Tuple[ExistingDID, ...] = field(default_factory=tuple)
    error: str | None = None


class JsonDict(Dict[str, Any]):
    """Typed alias for JSON dictionaries used in internal serialization."""
