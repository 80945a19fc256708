"""credwallet: credential normalization, selective disclosure, validation and offer handling."""

from credwallet.coordinator import OfferAcceptanceCoordinator
from credwallet.disclosure import (
    FIELD_LABELS,
    PRESET_FIELDS,
    apply_disclosure,
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
from credwallet.errors import (
    CollaboratorFailure,
    CredwalletError,
    InvalidLevel,
    InvalidTransition,
    MalformedCredential,
)
from credwallet.normalizer import classify, display_name, format_attribute_name, normalize
from credwallet.offers import OfferQueue, parse_offer_message, pending_offers
from credwallet.status import check_status, resolve_status
from credwallet.trust import TrustedIssuer, TrustRegistry, load_trust_registry
from credwallet.types import (
    CREATE_NEW_DID,
    UNKNOWN_ISSUER,
    CredentialAttribute,
    CredentialStatus,
    DisclosureLevel,
    DisclosureResult,
    ExistingDID,
    NormalizedCredential,
    OfferOutcome,
    OfferState,
    PendingOffer,
    ValidationResult,
)
from credwallet.validator import detect_known_schemas, validate

__all__ = [
    "CREATE_NEW_DID",
    "CollaboratorFailure",
    "CredentialAttribute",
    "CredentialStatus",
    "CredwalletError",
    "DisclosureLevel",
    "DisclosureResult",
    "ExistingDID",
    "FIELD_LABELS",
    "InvalidLevel",
    "InvalidTransition",
    "MalformedCredential",
    "NormalizedCredential",
    "OfferAcceptanceCoordinator",
    "OfferOutcome",
    "OfferQueue",
    "OfferState",
    "PRESET_FIELDS",
    "PendingOffer",
    "TrustRegistry",
    "TrustedIssuer",
    "UNKNOWN_ISSUER",
    "ValidationResult",
    "apply_disclosure",
    "build_presentation_request",
    "check_status",
    "classify",
    "decode_presentation",
    "decode_presentation_request",
    "detect_known_schemas",
    "disclose",
    "display_name",
    "encode_presentation",
    "encode_presentation_request",
    "fields_for_level",
    "format_attribute_name",
    "level_for_fields",
    "load_trust_registry",
    "normalize",
    "parse_offer_message",
    "pending_offers",
    "required_fields_for_type",
    "resolve_status",
    "validate",
    "validate_disclosure",
]

__version__ = "0.1.0"
