"""Inbound credential offers and the FIFO queue that holds them."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, Mapping

from credwallet.errors import MalformedCredential
from credwallet.normalizer import classify, parse_timestamp
from credwallet.types import UNKNOWN_ISSUER, AttributeListCredential, PendingOffer

logger = logging.getLogger(__name__)

OFFER_CREDENTIAL_PIURI = "https://didcomm.org/issue-credential/3.0/offer-credential"


def _get(message: Any, name: str) -> Any:
    if isinstance(message, Mapping):
        return message.get(name)
    return getattr(message, name, None)


def is_offer_message(message: Any) -> bool:
    return _get(message, "piuri") == OFFER_CREDENTIAL_PIURI


def _body(message: Any) -> Mapping[str, Any]:
    body = _get(message, "body")
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except ValueError as error:
            raise MalformedCredential(f"Offer body is not valid JSON: {error}") from error
    if not isinstance(body, Mapping):
        raise MalformedCredential("Offer body must be a JSON object")
    return body


def parse_offer_message(message: Any, *, now: datetime | None = None) -> PendingOffer:
    offer_id = _get(message, "id")
    if not isinstance(offer_id, str) or not offer_id:
        raise MalformedCredential("Offer message has no id")

    preview = _body(message).get("credential_preview")
    if not isinstance(preview, Mapping):
        raise MalformedCredential(f"Offer {offer_id} has no credential_preview")

    variant = classify({"credential_preview": preview})
    attributes = variant.attributes if isinstance(variant, AttributeListCredential) else ()

    credential_type = None
    for attribute in attributes:
        if attribute.name.lower() == "credentialtype" and isinstance(attribute.value, str):
            credential_type = attribute.value
            break

    sender = _get(message, "from")
    schema_id = preview.get("schema_id")
    return PendingOffer(
        id=offer_id,
        raw_message=message,
        from_identifier=str(sender) if sender else UNKNOWN_ISSUER,
        received_at=(
            parse_timestamp(_get(message, "createdTime"))
            or now
            or datetime.now(timezone.utc)
        ),
        preview_attributes=attributes,
        schema_id=str(schema_id) if schema_id is not None else None,
        credential_type=credential_type,
    )


def pending_offers(messages: Iterable[Any], *, now: datetime | None = None) -> list[PendingOffer]:
    """Offer messages from ``messages``, oldest first. Unparseable offers are skipped."""
    offers: list[PendingOffer] = []
    for message in messages:
        if not is_offer_message(message):
            continue
        try:
            offers.append(parse_offer_message(message, now=now))
        except MalformedCredential as error:
            logger.warning("Skipping malformed credential offer: %s", error)
    offers.sort(key=lambda offer: offer.received_at)
    return offers


class OfferQueue:
    """Pending offers ordered by receipt time; ties keep arrival order."""

    def __init__(self, offers: Iterable[PendingOffer] = ()):
        self._offers: list[PendingOffer] = []
        for offer in offers:
            self.add(offer)

    def __len__(self) -> int:
        return len(self._offers)

    def __iter__(self) -> Iterator[PendingOffer]:
        return iter(list(self._offers))

    def __contains__(self, offer_id: object) -> bool:
        return any(offer.id == offer_id for offer in self._offers)

    def head(self) -> PendingOffer | None:
        return self._offers[0] if self._offers else None

    def get(self, offer_id: str) -> PendingOffer | None:
        for offer in self._offers:
            if offer.id == offer_id:
                return offer
        return None

    def add(self, offer: PendingOffer) -> bool:
        if offer.id in self:
            return False
        self._offers.append(offer)
        self._offers.sort(key=lambda item: item.received_at)
        return True

    def remove(self, offer_id: str) -> PendingOffer | None:
        for index, offer in enumerate(self._offers):
            if offer.id == offer_id:
                return self._offers.pop(index)
        return None

    def ingest(self, messages: Iterable[Any], *, now: datetime | None = None) -> list[PendingOffer]:
        """Add every new offer found in ``messages``; returns the ones added."""
        return [offer for offer in pending_offers(messages, now=now) if self.add(offer)]
