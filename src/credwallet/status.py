"""Lifecycle status of stored credentials."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from credwallet.types import CredentialStatus, NormalizedCredential, utc_now

logger = logging.getLogger(__name__)


class RevocationRegistry(Protocol):
    def is_revoked(self, credential_id: str) -> bool: ...


def _expired(credential: NormalizedCredential, now: datetime) -> bool:
    return credential.expires_at is not None and now >= credential.expires_at


def resolve_status(
    credential: NormalizedCredential,
    revoked: bool,
    *,
    now: datetime | None = None,
) -> CredentialStatus:
    if revoked:
        return CredentialStatus.REVOKED
    if _expired(credential, utc_now(now)):
        return CredentialStatus.EXPIRED
    return CredentialStatus.VALID


def check_status(
    credential: NormalizedCredential,
    registry: RevocationRegistry,
    *,
    now: datetime | None = None,
) -> CredentialStatus:
    """Ask ``registry`` for the revocation fact, then resolve.

    A credential without an id cannot be looked up and counts as not revoked.
    If the registry lookup fails the local expiry check still applies;
    otherwise the status is ``unknown``.
    """
    now_value = utc_now(now)
    if credential.id is None:
        return resolve_status(credential, False, now=now_value)

    try:
        revoked = bool(registry.is_revoked(credential.id))
    except Exception as error:  # noqa: BLE001
        logger.warning("Revocation lookup failed for %s: %s", credential.id, error)
        if _expired(credential, now_value):
            return CredentialStatus.EXPIRED
        return CredentialStatus.UNKNOWN

    return resolve_status(credential, revoked, now=now_value)
