"""Wallet-side trusted issuer registry."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Mapping

from credwallet.config import resolve_trust_registry_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrustedIssuer:
    name: str
    authorized_credential_types: frozenset[str]
    organization_type: str | None = None
    jurisdiction: str | None = None


class TrustRegistry:
    """Maps issuer DIDs to the credential types the wallet accepts from them."""

    def __init__(self, issuers: Mapping[str, TrustedIssuer] | None = None):
        self._issuers = dict(issuers or {})

    def __len__(self) -> int:
        return len(self._issuers)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._issuers))

    def __contains__(self, did: object) -> bool:
        return did in self._issuers

    def get(self, did: str) -> TrustedIssuer | None:
        return self._issuers.get(did)

    def is_trusted(self, did: str, credential_type: str | None = None) -> bool:
        issuer = self._issuers.get(did)
        if issuer is None:
            logger.info("Issuer not in trust registry: %s", did)
            return False
        if credential_type is not None and credential_type not in issuer.authorized_credential_types:
            logger.info("Issuer %s is not authorized for %s", issuer.name, credential_type)
            return False
        return True

    def issuers_for_type(self, credential_type: str) -> list[str]:
        return sorted(
            did
            for did, issuer in self._issuers.items()
            if credential_type in issuer.authorized_credential_types
        )


def _issuer_from_dict(did: str, value: object) -> TrustedIssuer:
    if not isinstance(value, dict):
        raise ValueError(f"Trust registry entry for {did} must be an object")
    types = value.get("authorizedCredentialTypes", [])
    if not isinstance(types, list):
        raise ValueError(f"authorizedCredentialTypes for {did} must be a list")
    return TrustedIssuer(
        name=str(value.get("name") or did),
        authorized_credential_types=frozenset(str(item) for item in types),
        organization_type=(
            str(value["organizationType"]) if value.get("organizationType") is not None else None
        ),
        jurisdiction=str(value["jurisdiction"]) if value.get("jurisdiction") is not None else None,
    )


def load_trust_registry(path: str | Path | None = None) -> TrustRegistry:
    """Load a registry from JSON ``{"<did>": {"name": ..., "authorizedCredentialTypes": [...]}}``.

    Without an explicit path, ``CREDWALLET_TRUST_REGISTRY`` is consulted; if
    neither is set the registry is empty.
    """
    resolved = resolve_trust_registry_path(str(path) if path is not None else None)
    if resolved is None:
        return TrustRegistry()

    registry_path = Path(resolved)
    try:
        raw = json.loads(registry_path.read_text(encoding="utf-8"))
    except Exception as error:
        raise ValueError(f"Failed to parse trust registry {registry_path}: {error}")

    if not isinstance(raw, dict):
        raise ValueError(f"Trust registry {registry_path} is invalid")

    return TrustRegistry({did: _issuer_from_dict(did, entry) for did, entry in raw.items()})
