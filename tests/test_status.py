from __future__ import annotations

from datetime import datetime, timedelta, timezone

from credwallet.status import check_status, resolve_status
from credwallet.types import CredentialStatus, NormalizedCredential

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _credential(expires_at: datetime | None = None, credential_id: str | None = "cred-1") -> NormalizedCredential:
    return NormalizedCredential(
        subject={"uniqueId": "U1"},
        issuer="did:prism:ca",
        credential_type=("VerifiableCredential",),
        issued_at=NOW - timedelta(days=365),
        expires_at=expires_at,
        id=credential_id,
    )


class FakeRevocationRegistry:
    def __init__(self, revoked: set[str] | None = None, error: Exception | None = None):
        self.revoked = revoked or set()
        self.error = error
        self.calls: list[str] = []

    def is_revoked(self, credential_id: str) -> bool:
        self.calls.append(credential_id)
        if self.error is not None:
            raise self.error
        return credential_id in self.revoked


def test_valid_when_not_revoked_and_not_expired() -> None:
    assert resolve_status(_credential(), False, now=NOW) == CredentialStatus.VALID
    assert resolve_status(_credential(NOW + timedelta(days=1)), False, now=NOW) == CredentialStatus.VALID


def test_expired_at_and_after_expiry() -> None:
    assert resolve_status(_credential(NOW), False, now=NOW) == CredentialStatus.EXPIRED
    assert resolve_status(_credential(NOW - timedelta(days=1)), False, now=NOW) == CredentialStatus.EXPIRED


def test_revoked_overrides_expired() -> None:
    assert resolve_status(_credential(NOW - timedelta(days=1)), True, now=NOW) == CredentialStatus.REVOKED


def test_check_status_consults_registry() -> None:
    registry = FakeRevocationRegistry(revoked={"cred-1"})
    assert check_status(_credential(), registry, now=NOW) == CredentialStatus.REVOKED
    assert registry.calls == ["cred-1"]


def test_check_status_without_id_skips_registry() -> None:
    registry = FakeRevocationRegistry(revoked={"cred-1"})
    assert check_status(_credential(credential_id=None), registry, now=NOW) == CredentialStatus.VALID
    assert registry.calls == []


def test_check_status_registry_failure() -> None:
    registry = FakeRevocationRegistry(error=RuntimeError("status list unreachable"))
    assert check_status(_credential(), registry, now=NOW) == CredentialStatus.UNKNOWN
    assert check_status(_credential(NOW - timedelta(days=1)), registry, now=NOW) == CredentialStatus.EXPIRED


def test_naive_now_is_treated_as_utc() -> None:
    naive = datetime(2026, 1, 1)
    assert resolve_status(_credential(NOW), False, now=naive) == CredentialStatus.EXPIRED
    assert resolve_status(_credential(NOW + timedelta(seconds=1)), False, now=naive) == CredentialStatus.VALID
    assert check_status(_credential(NOW), FakeRevocationRegistry(), now=naive) == CredentialStatus.EXPIRED
