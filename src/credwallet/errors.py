"""Exception types raised by the credwallet core."""

from __future__ import annotations


class CredwalletError(Exception):
    """Base class for credwallet errors."""


class MalformedCredential(CredwalletError, ValueError):
    """Structured input could not be parsed by a strict parser."""


class InvalidLevel(CredwalletError, ValueError):
    """Preset fields were requested for a level that has no preset."""


class InvalidTransition(CredwalletError, RuntimeError):
    """An offer event arrived in a state that does not accept it."""


class CollaboratorFailure(CredwalletError):
    """An agent or storage operation failed while processing an offer.

    ``str(error)`` is the summarized message meant for the user. The original
    exception is available as ``__cause__``.
    """

    def __init__(self, message: str, *, offer_id: str | None = None, purged: bool | None = None):
        super().__init__(message)
        self.offer_id = offer_id
        self.purged = purged
