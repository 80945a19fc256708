"""Accept / reject workflow over the pending credential offer queue.

One offer is surfaced at a time, always the oldest pending one. Its workflow
moves through::

    pending --accept--> needs_did_choice --select_did--> accepting --> accepted | failed
       |                      |
       |                      +--cancel_did_choice--> pending
       +--reject--> rejecting --> rejected | failed

``accept`` skips straight to ``accepting`` with a new DID when the wallet has
no existing DIDs to offer. A failed accept purges the stored offer message so
it does not come back on the next read; the purge is best effort and its
failure is only logged. Cancelling the task that awaits an accept or reject
puts the offer back to ``pending`` and leaves it queued.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable, Optional, Protocol, Sequence

from credwallet.errors import CollaboratorFailure, InvalidTransition
from credwallet.offers import OfferQueue
from credwallet.types import (
    CREATE_NEW_DID,
    DIDChoice,
    ExistingDID,
    OfferOutcome,
    OfferState,
    OfferWorkflow,
    PendingOffer,
)

logger = logging.getLogger(__name__)

ACCEPT_FAILED_MESSAGE = "Failed to accept credential offer"
REJECT_FAILED_MESSAGE = "Failed to reject credential offer"


class MessageStore(Protocol):
    async def delete_message(self, message_id: str) -> None: ...


class OfferAgent(Protocol):
    async def accept_offer(self, message: Any, chosen_did: Optional[str]) -> None: ...

    async def reject_offer(self, message: Any) -> None: ...


class DIDInventory(Protocol):
    def list_existing_dids(self) -> Sequence[ExistingDID]: ...


QueueChangedCallback = Callable[[OfferQueue], None]
OfferTerminalCallback = Callable[[str, OfferOutcome], None]


def _summarize(prefix: str, error: Exception) -> str:
    detail = str(error).strip()
    return f"{prefix}: {detail}" if detail else prefix


class OfferAcceptanceCoordinator:
    def __init__(
        self,
        *,
        agent: OfferAgent,
        store: MessageStore,
        did_inventory: DIDInventory,
        queue: OfferQueue | None = None,
        on_queue_changed: QueueChangedCallback | None = None,
        on_offer_terminal: OfferTerminalCallback | None = None,
        log: logging.Logger | None = None,
    ):
        self._agent = agent
        self._store = store
        self._did_inventory = did_inventory
        self._queue = queue if queue is not None else OfferQueue()
        self._on_queue_changed = on_queue_changed
        self._on_offer_terminal = on_offer_terminal
        self._log = log or logger
        self._workflow: OfferWorkflow | None = None
        self._last_resolved: OfferWorkflow | None = None

    @property
    def queue(self) -> OfferQueue:
        return self._queue

    @property
    def workflow(self) -> OfferWorkflow | None:
        return self._active()

    @property
    def current(self) -> PendingOffer | None:
        workflow = self._active()
        return workflow.offer if workflow is not None else None

    @property
    def state(self) -> OfferState | None:
        workflow = self._active()
        return workflow.state if workflow is not None else None

    @property
    def existing_dids(self) -> tuple[ExistingDID, ...]:
        workflow = self._active()
        return workflow.existing_dids if workflow is not None else ()

    @property
    def last_resolved(self) -> OfferWorkflow | None:
        return self._last_resolved

    @property
    def last_error(self) -> str | None:
        return self._last_resolved.error if self._last_resolved is not None else None

    def receive(self, offer: PendingOffer) -> bool:
        added = self._queue.add(offer)
        if added:
            self._log.debug("Queued credential offer %s from %s", offer.id, offer.from_identifier)
            self._notify_queue_changed()
        return added

    def ingest(self, messages: Iterable[Any]) -> list[PendingOffer]:
        added = self._queue.ingest(messages)
        if added:
            self._notify_queue_changed()
        return added

    async def accept_clicked(self) -> OfferState:
        workflow = self._require(OfferState.PENDING, "accept")
        dids = tuple(self._did_inventory.list_existing_dids())
        if dids:
            workflow.existing_dids = dids
            workflow.state = OfferState.NEEDS_DID_CHOICE
            return workflow.state
        return await self._accept(workflow, CREATE_NEW_DID)

    async def select_did(self, choice: DIDChoice | None) -> OfferState:
        workflow = self._require(OfferState.NEEDS_DID_CHOICE, "select a DID for")
        resolved = CREATE_NEW_DID if choice is None else choice
        if resolved != CREATE_NEW_DID and resolved not in {item.did for item in workflow.existing_dids}:
            raise ValueError(f"DID {resolved} is not one of the wallet's existing DIDs")
        return await self._accept(workflow, resolved)

    def cancel_did_choice(self) -> OfferState:
        workflow = self._require(OfferState.NEEDS_DID_CHOICE, "cancel DID selection for")
        workflow.state = OfferState.PENDING
        workflow.existing_dids = ()
        return workflow.state

    async def reject_clicked(self) -> OfferState:
        workflow = self._require(OfferState.PENDING, "reject")
        offer = workflow.offer
        workflow.state = OfferState.REJECTING
        self._log.info("Rejecting credential offer %s", offer.id)

        try:
            await self._agent.reject_offer(offer.raw_message)
        except asyncio.CancelledError:
            self._reset(workflow, "Rejecting")
            raise
        except Exception as error:
            message = _summarize(REJECT_FAILED_MESSAGE, error)
            self._log.error("Rejecting credential offer %s failed: %s", offer.id, error)
            self._finish(workflow, OfferState.FAILED, OfferOutcome.FAILED, error=message)
            raise CollaboratorFailure(message, offer_id=offer.id) from error

        self._finish(workflow, OfferState.REJECTED, OfferOutcome.REJECTED)
        return OfferState.REJECTED

    def _active(self) -> OfferWorkflow | None:
        if self._workflow is not None and self._workflow.state is not OfferState.PENDING:
            return self._workflow

        head = self._queue.head()
        if head is None:
            self._workflow = None
        elif self._workflow is None or self._workflow.offer.id != head.id:
            self._workflow = OfferWorkflow(offer=head)
        return self._workflow

    def _require(self, expected: OfferState, event: str) -> OfferWorkflow:
        workflow = self._active()
        if workflow is None:
            raise InvalidTransition(f"No pending credential offer to {event}")
        if workflow.state is not expected:
            raise InvalidTransition(
                f"Cannot {event} offer {workflow.offer.id} while it is {workflow.state.value}"
            )
        return workflow

    async def _accept(self, workflow: OfferWorkflow, choice: DIDChoice) -> OfferState:
        offer = workflow.offer
        workflow.state = OfferState.ACCEPTING
        workflow.did_choice = choice
        chosen_did = None if choice == CREATE_NEW_DID else choice
        self._log.info(
            "Accepting credential offer %s with %s",
            offer.id,
            "a new DID" if chosen_did is None else f"existing DID {chosen_did}",
        )

        try:
            await self._agent.accept_offer(offer.raw_message, chosen_did)
        except asyncio.CancelledError:
            self._reset(workflow, "Accepting")
            raise
        except Exception as error:
            message = _summarize(ACCEPT_FAILED_MESSAGE, error)
            self._log.error("Accepting credential offer %s failed: %s", offer.id, error)
            try:
                purged = await self._purge(offer)
            finally:
                self._finish(workflow, OfferState.FAILED, OfferOutcome.FAILED, error=message)
            raise CollaboratorFailure(message, offer_id=offer.id, purged=purged) from error

        self._finish(workflow, OfferState.ACCEPTED, OfferOutcome.ACCEPTED)
        return OfferState.ACCEPTED

    def _reset(self, workflow: OfferWorkflow, action: str) -> None:
        self._log.warning("%s credential offer %s was cancelled", action, workflow.offer.id)
        workflow.state = OfferState.PENDING
        workflow.did_choice = None
        workflow.existing_dids = ()

    async def _purge(self, offer: PendingOffer) -> bool:
        try:
            await self._store.delete_message(offer.id)
        except Exception as error:
            self._log.warning("Failed to delete failed offer message %s: %s", offer.id, error)
            return False
        self._log.info("Deleted failed offer message %s", offer.id)
        return True

    def _finish(
        self,
        workflow: OfferWorkflow,
        state: OfferState,
        outcome: OfferOutcome,
        *,
        error: str | None = None,
    ) -> None:
        workflow.state = state
        workflow.error = error
        self._queue.remove(workflow.offer.id)
        self._workflow = None
        self._last_resolved = workflow
        self._notify_queue_changed()
        if self._on_offer_terminal is not None:
            self._on_offer_terminal(workflow.offer.id, outcome)

    def _notify_queue_changed(self) -> None:
        if self._on_queue_changed is not None:
            self._on_queue_changed(self._queue)
