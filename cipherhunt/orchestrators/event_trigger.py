"""
Event Trigger Orchestrator for CipherHunt

Reveals an event's encrypted value with a decryption proof and submits it
for on-chain verification:

1. Re-fetch the live record; an already-triggered event short-circuits
2. Fetch the encrypted value handle
3. Request decryption with proof; the submission callback posts the clear
   value and proof to the contract's verification entry point
4. Refresh the event store to observe the triggered state

Every failure reaches the player as the same "Trigger failed" message. The
cause is kept as a tagged TriggerFailed in ``last_error``.
"""

import asyncio
from enum import Enum
from typing import Any, Optional

from loguru import logger

from ..chain.interfaces import ContractProvider, FheService, ReadOnlyContract, SignerContract
from ..core.errors import (
    ContractReverted,
    TriggerFailed,
    TriggerFailureCause,
    is_user_rejection,
)
from ..core.event_bus import Event, EventBus, EventType
from ..core.event_processor import EventProcessor
from ..core.event_store import EventStore
from ..core.history import SessionHistory
from ..core.status import StatusBroadcaster
from .base import OperationState, OperationStateMachine
from .session_gate import SessionGate


class TriggerOutcome(Enum):
    TRIGGERED = "triggered"
    ALREADY_TRIGGERED = "already_triggered"
    BUSY = "busy"
    REJECTED = "rejected"
    FAILED = "failed"


def classify_trigger_failure(error: BaseException) -> TriggerFailureCause:
    """Map an exception raised while triggering to its failure cause."""
    if isinstance(error, TriggerFailed):
        return error.cause
    if is_user_rejection(error):
        return TriggerFailureCause.USER_REJECTED
    if isinstance(error, ContractReverted) or getattr(error, "code", None) == "CALL_EXCEPTION":
        return TriggerFailureCause.PROOF_REJECTED
    if "revert" in str(error).lower():
        return TriggerFailureCause.PROOF_REJECTED
    if isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError, OSError)):
        return TriggerFailureCause.NETWORK
    return TriggerFailureCause.UNKNOWN


class EventTriggerOrchestrator(EventProcessor):
    """
    Triggers events through homomorphic decryption and on-chain verification.

    Listens for TRIGGER_EVENT_REQUESTED (payload: event_id) and publishes
    EVENT_TRIGGERED after the verification was accepted.

    Examples:
        >>> trigger = EventTriggerOrchestrator(bus, gate, provider, fhe, store,
        ...                                    broadcaster, history)
        >>> await trigger.trigger("event-1700000000000")
        <TriggerOutcome.TRIGGERED: 'triggered'>
        >>> await trigger.trigger("event-1700000000000")
        <TriggerOutcome.ALREADY_TRIGGERED: 'already_triggered'>
    """

    def __init__(
        self,
        event_bus: EventBus,
        gate: SessionGate,
        provider: ContractProvider,
        fhe: FheService,
        store: EventStore,
        broadcaster: StatusBroadcaster,
        history: SessionHistory
    ):
        super().__init__(event_bus)
        self._gate = gate
        self._provider = provider
        self._fhe = fhe
        self._store = store
        self._broadcaster = broadcaster
        self._history = history

        self._machine = OperationStateMachine("Event trigger")
        self._verifications_submitted: int = 0

    def _register_handlers(self) -> None:
        self.event_bus.subscribe(EventType.TRIGGER_EVENT_REQUESTED, self._on_trigger_requested)

    def _unregister_handlers(self) -> None:
        self.event_bus.unsubscribe(EventType.TRIGGER_EVENT_REQUESTED, self._on_trigger_requested)

    async def _on_trigger_requested(self, event: Event) -> None:
        event_id = event.data.get("event_id")
        if not event_id:
            logger.warning(f"TRIGGER_EVENT_REQUESTED without event_id from {event.source}")
            return
        await self.trigger(event_id)

    async def trigger(self, event_id: str) -> TriggerOutcome:
        """
        Trigger the event identified by ``event_id``.

        Args:
            event_id (str): Target event identifier

        Returns:
            TriggerOutcome: What happened; BUSY when another trigger was in
            flight and this request was dropped
        """
        precondition = self._gate.check_ready()
        if precondition is not None:
            logger.warning(f"Trigger of {event_id} refused: {precondition}")
            await self._broadcaster.error(precondition.status_message)
            return TriggerOutcome.REJECTED

        if not self._machine.begin():
            return TriggerOutcome.BUSY

        await self._broadcaster.pending("Triggering event...")

        try:
            outcome = await self._run(event_id)
        except asyncio.CancelledError:
            self._machine.fail(TriggerFailed("Trigger cancelled before confirmation"))
            logger.warning(f"Trigger of {event_id} cancelled while waiting on the chain")
            raise
        except Exception as e:
            cause = classify_trigger_failure(e)
            error = e if isinstance(e, TriggerFailed) else TriggerFailed(str(e), cause=cause)
            self._machine.fail(error)
            logger.error(f"Trigger of {event_id} failed ({cause.value}): {e}")
            await self._broadcaster.error(TriggerFailed.status_message)
            await self._publish_error(error, "event_trigger")
            return TriggerOutcome.FAILED

        self._machine.succeed()
        return outcome

    async def _run(self, event_id: str) -> TriggerOutcome:
        reader = await self._provider.read_only()
        if reader is None:
            raise TriggerFailed("No read-only contract available", cause=TriggerFailureCause.CONTRACT_UNAVAILABLE)

        record = await reader.get_event_record(event_id)
        if record.triggered:
            logger.info(f"Event {event_id} already triggered, nothing to submit")
            await self._broadcaster.success("Event already triggered")
            return TriggerOutcome.ALREADY_TRIGGERED

        signer = await self._provider.with_signer()
        if signer is None:
            raise TriggerFailed("No signer contract available", cause=TriggerFailureCause.CONTRACT_UNAVAILABLE)

        await self._verify(reader, signer, event_id)

        await self._broadcaster.pending("Verifying trigger...")
        await self._store.refresh()

        await self._broadcaster.success("Event triggered!")
        self._history.record(f"Triggered event: {event_id}")
        await self._publish(EventType.EVENT_TRIGGERED, {"event_id": event_id})
        return TriggerOutcome.TRIGGERED

    async def _verify(self, reader: ReadOnlyContract, signer: SignerContract, event_id: str) -> None:
        handle = await reader.get_encrypted_handle(event_id)

        async def submit(clear_values: bytes, proof: bytes) -> Any:
            tx = await signer.submit_verification(event_id, clear_values, proof)
            self._verifications_submitted += 1
            logger.info(f"Submitted verification for {event_id} ({tx.tx_hash})")
            return await tx.wait()

        await self._fhe.decrypt_with_proof([handle], self._provider.contract_address, submit)

    @property
    def state(self) -> OperationState:
        return self._machine.state

    @property
    def is_triggering(self) -> bool:
        return self._machine.in_flight

    @property
    def last_error(self) -> Optional[Exception]:
        return self._machine.last_error

    @property
    def verifications_submitted(self) -> int:
        return self._verifications_submitted
