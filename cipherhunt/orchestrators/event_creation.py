"""
Event Creation Orchestrator for CipherHunt

Encrypts a location code and submits a new event to the contract:

1. Generate an identifier from the configured prefix and the current time
2. Encrypt the location code bound to the contract and the creator
3. Submit the creation transaction
4. Wait for confirmation
5. Refresh the event store and record the creation in the session history

One creation may be in flight per session; further submits are ignored
until it finishes.
"""

import asyncio
import re
import time
from typing import Any, Callable, Dict, Optional

from loguru import logger

from ..chain.interfaces import ContractProvider, FheService
from ..core.errors import CreationFailed, is_user_rejection
from ..core.event_bus import Event, EventBus, EventType
from ..core.event_processor import EventProcessor
from ..core.event_store import EventStore
from ..core.history import SessionHistory
from ..core.status import StatusBroadcaster
from .base import OperationState, OperationStateMachine
from .session_gate import SessionGate


DEFAULT_ID_PREFIX = "event-"
DEFAULT_CATEGORY = "Game Event"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int(text: Any) -> int:
    """
    Parse free-form text the way the game's input fields always have.

    Leading whitespace and an optional sign are accepted, then digits up to
    the first non-digit. Anything unparseable yields 0.

    Examples:
        >>> parse_int("42")
        42
        >>> parse_int(" 100m")
        100
        >>> parse_int("3.9")
        3
        >>> parse_int("north")
        0
    """
    if isinstance(text, bool):
        return 0
    if isinstance(text, int):
        return text
    if text is None:
        return 0

    match = _LEADING_INT.match(str(text))
    if not match:
        return 0
    return int(match.group(1))


class EventCreationOrchestrator(EventProcessor):
    """
    Creates encrypted-location events.

    Listens for CREATE_EVENT_REQUESTED (payload: name, location, radius) and
    publishes EVENT_CREATED once the transaction is confirmed.

    Configuration:
        id_prefix (str): Identifier prefix (default: "event-")
        category (str): Category passed to the contract (default: "Game Event")

    Examples:
        >>> creation = EventCreationOrchestrator(bus, gate, provider, fhe, store,
        ...                                      broadcaster, history)
        >>> await creation.create("Park Meetup", "42", "100")
        'event-1700000000000'
    """

    def __init__(
        self,
        event_bus: EventBus,
        gate: SessionGate,
        provider: ContractProvider,
        fhe: FheService,
        store: EventStore,
        broadcaster: StatusBroadcaster,
        history: SessionHistory,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.time
    ):
        super().__init__(event_bus)
        self._gate = gate
        self._provider = provider
        self._fhe = fhe
        self._store = store
        self._broadcaster = broadcaster
        self._history = history
        self._clock = clock

        default_config = {
            "id_prefix": DEFAULT_ID_PREFIX,
            "category": DEFAULT_CATEGORY,
        }
        self._config = {**default_config, **(config or {})}

        self._machine = OperationStateMachine("Event creation")
        self._created_count: int = 0

    def _register_handlers(self) -> None:
        self.event_bus.subscribe(EventType.CREATE_EVENT_REQUESTED, self._on_create_requested)

    def _unregister_handlers(self) -> None:
        self.event_bus.unsubscribe(EventType.CREATE_EVENT_REQUESTED, self._on_create_requested)

    async def _on_create_requested(self, event: Event) -> None:
        data = event.data
        await self.create(
            data.get("name", ""),
            data.get("location", ""),
            data.get("radius", "")
        )

    def generate_event_id(self) -> str:
        """
        Build an identifier from the prefix and the current epoch milliseconds.

        Two creations within the same millisecond produce the same id.
        """
        return f"{self._config['id_prefix']}{int(self._clock() * 1000)}"

    async def create(self, name: str, location_text: Any, radius_text: Any) -> Optional[str]:
        """
        Create an event with an encrypted location.

        Args:
            name (str): Event name, must be non-empty
            location_text: Location code as typed; unparseable input means 0
            radius_text: Public radius in meters as typed; same parsing rule

        Returns:
            str or None: The new event id, or None if the request was
            rejected, ignored or failed (the reason is on the status slot
            and in ``last_error``)
        """
        precondition = self._gate.check_ready()
        if precondition is not None:
            logger.warning(f"Event creation refused: {precondition}")
            await self._broadcaster.error(precondition.status_message)
            return None

        if not name or not str(name).strip():
            logger.warning("Event creation refused: empty name")
            await self._broadcaster.error("Event name is required")
            return None

        if not self._machine.begin():
            return None

        creator = self._gate.address
        await self._broadcaster.pending("Creating event with FHE...")

        try:
            event_id = await self._submit(name, parse_int(location_text), parse_int(radius_text), creator)
        except asyncio.CancelledError:
            self._machine.fail(CreationFailed("Creation cancelled before confirmation"))
            logger.warning("Event creation cancelled while waiting on the chain")
            raise
        except Exception as e:
            error = CreationFailed(str(e), user_rejected=is_user_rejection(e))
            self._machine.fail(error)
            logger.error(f"Event creation failed: {e}")
            await self._broadcaster.error(error.status_message)
            await self._publish_error(error, "event_creation")
            return None

        self._machine.succeed()
        return event_id

    async def _submit(self, name: str, location: int, radius: int, creator: str) -> str:
        signer = await self._provider.with_signer()
        if signer is None:
            raise CreationFailed("Failed to get contract")

        event_id = self.generate_event_id()
        contract_address = self._provider.contract_address

        logger.debug(f"Encrypting location for {event_id}")
        encrypted = await self._fhe.encrypt(contract_address, creator, location)

        tx = await signer.create_event(
            event_id,
            name,
            encrypted.ciphertext,
            encrypted.proof,
            radius,
            0,
            self._config["category"]
        )
        logger.info(f"Submitted creation of {event_id} ({tx.tx_hash})")

        await self._broadcaster.pending("Waiting for confirmation...")
        await tx.wait()

        self._created_count += 1
        await self._broadcaster.success("Event created!")

        await self._store.refresh()
        self._history.record(f"Created event: {name}")

        await self._publish(EventType.EVENT_CREATED, {
            "event_id": event_id,
            "name": name,
            "radius": radius,
            "tx_hash": tx.tx_hash,
        })
        return event_id

    @property
    def state(self) -> OperationState:
        return self._machine.state

    @property
    def is_creating(self) -> bool:
        return self._machine.in_flight

    @property
    def last_error(self) -> Optional[Exception]:
        return self._machine.last_error

    @property
    def created_count(self) -> int:
        return self._created_count
