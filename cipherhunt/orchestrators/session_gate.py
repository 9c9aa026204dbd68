"""
Session Gate for CipherHunt

Tracks wallet connection and FHE readiness and sequences the one-time work
that follows a connection:

    DISCONNECTED ──connect──► CONNECTED_UNINITIALIZED ──► INITIALIZING ──► READY
         ▲                              ▲                      │
         └──────── disconnect ──────────┴────── failure ───────┘

Initialization is attempted once per connection. A failure falls back to
CONNECTED_UNINITIALIZED and is reported as a status; there is no automatic
retry, the player reconnects to try again.
"""

import asyncio
from enum import Enum
from typing import Optional

from loguru import logger

from ..chain.interfaces import FheService
from ..core.errors import CipherHuntError, ConnectionRequired, InitializationFailed, SessionNotReady
from ..core.event_bus import Event, EventBus, EventType
from ..core.event_processor import EventProcessor
from ..core.event_store import EventStore
from ..core.models import SessionState
from ..core.status import StatusBroadcaster
from ..players import PlayerRoster


class GateState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED_UNINITIALIZED = "connected_uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class SessionGate(EventProcessor):
    """
    Wallet/FHE readiness gate.

    On connect the gate initializes the FHE subsystem (once per connection)
    and then performs the session's initial load: an event store refresh and
    a player roster load.

    The gate listens for WALLET_CONNECTED (payload: address) and
    WALLET_DISCONNECTED on the bus, and publishes FHE_READY.

    Examples:
        >>> gate = SessionGate(bus, fhe, broadcaster, store=store, roster=roster)
        >>> await gate.connect("0x52908400098527886E0F7030069857D2E4169EE7")
        <GateState.READY: 'ready'>
        >>> await gate.disconnect()
        >>> gate.state
        <GateState.DISCONNECTED: 'disconnected'>
    """

    def __init__(
        self,
        event_bus: EventBus,
        fhe: FheService,
        broadcaster: StatusBroadcaster,
        store: Optional[EventStore] = None,
        roster: Optional[PlayerRoster] = None
    ):
        super().__init__(event_bus)
        self._fhe = fhe
        self._broadcaster = broadcaster
        self._store = store
        self._roster = roster

        self._session = SessionState()
        self._connection_id: int = 0
        self._init_attempted: bool = False
        self._init_attempts: int = 0
        self._last_error: Optional[InitializationFailed] = None

    def _register_handlers(self) -> None:
        self.event_bus.subscribe(EventType.WALLET_CONNECTED, self._on_wallet_connected)
        self.event_bus.subscribe(EventType.WALLET_DISCONNECTED, self._on_wallet_disconnected)

    def _unregister_handlers(self) -> None:
        self.event_bus.unsubscribe(EventType.WALLET_CONNECTED, self._on_wallet_connected)
        self.event_bus.unsubscribe(EventType.WALLET_DISCONNECTED, self._on_wallet_disconnected)

    async def _on_wallet_connected(self, event: Event) -> None:
        address = event.data.get("address")
        if not address:
            logger.warning(f"WALLET_CONNECTED without address from {event.source}")
            return
        await self.connect(address)

    async def _on_wallet_disconnected(self, event: Event) -> None:
        await self.disconnect()

    async def connect(self, address: str) -> GateState:
        """
        Mark the wallet connected, initialize FHE and load session data.

        Connecting the already-connected address is a no-op. Connecting a
        different address is treated as a disconnect followed by a new
        connection.

        Args:
            address (str): Connected wallet address

        Returns:
            GateState: State after initialization and initial load

        Raises:
            ValueError: If address is empty
        """
        if not address or not isinstance(address, str):
            raise ValueError("address must be non-empty string")

        if self._session.connected:
            if self._session.address == address:
                logger.debug(f"Wallet {address} already connected")
                return self.state
            logger.info(f"Wallet switched from {self._session.address} to {address}")
            await self.disconnect()

        self._connection_id += 1
        self._init_attempted = False
        self._session = SessionState(connected=True, address=address)
        logger.info(f"Wallet connected: {address}")

        connection_id = self._connection_id
        await self._initialize()

        if connection_id == self._connection_id:
            await self._initial_load(address)

        return self.state

    async def disconnect(self) -> None:
        """
        Reset to DISCONNECTED and re-arm initialization for the next connection.

        An initialization still in flight for the old connection completes
        without affecting the new state.
        """
        if not self._session.connected:
            return

        logger.info(f"Wallet disconnected: {self._session.address}")
        self._connection_id += 1
        self._init_attempted = False
        self._session = SessionState()

    async def _initialize(self) -> bool:
        """
        Initialize the FHE subsystem for the current connection.

        Runs at most once per connection: concurrent calls while INITIALIZING
        and later calls after an attempt (successful or not) return without
        touching the FHE service.

        Returns:
            bool: True if the session is READY afterwards
        """
        session = self._session
        if not session.connected or session.fhe_ready or session.initializing or self._init_attempted:
            return session.fhe_ready

        self._init_attempted = True
        self._init_attempts += 1
        session.initializing = True
        connection_id = self._connection_id
        logger.info("Initializing FHE subsystem")

        try:
            await self._fhe.initialize()
        except asyncio.CancelledError:
            session.initializing = False
            logger.warning("FHE initialization cancelled")
            raise
        except Exception as e:
            session.initializing = False
            if connection_id != self._connection_id:
                logger.info(f"FHE initialization failed for a replaced connection, discarding: {e}")
                return False
            error = InitializationFailed(f"FHE initialization failed: {e}")
            self._last_error = error
            logger.error(str(error))
            await self._broadcaster.error(InitializationFailed.status_message)
            await self._publish_error(error, "fhe_initialization")
            return False

        if connection_id != self._connection_id:
            logger.info("Wallet changed during FHE initialization, discarding result")
            return False

        session.initializing = False
        session.fhe_ready = True
        self._last_error = None
        logger.info("FHE subsystem ready")

        await self._publish(EventType.FHE_READY, {"address": session.address})
        return True

    async def _initial_load(self, address: str) -> None:
        if self._store is not None:
            await self._store.refresh()

        if self._roster is not None:
            try:
                await self._roster.load(address)
            except Exception as e:
                logger.warning(f"Player roster load failed: {e}")

    def check_ready(self) -> Optional[CipherHuntError]:
        """
        Check the orchestrator precondition.

        Returns:
            None if orchestrators may run, otherwise the error describing
            why not (ConnectionRequired or SessionNotReady)
        """
        if not self._session.connected or not self._session.address:
            return ConnectionRequired()
        if not self._session.ready:
            return SessionNotReady()
        return None

    @property
    def state(self) -> GateState:
        session = self._session
        if not session.connected:
            return GateState.DISCONNECTED
        if session.initializing:
            return GateState.INITIALIZING
        if session.fhe_ready:
            return GateState.READY
        return GateState.CONNECTED_UNINITIALIZED

    @property
    def session(self) -> SessionState:
        return self._session.model_copy()

    @property
    def address(self) -> Optional[str]:
        return self._session.address

    @property
    def is_connected(self) -> bool:
        return self._session.connected

    @property
    def is_ready(self) -> bool:
        return self.state is GateState.READY

    @property
    def init_attempts(self) -> int:
        """Total FHE initialization attempts across all connections."""
        return self._init_attempts

    @property
    def last_error(self) -> Optional[InitializationFailed]:
        return self._last_error
