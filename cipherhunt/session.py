"""
Game session facade.

GameSession wires one player's session together: the event bus, status
broadcaster, event store, session gate, both orchestrators, the player
roster and the optional map. Rendering layers talk to this object (or
publish the equivalent requests on its bus) and read state back from it.
"""

import random
import time
from typing import Callable, List, Optional, Tuple

from loguru import logger

from .chain.interfaces import ContractProvider, FheService, MapSink
from .config import GameConfig
from .core.event_bus import EventBus
from .core.event_processor import ProcessorRegistry
from .core.event_store import EventStore
from .core.history import SessionHistory
from .core.models import DashboardStats, GameEvent, PlayerData, TransactionStatus
from .core.status import StatusBroadcaster
from .orchestrators.event_creation import EventCreationOrchestrator
from .orchestrators.event_trigger import EventTriggerOrchestrator, TriggerOutcome
from .orchestrators.session_gate import GateState, SessionGate
from .players import PlayerRoster, PlayerSource


def _no_players(address: Optional[str]) -> List[PlayerData]:
    return []


class GameSession:
    """
    One player's game session.

    Examples:
        >>> provider, fhe = build_simulated_backend(config.contract_address, address)
        >>> async with GameSession(config, provider, fhe, player_source=sample_players) as session:
        ...     await session.connect(address)
        ...     event_id = await session.create_event("Park Meetup", "42", "100")
        ...     await session.trigger_event(event_id)
        ...     session.dashboard().triggered_events
        1
    """

    def __init__(
        self,
        config: GameConfig,
        provider: ContractProvider,
        fhe: FheService,
        player_source: Optional[PlayerSource] = None,
        map_sink: Optional[MapSink] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None
    ):
        self.config = config
        self._provider = provider
        self._map = map_sink
        self._rng = rng or random.Random()
        self._clock = clock

        self.event_bus = event_bus or EventBus(handler_timeout=config.handler_timeout_sec)
        self.status = StatusBroadcaster(
            self.event_bus,
            success_delay=config.status.success_dismiss_sec,
            pending_delay=config.status.pending_dismiss_sec,
            error_delay=config.status.error_dismiss_sec,
        )
        self.store = EventStore(provider, self.status, self.event_bus)
        self.history = SessionHistory(max_entries=config.history_size)
        self.roster = PlayerRoster(
            player_source or _no_players,
            active_window_sec=config.players.active_window_sec,
            online_window_sec=config.players.online_window_sec,
        )

        self.gate = SessionGate(self.event_bus, fhe, self.status, store=self.store, roster=self.roster)
        self.creation = EventCreationOrchestrator(
            self.event_bus,
            self.gate,
            provider,
            fhe,
            self.store,
            self.status,
            self.history,
            config={"id_prefix": config.event_id_prefix, "category": config.event_category},
            clock=clock,
        )
        self.trigger = EventTriggerOrchestrator(
            self.event_bus,
            self.gate,
            provider,
            fhe,
            self.store,
            self.status,
            self.history,
        )

        self._registry = ProcessorRegistry(self.event_bus)
        self._registry.register(self.gate)
        self._registry.register(self.creation)
        self._registry.register(self.trigger)

        self._player_position: Optional[Tuple[float, float]] = None

    async def start(self) -> None:
        """Start the event bus and every processor."""
        await self.event_bus.start()
        await self._registry.start_all()
        logger.info("Game session started")

    async def stop(self) -> None:
        """Stop processors in reverse order, cancel status timers, drain the bus."""
        await self._registry.stop_all()
        await self.status.close()
        await self.event_bus.stop()
        logger.info("Game session stopped")

    async def __aenter__(self) -> "GameSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def connect(self, address: str) -> GateState:
        return await self.gate.connect(address)

    async def disconnect(self) -> None:
        await self.gate.disconnect()

    async def create_event(self, name: str, location_text, radius_text) -> Optional[str]:
        return await self.creation.create(name, location_text, radius_text)

    async def trigger_event(self, event_id: str) -> TriggerOutcome:
        return await self.trigger.trigger(event_id)

    async def refresh_events(self) -> bool:
        return await self.store.refresh()

    async def check_availability(self) -> bool:
        """
        Ask the contract whether the game is available.

        Reports "System available!" when it is; an unavailable system gets no
        status. A failing call reports "Availability check failed".

        Returns:
            bool: The contract's answer, False on failure
        """
        try:
            contract = await self._provider.read_only()
            if contract is None:
                return False
            available = await contract.check_availability()
        except Exception as e:
            logger.error(f"Availability check failed: {e}")
            await self.status.error("Availability check failed")
            return False

        if available:
            await self.status.success("System available!")
        return bool(available)

    def move_player(self, lat: Optional[float] = None, lng: Optional[float] = None) -> Optional[Tuple[float, float]]:
        """
        Move the player's marker on the map.

        Without coordinates the player lands at a random spot around the
        configured map center.

        Returns:
            The new position, or None when no map is attached
        """
        if self._map is None:
            return None

        map_config = self.config.map
        if lat is None or lng is None:
            lat = map_config.center_lat + (self._rng.random() - 0.5) * map_config.jitter
            lng = map_config.center_lng + (self._rng.random() - 0.5) * map_config.jitter

        self._player_position = (lat, lng)
        self._map.place_marker(lat, lng)
        self._map.set_view(lat, lng, map_config.zoom)
        self.history.record(f"Moved to: {lat:.4f}, {lng:.4f}")
        return self._player_position

    def dashboard(self, now_ms: Optional[int] = None) -> DashboardStats:
        now_ms = int(self._clock() * 1000) if now_ms is None else now_ms
        return DashboardStats(
            active_players=self.roster.active_count(now_ms),
            total_events=len(self.store),
            triggered_events=self.store.triggered_count,
            your_score=self.roster.score_for(self.gate.address),
        )

    @property
    def events(self) -> List[GameEvent]:
        return self.store.events

    @property
    def current_status(self) -> TransactionStatus:
        return self.status.current

    @property
    def player_position(self) -> Optional[Tuple[float, float]]:
        return self._player_position
