"""
Integration tests for a full game session.

Tests cover the complete flow:
WALLET_CONNECTED → SessionGate → FHE_READY → EVENTS_REFRESHED
CREATE_EVENT_REQUESTED → EventCreationOrchestrator → EVENT_CREATED
TRIGGER_EVENT_REQUESTED → EventTriggerOrchestrator → EVENT_TRIGGERED

Verifies:
- End-to-end flow through direct calls and over the bus
- Status, history and dashboard state after a round
- Availability check and player movement
"""

import asyncio
import random
from typing import Dict, List
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from cipherhunt.chain.simulated import RecordingMap, build_simulated_backend, sample_players
from cipherhunt.core.event_bus import Event, EventBus, EventType
from cipherhunt.core.models import StatusPhase
from cipherhunt.orchestrators.event_trigger import TriggerOutcome
from cipherhunt.orchestrators.session_gate import GateState
from cipherhunt.session import GameSession


CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
PLAYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
NOW_MS = 1700000000000


class EventTracker:
    """Helper class to track all events for verification."""

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self.events: Dict[EventType, List[Event]] = {
            event_type: [] for event_type in EventType
        }

    def start(self):
        for event_type in EventType:
            self.event_bus.subscribe(event_type, self._track_event)

    async def _track_event(self, event: Event):
        self.events[event.event_type].append(event)

    def count(self, event_type: EventType) -> int:
        return len(self.events[event_type])


@pytest_asyncio.fixture
async def game(game_config, clock):
    """
    Running GameSession against a fresh simulated backend.

    Returns:
        Tuple: (session, provider, map_sink, tracker)
    """
    provider, fhe = build_simulated_backend(CONTRACT, PLAYER)
    map_sink = RecordingMap()
    session = GameSession(
        game_config,
        provider,
        fhe,
        player_source=lambda address: sample_players(address, now_ms=NOW_MS),
        map_sink=map_sink,
        clock=clock,
        rng=random.Random(7),
    )
    tracker = EventTracker(session.event_bus)
    tracker.start()

    await session.start()
    yield session, provider, map_sink, tracker
    await session.stop()


class TestGameRound:
    """Full round through direct session calls."""

    @pytest.mark.asyncio
    async def test_connect_create_trigger(self, game):
        session, provider, _, _ = game

        assert await session.connect(PLAYER) is GateState.READY

        event_id = await session.create_event("Park Meetup", "42", "100")
        assert event_id is not None
        event = session.store.get_event(event_id)
        assert event.public_radius == 100
        assert event.triggered is False

        assert await session.trigger_event(event_id) is TriggerOutcome.TRIGGERED

        event = session.store.get_event(event_id)
        assert event.triggered is True
        assert event.revealed_value == 42
        assert session.current_status.message == "Event triggered!"
        assert session.history.entries == [
            "Created event: Park Meetup",
            f"Triggered event: {event_id}",
        ]

    @pytest.mark.asyncio
    async def test_dashboard_after_round(self, game):
        session, _, _, _ = game
        await session.connect(PLAYER)
        event_id = await session.create_event("Park Meetup", "42", "100")
        await session.create_event("Harbor Walk", "7", "50")
        await session.trigger_event(event_id)

        stats = session.dashboard(now_ms=NOW_MS)

        assert stats.total_events == 2
        assert stats.triggered_events == 1
        assert stats.active_players == 5
        assert stats.your_score == 450
        assert len(session.events) == 2

    @pytest.mark.asyncio
    async def test_operations_refused_after_disconnect(self, game):
        session, provider, _, _ = game
        await session.connect(PLAYER)
        await session.disconnect()

        assert await session.create_event("Park Meetup", "42", "100") is None
        assert session.current_status.message == "Connect wallet first"
        assert provider.contract.create_calls == []

    @pytest.mark.asyncio
    async def test_refresh_events(self, game):
        session, provider, _, _ = game
        await session.connect(PLAYER)
        await session.create_event("Park Meetup", "42", "100")

        provider.contract.fail_enumeration = True

        assert await session.refresh_events() is False
        assert len(session.events) == 1
        assert session.current_status.message == "Failed to load events"


class TestBusDrivenSession:
    """Full round through bus requests only."""

    @pytest.mark.asyncio
    async def test_round_over_bus(self, game):
        session, provider, _, tracker = game
        bus = session.event_bus

        await bus.publish(Event(EventType.WALLET_CONNECTED, {"address": PLAYER}, "wallet"))
        await bus.publish(Event(
            EventType.CREATE_EVENT_REQUESTED,
            {"name": "Park Meetup", "location": "42", "radius": "100"},
            "ui"
        ))
        await asyncio.sleep(0.3)

        assert tracker.count(EventType.FHE_READY) == 1
        assert tracker.count(EventType.EVENT_CREATED) == 1
        event_id = tracker.events[EventType.EVENT_CREATED][0].data["event_id"]

        await bus.publish(Event(EventType.TRIGGER_EVENT_REQUESTED, {"event_id": event_id}, "ui"))
        await asyncio.sleep(0.3)

        assert tracker.count(EventType.EVENT_TRIGGERED) == 1
        assert tracker.count(EventType.ERROR) == 0
        assert tracker.count(EventType.EVENTS_REFRESHED) == 3
        assert session.store.get_event(event_id).triggered is True

        messages = [e.data["message"] for e in tracker.events[EventType.STATUS_CHANGED]]
        assert "Creating event with FHE..." in messages
        assert "Event created!" in messages
        assert "Triggering event..." in messages
        assert messages[-1] == "Event triggered!"

    @pytest.mark.asyncio
    async def test_failure_over_bus_publishes_error(self, game):
        session, provider, _, tracker = game
        bus = session.event_bus
        await session.connect(PLAYER)
        provider.contract.reject_signatures = True

        await bus.publish(Event(
            EventType.CREATE_EVENT_REQUESTED,
            {"name": "Park Meetup", "location": "42", "radius": "100"},
            "ui"
        ))
        await asyncio.sleep(0.3)

        assert tracker.count(EventType.ERROR) == 1
        assert tracker.events[EventType.ERROR][0].data["context"] == "event_creation"
        assert session.current_status.message == "Transaction rejected"


class TestSessionExtras:

    @pytest.mark.asyncio
    async def test_availability_check(self, game):
        session, provider, _, _ = game

        assert await session.check_availability() is True
        assert session.current_status.phase == StatusPhase.SUCCESS
        assert session.current_status.message == "System available!"

    @pytest.mark.asyncio
    async def test_unavailable_system_sets_no_status(self, game):
        session, provider, _, _ = game
        provider.contract.available = False

        assert await session.check_availability() is False
        assert session.current_status.visible is False

    @pytest.mark.asyncio
    async def test_availability_check_failure(self, game):
        session, provider, _, _ = game
        provider.contract.check_availability = AsyncMock(side_effect=ConnectionError("RPC down"))

        assert await session.check_availability() is False
        assert session.current_status.phase == StatusPhase.ERROR
        assert session.current_status.message == "Availability check failed"

    @pytest.mark.asyncio
    async def test_move_player_to_coordinates(self, game):
        session, _, map_sink, _ = game

        position = session.move_player(51.5, -0.09)

        assert position == (51.5, -0.09)
        assert session.player_position == (51.5, -0.09)
        assert map_sink.markers == [(51.5, -0.09)]
        assert map_sink.view == (51.5, -0.09, 15)
        assert session.history.entries == ["Moved to: 51.5000, -0.0900"]

    @pytest.mark.asyncio
    async def test_move_player_randomly_near_center(self, game):
        session, _, map_sink, _ = game

        lat, lng = session.move_player()

        assert abs(lat - 51.505) <= 0.05
        assert abs(lng - (-0.09)) <= 0.05
        assert len(map_sink.markers) == 1

    @pytest.mark.asyncio
    async def test_move_player_without_map(self, game_config):
        provider, fhe = build_simulated_backend(CONTRACT, PLAYER)
        session = GameSession(game_config, provider, fhe)

        assert session.move_player(51.5, -0.09) is None
        assert session.history.entries == []

    @pytest.mark.asyncio
    async def test_session_context_manager(self, game_config):
        provider, fhe = build_simulated_backend(CONTRACT, PLAYER)

        async with GameSession(game_config, provider, fhe) as session:
            assert session.event_bus.is_running is True
            await session.connect(PLAYER)
            assert session.dashboard().your_score == 0

        assert session.event_bus.is_running is False
