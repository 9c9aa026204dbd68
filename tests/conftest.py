"""
Pytest configuration and shared fixtures for CipherHunt tests.

This module provides:
- Simulated contract, provider and FHE service
- EventBus, StatusBroadcaster, EventStore and SessionHistory fixtures
- Session gate and orchestrator fixtures wired against the simulated backend
- A deterministic clock for event identifiers
"""

import itertools

import pytest
import pytest_asyncio

from cipherhunt.chain.simulated import SimulatedContract, SimulatedFheService, SimulatedProvider
from cipherhunt.config import GameConfig
from cipherhunt.core.event_bus import EventBus
from cipherhunt.core.event_store import EventStore
from cipherhunt.core.history import SessionHistory
from cipherhunt.core.models import EventRecord
from cipherhunt.core.status import StatusBroadcaster
from cipherhunt.orchestrators.event_creation import EventCreationOrchestrator
from cipherhunt.orchestrators.event_trigger import EventTriggerOrchestrator
from cipherhunt.orchestrators.session_gate import SessionGate


CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
PLAYER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
OTHER_ADDRESS = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


@pytest.fixture
def clock():
    """Clock advancing one second per call, starting at 1700000000."""
    ticks = itertools.count(1700000000)
    return lambda: float(next(ticks))


@pytest.fixture
def fhe():
    return SimulatedFheService()


@pytest.fixture
def contract(fhe):
    return SimulatedContract(fhe, CONTRACT_ADDRESS, PLAYER_ADDRESS)


@pytest.fixture
def provider(contract):
    return SimulatedProvider(contract)


@pytest.fixture
def event_bus():
    return EventBus(handler_timeout=5.0)


@pytest_asyncio.fixture
async def broadcaster(event_bus):
    """Broadcaster with delays long enough that nothing expires mid-test."""
    broadcaster = StatusBroadcaster(event_bus, success_delay=30.0, pending_delay=30.0, error_delay=30.0)
    yield broadcaster
    await broadcaster.close()


@pytest.fixture
def store(provider, broadcaster, event_bus):
    return EventStore(provider, broadcaster, event_bus)


@pytest.fixture
def history():
    return SessionHistory()


@pytest.fixture
def gate(event_bus, fhe, broadcaster, store):
    return SessionGate(event_bus, fhe, broadcaster, store=store)


@pytest_asyncio.fixture
async def ready_gate(gate):
    """Session gate connected as PLAYER_ADDRESS with FHE initialized."""
    await gate.connect(PLAYER_ADDRESS)
    assert gate.is_ready
    return gate


@pytest.fixture
def creation(event_bus, gate, provider, fhe, store, broadcaster, history, clock):
    return EventCreationOrchestrator(
        event_bus, gate, provider, fhe, store, broadcaster, history, clock=clock
    )


@pytest.fixture
def trigger(event_bus, gate, provider, fhe, store, broadcaster, history):
    return EventTriggerOrchestrator(event_bus, gate, provider, fhe, store, broadcaster, history)


@pytest.fixture
def game_config():
    return GameConfig(
        contract_address=CONTRACT_ADDRESS,
        handler_timeout_sec=5.0,
        logging={"level": "DEBUG", "file": None},
    )


@pytest.fixture
def sample_record():
    """Untriggered record as returned by the contract view."""
    return EventRecord(
        name="Park Meetup",
        public_radius=100,
        description="Game Event",
        creator=PLAYER_ADDRESS,
        timestamp=1700000000,
        triggered=False,
    )
