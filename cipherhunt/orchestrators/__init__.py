"""
Session orchestrators for CipherHunt

This package contains the components that drive chain interactions:
- SessionGate: Wallet connection and one-time FHE initialization
- EventCreationOrchestrator: Encrypts a location and submits a new event
- EventTriggerOrchestrator: Reveals an event with a decryption proof

Each one extends EventProcessor, so requests can arrive either as direct
coroutine calls or as bus events.

Examples:
    >>> bus = EventBus(handler_timeout=120.0)
    >>> await bus.start()
    >>>
    >>> registry = ProcessorRegistry(bus)
    >>> registry.register(SessionGate(bus, fhe, broadcaster, store=store))
    >>> registry.register(EventCreationOrchestrator(bus, gate, provider, fhe, store, broadcaster, history))
    >>> registry.register(EventTriggerOrchestrator(bus, gate, provider, fhe, store, broadcaster, history))
    >>> await registry.start_all()
"""

from .base import OperationState, OperationStateMachine
from .session_gate import GateState, SessionGate
from .event_creation import EventCreationOrchestrator, parse_int
from .event_trigger import EventTriggerOrchestrator, TriggerOutcome

__all__ = [
    "OperationState",
    "OperationStateMachine",
    "GateState",
    "SessionGate",
    "EventCreationOrchestrator",
    "parse_int",
    "EventTriggerOrchestrator",
    "TriggerOutcome",
]
