"""
Core module for event-driven session state.

This module provides the foundational components of a game session:
- EventBus: Publish-subscribe event system
- EventProcessor: Base class for bus-attached components
- ProcessorRegistry: Processor lifecycle coordinator
- EventStore: Session cache of on-chain events
- StatusBroadcaster: Single-slot transaction status channel
"""

from .event_bus import Event, EventBus, EventType
from .event_processor import EventProcessor, ProcessorRegistry
from .event_store import EventStore
from .status import StatusBroadcaster

__all__ = [
    "Event",
    "EventBus",
    "EventType",
    "EventProcessor",
    "ProcessorRegistry",
    "EventStore",
    "StatusBroadcaster",
]
