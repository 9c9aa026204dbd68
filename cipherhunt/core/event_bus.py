"""
Event Bus System for CipherHunt

This module provides the event-driven backbone of the game client. Wallet
changes, store refreshes, status updates and orchestrator results all travel
over the bus so that rendering layers and other components can observe the
session without holding references to each other.
"""

from enum import Enum
from typing import Any, Callable, Dict, List
from dataclasses import dataclass
from datetime import datetime, timezone
import asyncio
from loguru import logger


DEFAULT_HANDLER_TIMEOUT = 1.0


class EventType(Enum):
    """
    Enumeration of all event types flowing through a game session.

    Event values are string literals to keep logs readable. Components
    should use these enum members rather than raw strings.

    Examples:
        >>> EventType.EVENT_CREATED
        <EventType.EVENT_CREATED: 'event_created'>

        >>> EventType.STATUS_CHANGED.value
        'status_changed'
    """

    WALLET_CONNECTED = "wallet_connected"
    """
    Emitted by the wallet layer when an account becomes available.

    Payload: address.
    """

    WALLET_DISCONNECTED = "wallet_disconnected"
    """Emitted by the wallet layer when the account goes away."""

    FHE_READY = "fhe_ready"
    """
    Emitted by the session gate once the FHE subsystem initialized.

    Payload: address.
    """

    EVENTS_REFRESHED = "events_refreshed"
    """
    Emitted after the event store replaced its cache.

    Payload: count, skipped, triggered.
    """

    CREATE_EVENT_REQUESTED = "create_event_requested"
    """
    Request for the creation orchestrator.

    Payload: name, location, radius (free-form text as typed by the player).
    """

    EVENT_CREATED = "event_created"
    """
    Emitted after a creation transaction was confirmed.

    Payload: event_id, name, radius, tx_hash.
    """

    TRIGGER_EVENT_REQUESTED = "trigger_event_requested"
    """
    Request for the trigger orchestrator.

    Payload: event_id.
    """

    EVENT_TRIGGERED = "event_triggered"
    """
    Emitted after a verification was accepted on-chain.

    Payload: event_id.
    """

    STATUS_CHANGED = "status_changed"
    """
    Emitted whenever the transaction status slot is overwritten.

    Payload: phase, message, token.
    """

    ERROR = "error"
    """
    Emitted when a component converted a failure into a status message.

    Payload: error_type, error_message, component, context.
    """

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<EventType.{self.name}: '{self.value}'>"


@dataclass
class Event:
    """
    Event data structure for the event bus system.

    Attributes:
        event_type (EventType): The type of event being emitted
        data (Dict[str, Any]): Event payload data specific to the event type
        source (str): Component that emitted the event
        timestamp (datetime): When the event was created (UTC)

    Examples:
        >>> event = Event(
        ...     event_type=EventType.EVENT_TRIGGERED,
        ...     data={'event_id': 'event-1700000000000'},
        ...     source='EventTriggerOrchestrator'
        ... )
        >>> event.event_type
        <EventType.EVENT_TRIGGERED: 'event_triggered'>
    """

    event_type: EventType
    data: Dict[str, Any]
    source: str
    timestamp: datetime = None

    def __post_init__(self):
        """
        Validate event data and set timestamp if not provided.

        Raises:
            TypeError: If event_type is not EventType or data is not dict
        """
        if not isinstance(self.event_type, EventType):
            raise TypeError(
                f"event_type must be EventType enum, got {type(self.event_type).__name__}"
            )

        if not isinstance(self.data, dict):
            raise TypeError(
                f"data must be dict, got {type(self.data).__name__}"
            )

        if self.timestamp is None:
            self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return f"Event({self.event_type.name} from {self.source} at {self.timestamp})"


class EventBus:
    """
    Central event bus for publish-subscribe event handling.

    Components subscribe to event types and are notified when those events
    are emitted (synchronously) or published (through the async queue).

    Handlers dispatched from the queue are bounded by ``handler_timeout``.
    Orchestrator handlers wait on chain confirmations, so sessions configure
    a timeout far above the default.

    Examples:
        >>> bus = EventBus(handler_timeout=30.0)
        >>> bus.subscribe(EventType.STATUS_CHANGED, lambda e: print(e.data['message']))
        >>> bus.emit(Event(EventType.STATUS_CHANGED, {'message': 'Event created!'}, 'test'))
        Event created!
    """

    def __init__(self, handler_timeout: float = DEFAULT_HANDLER_TIMEOUT):
        """
        Initialize the event bus with empty subscriber lists.

        Args:
            handler_timeout (float): Seconds a queued handler may run before
                                     it is abandoned.

        Raises:
            ValueError: If handler_timeout is not positive
        """
        if handler_timeout <= 0:
            raise ValueError(f"handler_timeout must be positive, got {handler_timeout}")

        self._subscribers: Dict[EventType, List[Callable[[Event], Any]]] = {
            event_type: [] for event_type in EventType
        }
        self._handler_timeout = handler_timeout
        self._queue: asyncio.Queue = None  # Created in start() to use correct event loop
        self._running: bool = False
        self._task: asyncio.Task = None

    def subscribe(self, event_type: EventType, callback: Callable[[Event], Any]) -> None:
        """
        Subscribe to a specific event type.

        Args:
            event_type (EventType): The event type to subscribe to
            callback (Callable): Sync or async function accepting an Event

        Raises:
            TypeError: If event_type is not an EventType enum member
        """
        if not isinstance(event_type, EventType):
            raise TypeError(f"event_type must be EventType enum, got {type(event_type)}")

        if callback not in self._subscribers[event_type]:
            self._subscribers[event_type].append(callback)

    def unsubscribe(self, event_type: EventType, callback: Callable[[Event], Any]) -> None:
        """Unsubscribe a callback from a specific event type."""
        if callback in self._subscribers[event_type]:
            self._subscribers[event_type].remove(callback)

    def emit(self, event: Event) -> None:
        """
        Emit an event to all synchronous subscribers immediately.

        Coroutine subscribers are skipped here; they only receive events
        delivered through publish().

        Args:
            event (Event): The event to emit

        Raises:
            TypeError: If event is not an Event instance
        """
        if not isinstance(event, Event):
            raise TypeError(f"event must be Event instance, got {type(event)}")

        for callback in self._subscribers[event.event_type]:
            if asyncio.iscoroutinefunction(callback):
                logger.debug(
                    f"Skipping async subscriber {callback.__name__} for sync emit "
                    f"of {event.event_type.value}"
                )
                continue
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    f"Error in event subscriber {callback.__name__} "
                    f"for {event.event_type.value}: {e}"
                )

    def subscriber_count(self, event_type: EventType) -> int:
        """Get the number of subscribers for an event type."""
        return len(self._subscribers[event_type])

    def clear_subscribers(self, event_type: EventType = None) -> None:
        """
        Clear subscribers for a specific event type or all events.

        Args:
            event_type (EventType, optional): Event type to clear.
                                            If None, clears all subscribers.
        """
        if event_type is None:
            for event_type in EventType:
                self._subscribers[event_type].clear()
        else:
            self._subscribers[event_type].clear()

    async def publish(self, event: Event) -> None:
        """
        Publish an event to the async queue for non-blocking emission.

        Args:
            event (Event): The event to publish

        Raises:
            TypeError: If event is not an Event instance
            RuntimeError: If event bus is not started
        """
        if not isinstance(event, Event):
            raise TypeError(f"event must be Event instance, got {type(event)}")

        if self._queue is None:
            raise RuntimeError("Event bus not started. Call start() first.")

        self._queue.put_nowait(event)

    async def start(self) -> None:
        """Start the async event processing loop."""
        if self._running:
            return

        self._queue = asyncio.Queue()
        self._running = True
        self._task = asyncio.create_task(self._process_events())

    async def _process_events(self) -> None:
        """
        Internal event processing loop.

        Runs until the running flag is cleared AND the queue is empty.
        """
        while True:
            event = None
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=0.1)
                await self._dispatch(event)

            except asyncio.TimeoutError:
                if not self._running and self._queue.empty():
                    break
                continue
            except Exception as e:
                logger.error(f"Error processing event: {e}")
            finally:
                if event is not None:
                    self._queue.task_done()

    async def _dispatch(self, event: Event) -> None:
        """
        Dispatch an event to all subscribers with timeout protection.

        Async handlers are awaited directly; sync handlers run in a worker
        thread so they cannot stall the loop.
        """
        handlers = list(self._subscribers[event.event_type])

        logger.debug(
            f"Dispatching event {event.event_type.value} to {len(handlers)} handler(s)"
        )

        for callback in handlers:
            try:
                if asyncio.iscoroutinefunction(callback):
                    await asyncio.wait_for(callback(event), timeout=self._handler_timeout)
                else:
                    await asyncio.wait_for(
                        asyncio.to_thread(callback, event),
                        timeout=self._handler_timeout
                    )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Handler {callback.__name__} for event {event.event_type.value} "
                    f"exceeded {self._handler_timeout}s timeout"
                )
            except Exception as e:
                logger.error(
                    f"Error in event subscriber {callback.__name__} "
                    f"for {event.event_type.value}: {e}"
                )

    async def stop(self) -> None:
        """
        Stop the event processing loop after draining the queue.

        Queued events are processed before the loop exits unless draining
        takes longer than 5 seconds.
        """
        if not self._running:
            return

        self._running = False

        try:
            await asyncio.wait_for(self._queue.join(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Event queue did not drain within 5s timeout")

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    @property
    def is_running(self) -> bool:
        """Check if the event bus is currently running."""
        return self._running

    @property
    def handler_timeout(self) -> float:
        return self._handler_timeout

    @property
    def queue_size(self) -> int:
        """Number of events waiting to be processed (0 if not started)."""
        if self._queue is None:
            return 0
        return self._queue.qsize()
