"""
Event Processor Infrastructure for CipherHunt

This module provides the base for bus-attached session components:
- EventProcessor: Abstract base class for components reacting to bus events
- ProcessorRegistry: Starts and stops a session's processors as one unit

The session gate and both orchestrators are processors: they expose direct
coroutine methods and also accept the equivalent requests over the bus.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from loguru import logger

from .event_bus import Event, EventBus, EventType


class EventProcessor(ABC):
    """
    Abstract base class for event processors.

    Lifecycle:
    1. Construction with EventBus dependency injection
    2. start() - runs the _on_start hook, then registers handlers
    3. Processing - handlers respond to events asynchronously
    4. stop() - unregisters handlers, then runs the _on_stop hook

    Attributes:
        event_bus (EventBus): The event bus for pub/sub communication

    Examples:
        >>> class WalletLogger(EventProcessor):
        ...     def _register_handlers(self):
        ...         self.event_bus.subscribe(EventType.WALLET_CONNECTED, self._on_wallet)
        ...
        ...     def _unregister_handlers(self):
        ...         self.event_bus.unsubscribe(EventType.WALLET_CONNECTED, self._on_wallet)
        ...
        ...     async def _on_wallet(self, event: Event):
        ...         logger.info(event.data["address"])
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self._is_started = False

    async def start(self) -> None:
        """
        Start the processor and register event handlers. Idempotent.

        Raises:
            Exception: Whatever the startup hook or registration raised
        """
        if self._is_started:
            logger.debug(f"{self.__class__.__name__} already started")
            return

        logger.info(f"Starting {self.__class__.__name__}")

        try:
            await self._on_start()
            self._register_handlers()
            self._is_started = True
            logger.info(f"{self.__class__.__name__} started successfully")
        except Exception as e:
            logger.error(f"Failed to start {self.__class__.__name__}: {e}")
            raise

    async def stop(self) -> None:
        """
        Stop the processor and unregister event handlers. Idempotent.

        Errors during shutdown are logged and the processor is marked stopped
        regardless.
        """
        if not self._is_started:
            logger.debug(f"{self.__class__.__name__} already stopped")
            return

        logger.info(f"Stopping {self.__class__.__name__}")

        try:
            self._unregister_handlers()
            await self._on_stop()
            self._is_started = False
            logger.info(f"{self.__class__.__name__} stopped successfully")
        except Exception as e:
            logger.error(f"Error during {self.__class__.__name__} shutdown: {e}")
            self._is_started = False

    @abstractmethod
    def _register_handlers(self) -> None:
        """Subscribe to the event types this processor handles."""
        pass

    @abstractmethod
    def _unregister_handlers(self) -> None:
        """Unsubscribe exactly the handlers registered in _register_handlers()."""
        pass

    async def _on_start(self) -> None:
        """Startup hook, runs before handler registration."""
        pass

    async def _on_stop(self) -> None:
        """Shutdown hook, runs after handler unregistration."""
        pass

    async def _publish(self, event_type: EventType, data: Dict[str, Any]) -> None:
        """
        Publish an event from this processor.

        Publishing is best effort: with the bus stopped the event is dropped,
        and failures are logged rather than raised into the caller's flow.
        """
        if not self.event_bus.is_running:
            logger.debug(
                f"{self.__class__.__name__}: bus not running, dropping {event_type.value}"
            )
            return

        try:
            await self.event_bus.publish(Event(
                event_type=event_type,
                data=data,
                source=self.__class__.__name__
            ))
            logger.debug(f"{event_type.name} event published by {self.__class__.__name__}")
        except Exception as e:
            logger.error(f"Failed to publish {event_type.name}: {e}")

    async def _publish_error(self, error: Exception, context: str) -> None:
        """Publish an ERROR event describing a failure converted into a status."""
        await self._publish(EventType.ERROR, {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "component": self.__class__.__name__,
            "context": context,
        })

    @property
    def is_running(self) -> bool:
        return self._is_started


class ProcessorRegistry:
    """
    Starts and stops a session's processors as a coordinated unit.

    - Processors start in registration order
    - Processors stop in reverse order
    - A processor failing to start does not prevent the others

    Examples:
        >>> registry = ProcessorRegistry(bus)
        >>> registry.register(gate)
        >>> registry.register(creation)
        >>> registry.register(trigger)
        >>> await registry.start_all()
        >>> await registry.stop_all()
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self._processors: List[EventProcessor] = []

    def register(self, processor: EventProcessor) -> None:
        """Register a processor; registration order is startup order."""
        self._processors.append(processor)
        logger.debug(
            f"Registered {processor.__class__.__name__} "
            f"({len(self._processors)} total processors)"
        )

    async def start_all(self) -> None:
        """
        Start all registered processors in order.

        Raises:
            RuntimeError: If every processor failed to start
        """
        logger.info(f"Starting {len(self._processors)} processor(s)")

        failed_count = 0
        for processor in self._processors:
            try:
                await processor.start()
            except Exception as e:
                logger.error(
                    f"Failed to start {processor.__class__.__name__}: {e}"
                )
                failed_count += 1

        if self._processors and failed_count == len(self._processors):
            raise RuntimeError("All processors failed to start")
        elif failed_count > 0:
            logger.warning(
                f"{failed_count} of {len(self._processors)} processors failed to start"
            )

    async def stop_all(self) -> None:
        """Stop all registered processors in reverse registration order."""
        logger.info(f"Stopping {len(self._processors)} processor(s)")

        failed_count = 0
        for processor in reversed(self._processors):
            try:
                await processor.stop()
            except Exception as e:
                logger.error(
                    f"Failed to stop {processor.__class__.__name__}: {e}"
                )
                failed_count += 1

        if failed_count > 0:
            logger.warning(
                f"{failed_count} of {len(self._processors)} processors "
                f"failed to stop cleanly"
            )

    @property
    def processor_count(self) -> int:
        return len(self._processors)

    @property
    def running_count(self) -> int:
        return sum(1 for p in self._processors if p.is_running)
