"""
Transaction status broadcaster.

Holds the one status notification visible to the player. Every orchestrator
writes into the same slot, last write wins, and each write schedules its own
auto-dismiss. A supersede token ties every timer to the status that created
it, so a stale timer can never hide a newer status.
"""

import asyncio
from typing import Optional, Set

from loguru import logger

from .event_bus import Event, EventBus, EventType
from .models import StatusPhase, TransactionStatus


class StatusBroadcaster:
    """
    Single-slot, auto-expiring notification channel.

    Attributes:
        event_bus (EventBus): Bus receiving STATUS_CHANGED events
        current (TransactionStatus): The status in the slot right now

    Examples:
        >>> broadcaster = StatusBroadcaster(bus, success_delay=2.0, error_delay=3.0)
        >>> await broadcaster.pending("Creating event with FHE...")
        >>> await broadcaster.success("Event created!")  # overwrites the pending one
        >>> broadcaster.current.message
        'Event created!'
    """

    def __init__(
        self,
        event_bus: EventBus,
        success_delay: float = 2.0,
        pending_delay: float = 3.0,
        error_delay: float = 3.0
    ):
        """
        Initialize the broadcaster with an empty slot.

        Args:
            event_bus (EventBus): Bus to publish STATUS_CHANGED events on
            success_delay (float): Seconds before a success status is dismissed
            pending_delay (float): Seconds before a pending status is dismissed
            error_delay (float): Seconds before an error status is dismissed

        Raises:
            ValueError: If any delay is not positive
        """
        delays = {
            StatusPhase.SUCCESS: success_delay,
            StatusPhase.PENDING: pending_delay,
            StatusPhase.ERROR: error_delay,
        }
        for phase, delay in delays.items():
            if delay <= 0:
                raise ValueError(f"{phase.value} delay must be positive, got {delay}")

        self.event_bus = event_bus
        self._delays = delays
        self._token = 0
        self._current = TransactionStatus.hidden()
        self._timers: Set[asyncio.Task] = set()

    async def broadcast(self, phase: StatusPhase, message: str) -> TransactionStatus:
        """
        Overwrite the slot with a new visible status.

        Whatever was visible before is replaced unconditionally. The new
        status gets a fresh token and its own dismissal timer; older timers
        become no-ops.

        Args:
            phase (StatusPhase): pending, success or error
            message (str): Player-facing text

        Returns:
            TransactionStatus: The status now in the slot
        """
        loop = asyncio.get_running_loop()
        delay = self._delays[phase]

        self._token += 1
        token = self._token
        previous = self._current

        self._current = TransactionStatus(
            visible=True,
            phase=phase,
            message=message,
            expires_at=loop.time() + delay,
            token=token,
        )

        if previous.visible:
            logger.debug(
                f"Status #{previous.token} '{previous.message}' superseded by #{token}"
            )
        logger.info(f"[{phase.value}] {message}")

        timer = asyncio.create_task(self._expire_after(delay, token))
        self._timers.add(timer)
        timer.add_done_callback(self._timers.discard)

        await self._publish(self._current)
        return self._current

    async def pending(self, message: str) -> TransactionStatus:
        return await self.broadcast(StatusPhase.PENDING, message)

    async def success(self, message: str) -> TransactionStatus:
        return await self.broadcast(StatusPhase.SUCCESS, message)

    async def error(self, message: str) -> TransactionStatus:
        return await self.broadcast(StatusPhase.ERROR, message)

    async def _expire_after(self, delay: float, token: int) -> None:
        await asyncio.sleep(delay)
        if self._expire(token):
            await self._publish(self._current)

    def _expire(self, token: int) -> bool:
        """
        Dismiss the status identified by ``token`` if it is still current.

        Returns:
            bool: True if the slot was cleared, False if the token was stale
        """
        if token != self._token:
            logger.debug(f"Ignoring stale dismissal for status #{token} (current #{self._token})")
            return False

        self._current = TransactionStatus.hidden(token=token)
        return True

    async def close(self) -> None:
        """Cancel all pending dismissal timers."""
        timers = list(self._timers)
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
        self._timers.clear()

    async def _publish(self, status: TransactionStatus) -> None:
        if not self.event_bus.is_running:
            return

        try:
            await self.event_bus.publish(Event(
                event_type=EventType.STATUS_CHANGED,
                data={
                    "visible": status.visible,
                    "phase": status.phase.value,
                    "message": status.message,
                    "token": status.token,
                },
                source="StatusBroadcaster"
            ))
        except Exception as e:
            logger.error(f"Failed to publish STATUS_CHANGED: {e}")

    @property
    def current(self) -> TransactionStatus:
        return self._current

    @property
    def is_visible(self) -> bool:
        return self._current.visible

    @property
    def pending_timers(self) -> int:
        """Number of dismissal timers that have not fired yet."""
        return len(self._timers)

    def delay_for(self, phase: StatusPhase) -> Optional[float]:
        return self._delays.get(phase)
