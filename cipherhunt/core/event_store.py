"""
Session cache of on-chain game events.

The EventStore mirrors the contract's event records for the current session.
It never patches individual events: every refresh enumerates the contract
and replaces the whole cache, so anything the enumeration no longer returns
disappears locally.

Records that fail to load are skipped so the player still sees everything
else; only a failed enumeration counts as a load error.
"""

import time
from typing import TYPE_CHECKING, Dict, List, Optional

from loguru import logger

from .errors import LoadFailed
from .event_bus import Event, EventBus, EventType
from .models import GameEvent
from .status import StatusBroadcaster

if TYPE_CHECKING:
    from ..chain.interfaces import ContractProvider


class EventStore:
    """
    Wholesale-replaced cache of GameEvents.

    Attributes:
        events: Events from the latest successful refresh, in enumeration order
        skipped_count: Records dropped during the latest refresh
        last_error: LoadFailed from the latest failed enumeration, if any

    Examples:
        >>> store = EventStore(provider, broadcaster, bus)
        >>> await store.refresh()
        True
        >>> [e.id for e in store.get_events(triggered=False)]
        ['event-1700000000000']
    """

    def __init__(
        self,
        provider: "ContractProvider",
        broadcaster: StatusBroadcaster,
        event_bus: EventBus
    ):
        self._provider = provider
        self._broadcaster = broadcaster
        self.event_bus = event_bus

        self._events: List[GameEvent] = []
        self._by_id: Dict[str, GameEvent] = {}
        self._skipped_count: int = 0
        self._last_refreshed_at: Optional[float] = None
        self._last_error: Optional[LoadFailed] = None

    async def refresh(self) -> bool:
        """
        Replace the cache with the contract's current event set.

        Steps:
        1. Enumerate all event ids from the read-only view
        2. Fetch each record individually, skipping records that fail
        3. Replace the cache and publish EVENTS_REFRESHED

        A failed enumeration broadcasts "Failed to load events" and leaves the
        previous cache untouched.

        Returns:
            bool: True if the cache was replaced, False otherwise
        """
        try:
            contract = await self._provider.read_only()
            if contract is None:
                logger.warning("No read-only contract available, skipping event refresh")
                return False

            event_ids = await contract.list_event_ids()
        except Exception as e:
            self._last_error = LoadFailed(f"Event enumeration failed: {e}")
            logger.error(f"Failed to enumerate events: {e}")
            await self._broadcaster.error(LoadFailed.status_message)
            return False

        events: List[GameEvent] = []
        skipped = 0
        for event_id in event_ids:
            try:
                record = await contract.get_event_record(event_id)
                event = GameEvent.from_record(event_id, record)
            except Exception as e:
                skipped += 1
                logger.debug(f"Skipping event {event_id}: {e}")
                continue

            events.append(self._keep_triggered(event))

        self._events = events
        self._by_id = {event.id: event for event in events}
        self._skipped_count = skipped
        self._last_refreshed_at = time.time()
        self._last_error = None

        if skipped > 0:
            logger.warning(
                f"Event refresh skipped {skipped} of {len(event_ids)} record(s)"
            )
        logger.info(
            f"Loaded {len(events)} event(s), {self.triggered_count} triggered"
        )

        await self._publish_refreshed()
        return True

    def _keep_triggered(self, event: GameEvent) -> GameEvent:
        """
        Never let a refresh un-trigger an event.

        If the cached copy was already triggered and the fresh record says
        otherwise, the cached copy wins.
        """
        previous = self._by_id.get(event.id)
        if previous is not None and previous.triggered and not event.triggered:
            logger.warning(
                f"Event {event.id} reported untriggered after being triggered, "
                f"keeping triggered copy"
            )
            return previous
        return event

    async def _publish_refreshed(self) -> None:
        if not self.event_bus.is_running:
            return

        try:
            await self.event_bus.publish(Event(
                event_type=EventType.EVENTS_REFRESHED,
                data={
                    "count": len(self._events),
                    "skipped": self._skipped_count,
                    "triggered": self.triggered_count,
                },
                source="EventStore"
            ))
        except Exception as e:
            logger.error(f"Failed to publish EVENTS_REFRESHED: {e}")

    def get_event(self, event_id: str) -> Optional[GameEvent]:
        return self._by_id.get(event_id)

    def get_events(self, triggered: Optional[bool] = None) -> List[GameEvent]:
        """
        Get cached events, optionally filtered by triggered state.

        Args:
            triggered: True for triggered events only, False for untriggered
                       only, None for all (default)

        Returns:
            List of matching events in enumeration order.
        """
        if triggered is None:
            return list(self._events)
        return [event for event in self._events if event.triggered == triggered]

    @property
    def events(self) -> List[GameEvent]:
        return list(self._events)

    @property
    def triggered_count(self) -> int:
        return sum(1 for event in self._events if event.triggered)

    @property
    def skipped_count(self) -> int:
        return self._skipped_count

    @property
    def last_refreshed_at(self) -> Optional[float]:
        return self._last_refreshed_at

    @property
    def last_error(self) -> Optional[LoadFailed]:
        return self._last_error

    def __len__(self) -> int:
        return len(self._events)
