"""
Player roster and ranking.

Player data comes from a non-authoritative source outside the core (a
ranking service, or the simulated source in ``cipherhunt.chain.simulated``).
The roster only reads it.
"""

import asyncio
import time
from typing import Awaitable, Callable, Iterable, List, Optional, Union

from loguru import logger

from .core.models import PlayerData


PlayerSource = Callable[[Optional[str]], Union[Iterable[PlayerData], Awaitable[Iterable[PlayerData]]]]
"""Called with the connected address; returns (or resolves to) player entries."""

ACTIVE_WINDOW_SEC = 86400
ONLINE_WINDOW_SEC = 300


def _now_ms() -> int:
    return int(time.time() * 1000)


class PlayerRoster:
    """
    Read-only player list for the dashboard and ranking.

    Examples:
        >>> roster = PlayerRoster(source)
        >>> await roster.load("0xabc")
        >>> [p.name for p in roster.ranking()][:2]
        ['ShadowRunner', 'CryptoNinja']
    """

    def __init__(
        self,
        source: PlayerSource,
        active_window_sec: int = ACTIVE_WINDOW_SEC,
        online_window_sec: int = ONLINE_WINDOW_SEC
    ):
        self._source = source
        self._active_window_ms = active_window_sec * 1000
        self._online_window_ms = online_window_sec * 1000
        self._players: List[PlayerData] = []

    async def load(self, address: Optional[str] = None) -> int:
        """
        Replace the roster with the source's current player list.

        Returns:
            int: Number of players loaded
        """
        result = self._source(address)
        if asyncio.iscoroutine(result):
            result = await result

        self._players = list(result)
        logger.debug(f"Loaded {len(self._players)} player(s)")
        return len(self._players)

    def ranking(self) -> List[PlayerData]:
        """Players sorted by score, highest first."""
        return sorted(self._players, key=lambda p: p.score, reverse=True)

    def active_count(self, now_ms: Optional[int] = None) -> int:
        """Players active within the last 24 hours."""
        now_ms = _now_ms() if now_ms is None else now_ms
        return sum(1 for p in self._players if now_ms - p.last_active < self._active_window_ms)

    def is_online(self, player: PlayerData, now_ms: Optional[int] = None) -> bool:
        """Whether the player was active within the last five minutes."""
        now_ms = _now_ms() if now_ms is None else now_ms
        return now_ms - player.last_active < self._online_window_ms

    def score_for(self, address: Optional[str]) -> int:
        if address is None:
            return 0
        for player in self._players:
            if player.id == address:
                return player.score
        return 0

    @property
    def players(self) -> List[PlayerData]:
        return list(self._players)

    def __len__(self) -> int:
        return len(self._players)
