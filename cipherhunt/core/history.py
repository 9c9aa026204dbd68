"""Session-only activity history shown to the player."""

from collections import deque
from typing import List


class SessionHistory:
    """
    Bounded list of human-readable activity entries for the current session.

    Nothing is persisted; a new session starts empty. When the limit is
    reached the oldest entries are dropped.

    Examples:
        >>> history = SessionHistory(max_entries=2)
        >>> history.record("Created event: Park Meetup")
        >>> history.record("Triggered event: event-1700000000000")
        >>> history.record("Moved to: 51.5012, -0.0934")
        >>> history.entries
        ['Triggered event: event-1700000000000', 'Moved to: 51.5012, -0.0934']
    """

    def __init__(self, max_entries: int = 200):
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")

        self._entries: deque = deque(maxlen=max_entries)

    def record(self, entry: str) -> None:
        self._entries.append(entry)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
