"""
Game dataclasses with validation.

This module defines the entities a game session works with:
- GameEvent: An encrypted-location event mirrored from the contract
- EventRecord: The raw record returned by the contract view
- PlayerData: Non-authoritative player ranking entry
- SessionState: Wallet and FHE readiness flags
- TransactionStatus: The single visible status notification
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _to_int(value: Any, default: int = 0) -> int:
    """Coerce chain numbers (int, str, bigint-like) to int, falling back to default."""
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class EventRecord(BaseModel):
    """
    Raw event record as returned by ``get_event_record(id)``.

    Contract views hand back loosely typed numbers, so numeric fields are
    coerced and a missing or unparseable radius becomes 0.

    Examples:
        >>> record = EventRecord(name="Park Meetup", public_radius="100",
        ...                      creator="0xabc", timestamp=1700000000)
        >>> record.public_radius
        100
    """

    name: str = ""
    public_radius: int = 0
    description: str = ""
    creator: str = ""
    timestamp: int = 0
    triggered: bool = False
    revealed_value: Optional[int] = None

    @field_validator("public_radius", "timestamp", mode="before")
    @classmethod
    def coerce_number(cls, value: Any) -> int:
        return _to_int(value)

    @field_validator("revealed_value", mode="before")
    @classmethod
    def coerce_optional_number(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        return _to_int(value)


class GameEvent(BaseModel):
    """
    Immutable game event as cached by the event store.

    A new instance replaces the old one on every refresh; the only change an
    event ever goes through is ``triggered`` flipping from False to True.

    A revealed value is only meaningful once the event is triggered, so an
    untriggered event never carries one.

    Attributes:
        id: Unique event identifier
        name: Display name
        encrypted_location: Opaque reference to the encrypted location handle
        public_radius: Public trigger radius in meters
        description: Free-form description
        creator: Creator address
        timestamp: Creation timestamp as reported by the contract
        triggered: Whether the event has been verified on-chain
        revealed_value: Revealed location code, only set when triggered

    Examples:
        >>> event = GameEvent(id="event-1", name="Park Meetup",
        ...                   encrypted_location="event-1", revealed_value=42)
        >>> event.revealed_value is None
        True
    """

    model_config = {"frozen": True}

    id: str = Field(min_length=1, description="Unique event identifier")
    name: str = Field(description="Display name")
    encrypted_location: str = Field(description="Opaque encrypted-location handle reference")
    public_radius: int = Field(default=0, description="Public radius in meters")
    description: str = Field(default="")
    creator: str = Field(default="")
    timestamp: int = Field(default=0)
    triggered: bool = Field(default=False)
    revealed_value: Optional[int] = Field(default=None)

    @model_validator(mode="after")
    def drop_untrusted_value(self) -> "GameEvent":
        """Discard any revealed value reported for an untriggered event."""
        if not self.triggered and self.revealed_value is not None:
            object.__setattr__(self, "revealed_value", None)
        return self

    @classmethod
    def from_record(cls, event_id: str, record: EventRecord) -> "GameEvent":
        """
        Build a GameEvent from a contract record.

        The event id doubles as the reference used to look up the encrypted
        handle, so it is also stored as ``encrypted_location``.
        """
        return cls(
            id=event_id,
            name=record.name,
            encrypted_location=event_id,
            public_radius=record.public_radius,
            description=record.description,
            creator=record.creator,
            timestamp=record.timestamp,
            triggered=record.triggered,
            revealed_value=record.revealed_value,
        )


class PlayerData(BaseModel):
    """Player ranking entry. Populated from a non-authoritative source; read-only."""

    model_config = {"frozen": True}

    id: str = Field(min_length=1)
    name: str
    score: int = Field(default=0, ge=0)
    last_active: int = Field(description="Last activity, epoch milliseconds")


class SessionState(BaseModel):
    """
    Mutable wallet/FHE readiness flags for the current session.

    Orchestrators may only run while ``connected`` and ``fhe_ready`` are both
    set and no initialization is in flight.
    """

    connected: bool = False
    fhe_ready: bool = False
    initializing: bool = False
    address: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.connected and self.fhe_ready and not self.initializing


class StatusPhase(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class TransactionStatus(BaseModel):
    """
    The single transaction status notification.

    Attributes:
        visible: Whether a status is currently shown
        phase: pending, success or error
        message: Player-facing text
        expires_at: Loop time at which the status auto-dismisses
        token: Supersede token; a newer status always has a larger token
    """

    model_config = {"frozen": True}

    visible: bool = False
    phase: StatusPhase = StatusPhase.PENDING
    message: str = ""
    expires_at: Optional[float] = None
    token: int = 0

    @classmethod
    def hidden(cls, token: int = 0) -> "TransactionStatus":
        return cls(visible=False, phase=StatusPhase.PENDING, message="", token=token)


class EncryptedInput(BaseModel):
    """Ciphertext and input proof produced by the FHE service."""

    model_config = {"frozen": True}

    ciphertext: bytes = Field(min_length=1)
    proof: bytes = Field(min_length=1)


class DashboardStats(BaseModel):
    """Summary numbers shown on the session dashboard."""

    active_players: int = 0
    total_events: int = 0
    triggered_events: int = 0
    your_score: int = 0
