"""
Explicit operation state machine shared by the orchestrators.

Each orchestrator owns one machine. ``begin()`` is the re-entrancy guard: it
refuses to start while an operation of the same kind is PENDING, so excess
requests are dropped instead of queued.

    IDLE ──begin──► PENDING ──succeed──► SUCCEEDED
                       │                     │
                       └──fail──► FAILED     └──begin──► PENDING ...
"""

from enum import Enum
from typing import Optional

from loguru import logger


class OperationState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OperationStateMachine:
    """
    Guarded {IDLE, PENDING, SUCCEEDED, FAILED} state for one operation kind.

    Attributes:
        name (str): Label used in logs
        state (OperationState): Current state
        last_error (Exception): Error recorded by the latest fail()

    Examples:
        >>> machine = OperationStateMachine("creation")
        >>> machine.begin()
        True
        >>> machine.begin()  # already pending
        False
        >>> machine.succeed()
        >>> machine.state
        <OperationState.SUCCEEDED: 'succeeded'>
    """

    def __init__(self, name: str):
        self.name = name
        self._state = OperationState.IDLE
        self._last_error: Optional[Exception] = None

    def begin(self) -> bool:
        """
        Enter PENDING unless an operation is already in flight.

        Returns:
            bool: True if the caller now owns the operation, False if it
                  must drop the request
        """
        if self._state is OperationState.PENDING:
            logger.warning(f"{self.name} already in progress, ignoring request")
            return False

        self._state = OperationState.PENDING
        self._last_error = None
        return True

    def succeed(self) -> None:
        self._transition(OperationState.SUCCEEDED)

    def fail(self, error: Exception) -> None:
        self._transition(OperationState.FAILED)
        self._last_error = error

    def _transition(self, target: OperationState) -> None:
        if self._state is not OperationState.PENDING:
            raise RuntimeError(
                f"{self.name}: cannot move to {target.value} from {self._state.value}"
            )
        self._state = target

    @property
    def state(self) -> OperationState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._state is OperationState.PENDING

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error
