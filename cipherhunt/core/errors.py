"""
Error taxonomy for CipherHunt.

Orchestrators never let these escape to the caller: each failure is caught
where it happens, kept as ``last_error`` for inspection, and converted into a
transaction status message. ``ConfigError`` is the exception, raised at
startup before any session exists.
"""

from enum import Enum


class CipherHuntError(Exception):
    """
    Base class for all CipherHunt errors.

    Attributes:
        status_message (str): Message shown to the player when this error
                              is converted into a transaction status.
    """

    status_message = "Operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.status_message)


class ConfigError(CipherHuntError):
    """
    Raised when config.yaml or the environment is missing or invalid.

    This indicates a deployment problem that must be resolved before a
    session can start.
    """

    status_message = "Invalid configuration"


class ConnectionRequired(CipherHuntError):
    """No wallet is connected."""

    status_message = "Connect wallet first"


class SessionNotReady(CipherHuntError):
    """Wallet is connected but the FHE subsystem has not finished initializing."""

    status_message = "FHE system not ready"


class InitializationFailed(CipherHuntError):
    """The FHE subsystem could not start."""

    status_message = "FHEVM initialization failed"


class LoadFailed(CipherHuntError):
    """Enumerating the on-chain events failed."""

    status_message = "Failed to load events"


class CreationFailed(CipherHuntError):
    """
    Event creation failed.

    Only a user-rejected signature is distinguished from other causes, and
    only through the status message.
    """

    def __init__(self, message: str = None, user_rejected: bool = False):
        self.user_rejected = user_rejected
        super().__init__(message or self.status_message)

    @property
    def status_message(self) -> str:
        return "Transaction rejected" if self.user_rejected else "Creation failed"


class TriggerFailureCause(Enum):
    """Underlying reason for a failed trigger. Never shown to the player."""

    USER_REJECTED = "user_rejected"
    PROOF_REJECTED = "proof_rejected"
    NETWORK = "network"
    CONTRACT_UNAVAILABLE = "contract_unavailable"
    UNKNOWN = "unknown"


class TriggerFailed(CipherHuntError):
    """
    Event trigger failed.

    Every cause surfaces as the same generic message; ``cause`` keeps the
    tag for logs and tests.
    """

    status_message = "Trigger failed"

    def __init__(self, message: str = None, cause: TriggerFailureCause = TriggerFailureCause.UNKNOWN):
        self.cause = cause
        super().__init__(message)


class ChainError(CipherHuntError):
    """Raised by contract adapters for failures reported by the chain or wallet."""

    status_message = "Chain call failed"


class TransactionRejected(ChainError):
    """The player declined to sign the transaction."""

    status_message = "Transaction rejected"


class ContractReverted(ChainError):
    """The contract reverted the call, e.g. on an invalid decryption proof."""

    status_message = "Transaction reverted"


def is_user_rejection(error: BaseException) -> bool:
    """
    Check whether a wallet error means the player declined to sign.

    Wallet stacks report this either through an ``ACTION_REJECTED`` code or
    only through the message text.
    """
    if isinstance(error, TransactionRejected):
        return True
    if getattr(error, "code", None) in ("ACTION_REJECTED", 4001):
        return True
    return "user rejected" in str(error).lower()
