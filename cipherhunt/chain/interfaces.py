"""
Collaborator interfaces for the contract, the FHE service and the map.

Concrete adapters (a wallet-backed contract binding, the FHE SDK bridge, the
map widget) live outside the core. The core only talks to these abstract
classes; ``cipherhunt.chain.simulated`` provides in-process implementations.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional

from ..core.errors import ChainError, ContractReverted, TransactionRejected
from ..core.models import EncryptedInput, EventRecord


SubmitCallback = Callable[[bytes, bytes], Awaitable[Any]]
"""Posts ``(clear_values, decryption_proof)`` on-chain."""


class PendingTransaction(ABC):
    """A submitted transaction that can be awaited until confirmed."""

    @property
    @abstractmethod
    def tx_hash(self) -> str:
        pass

    @abstractmethod
    async def wait(self) -> Any:
        """Wait for confirmation and return the receipt."""
        pass


class ReadOnlyContract(ABC):
    """Read-only view of the game contract."""

    @abstractmethod
    async def list_event_ids(self) -> List[str]:
        pass

    @abstractmethod
    async def get_event_record(self, event_id: str) -> EventRecord:
        pass

    @abstractmethod
    async def get_encrypted_handle(self, event_id: str) -> bytes:
        pass

    @abstractmethod
    async def check_availability(self) -> bool:
        pass


class SignerContract(ABC):
    """Contract view bound to the connected wallet's signer."""

    @abstractmethod
    async def create_event(
        self,
        event_id: str,
        name: str,
        ciphertext: bytes,
        proof: bytes,
        radius: int,
        extra: int,
        category: str
    ) -> PendingTransaction:
        pass

    @abstractmethod
    async def submit_verification(
        self,
        event_id: str,
        clear_values: bytes,
        proof: bytes
    ) -> PendingTransaction:
        pass


class ContractProvider(ABC):
    """
    Hands out contract views for the deployed game contract.

    Either view may be unavailable (no provider injected, wrong network);
    callers receive None rather than an exception in that case.
    """

    @property
    @abstractmethod
    def contract_address(self) -> str:
        pass

    @abstractmethod
    async def read_only(self) -> Optional[ReadOnlyContract]:
        pass

    @abstractmethod
    async def with_signer(self) -> Optional[SignerContract]:
        pass


class FheService(ABC):
    """Bridge to the external FHE SDK."""

    @abstractmethod
    async def initialize(self) -> None:
        """Start the FHE subsystem. Raises on failure."""
        pass

    @abstractmethod
    async def encrypt(self, contract_address: str, owner_address: str, value: int) -> EncryptedInput:
        """Encrypt ``value`` bound to the contract and the owner."""
        pass

    @abstractmethod
    async def decrypt_with_proof(
        self,
        handles: List[bytes],
        contract_address: str,
        submit: SubmitCallback
    ) -> Any:
        """
        Decrypt ``handles``, produce a decryption proof and hand both to ``submit``.

        Returns whatever ``submit`` returned.
        """
        pass


class MapSink(ABC):
    """Passive map widget receiving marker and viewport updates."""

    @abstractmethod
    def place_marker(self, lat: float, lng: float) -> None:
        pass

    @abstractmethod
    def set_view(self, lat: float, lng: float, zoom: int) -> None:
        pass


__all__ = [
    "ChainError",
    "ContractProvider",
    "ContractReverted",
    "FheService",
    "MapSink",
    "PendingTransaction",
    "ReadOnlyContract",
    "SignerContract",
    "SubmitCallback",
    "TransactionRejected",
]
