"""
Simulated contract and FHE backend.

Runs a whole game session in-process: an in-memory game contract, an FHE
service that hands out opaque handles and checkable proofs, a map sink that
records what it is told, and a sample player source. Used by the command
line demo and the test suite.

Nothing here is cryptography. Handles and proofs are hashes that let the
simulated contract check that a revealed value matches what was encrypted.
"""

import asyncio
import hashlib
import itertools
import time
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from loguru import logger

from ..core.errors import ContractReverted, TransactionRejected
from ..core.models import EncryptedInput, EventRecord, PlayerData
from .interfaces import (
    ContractProvider,
    FheService,
    MapSink,
    PendingTransaction,
    ReadOnlyContract,
    SignerContract,
    SubmitCallback,
)


WORD_SIZE = 32


def encode_clear_values(values: List[int]) -> bytes:
    """ABI-style encoding: one signed 32-byte big-endian word per value."""
    return b"".join(int(v).to_bytes(WORD_SIZE, "big", signed=True) for v in values)


def decode_clear_values(data: bytes) -> List[int]:
    if len(data) % WORD_SIZE != 0:
        raise ValueError(f"clear values must be a multiple of {WORD_SIZE} bytes, got {len(data)}")
    return [
        int.from_bytes(data[i:i + WORD_SIZE], "big", signed=True)
        for i in range(0, len(data), WORD_SIZE)
    ]


def _digest(*parts: Any) -> bytes:
    h = hashlib.sha256()
    for part in parts:
        h.update(part if isinstance(part, bytes) else str(part).encode())
        h.update(b"|")
    return h.digest()


class SimulatedTransaction(PendingTransaction):
    """
    Pending transaction whose state change is applied on confirmation.

    ``wait()`` applies the effect once; later calls return the same receipt.
    A revert raised by the effect is raised again on every wait().
    """

    def __init__(self, tx_hash: str, effect: Callable[[], None], confirmation_delay: float = 0.0):
        self._tx_hash = tx_hash
        self._effect = effect
        self._confirmation_delay = confirmation_delay
        self._receipt: Optional[Dict[str, Any]] = None
        self._error: Optional[Exception] = None

    @property
    def tx_hash(self) -> str:
        return self._tx_hash

    async def wait(self) -> Dict[str, Any]:
        if self._receipt is None and self._error is None:
            await asyncio.sleep(self._confirmation_delay)
            try:
                self._effect()
                self._receipt = {"tx_hash": self._tx_hash, "status": 1}
            except Exception as e:
                self._error = e

        if self._error is not None:
            raise self._error
        return self._receipt


class SimulatedFheService(FheService):
    """
    In-process stand-in for the FHE SDK.

    Attributes:
        fail_initialize (bool): Make initialize() raise
        initialize_calls (int): Number of initialize() calls so far
    """

    def __init__(self, fail_initialize: bool = False, init_delay: float = 0.0):
        self.fail_initialize = fail_initialize
        self.initialize_calls = 0
        self._init_delay = init_delay
        self._initialized = False
        self._plaintexts: Dict[bytes, int] = {}
        self._counter = itertools.count(1)

    async def initialize(self) -> None:
        self.initialize_calls += 1
        await asyncio.sleep(self._init_delay)
        if self.fail_initialize:
            raise RuntimeError("FHE SDK failed to load")
        self._initialized = True

    async def encrypt(self, contract_address: str, owner_address: str, value: int) -> EncryptedInput:
        self._require_initialized()
        handle = _digest("handle", contract_address, owner_address, value, next(self._counter))
        self._plaintexts[handle] = int(value)
        return EncryptedInput(ciphertext=handle, proof=self.input_proof(handle, contract_address, owner_address))

    async def decrypt_with_proof(
        self,
        handles: List[bytes],
        contract_address: str,
        submit: SubmitCallback
    ) -> Any:
        self._require_initialized()
        try:
            values = [self._plaintexts[handle] for handle in handles]
        except KeyError:
            raise ValueError("unknown ciphertext handle")

        clear_values = encode_clear_values(values)
        proof = self.decryption_proof(handles, clear_values)
        return await submit(clear_values, proof)

    def input_proof(self, handle: bytes, contract_address: str, owner_address: str) -> bytes:
        return _digest("input", handle, contract_address, owner_address)

    def decryption_proof(self, handles: List[bytes], clear_values: bytes) -> bytes:
        return _digest("decryption", *handles, clear_values)

    def verify_decryption(self, handles: List[bytes], clear_values: bytes, proof: bytes) -> bool:
        return proof == self.decryption_proof(handles, clear_values)

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("FHE service not initialized")

    @property
    def is_initialized(self) -> bool:
        return self._initialized


class SimulatedContract(ReadOnlyContract, SignerContract):
    """
    In-memory game contract serving both the read-only and the signer view.

    Failure injection:
        reject_signatures (bool): Signer calls raise TransactionRejected
        fail_enumeration (bool): list_event_ids() raises
        broken_records (Set[str]): get_event_record() raises for these ids
        available (bool): Value returned by check_availability()
    """

    def __init__(
        self,
        fhe: SimulatedFheService,
        address: str,
        signer_address: str,
        confirmation_delay: float = 0.0,
        clock: Callable[[], float] = time.time
    ):
        self._fhe = fhe
        self.address = address
        self.signer_address = signer_address
        self._confirmation_delay = confirmation_delay
        self._clock = clock

        self._order: List[str] = []
        self._records: Dict[str, EventRecord] = {}
        self._handles: Dict[str, bytes] = {}
        self._tx_counter = itertools.count(1)

        self.reject_signatures = False
        self.fail_enumeration = False
        self.broken_records: Set[str] = set()
        self.available = True

        self.create_calls: List[Tuple[Any, ...]] = []
        self.verification_calls: List[Tuple[str, bytes, bytes]] = []

    async def list_event_ids(self) -> List[str]:
        if self.fail_enumeration:
            raise ConnectionError("RPC endpoint unreachable")
        return list(self._order)

    async def get_event_record(self, event_id: str) -> EventRecord:
        if event_id in self.broken_records:
            raise ConnectionError(f"failed to decode record {event_id}")
        try:
            return self._records[event_id].model_copy()
        except KeyError:
            raise ContractReverted(f"event {event_id} does not exist")

    async def get_encrypted_handle(self, event_id: str) -> bytes:
        try:
            return self._handles[event_id]
        except KeyError:
            raise ContractReverted(f"event {event_id} does not exist")

    async def check_availability(self) -> bool:
        return self.available

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
        self._check_signature()
        self.create_calls.append((event_id, name, ciphertext, proof, radius, extra, category))

        def effect() -> None:
            if event_id in self._records:
                raise ContractReverted(f"event {event_id} already exists")
            if proof != self._fhe.input_proof(ciphertext, self.address, self.signer_address):
                raise ContractReverted("invalid input proof")

            self._order.append(event_id)
            self._handles[event_id] = ciphertext
            self._records[event_id] = EventRecord(
                name=name,
                public_radius=radius,
                description=category,
                creator=self.signer_address,
                timestamp=int(self._clock()),
                triggered=False,
            )
            logger.debug(f"Simulated contract stored {event_id}")

        return self._transaction(effect)

    async def submit_verification(self, event_id: str, clear_values: bytes, proof: bytes) -> PendingTransaction:
        self._check_signature()
        self.verification_calls.append((event_id, clear_values, proof))

        def effect() -> None:
            record = self._records.get(event_id)
            if record is None:
                raise ContractReverted(f"event {event_id} does not exist")
            if record.triggered:
                raise ContractReverted(f"event {event_id} already verified")
            if not self._fhe.verify_decryption([self._handles[event_id]], clear_values, proof):
                raise ContractReverted("invalid decryption proof")

            revealed = decode_clear_values(clear_values)[0]
            self._records[event_id] = record.model_copy(update={"triggered": True, "revealed_value": revealed})
            logger.debug(f"Simulated contract verified {event_id}")

        return self._transaction(effect)

    def _check_signature(self) -> None:
        if self.reject_signatures:
            raise TransactionRejected("user rejected transaction")

    def _transaction(self, effect: Callable[[], None]) -> SimulatedTransaction:
        tx_hash = "0x" + _digest("tx", next(self._tx_counter)).hex()
        return SimulatedTransaction(tx_hash, effect, self._confirmation_delay)

    def seed_event(self, event_id: str, record: EventRecord, handle: Optional[bytes] = None) -> None:
        """Place a record directly into contract storage."""
        if event_id not in self._records:
            self._order.append(event_id)
        self._records[event_id] = record
        if handle is not None:
            self._handles[event_id] = handle

    def forget_event(self, event_id: str) -> None:
        """Stop enumerating an event while keeping its storage, like an index gap."""
        if event_id in self._order:
            self._order.remove(event_id)

    @property
    def event_count(self) -> int:
        return len(self._order)


class SimulatedProvider(ContractProvider):
    """
    Provider handing out a SimulatedContract.

    Attributes:
        read_only_available (bool): read_only() returns None when False
        signer_available (bool): with_signer() returns None when False
    """

    def __init__(self, contract: SimulatedContract):
        self.contract = contract
        self.read_only_available = True
        self.signer_available = True

    @property
    def contract_address(self) -> str:
        return self.contract.address

    async def read_only(self) -> Optional[ReadOnlyContract]:
        return self.contract if self.read_only_available else None

    async def with_signer(self) -> Optional[SignerContract]:
        return self.contract if self.signer_available else None


class RecordingMap(MapSink):
    """Map sink that remembers markers and the last viewport."""

    def __init__(self):
        self.markers: List[Tuple[float, float]] = []
        self.view: Optional[Tuple[float, float, int]] = None

    def place_marker(self, lat: float, lng: float) -> None:
        self.markers.append((lat, lng))

    def set_view(self, lat: float, lng: float, zoom: int) -> None:
        self.view = (lat, lng, zoom)


def sample_players(address: Optional[str] = None, now_ms: Optional[int] = None) -> List[PlayerData]:
    """Fixed leaderboard with the connected player appended as "You"."""
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    return [
        PlayerData(id="player1", name="ShadowRunner", score=1250, last_active=now_ms - 3600000),
        PlayerData(id="player2", name="CryptoNinja", score=980, last_active=now_ms - 7200000),
        PlayerData(id="player3", name="FHEGhost", score=750, last_active=now_ms - 1800000),
        PlayerData(id="player4", name="BlockSeeker", score=620, last_active=now_ms - 5400000),
        PlayerData(id=address or "player5", name="You", score=450, last_active=now_ms),
    ]


def build_simulated_backend(
    contract_address: str,
    signer_address: str,
    confirmation_delay: float = 0.0
) -> Tuple[SimulatedProvider, SimulatedFheService]:
    """Create a provider and FHE service that work together."""
    fhe = SimulatedFheService()
    contract = SimulatedContract(fhe, contract_address, signer_address, confirmation_delay)
    return SimulatedProvider(contract), fhe
