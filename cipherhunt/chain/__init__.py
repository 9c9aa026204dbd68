"""
Chain collaborators.

- interfaces: Abstract contract views, FHE service and map sink
- simulated: In-process implementations for the demo and tests
"""

from .interfaces import (
    ContractProvider,
    FheService,
    MapSink,
    PendingTransaction,
    ReadOnlyContract,
    SignerContract,
)

__all__ = [
    "ContractProvider",
    "FheService",
    "MapSink",
    "PendingTransaction",
    "ReadOnlyContract",
    "SignerContract",
]
