"""
CipherHunt - Private location-based game client

This package contains the client-side core of a location game whose event
locations stay encrypted on-chain with fully homomorphic encryption until a
player triggers them.

Modules:
    core: Event bus, data model, event store and status broadcaster
    orchestrators: Session gate, event creation and event trigger
    chain: Contract/FHE/map interfaces and the simulated backend
    players: Read-only player roster
    session: GameSession facade wiring a session together
"""

__version__ = "0.1.0"
__author__ = "CipherHunt Team"
