"""
Command-line demo: play one round against the simulated backend.

Usage:
    python -m cipherhunt
    python -m cipherhunt --config config.yaml --address 0xYourAddress -v
"""

import argparse
import asyncio
import sys

from loguru import logger

from .chain.simulated import RecordingMap, build_simulated_backend, sample_players
from .config import load_config
from .core.errors import ConfigError
from .logging_config import configure_logging
from .session import GameSession


DEMO_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


async def run_demo(session: GameSession, address: str) -> int:
    async with session:
        state = await session.connect(address)
        logger.info(f"Session gate: {state.value}")
        if not session.gate.is_ready:
            logger.error("FHE subsystem not ready, stopping")
            return 1

        await session.check_availability()
        session.move_player()

        event_id = await session.create_event("Park Meetup", "42", "100")
        if event_id is None:
            logger.error(f"Creation failed: {session.current_status.message}")
            return 1

        outcome = await session.trigger_event(event_id)
        logger.info(f"Trigger outcome: {outcome.value}")

        event = session.store.get_event(event_id)
        if event is not None:
            logger.info(
                f"{event.name}: radius={event.public_radius}m triggered={event.triggered} "
                f"revealed={event.revealed_value}"
            )

        stats = session.dashboard()
        logger.info(
            f"Dashboard: {stats.active_players} active players, {stats.total_events} events "
            f"({stats.triggered_events} triggered), your score {stats.your_score}"
        )
        for entry in session.history.entries:
            logger.info(f"History: {entry}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Run a CipherHunt session against the simulated contract",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--address", default=DEMO_ADDRESS, help="Wallet address to play as")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging("DEBUG" if args.verbose else config.logging.level, config.logging.file)

    provider, fhe = build_simulated_backend(config.contract_address, args.address)
    session = GameSession(config, provider, fhe, player_source=sample_players, map_sink=RecordingMap())

    try:
        return asyncio.run(run_demo(session, args.address))
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
