"""
Headless scene client: joins the shared space and mirrors its participants.
"""

import asyncio
import logging
import signal
import sys

from dotenv import load_dotenv

from services.shared.utils.logging_config import setup_logging

from .core.character import LocalCharacter
from .core.config import get_settings
from .core.heartbeat import Heartbeat
from .core.lifecycle import ConnectionLifecycle, ConnectionStatus
from .core.presence_adapter import PresenceAdapter

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


async def run_client(
    lifecycle: ConnectionLifecycle,
    heartbeat: Heartbeat,
    done: asyncio.Event
) -> int:
    """Stay connected until ``done`` is set or the relay is given up on.

    Setting ``done`` also interrupts a connection attempt still in its
    backoff loop.

    Returns:
        1 if the lifecycle gave up, otherwise 0
    """
    def on_status(status: ConnectionStatus) -> None:
        if status is ConnectionStatus.GAVE_UP:
            done.set()

    lifecycle.add_status_listener(on_status)

    heartbeat.start()
    connecting = asyncio.create_task(lifecycle.start())
    await done.wait()

    if not connecting.done():
        logger.info("Stopping before the relay accepted the connection")
        connecting.cancel()
        try:
            await connecting
        except asyncio.CancelledError:
            pass

    gave_up = lifecycle.status is ConnectionStatus.GAVE_UP
    await heartbeat.stop()
    await lifecycle.stop()
    logger.info(
        f"Scene client stopped after {lifecycle.reconnects} reconnects"
    )
    return 1 if gave_up else 0


async def main() -> int:
    """Run until interrupted or until the relay is given up on."""
    settings = get_settings()
    lifecycle = ConnectionLifecycle(settings)
    character = LocalCharacter(username=settings.CHARACTER_NAME)
    adapter = PresenceAdapter(character, lifecycle)
    heartbeat = Heartbeat(adapter, settings.PING_INTERVAL)

    done = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, done.set)

    logger.info(f"Character {character.id} ({character.username}) starting")
    return await run_client(lifecycle, heartbeat, done)


if __name__ == "__main__":
    setup_logging(get_settings().LOG_LEVEL)
    sys.exit(asyncio.run(main()))
