"""Periodic liveness pings from the scene client."""
import asyncio
import logging
from typing import Optional

from .presence_adapter import PresenceAdapter

logger = logging.getLogger(__name__)


class Heartbeat:
    """Sends ``character-ping`` every ``interval`` seconds while connected.

    Keeps an idle participant from being evicted by the relay's liveness
    monitor.
    """

    def __init__(self, adapter: PresenceAdapter, interval: float = 5.0):
        self.adapter = adapter
        self.interval = interval
        self.sent = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if not self.running:
            self._task = None
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def beat(self) -> bool:
        """Send one ping if connected."""
        if not self.adapter.lifecycle.connected:
            return False
        if await self.adapter.ping():
            self.sent += 1
            return True
        return False

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.beat()
            except Exception as e:
                logger.error(f"Heartbeat failed: {e}")
