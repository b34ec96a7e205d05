"""
Call coalescing for async callbacks.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Throttle:
    """Run an async callback at most once per window.

    The first call runs right away. Calls made inside the window collapse
    into a single trailing run at the end of the window.
    """

    def __init__(
        self,
        name: str,
        callback: Callable[[], Awaitable[None]],
        window: float = 1.0
    ):
        self.name = name
        self.callback = callback
        self.window = window
        self._last_run: Optional[float] = None
        self._trailing: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """True while a trailing run is scheduled."""
        return self._trailing is not None and not self._trailing.done()

    async def __call__(self) -> None:
        now = asyncio.get_running_loop().time()
        if self._last_run is None or now - self._last_run >= self.window:
            self._last_run = now
            await self.callback()
            return

        if not self.pending:
            delay = self.window - (now - self._last_run)
            logger.debug(f"Throttle {self.name}: trailing run in {delay:.2f}s")
            self._trailing = asyncio.create_task(self._run_trailing(delay))

    async def _run_trailing(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._last_run = asyncio.get_running_loop().time()
        self._trailing = None
        try:
            await self.callback()
        except Exception as e:
            logger.error(f"Throttled call {self.name} failed: {e}")

    def cancel(self) -> None:
        """Drop a scheduled trailing run, if any."""
        if self.pending:
            self._trailing.cancel()
        self._trailing = None
