"""
Liveness monitor evicting participants that stopped signalling.
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from services.shared.events.event_schema import PartPayload
from services.shared.presence.models import ParticipantRecord
from services.shared.presence.registry import PresenceRegistry

# configure logging
logger = logging.getLogger(__name__)

ExpiryHandler = Callable[[PartPayload], Awaitable[None]]


class LivenessMonitor:
    """Periodically expires participants whose liveness signal is too old.

    A silent participant stays visible to others for at most
    ``timeout + interval`` seconds.
    """

    def __init__(
        self,
        registry: PresenceRegistry,
        on_expired: ExpiryHandler,
        interval: float = 5.0,
        timeout: float = 15.0,
        clock: Optional[Callable[[], float]] = None
    ):
        """Initialize the liveness monitor.

        Args:
            registry: Registry to sweep
            on_expired: Awaited with a departure payload per evicted record
            interval: Seconds between sweeps
            timeout: Seconds without a liveness signal before eviction
            clock: Time source, defaults to the registry's own clock
        """
        self.registry = registry
        self.on_expired = on_expired
        self.interval = interval
        self.timeout = timeout
        self.clock = clock if clock is not None else registry.clock
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeping on the running loop."""
        if self.running:
            logger.warning("Liveness monitor already running")
            return
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Liveness monitor started (interval={self.interval}s, "
            f"timeout={self.timeout}s)"
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if not self.running:
            self._task = None
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Liveness monitor stopped")

    async def sweep(self) -> List[ParticipantRecord]:
        """Evict stale participants once and announce each departure."""
        threshold = self.clock() - self.timeout
        expired = self.registry.expire_older_than(threshold)

        for record in expired:
            logger.info(f"Participant {record.id} expired (no liveness signal)")
            try:
                await self.on_expired(PartPayload(id=record.id))
            except Exception as e:
                logger.error(
                    f"Error announcing expiry of {record.id}: {e}"
                )
        return expired

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Liveness sweep failed: {e}")
