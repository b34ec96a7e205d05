"""
Connection lifecycle of the scene client.

Reconnection is bounded and driven here rather than by the Socket.IO
client, so the give-up state is observable and reconnects can be counted.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

import socketio

from services.shared.utils.retry import BackoffPolicy, with_retry

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

ConnectHandler = Callable[[], Awaitable[None]]
StatusListener = Callable[["ConnectionStatus"], None]


class ConnectionStatus(str, Enum):
    """Transport status as seen by the scene."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    GAVE_UP = "gave_up"


class ConnectionLifecycle:
    """Owns the Socket.IO client and its reconnect policy."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        sio: Optional[socketio.AsyncClient] = None
    ):
        """Initialize the lifecycle manager.

        Args:
            config: Client settings, defaults to the environment settings
            sio: Socket.IO client; a fresh one with library reconnection
                disabled by default
        """
        self.settings = config or get_settings()
        self.sio = sio or socketio.AsyncClient(reconnection=False)
        self.policy = BackoffPolicy(
            max_attempts=self.settings.RECONNECTION_ATTEMPTS,
            initial_delay=self.settings.RECONNECTION_DELAY,
            max_delay=self.settings.RECONNECTION_DELAY_MAX,
            jitter=self.settings.RECONNECTION_JITTER,
        )
        self.status = ConnectionStatus.DISCONNECTED
        self.attempts = 0
        self.reconnects = 0
        self._has_connected = False
        self._stopping = False
        self._reconnect_task: Optional[asyncio.Task] = None
        self._connect_handlers: List[ConnectHandler] = []
        self._status_listeners: List[StatusListener] = []

        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on("connect_error", self._on_connect_error)

    @property
    def connected(self) -> bool:
        return self.status is ConnectionStatus.CONNECTED

    def on(self, event: str, handler: Callable[..., Any]) -> None:
        """Register a handler for an inbound protocol event."""
        self.sio.on(event, handler)

    def on_connected(self, handler: ConnectHandler) -> None:
        """Await ``handler`` after every successful (re)connection."""
        self._connect_handlers.append(handler)

    def add_status_listener(self, listener: StatusListener) -> None:
        self._status_listeners.append(listener)

    async def start(self) -> bool:
        """Connect to the relay.

        Returns:
            False if every attempt failed and the lifecycle gave up
        """
        self._stopping = False
        self._set_status(ConnectionStatus.CONNECTING)
        return await self._connect_with_retry()

    async def stop(self) -> None:
        """Close the connection without reconnecting."""
        self._stopping = True
        if self._reconnect_task and not self._reconnect_task.done():
            self._reconnect_task.cancel()
            try:
                await self._reconnect_task
            except asyncio.CancelledError:
                pass
        self._reconnect_task = None

        if self.sio.connected:
            try:
                await self.sio.disconnect()
            except Exception as e:
                logger.error(f"Error disconnecting from relay: {e}")

        if self.status is not ConnectionStatus.GAVE_UP:
            self._set_status(ConnectionStatus.DISCONNECTED)

    async def emit(self, event: str, data: Any = None) -> bool:
        """Send an event to the relay, fire-and-forget.

        Returns:
            False if the event was dropped
        """
        if not self.connected:
            logger.warning(f"Dropping {event}: not connected to relay")
            return False
        try:
            await self.sio.emit(event, data)
        except Exception as e:
            logger.error(f"Error emitting {event}: {e}")
            return False
        return True

    async def _connect_once(self) -> None:
        self.attempts += 1
        await self.sio.connect(
            self.settings.RELAY_URL,
            transports=["websocket"],
            socketio_path=self.settings.SOCKET_IO_PATH,
            wait_timeout=self.settings.CONNECT_TIMEOUT,
        )

    async def _connect_with_retry(self) -> bool:
        try:
            await with_retry(
                self._connect_once,
                self.policy,
                on_failure=self._on_attempt_failed,
            )
            return True
        except Exception as e:
            logger.error(
                f"socket.io reconnect_failed after {self.attempts} "
                f"attempts, giving up: {e}"
            )
            self._set_status(ConnectionStatus.GAVE_UP)
            return False

    async def _reconnect(self) -> None:
        self._set_status(ConnectionStatus.RECONNECTING)
        logger.warning("socket.io reconnecting")
        await self._connect_with_retry()

    def _on_attempt_failed(self, attempt: int, error: Exception) -> None:
        logger.warning(f"socket.io connection attempt {attempt} failed")

    async def _on_connect(self) -> None:
        if self._has_connected:
            self.reconnects += 1
            logger.info(f"socket.io reconnected ({self.reconnects} so far)")
        else:
            self._has_connected = True
            logger.info(f"Connected to relay at {self.settings.RELAY_URL}")
        self._set_status(ConnectionStatus.CONNECTED)

        for handler in self._connect_handlers:
            try:
                await handler()
            except Exception as e:
                logger.error(f"Error in connect handler: {e}")

    async def _on_disconnect(self, reason: Any = None) -> None:
        if self._stopping:
            self._set_status(ConnectionStatus.DISCONNECTED)
            return

        logger.error(f"socket.io disconnect ({reason})")
        self._set_status(ConnectionStatus.DISCONNECTED)
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _on_connect_error(self, data: Any = None) -> None:
        logger.error(f"socket.io connect_error: {data}")

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is self.status:
            return
        logger.debug(f"Connection status {self.status.value} -> {status.value}")
        self.status = status
        for listener in self._status_listeners:
            listener(status)
