import logging
from enum import Enum
from functools import partial
from typing import Any, Dict, Optional

import socketio
from pydantic import BaseModel

from services.shared.events.event_schema import (
    EventType,
    PartPayload,
    decode_event,
    encode_event,
)
from services.shared.presence.registry import PresenceRegistry
from services.shared.utils.throttle import Throttle

from .config import Settings, get_settings, get_socket_io_config
from .liveness import LivenessMonitor

# Configure logging
logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Lifecycle of one transport connection."""
    CONNECTED = "connected"
    IDENTIFIED = "identified"
    CLOSED = "closed"


class ConnectionSession:
    """Relay-side state of one Socket.IO connection."""

    def __init__(self, sid: str, introductions: Throttle):
        self.sid = sid
        self.state = ConnectionState.CONNECTED
        self.participant_id: Optional[str] = None
        self.introductions = introductions

    @property
    def identified(self) -> bool:
        return self.state is ConnectionState.IDENTIFIED

    def identify(self, participant_id: str) -> None:
        self.participant_id = participant_id
        self.state = ConnectionState.IDENTIFIED

    def forget(self) -> None:
        """Drop the bound identity; a fresh join is required."""
        self.participant_id = None
        self.state = ConnectionState.CONNECTED

    def close(self) -> None:
        self.introductions.cancel()
        self.state = ConnectionState.CLOSED


class RelayServer:
    """Socket.IO relay fanning presence changes out to other participants."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        registry: Optional[PresenceRegistry] = None,
        sio: Optional[socketio.AsyncServer] = None
    ):
        """Initialize the relay.

        Args:
            config: Relay settings, defaults to the environment settings
            registry: Presence registry, a fresh one by default
            sio: Socket.IO server, built from ``config`` by default
        """
        self.settings = config or get_settings()
        self.sio = sio or socketio.AsyncServer(
            logger=self.settings.LOG_LEVEL.upper() == "DEBUG",
            **get_socket_io_config(self.settings),
        )
        self.registry = (
            registry if registry is not None else PresenceRegistry()
        )
        self.sessions: Dict[str, ConnectionSession] = {}
        self.monitor = LivenessMonitor(
            self.registry,
            self._on_participant_expired,
            interval=self.settings.LIVENESS_INTERVAL,
            timeout=self.settings.LIVENESS_TIMEOUT,
        )
        self._initialized = False

        # Register event handlers
        self.sio.on("connect", self._on_connect)
        self.sio.on("disconnect", self._on_disconnect)
        self.sio.on(EventType.CHARACTER_JOIN.value, self._on_character_join)
        self.sio.on(
            EventType.CHARACTER_POSITION.value, self._on_character_position
        )
        self.sio.on(
            EventType.CHARACTER_ROTATION.value, self._on_character_rotation
        )
        self.sio.on(EventType.CHARACTER_PING.value, self._on_character_ping)
        self.sio.on(EventType.INTRODUCE.value, self._on_introduce)

    @property
    def connection_count(self) -> int:
        return len(self.sessions)

    async def initialize(self) -> bool:
        """Start the liveness monitor."""
        if self._initialized:
            logger.debug("Relay server already initialized")
            return True

        self.monitor.start()
        self._initialized = True
        logger.info("Relay server initialized successfully")
        return True

    async def shutdown(self) -> bool:
        """Stop the monitor and close every connection.

        Returns:
            True if every connection closed cleanly
        """
        logger.info("Relay server shutting down")
        await self.monitor.stop()

        closed_cleanly = True
        for sid in list(self.sessions):
            try:
                await self.sio.disconnect(sid)
            except Exception as e:
                logger.error(f"Error closing connection {sid}: {e}")
                closed_cleanly = False

        for session in self.sessions.values():
            session.close()
        self.sessions.clear()
        self._initialized = False
        return closed_cleanly

    async def _on_connect(
        self, sid: str, environ: Dict[str, Any], auth: Any = None
    ) -> None:
        """Handle new socket connection."""
        logger.info(f"socket.io client connection {sid}")
        self.sessions[sid] = ConnectionSession(
            sid,
            Throttle(
                f"introduce:{sid}",
                partial(self._introduce, sid),
                window=self.settings.INTRODUCE_THROTTLE,
            ),
        )

    async def _on_disconnect(self, sid: str, reason: Any = None) -> None:
        """Handle socket disconnection."""
        session = self.sessions.pop(sid, None)
        if session is None:
            return
        session.close()

        participant_id = session.participant_id
        if participant_id is None:
            logger.info(f"Client {sid} disconnected before joining")
            return

        success, error = self.registry.part(participant_id)
        if not success:
            # Already evicted by the liveness monitor, which announced it
            logger.warning(
                f"character part error {error.value}: {participant_id}"
            )
            return

        logger.info(f"character part {participant_id} ({sid})")
        await self._broadcast(
            EventType.CHARACTER_PART,
            encode_event(PartPayload(id=participant_id)),
            exclude=sid,
        )

    async def _on_character_join(self, sid: str, data: Any = None) -> None:
        """A participant joins: remember its id and introduce the others."""
        session = self.sessions.get(sid)
        payload = self._decode(sid, EventType.CHARACTER_JOIN, data)
        if session is None or payload is None:
            return

        success, error = self.registry.join(payload)
        if not success:
            logger.error(f"character join error {error.value}: {data}")
            return

        if session.participant_id not in (None, payload.id):
            logger.warning(
                f"Connection {sid} rebound from {session.participant_id} "
                f"to {payload.id}"
            )
        session.identify(payload.id)
        logger.info(f"character join {payload.id} ({sid})")

        await self._broadcast(
            EventType.CHARACTER_JOIN, encode_event(payload), exclude=sid
        )
        await session.introductions()

    async def _on_character_position(
        self, sid: str, data: Any = None
    ) -> None:
        """A participant moved: share the new position with the others."""
        payload = self._decode(sid, EventType.CHARACTER_POSITION, data)
        if payload is None:
            return

        success, error = self.registry.update_position(
            payload.id, payload.position
        )
        if not success:
            logger.error(f"character position error {error.value}: {data}")
            return

        logger.debug(f"character position {payload.id}")
        await self._broadcast(
            EventType.CHARACTER_POSITION, encode_event(payload), exclude=sid
        )

    async def _on_character_rotation(
        self, sid: str, data: Any = None
    ) -> None:
        """A participant turned: share the new rotation with the others."""
        payload = self._decode(sid, EventType.CHARACTER_ROTATION, data)
        if payload is None:
            return

        success, error = self.registry.update_rotation(
            payload.id, payload.rotation
        )
        if not success:
            logger.error(f"character rotation error {error.value}: {data}")
            return

        logger.debug(f"character rotation {payload.id}")
        await self._broadcast(
            EventType.CHARACTER_ROTATION, encode_event(payload), exclude=sid
        )

    async def _on_character_ping(self, sid: str, data: Any = None) -> None:
        """Refresh liveness. Pings are never relayed."""
        payload = self._decode(sid, EventType.CHARACTER_PING, data)
        if payload is None:
            return

        success, error = self.registry.record_ping(payload.id)
        if not success:
            logger.warning(f"character ping error {error.value}: {data}")
            return
        logger.debug(f"character ping {payload.id}")

    async def _on_introduce(self, sid: str, data: Any = None) -> None:
        """Resend the roster on request, bypassing the throttle."""
        if sid not in self.sessions:
            return
        logger.info(f"Introduction requested by {sid}")
        await self._introduce(sid)

    async def _on_participant_expired(self, payload: PartPayload) -> None:
        """Announce a participant evicted by the liveness monitor."""
        for session in self.sessions.values():
            if session.participant_id == payload.id:
                session.forget()
        await self._broadcast(EventType.CHARACTER_PART, encode_event(payload))

    async def _introduce(self, sid: str) -> None:
        """Send everyone else's join payload to one connection."""
        session = self.sessions.get(sid)
        if session is None:
            return
        for record in self.registry.list():
            if record.id == session.participant_id:
                continue
            await self._send(
                EventType.CHARACTER_JOIN, record.announcement(), sid
            )

    def _decode(
        self, sid: str, event_type: EventType, data: Any
    ) -> Optional[BaseModel]:
        payload, error = decode_event(event_type, data)
        if error:
            logger.error(
                f"{event_type.value} error {error.value} from {sid}: {data!r}"
            )
        return payload

    async def _broadcast(
        self,
        event_type: EventType,
        data: Dict[str, Any],
        exclude: Optional[str] = None
    ) -> None:
        """Send an event to every open connection except ``exclude``."""
        for sid, session in list(self.sessions.items()):
            if sid == exclude or session.state is ConnectionState.CLOSED:
                continue
            await self._send(event_type, data, sid)

    async def _send(
        self, event_type: EventType, data: Dict[str, Any], sid: str
    ) -> None:
        try:
            await self.sio.emit(event_type.value, data, to=sid)
        except Exception as e:
            logger.error(f"Error emitting {event_type.value} to {sid}: {e}")
