"""
Fixtures for scene client tests: an in-memory Socket.IO client.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from socketio.exceptions import ConnectionError as SocketConnectionError

from services.scene.app.core.character import LocalCharacter
from services.scene.app.core.config import Settings
from services.scene.app.core.lifecycle import ConnectionLifecycle
from services.scene.app.core.presence_adapter import PresenceAdapter


class FakeSocketClient:
    """Stands in for ``socketio.AsyncClient`` with reconnection disabled."""

    def __init__(self):
        self.handlers: Dict[str, Callable] = {}
        self.emitted: List[Tuple[str, Any]] = []
        self.connect_calls: List[Tuple[str, Dict[str, Any]]] = []
        self.connected = False
        self.failures = 0

    def on(self, event: str, handler: Callable = None):
        self.handlers[event] = handler

    async def connect(self, url: str, **kwargs):
        self.connect_calls.append((url, kwargs))
        if self.failures:
            self.failures -= 1
            raise SocketConnectionError("Connection refused by the server")
        self.connected = True
        await self.handlers["connect"]()

    async def disconnect(self):
        if not self.connected:
            return
        self.connected = False
        await self.handlers["disconnect"]("client disconnect")

    async def drop(self, reason: str = "transport close"):
        """Lose the transport without the client asking for it."""
        self.connected = False
        await self.handlers["disconnect"](reason)

    async def emit(self, event: str, data: Any = None, **kwargs):
        self.emitted.append((event, data))

    async def deliver(self, event: str, data: Any = None):
        """Deliver an event from the relay."""
        await self.handlers[event](data)

    def sent(self, event: Optional[str] = None) -> List[Any]:
        return [
            data for name, data in self.emitted
            if event is None or name == event
        ]


@pytest.fixture
def scene_settings():
    return Settings(
        RELAY_URL="http://relay.test:8835",
        RECONNECTION_ATTEMPTS=3,
        RECONNECTION_DELAY=0,
        RECONNECTION_DELAY_MAX=0,
        RECONNECTION_JITTER=0,
        PING_INTERVAL=0.01,
    )


@pytest.fixture
def sio():
    return FakeSocketClient()


@pytest.fixture
def lifecycle(scene_settings, sio):
    return ConnectionLifecycle(scene_settings, sio=sio)


@pytest.fixture
def character():
    return LocalCharacter(id="me", username="Me")


@pytest.fixture
def seen():
    """Events the adapter accepted, as ``(event_type, payload)``."""
    return []


@pytest.fixture
def adapter(character, lifecycle, seen):
    return PresenceAdapter(
        character,
        lifecycle,
        listener=lambda event_type, payload: seen.append(
            (event_type, payload)
        ),
    )
