"""
Fixtures for relay tests: an in-memory Socket.IO server and a fake clock.
"""
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from services.relay.app.core.config import Settings
from services.relay.app.core.relay_server import RelayServer
from services.shared.presence.registry import PresenceRegistry


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSocketServer:
    """Records what the relay sends instead of touching the network."""

    def __init__(self):
        self.handlers: Dict[str, Callable] = {}
        self.emitted: List[Tuple[str, Any, Optional[str]]] = []
        self.disconnected: List[str] = []
        self.failing_sids = set()

    def on(self, event: str, handler: Callable = None):
        self.handlers[event] = handler

    async def emit(self, event: str, data: Any = None, to: str = None,
                   **kwargs):
        self.emitted.append((event, data, to))

    async def disconnect(self, sid: str):
        if sid in self.failing_sids:
            raise RuntimeError(f"transport for {sid} already gone")
        self.disconnected.append(sid)
        # python-socketio runs the disconnect handler for server-side closes
        await self.handlers["disconnect"](sid)

    async def trigger(self, event: str, sid: str, *args):
        """Deliver an inbound event the way python-socketio would."""
        return await self.handlers[event](sid, *args)

    def received(self, sid: str, event: Optional[str] = None) -> List[Any]:
        return [
            data for name, data, to in self.emitted
            if to == sid and (event is None or name == event)
        ]

    def clear(self):
        self.emitted.clear()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sio():
    return FakeSocketServer()


@pytest.fixture
def relay_settings():
    return Settings(
        INTRODUCE_THROTTLE=0.05,
        LIVENESS_TIMEOUT=10.0,
        LIVENESS_INTERVAL=0.01,
    )


@pytest.fixture
def relay(relay_settings, sio, clock):
    return RelayServer(
        relay_settings, registry=PresenceRegistry(clock=clock), sio=sio
    )
