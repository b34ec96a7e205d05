"""
Tests for the relay entry point.
"""
import logging

import pytest

from services.relay.app import main as relay_main
from services.relay.app.main import bind_socket


@pytest.fixture
def occupied_port():
    """A port another listener already holds."""
    blocker = bind_socket("127.0.0.1", 0)
    blocker.listen()
    try:
        yield blocker.getsockname()[1]
    finally:
        blocker.close()


def test_bind_socket_raises_when_port_taken(occupied_port):
    with pytest.raises(OSError):
        bind_socket("127.0.0.1", occupied_port)


@pytest.mark.asyncio
async def test_bind_failure_shuts_down_and_exits_nonzero(
    monkeypatch, caplog, relay, occupied_port
):
    monkeypatch.setattr(relay_main.settings, "RELAY_HOST", "127.0.0.1")
    monkeypatch.setattr(relay_main.settings, "RELAY_PORT", occupied_port)
    monkeypatch.setattr(relay_main, "relay_server", relay)
    await relay.initialize()
    assert relay.monitor.running

    with caplog.at_level(logging.ERROR, logger=relay_main.__name__):
        exit_code = await relay_main.main()

    assert exit_code == 1
    assert not relay.monitor.running
    assert "error binding http server" in caplog.text
