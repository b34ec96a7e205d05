"""
Tests for the scene client's liveness pings.
"""
import asyncio

import pytest

from services.scene.app.core.heartbeat import Heartbeat


class TestHeartbeat:
    @pytest.mark.asyncio
    async def test_no_ping_while_disconnected(self, adapter, sio):
        heartbeat = Heartbeat(adapter, interval=10)

        assert await heartbeat.beat() is False
        assert heartbeat.sent == 0
        assert sio.emitted == []

    @pytest.mark.asyncio
    async def test_beat_sends_ping(self, adapter, lifecycle, sio):
        await lifecycle.start()
        sio.emitted.clear()
        heartbeat = Heartbeat(adapter, interval=10)

        assert await heartbeat.beat() is True

        assert heartbeat.sent == 1
        assert sio.emitted == [("character-ping", {"id": "me"})]

    @pytest.mark.asyncio
    async def test_runs_until_stopped(
        self, adapter, lifecycle, sio, scene_settings
    ):
        await lifecycle.start()
        sio.emitted.clear()
        heartbeat = Heartbeat(adapter, interval=scene_settings.PING_INTERVAL)

        heartbeat.start()
        await asyncio.sleep(0.1)
        await heartbeat.stop()
        sent = heartbeat.sent

        assert not heartbeat.running
        assert sent >= 2
        assert sio.sent() == [{"id": "me"}] * sent

        await asyncio.sleep(0.03)
        assert heartbeat.sent == sent

    @pytest.mark.asyncio
    async def test_loop_skips_beats_while_disconnected(self, adapter, sio):
        heartbeat = Heartbeat(adapter, interval=0.01)

        heartbeat.start()
        await asyncio.sleep(0.05)
        await heartbeat.stop()

        assert heartbeat.sent == 0
        assert sio.emitted == []

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, adapter):
        heartbeat = Heartbeat(adapter)
        await heartbeat.stop()
        heartbeat.start()
        await heartbeat.stop()
        await heartbeat.stop()
        assert not heartbeat.running
