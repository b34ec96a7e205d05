"""
Tests for the liveness monitor.
"""
import asyncio

import pytest

from services.relay.app.core.liveness import LivenessMonitor
from services.shared.presence.registry import PresenceRegistry


def join_event(participant_id):
    return {
        "id": participant_id,
        "position": {"x": 0, "y": 0, "z": 0},
        "rotation": {"x": 0, "y": 0, "z": 0},
    }


@pytest.fixture
def registry(clock):
    return PresenceRegistry(clock=clock)


class TestSweep:
    @pytest.mark.asyncio
    async def test_sweep_evicts_only_stale_records(self, registry, clock):
        departures = []

        async def on_expired(payload):
            departures.append(payload.id)

        monitor = LivenessMonitor(registry, on_expired, timeout=15.0)
        registry.join(join_event("a"))
        registry.join(join_event("b"))
        clock.advance(10)
        registry.record_ping("b")
        clock.advance(6)

        expired = await monitor.sweep()

        assert [record.id for record in expired] == ["a"]
        assert departures == ["a"]
        assert "b" in registry

    @pytest.mark.asyncio
    async def test_record_at_exact_timeout_survives(self, registry, clock):
        async def on_expired(payload):
            pass

        monitor = LivenessMonitor(registry, on_expired, timeout=15.0)
        registry.join(join_event("a"))
        clock.advance(15)

        assert await monitor.sweep() == []
        assert "a" in registry

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_sweep(self, registry, clock):
        announced = []

        async def on_expired(payload):
            announced.append(payload.id)
            raise RuntimeError("socket gone")

        monitor = LivenessMonitor(registry, on_expired, timeout=1.0)
        registry.join(join_event("a"))
        registry.join(join_event("b"))
        clock.advance(2)

        expired = await monitor.sweep()

        assert [record.id for record in expired] == ["a", "b"]
        assert announced == ["a", "b"]
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_explicit_clock_overrides_registry_clock(self, registry):
        async def on_expired(payload):
            pass

        monitor = LivenessMonitor(
            registry, on_expired, timeout=5.0, clock=lambda: 10_000.0
        )
        registry.join(join_event("a"))

        assert [record.id for record in await monitor.sweep()] == ["a"]


class TestLoop:
    @pytest.mark.asyncio
    async def test_start_sweeps_periodically_until_stopped(
        self, registry, clock
    ):
        departures = []

        async def on_expired(payload):
            departures.append(payload.id)

        monitor = LivenessMonitor(
            registry, on_expired, interval=0.01, timeout=5.0
        )
        monitor.start()
        assert monitor.running

        registry.join(join_event("a"))
        clock.advance(6)
        await asyncio.sleep(0.05)

        await monitor.stop()
        assert not monitor.running
        assert departures == ["a"]

        registry.join(join_event("b"))
        clock.advance(6)
        await asyncio.sleep(0.05)
        assert "b" in registry

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, registry):
        async def on_expired(payload):
            pass

        monitor = LivenessMonitor(registry, on_expired, interval=10)
        monitor.start()
        task = monitor._task
        monitor.start()
        assert monitor._task is task
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, registry):
        async def on_expired(payload):
            pass

        monitor = LivenessMonitor(registry, on_expired)
        await monitor.stop()
        assert not monitor.running
