"""Tests for keepalive probing and eviction."""
import asyncio

import pytest

from keepalive import KeepaliveMonitor, KeepaliveState
from rooms import Room
from schemas.relay import RelayConfig

KEEPALIVE_CONFIG = RelayConfig(keepalive_interval=30, keepalive_payload="ping")


class ManualClock:
    """Replaces asyncio.sleep; every advance() ends one interval for all sleepers."""

    def __init__(self):
        self._tick = asyncio.Event()
        self.sleeps = []

    async def sleep(self, interval):
        self.sleeps.append(interval)
        await self._tick.wait()

    async def settle(self):
        for _ in range(10):
            await asyncio.sleep(0)

    async def advance(self, intervals: int = 1):
        for _ in range(intervals):
            await self.settle()
            tick, self._tick = self._tick, asyncio.Event()
            tick.set()
            await self.settle()


@pytest.mark.asyncio
async def test_probe_sent_once_per_interval(make_socket):
    clock = ManualClock()
    room = Room("/websocket/chat-123", KEEPALIVE_CONFIG, sleep=clock.sleep)
    socket = make_socket()
    connection_id = room.admit(socket)

    await clock.settle()
    assert socket.sent == []

    await clock.advance(2)
    assert socket.sent == ["ping", "ping"]
    assert room.get(connection_id).monitor.probes_sent == 2
    assert set(clock.sleeps) == {30}

    await clock.advance()
    assert socket.sent == ["ping", "ping", "ping"]
    room.close()


@pytest.mark.asyncio
async def test_no_probe_after_close(make_socket):
    clock = ManualClock()
    room = Room("/websocket/chat-123", KEEPALIVE_CONFIG, sleep=clock.sleep)
    socket = make_socket()
    connection_id = room.admit(socket)
    await clock.advance()
    assert socket.sent == ["ping"]

    room.remove(connection_id)
    await clock.advance(3)
    assert socket.sent == ["ping"]


@pytest.mark.asyncio
async def test_failed_probe_evicts_connection(make_socket):
    clock = ManualClock()
    idle = []
    room = Room("/websocket/chat-123", KEEPALIVE_CONFIG, on_idle=idle.append, sleep=clock.sleep)
    socket = make_socket(fail=True)
    healthy = make_socket()
    dead_id = room.admit(socket)
    live_id = room.admit(healthy)
    monitor = room.get(dead_id).monitor

    await clock.advance()
    assert dead_id not in room
    assert live_id in room
    assert monitor.state is KeepaliveState.EVICTED
    assert idle == []

    await clock.advance(2)
    assert socket.attempts == 1
    assert healthy.sent == ["ping", "ping", "ping"]
    room.close()


@pytest.mark.asyncio
async def test_failed_probe_on_last_connection_reports_idle_room(make_socket):
    clock = ManualClock()
    idle = []
    room = Room("/websocket/chat-123", KEEPALIVE_CONFIG, on_idle=idle.append, sleep=clock.sleep)
    room.admit(make_socket(fail=True))

    await clock.advance()
    assert len(room) == 0
    assert idle == [room]


@pytest.mark.asyncio
async def test_stop_before_first_probe(make_socket):
    clock = ManualClock()
    evicted = []
    socket = make_socket()
    monitor = KeepaliveMonitor("abc", socket, interval=30, payload="ping",
                               on_evict=evicted.append, sleep=clock.sleep)
    monitor.start()
    monitor.stop()
    await clock.advance(2)
    assert socket.attempts == 0
    assert evicted == []
    assert not monitor.active


@pytest.mark.asyncio
async def test_zero_interval_disables_probes(make_socket):
    clock = ManualClock()
    socket = make_socket()
    monitor = KeepaliveMonitor("abc", socket, interval=0, payload="ping",
                               on_evict=lambda _: None, sleep=clock.sleep)
    monitor.start()
    await clock.advance(2)
    assert socket.attempts == 0
    assert clock.sleeps == []
    assert monitor.active
