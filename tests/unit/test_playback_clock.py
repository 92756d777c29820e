"""
Tests for PlaybackClock: model time advancement, speed, seek, window refresh.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.runtime.playback_clock import MAX_SPEED, PlaybackClock


@pytest.fixture
def manager():
    manager = MagicMock()
    manager.advance_to = AsyncMock(return_value=[])
    return manager


class TestPlaybackClockControls:
    def test_defaults(self, manager):
        clock = PlaybackClock(manager, start_time=1_000)
        assert clock.current_time == 1_000
        assert clock.speed == 60.0
        assert clock.is_playing is False

    def test_pause_sets_flag(self, manager):
        clock = PlaybackClock(manager, start_time=0)
        clock.is_playing = True
        clock.pause()
        assert clock.is_playing is False

    def test_seek(self, manager):
        clock = PlaybackClock(manager, start_time=0)
        clock.seek(5_000)
        assert clock.current_time == 5_000

    def test_set_speed_clamps(self, manager):
        clock = PlaybackClock(manager, start_time=0)
        clock.set_speed(-120)
        assert clock.speed == -120.0
        clock.set_speed(1e12)
        assert clock.speed == MAX_SPEED

    def test_on_tick_registers(self, manager):
        clock = PlaybackClock(manager, start_time=0)
        async def cb(t): pass
        clock.on_tick(cb)
        assert len(clock._callbacks) == 1


@pytest.mark.asyncio
class TestPlaybackClockTick:
    async def test_tick_advances_and_refreshes(self, manager):
        clock = PlaybackClock(manager, start_time=0, speed=60.0)
        now = await clock.tick(1.0)

        assert now == 60_000
        manager.advance_to.assert_awaited_once_with(60_000)
        manager.purge.assert_called_once_with(60_000)

    async def test_tick_backwards(self, manager):
        clock = PlaybackClock(manager, start_time=100_000, speed=-10.0)
        assert await clock.tick(2.0) == 80_000

    async def test_load_failure_does_not_stop_clock(self, manager):
        manager.advance_to.side_effect = ConnectionError("offline")
        clock = PlaybackClock(manager, start_time=0)
        received = []

        async def cb(t):
            received.append(t)
        clock.on_tick(cb)

        await clock.tick(1.0)
        assert received == [60_000]
        manager.purge.assert_called_once()

    async def test_callback_error_is_contained(self, manager):
        clock = PlaybackClock(manager, start_time=0)

        async def bad(t):
            raise RuntimeError("boom")
        received = []

        async def good(t):
            received.append(t)
        clock.on_tick(bad)
        clock.on_tick(good)

        await clock.tick(1.0)
        assert received == [60_000]

    async def test_start_and_stop(self, manager):
        clock = PlaybackClock(manager, start_time=0, speed=3600.0, tick_seconds=0.01)
        await clock.start()
        assert clock.is_playing is True
        await asyncio.sleep(0.1)
        await clock.stop()
        assert clock.is_playing is False
        assert clock.current_time > 0
        # Initial load plus at least one tick
        assert manager.advance_to.await_count >= 2
