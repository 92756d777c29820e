"""
PlaybackClock: Async background timer for historical playback.

Advances model time (UTC milliseconds) at a configurable speed multiplier.
Each tick moves the dataset window forward (``advance_to`` then ``purge``)
and notifies registered callbacks. Supports play/pause/seek.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

from src.archive.models import MS_PER_SECOND
from src.runtime.dataset_manager import DatasetManager

logger = logging.getLogger(__name__)

MIN_SPEED = -86400.0 * 365
MAX_SPEED = 86400.0 * 365


class PlaybackClock:
    """
    Async clock that keeps a DatasetManager's window around model time.

    At speed=1 model time follows real time. At speed=60 one model minute
    passes per real second. Negative speeds play backwards.
    """

    def __init__(
        self,
        manager: DatasetManager,
        start_time: int,
        speed: float = 60.0,
        tick_seconds: float = 1.0 / 30.0,
    ):
        self.manager = manager
        self.current_time: int = start_time
        self.speed: float = speed
        self.tick_seconds = tick_seconds
        self.is_playing: bool = False
        self._task: asyncio.Task | None = None
        self._callbacks: list[Callable[[int], Coroutine[Any, Any, None]]] = []

    def on_tick(self, callback: Callable[[int], Coroutine[Any, Any, None]]) -> None:
        """Register an async callback to be called with model time on each tick."""
        self._callbacks.append(callback)

    def play(self) -> None:
        """Start or resume playback."""
        if self.is_playing:
            return
        self.is_playing = True
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())
        logger.info("Clock playing at speed %.1fx, model time %d", self.speed, self.current_time)

    def pause(self) -> None:
        """Pause playback."""
        self.is_playing = False
        logger.info("Clock paused at model time %d", self.current_time)

    def seek(self, model_time: int) -> None:
        """Jump to a model time; the next tick loads around it."""
        self.current_time = model_time
        logger.info("Clock seeked to model time %d", self.current_time)

    def set_speed(self, speed: float) -> None:
        """Set the playback speed multiplier."""
        self.speed = max(MIN_SPEED, min(MAX_SPEED, speed))
        logger.info("Clock speed set to %.1fx", self.speed)

    async def start(self) -> None:
        """Load around the start time, then start the background task."""
        await self.manager.advance_to(self.current_time)
        self.is_playing = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the clock background task."""
        self.is_playing = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def tick(self, elapsed_s: float) -> int:
        """
        Advance model time by ``elapsed_s`` real seconds and refresh the window.

        A bucket load failure is logged and retried on the next tick; model
        time keeps moving.

        Returns:
            New model time
        """
        self.current_time += int(round(elapsed_s * self.speed * MS_PER_SECOND))
        try:
            await self.manager.advance_to(self.current_time)
        except Exception:
            logger.exception("Bucket load failed at model time %d", self.current_time)
        self.manager.purge(self.current_time)

        for cb in self._callbacks:
            try:
                await cb(self.current_time)
            except Exception:
                logger.exception("Error in clock callback")
        return self.current_time

    async def _run(self) -> None:
        """Main loop: advance model time and notify callbacks."""
        loop = asyncio.get_running_loop()
        last = loop.time()
        while True:
            if not self.is_playing:
                await asyncio.sleep(0.1)
                last = loop.time()
                continue

            await asyncio.sleep(self.tick_seconds)
            if not self.is_playing:
                continue

            now = loop.time()
            await self.tick(now - last)
            last = now
