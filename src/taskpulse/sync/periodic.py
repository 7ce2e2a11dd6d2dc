# src/taskpulse/sync/periodic.py

from __future__ import annotations

"""
Periodic jobs.

PeriodicJob is a start/stop handle around one asyncio task that sleeps, then runs a
tick coroutine. start() is idempotent: repeated calls return the same task, so any
number of callers share one timer.

BackgroundSync is the store refresh loop built on top of it.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..stores.entity_store import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL_SECONDS = 30.0


class PeriodicJob:
    def __init__(
        self,
        name: str,
        tick: Callable[[], Awaitable[None]],
        *,
        interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS,
    ) -> None:
        self.name = name
        self._tick = tick
        self._interval = max(0.001, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            logger.debug("%s already running", self.name)
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info("%s started (every %.1fs)", self.name, self._interval)
        return self._task

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        logger.info("%s stopped", self.name)

    async def stop_and_wait(self) -> None:
        task = self._task
        self.stop()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("%s tick failed", self.name)


class BackgroundSync:
    """Refetches a store periodically while it is online and not draining."""

    def __init__(self, store: EntityStore, *, interval_seconds: float = DEFAULT_SYNC_INTERVAL_SECONDS) -> None:
        self._store = store
        self._job = PeriodicJob(f"background-sync[{store.name}]", self._tick, interval_seconds=interval_seconds)

    @property
    def is_running(self) -> bool:
        return self._job.is_running

    def start(self) -> asyncio.Task[None]:
        return self._job.start()

    def stop(self) -> None:
        self._job.stop()

    async def stop_and_wait(self) -> None:
        await self._job.stop_and_wait()

    async def _tick(self) -> None:
        if self._store.is_online and not self._store.is_syncing:
            await self._store.refresh()
