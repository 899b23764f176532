"""Recurring background work for the governor.

Two independent tickers run for the life of the process:
- the queue drain ticker, which launches ``DeferredRequestQueue.drain``
- the cache sweep, which removes expired entries in one pass

Both are plain asyncio tasks owned by ``GovernorRuntime`` so the FastAPI
lifespan can start and cancel them.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from governor.services.request_queue import DeferredRequestQueue
from governor.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class GovernorRuntime:
    def __init__(
        self,
        *,
        queue: DeferredRequestQueue,
        cache: TTLCache,
        drain_interval: float = 2.0,
        cleanup_interval: float = 60.0,
    ) -> None:
        if drain_interval <= 0 or cleanup_interval <= 0:
            raise ValueError("intervals must be > 0")
        self.queue = queue
        self.cache = cache
        self.drain_interval = drain_interval
        self.cleanup_interval = cleanup_interval
        self._tasks: list[asyncio.Task] = []
        self._drains: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Start both tickers. Calling it twice has no effect."""

        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._drain_ticker(), name="governor-drain"),
            asyncio.create_task(self._cleanup_ticker(), name="governor-cache-sweep"),
        ]
        logger.info(
            "runtime.started",
            extra={"drain_interval_s": self.drain_interval, "cleanup_interval_s": self.cleanup_interval},
        )

    async def stop(self) -> None:
        """Cancel the tickers and any drain still in flight."""

        tasks = [*self._tasks, *self._drains]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks = []
        self._drains.clear()
        logger.info("runtime.stopped")

    async def _drain_ticker(self) -> None:
        while True:
            await asyncio.sleep(self.drain_interval)
            # Not awaited: a tick that lands during a long drain is skipped
            # by the queue's own in-flight guard.
            task = asyncio.create_task(self.queue.drain())
            self._drains.add(task)
            task.add_done_callback(self._drain_finished)

    async def _cleanup_ticker(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cache.cleanup()

    def _drain_finished(self, task: asyncio.Task) -> None:
        self._drains.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "runtime.drain_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
