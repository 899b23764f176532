"""Manual emergency reset for the request governor."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from governor.adapters.rate_limit.base import AbstractAdmissionLimiter
from governor.services.fetch_orchestrator import GovernedFetchOrchestrator
from governor.services.request_queue import DeferredRequestQueue
from governor.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


class RecoveryController:
    """Wipe limiter, cache, queue and pending retries, then re-warm the primary resource.

    ``warmup`` is a zero-argument coroutine function, normally a governed
    fetch of the primary resource. Calling ``emergency_reset`` again while a
    warm-up is still waiting cancels it and starts over.
    """

    def __init__(
        self,
        *,
        limiter: AbstractAdmissionLimiter,
        cache: TTLCache,
        queue: DeferredRequestQueue,
        warmup: Callable[[], Awaitable[Any]],
        orchestrator: GovernedFetchOrchestrator | None = None,
        delay_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.limiter = limiter
        self.cache = cache
        self.queue = queue
        self.orchestrator = orchestrator
        self.delay_seconds = delay_seconds
        self._warmup = warmup
        self._sleep = sleep
        self._pending: asyncio.Task | None = None

    @property
    def pending_warmup(self) -> asyncio.Task | None:
        if self._pending is not None and self._pending.done():
            return None
        return self._pending

    def emergency_reset(self) -> asyncio.Task:
        """Reset all governor state synchronously and schedule the warm-up.

        Must be called from within a running event loop.

        Returns:
            The scheduled warm-up task.
        """

        logger.warning("recovery.started", extra={"warmup_delay_s": self.delay_seconds})

        self.limiter.reset()
        self.cache.clear()
        dropped = self.queue.clear()
        cancelled = self.orchestrator.cancel_retries() if self.orchestrator is not None else 0

        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
            logger.info("recovery.warmup_restarted")

        self._pending = asyncio.create_task(self._delayed_warmup())
        logger.info(
            "recovery.state_cleared",
            extra={"dropped_requests": dropped, "cancelled_retries": cancelled},
        )
        return self._pending

    async def _delayed_warmup(self) -> Any:
        await self._sleep(self.delay_seconds)
        try:
            result = await self._warmup()
        except Exception as exc:
            logger.error(
                "recovery.warmup_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            return None
        logger.info("recovery.warmup_completed")
        return result
