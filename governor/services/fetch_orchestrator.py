"""Governed fetch path: cache, admission control, remote call, fallback.

This is the façade every reader goes through. It handles:
- Cache lookups keyed by resource type and sorted parameters
- Admission control on the normalized endpoint key
- Circuit tripping on upstream resource exhaustion
- Linear-backoff retries for transient remote failures
- Stale fallback to the last known good value, or deferral to the queue

The orchestrator only wires components together; all state lives in the
limiter, the cache, the snapshot store and the queue.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from governor.adapters.rate_limit.base import AbstractAdmissionLimiter
from governor.core.errors import (
    AdmissionDeniedAppError,
    as_remote_error,
    is_resource_exhaustion,
)
from governor.services.request_queue import DeferredRequestQueue, Priority
from governor.utils.endpoint_normalizer import RequestDescriptor, normalize
from governor.utils.snapshot_store import SnapshotStore
from governor.utils.ttl_cache import TTLCache, build_cache_key

logger = logging.getLogger(__name__)

RemoteCall = Callable[[], Awaitable[Any]]


class FetchStatus(str, Enum):
    FRESH = "fresh"
    CACHED = "cached"
    STALE = "stale"
    PENDING = "pending"
    UNAVAILABLE = "unavailable"


@dataclass
class FetchResult:
    """Outcome of a governed fetch.

    Attributes:
        status: How the data was obtained (or why there is none).
        resource_type: Resource the caller asked for.
        data: Payload for fresh/cached/stale results, otherwise None.
        error: Message of the failure that led to a stale/pending result.
        retry: Scheduled retry for pending results; cancel it to give up.
    """

    status: FetchStatus
    resource_type: str
    data: Any = None
    error: str | None = None
    retry: asyncio.Task | None = None

    @property
    def ok(self) -> bool:
        return self.status in (FetchStatus.FRESH, FetchStatus.CACHED, FetchStatus.STALE)


def _log_retry_outcome(task: asyncio.Task) -> None:
    # Retrieve the exception so an unawaited retry does not warn at shutdown.
    if task.cancelled():
        logger.info("fetch.retry_cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "fetch.retry_failed",
            extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
        )


class GovernedFetchOrchestrator:
    """Compose limiter, cache, snapshots and queue behind one ``fetch`` call."""

    def __init__(
        self,
        *,
        limiter: AbstractAdmissionLimiter,
        cache: TTLCache,
        queue: DeferredRequestQueue,
        snapshots: SnapshotStore,
        max_retries: int = 3,
        retry_step_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.limiter = limiter
        self.cache = cache
        self.queue = queue
        self.snapshots = snapshots
        self.max_retries = max_retries
        self.retry_step_seconds = retry_step_seconds
        self._sleep = sleep
        self._retries: set[asyncio.Task] = set()

    @property
    def pending_retries(self) -> int:
        return len(self._retries)

    def cancel_retries(self) -> int:
        """Cancel every scheduled retry. Returns how many were still pending."""

        pending = [task for task in self._retries if not task.done()]
        for task in pending:
            task.cancel()
        self._retries.clear()
        if pending:
            logger.info("fetch.retries_cancelled", extra={"cancelled": len(pending)})
        return len(pending)

    async def fetch(
        self,
        resource_type: str,
        params: Mapping[str, Any] | None,
        remote_call: RemoteCall,
        *,
        descriptor: RequestDescriptor | None = None,
        priority: Priority = Priority.NORMAL,
        retries_remaining: int | None = None,
    ) -> FetchResult:
        """Read a resource through the governor.

        Args:
            resource_type: Resource name; selects the cache TTL policy.
            params: Request parameters; part of the cache key.
            remote_call: Zero-argument coroutine function performing the read.
            descriptor: Request shape for limiter grouping. Defaults to a
                plain request on ``resource_type``.
            priority: Queue priority if the request has to be deferred.
            retries_remaining: Retry budget left; None means the full budget.

        Returns:
            FetchResult describing the data and how it was obtained.

        Raises:
            RemoteStoreAppError: When a transient failure exhausted the retry
                budget. The original code and message are preserved.
        """

        params = dict(params or {})
        retries = self.max_retries if retries_remaining is None else retries_remaining

        cached = self.cache.get(resource_type, params)
        if cached is not None:
            return FetchResult(status=FetchStatus.CACHED, resource_type=resource_type, data=cached)

        endpoint_key = normalize(descriptor or RequestDescriptor(resource_type))
        if not self.limiter.can_admit(endpoint_key):
            logger.info(
                "fetch.not_admitted",
                extra={"resource_type": resource_type, "endpoint_key": endpoint_key},
            )
            return self._fallback(resource_type, params, remote_call, descriptor, priority, error=None)

        try:
            value = await remote_call()
        except Exception as exc:
            if is_resource_exhaustion(exc):
                self.limiter.trip("upstream_resource_exhaustion")
                logger.error(
                    "fetch.resource_exhausted",
                    extra={"resource_type": resource_type, "endpoint_key": endpoint_key},
                )
                return self._fallback(
                    resource_type, params, remote_call, descriptor, priority, error=str(exc)
                )

            if retries > 0:
                delay = (self.max_retries - retries + 1) * self.retry_step_seconds
                task = asyncio.create_task(
                    self._retry_later(
                        delay, resource_type, params, remote_call, descriptor, priority, retries - 1
                    )
                )
                self._retries.add(task)
                task.add_done_callback(self._retries.discard)
                task.add_done_callback(_log_retry_outcome)
                logger.warning(
                    "fetch.retry_scheduled",
                    extra={
                        "resource_type": resource_type,
                        "delay_s": delay,
                        "retries_remaining": retries,
                        "error_msg": str(exc),
                    },
                )
                return FetchResult(
                    status=FetchStatus.PENDING,
                    resource_type=resource_type,
                    error=str(exc),
                    retry=task,
                )

            error = as_remote_error(exc)
            logger.error(
                "fetch.failed",
                extra={
                    "resource_type": resource_type,
                    "error_code": error.code,
                    "error_msg": error.message,
                },
            )
            if error is exc:
                raise
            raise error from exc

        self.limiter.record(endpoint_key)
        if value is not None:
            self.cache.set(resource_type, params, value)
            self.snapshots.remember(build_cache_key(resource_type, params), value)
        return FetchResult(status=FetchStatus.FRESH, resource_type=resource_type, data=value)

    async def mutate(
        self,
        resource_type: str,
        remote_call: RemoteCall,
        *,
        descriptor: RequestDescriptor | None = None,
    ) -> Any:
        """Run a write under admission control and invalidate cached reads.

        Raises:
            AdmissionDeniedAppError: If the limiter denies the write.
            RemoteStoreAppError: If the write fails.
        """

        endpoint_key = normalize(descriptor or RequestDescriptor(resource_type))
        if not self.limiter.can_admit(endpoint_key):
            raise AdmissionDeniedAppError(
                code="admission_denied",
                message="Too many requests to the data store. Try again shortly.",
                details={"resource_type": resource_type, "endpoint_key": endpoint_key},
            )

        try:
            result = await remote_call()
        except Exception as exc:
            if is_resource_exhaustion(exc):
                self.limiter.trip("upstream_resource_exhaustion")
            error = as_remote_error(exc)
            if error is exc:
                raise
            raise error from exc

        self.limiter.record(endpoint_key)
        self.cache.invalidate(resource_type)
        return result

    async def _retry_later(
        self,
        delay: float,
        resource_type: str,
        params: dict[str, Any],
        remote_call: RemoteCall,
        descriptor: RequestDescriptor | None,
        priority: Priority,
        retries_remaining: int,
    ) -> FetchResult:
        await self._sleep(delay)
        return await self.fetch(
            resource_type,
            params,
            remote_call,
            descriptor=descriptor,
            priority=priority,
            retries_remaining=retries_remaining,
        )

    def _fallback(
        self,
        resource_type: str,
        params: dict[str, Any],
        remote_call: RemoteCall,
        descriptor: RequestDescriptor | None,
        priority: Priority,
        *,
        error: str | None,
    ) -> FetchResult:
        stale = self.snapshots.recall(build_cache_key(resource_type, params))
        if stale is not None:
            logger.info("fetch.stale_served", extra={"resource_type": resource_type})
            return FetchResult(
                status=FetchStatus.STALE, resource_type=resource_type, data=stale, error=error
            )

        async def _deferred() -> FetchResult:
            return await self.fetch(
                resource_type, params, remote_call, descriptor=descriptor, priority=priority
            )

        self.queue.enqueue(_deferred, priority)
        return FetchResult(
            status=FetchStatus.UNAVAILABLE,
            resource_type=resource_type,
            error=error or "Temporarily unavailable: request deferred",
        )

