"""Process-wide wiring of the request governor.

Every component is built once per process from settings and shared through
``get_governor()``. Tests build their own instance with ``build_governor``
and install it with ``set_governor``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from governor.adapters.datastore.base import AbstractDataStore
from governor.adapters.datastore.factory import create_data_store
from governor.adapters.rate_limit.sliding_window import SlidingWindowLimiter
from governor.core.config import Settings, settings
from governor.schemas.status import GovernorStatus
from governor.services.fetch_orchestrator import FetchResult, GovernedFetchOrchestrator
from governor.services.recovery import RecoveryController
from governor.services.request_queue import DeferredRequestQueue, Priority
from governor.services.runtime import GovernorRuntime
from governor.utils.endpoint_normalizer import RequestDescriptor, RequestShape
from governor.utils.snapshot_store import SnapshotStore
from governor.utils.ttl_cache import ResourceTypePolicy, TTLCache, build_cache_key

logger = logging.getLogger(__name__)

# Parameters of the primary read; its snapshot is the one persisted to disk
PRIMARY_PARAMS: dict[str, Any] = {"current": True}


@dataclass
class Governor:
    """All governor components for one process."""

    store: AbstractDataStore
    limiter: SlidingWindowLimiter
    cache: TTLCache
    queue: DeferredRequestQueue
    snapshots: SnapshotStore
    orchestrator: GovernedFetchOrchestrator
    recovery: RecoveryController
    runtime: GovernorRuntime
    primary_resource: str

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
        single: bool = False,
        priority: Priority = Priority.NORMAL,
    ) -> FetchResult:
        """Governed read of a table through the configured data store."""

        filters = dict(filters or {})
        params: dict[str, Any] = {"select": columns, **filters}
        if limit is not None:
            params["limit"] = limit
        if single:
            params["single"] = True

        async def _remote_call() -> Any:
            return await self.store.select(
                table, columns=columns, filters=filters, limit=limit, single=single
            )

        descriptor = RequestDescriptor.from_query(table, columns=columns, filters=filters, limit=limit)
        return await self.orchestrator.fetch(
            table, params, _remote_call, descriptor=descriptor, priority=priority
        )

    async def fetch_primary(self) -> FetchResult:
        """Fetch the primary record (the current business) at high priority."""

        async def _remote_call() -> Any:
            return await self.store.select(self.primary_resource, columns="*", limit=1, single=True)

        return await self.orchestrator.fetch(
            self.primary_resource,
            PRIMARY_PARAMS,
            _remote_call,
            descriptor=RequestDescriptor(self.primary_resource, RequestShape.EXISTENCE_CHECK),
            priority=Priority.HIGH,
        )

    def status(self) -> GovernorStatus:
        return GovernorStatus(
            rate_limiter=self.limiter.status(),
            cache=self.cache.stats(),
            queue_length=self.queue.length(),
            is_processing_queue=self.queue.is_draining,
        )


def build_governor(
    config: Settings | None = None,
    *,
    store: AbstractDataStore | None = None,
) -> Governor:
    """Build a fully wired governor from settings.

    Args:
        config: Settings to read; defaults to the global settings.
        store: Data store to protect; defaults to the configured provider.
    """

    cfg = (config or settings).governor

    limiter = SlidingWindowLimiter(
        window_seconds=cfg.window_seconds,
        max_global=cfg.max_global,
        max_per_key=cfg.max_per_endpoint,
        backoff_seconds=cfg.backoff_seconds,
    )
    cache = TTLCache(
        ResourceTypePolicy(cfg.ttl_policies, default_ttl=cfg.default_ttl_seconds),
        max_size=cfg.max_cache_size,
    )
    queue = DeferredRequestQueue(
        batch_size=cfg.drain_batch_size,
        inter_item_delay=cfg.inter_item_delay_seconds,
    )
    snapshots = SnapshotStore(
        primary_key=build_cache_key(cfg.primary_resource, PRIMARY_PARAMS),
        path=cfg.snapshot_path,
        max_entries=cfg.snapshot_max_entries,
    )
    orchestrator = GovernedFetchOrchestrator(
        limiter=limiter,
        cache=cache,
        queue=queue,
        snapshots=snapshots,
        max_retries=cfg.max_retries,
        retry_step_seconds=cfg.retry_step_seconds,
    )
    runtime = GovernorRuntime(
        queue=queue,
        cache=cache,
        drain_interval=cfg.drain_interval_seconds,
        cleanup_interval=cfg.cleanup_interval_seconds,
    )

    async def _warmup() -> FetchResult:
        return await governor.fetch_primary()

    recovery = RecoveryController(
        limiter=limiter,
        cache=cache,
        queue=queue,
        warmup=_warmup,
        orchestrator=orchestrator,
        delay_seconds=cfg.recovery_delay_seconds,
    )
    governor = Governor(
        store=store or create_data_store((config or settings).datastore),
        limiter=limiter,
        cache=cache,
        queue=queue,
        snapshots=snapshots,
        orchestrator=orchestrator,
        recovery=recovery,
        runtime=runtime,
        primary_resource=cfg.primary_resource,
    )
    logger.info(
        "governor.built",
        extra={
            "max_global": cfg.max_global,
            "max_per_endpoint": cfg.max_per_endpoint,
            "window_s": cfg.window_seconds,
            "max_cache_size": cfg.max_cache_size,
        },
    )
    return governor


_governor: Governor | None = None


def get_governor() -> Governor:
    """Return the process-wide governor, building it on first use.

    Also usable as a FastAPI dependency.
    """

    global _governor
    if _governor is None:
        _governor = build_governor()
    return _governor


def set_governor(governor: Governor | None) -> None:
    """Install (or with None, drop) the process-wide governor."""

    global _governor
    _governor = governor
