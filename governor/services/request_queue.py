"""Deferred request queue drained in priority order.

Requests that could not be admitted wait here until the runtime's drain
ticker picks them up. A drain invokes a small batch one at a time, spaced
out so the burst does not immediately re-trip the limiter.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class Priority(str, Enum):
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class QueuedRequest:
    """A deferred call waiting for its turn."""

    invoke: Callable[[], Awaitable[Any]]
    priority: Priority
    enqueued_at: float
    sequence: int = field(compare=False)

    def sort_key(self) -> tuple[int, float, int]:
        return (0 if self.priority == Priority.HIGH else 1, self.enqueued_at, self.sequence)


class DeferredRequestQueue:
    """Buffer of deferred requests with bounded, spaced-out draining.

    Only one drain runs at a time; a drain requested while another is in
    flight is skipped. Items that fail are logged and dropped; callers that
    still need the result have to enqueue again.
    """

    def __init__(
        self,
        *,
        batch_size: int = 3,
        inter_item_delay: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if inter_item_delay < 0:
            raise ValueError("inter_item_delay must be >= 0")
        self._batch_size = batch_size
        self._inter_item_delay = inter_item_delay
        self._clock = clock
        self._sleep = sleep
        self._items: list[QueuedRequest] = []
        self._sequence = itertools.count()
        self._draining = False

    def __len__(self) -> int:
        return len(self._items)

    def length(self) -> int:
        return len(self._items)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def enqueue(
        self,
        invoke: Callable[[], Awaitable[Any]],
        priority: Priority = Priority.NORMAL,
    ) -> QueuedRequest:
        item = QueuedRequest(
            invoke=invoke,
            priority=Priority(priority),
            enqueued_at=self._clock(),
            sequence=next(self._sequence),
        )
        self._items.append(item)
        logger.info(
            "queue.enqueued",
            extra={"priority": item.priority.value, "queue_length": len(self._items)},
        )
        return item

    def clear(self) -> int:
        dropped = len(self._items)
        self._items = []
        if dropped:
            logger.info("queue.cleared", extra={"dropped": dropped})
        return dropped

    async def drain(self) -> int:
        """Invoke up to one batch of queued requests.

        Returns:
            Number of items taken off the queue (failed ones included), or 0
            when there was nothing to do or a drain was already running.
        """

        if self._draining:
            logger.debug("queue.drain_skipped", extra={"reason": "in_flight"})
            return 0
        if not self._items:
            return 0

        self._draining = True
        try:
            batch = sorted(self._items, key=QueuedRequest.sort_key)[: self._batch_size]
            taken = {id(item) for item in batch}
            self._items = [item for item in self._items if id(item) not in taken]

            logger.info(
                "queue.drain_started",
                extra={"batch": len(batch), "remaining": len(self._items)},
            )
            for index, item in enumerate(batch):
                if index:
                    await self._sleep(self._inter_item_delay)
                try:
                    await item.invoke()
                except Exception as exc:
                    logger.error(
                        "queue.item_failed",
                        extra={
                            "priority": item.priority.value,
                            "error_type": type(exc).__name__,
                            "error_msg": str(exc),
                        },
                    )
            return len(batch)
        finally:
            self._draining = False
