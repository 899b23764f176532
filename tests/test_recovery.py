"""Unit tests for the emergency reset."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from governor.adapters.rate_limit.sliding_window import SlidingWindowLimiter
from governor.services.recovery import RecoveryController
from governor.services.request_queue import DeferredRequestQueue
from governor.utils.ttl_cache import TTLCache


class Components:
    def __init__(self, warmup) -> None:
        self.clock = Mock(return_value=500.0)
        self.limiter = SlidingWindowLimiter(max_global=20, max_per_key=5, clock=self.clock)
        self.cache = TTLCache(clock=self.clock)
        self.queue = DeferredRequestQueue(clock=self.clock)
        self.delays: list[float] = []
        self.recovery = RecoveryController(
            limiter=self.limiter,
            cache=self.cache,
            queue=self.queue,
            warmup=warmup,
            delay_seconds=2.0,
            sleep=self._sleep,
        )

    async def _sleep(self, seconds: float) -> None:
        self.delays.append(seconds)


async def _noop() -> None:
    return None


@pytest.mark.asyncio
async def test_reset_clears_state_before_returning() -> None:
    parts = Components(AsyncMock(return_value={"id": 1}))
    for i in range(20):
        parts.limiter.record(f"endpoint-{i}")
    parts.limiter.trip("test")
    parts.cache.set("businesses", {}, {"id": 1})
    parts.queue.enqueue(_noop)

    task = parts.recovery.emergency_reset()

    # Synchronous part already done, warm-up not yet run
    assert parts.limiter.can_admit("businesses") is True
    assert parts.limiter.status().global_requests == 0
    assert parts.cache.stats().total_entries == 0
    assert parts.queue.length() == 0
    assert not task.done()

    await task


@pytest.mark.asyncio
async def test_warmup_runs_after_delay() -> None:
    warmup = AsyncMock(return_value={"id": 1})
    parts = Components(warmup)

    result = await parts.recovery.emergency_reset()

    assert result == {"id": 1}
    assert parts.delays == [2.0]
    warmup.assert_awaited_once()
    assert parts.recovery.pending_warmup is None


@pytest.mark.asyncio
async def test_second_reset_cancels_pending_warmup() -> None:
    warmup = AsyncMock(return_value="warm")
    parts = Components(warmup)

    first = parts.recovery.emergency_reset()
    second = parts.recovery.emergency_reset()

    assert parts.recovery.pending_warmup is second
    assert await second == "warm"
    with pytest.raises(asyncio.CancelledError):
        await first
    warmup.assert_awaited_once()


@pytest.mark.asyncio
async def test_warmup_failure_is_logged_not_raised(caplog: pytest.LogCaptureFixture) -> None:
    parts = Components(AsyncMock(side_effect=RuntimeError("store still down")))

    with caplog.at_level("ERROR", logger="governor.services.recovery"):
        result = await parts.recovery.emergency_reset()

    assert result is None
    assert any(r.getMessage() == "recovery.warmup_failed" for r in caplog.records)


@pytest.mark.asyncio
async def test_reset_cancels_scheduled_retries() -> None:
    parts = Components(AsyncMock(return_value=None))
    orchestrator = Mock()
    orchestrator.cancel_retries.return_value = 2
    parts.recovery.orchestrator = orchestrator

    await parts.recovery.emergency_reset()

    orchestrator.cancel_retries.assert_called_once_with()
