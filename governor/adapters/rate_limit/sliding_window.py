"""In-memory sliding-window limiter with a global circuit breaker.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Not thread-safe: every method runs on the event loop and none of them
  awaits, so each call is atomic with respect to other tasks.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from governor.adapters.rate_limit.base import AbstractAdmissionLimiter, CircuitState
from governor.schemas.status import LimiterStatus

logger = logging.getLogger(__name__)


class SlidingWindowLimiter(AbstractAdmissionLimiter):
    """Counts requests in a rolling window, globally and per endpoint key.

    Hitting the global cap (or an explicit ``trip``) opens the circuit for
    ``backoff_seconds``; while open every key is denied. The circuit closes
    by itself once ``lift_at`` has passed, which also wipes the counters.
    The reversion is evaluated whenever the limiter is observed, so it follows
    the injected clock rather than a background timer.
    """

    def __init__(
        self,
        *,
        window_seconds: float = 1.0,
        max_global: int = 20,
        max_per_key: int = 5,
        backoff_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            window_seconds: Size of the sliding window.
            max_global: Maximum requests across all keys per window.
            max_per_key: Maximum requests per key per window.
            backoff_seconds: How long the circuit stays open once tripped.
            clock: Monotonic time source in seconds.

        Raises:
            ValueError: If any limit or duration is invalid.
        """
        if max_global < 1:
            raise ValueError("max_global must be >= 1")
        if max_per_key < 1:
            raise ValueError("max_per_key must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if backoff_seconds <= 0:
            raise ValueError("backoff_seconds must be > 0")

        self._window_seconds = window_seconds
        self._max_global = max_global
        self._max_per_key = max_per_key
        self._backoff_seconds = backoff_seconds
        self._clock = clock

        self._global: list[float] = []
        self._per_key: dict[str, list[float]] = {}
        self._state = CircuitState.NORMAL
        self._lift_at: float | None = None

    @property
    def state(self) -> CircuitState:
        self._maybe_lift(self._clock())
        return self._state

    @property
    def lift_at(self) -> float | None:
        return self._lift_at

    def is_limited(self) -> bool:
        return self.state == CircuitState.GLOBALLY_LIMITED

    def can_admit(self, key: str) -> bool:
        now = self._clock()
        self._maybe_lift(now)

        if self._state == CircuitState.GLOBALLY_LIMITED:
            logger.debug("limiter.denied", extra={"endpoint_key": key, "reason": "circuit_open"})
            return False

        self._prune(now)

        if len(self._global) >= self._max_global:
            logger.warning(
                "limiter.denied",
                extra={
                    "endpoint_key": key,
                    "reason": "global_cap",
                    "global_requests": len(self._global),
                    "max_global": self._max_global,
                },
            )
            self._open_circuit(now, reason="global_cap")
            return False

        key_count = len(self._per_key.get(key, ()))
        if key_count >= self._max_per_key:
            logger.warning(
                "limiter.denied",
                extra={
                    "endpoint_key": key,
                    "reason": "endpoint_cap",
                    "endpoint_requests": key_count,
                    "max_per_endpoint": self._max_per_key,
                },
            )
            return False

        return True

    def record(self, key: str) -> None:
        now = self._clock()
        self._global.append(now)
        self._per_key.setdefault(key, []).append(now)
        logger.debug(
            "limiter.recorded",
            extra={
                "endpoint_key": key,
                "global_requests": len(self._global),
                "endpoint_requests": len(self._per_key[key]),
            },
        )

    def trip(self, reason: str) -> None:
        now = self._clock()
        self._maybe_lift(now)
        if self._state == CircuitState.GLOBALLY_LIMITED:
            return
        self._open_circuit(now, reason=reason)

    def status(self) -> LimiterStatus:
        now = self._clock()
        self._maybe_lift(now)
        self._prune(now)
        return LimiterStatus(
            global_requests=len(self._global),
            endpoint_counts={key: len(ts) for key, ts in self._per_key.items()},
            is_limited=self._state == CircuitState.GLOBALLY_LIMITED,
            max_global=self._max_global,
            max_per_endpoint=self._max_per_key,
        )

    def reset(self) -> None:
        self._clear_counters()
        self._state = CircuitState.NORMAL
        self._lift_at = None
        logger.info("limiter.reset")

    def _open_circuit(self, now: float, *, reason: str) -> None:
        self._state = CircuitState.GLOBALLY_LIMITED
        self._lift_at = now + self._backoff_seconds
        logger.error(
            "limiter.circuit_tripped",
            extra={"reason": reason, "backoff_s": self._backoff_seconds},
        )

    def _maybe_lift(self, now: float) -> None:
        if self._state != CircuitState.GLOBALLY_LIMITED or self._lift_at is None:
            return
        if now < self._lift_at:
            return
        self._state = CircuitState.NORMAL
        self._lift_at = None
        self._clear_counters()
        logger.info("limiter.circuit_lifted")

    def _prune(self, now: float) -> None:
        cutoff = now - self._window_seconds
        self._global = [ts for ts in self._global if ts > cutoff]
        for key in list(self._per_key):
            kept = [ts for ts in self._per_key[key] if ts > cutoff]
            if kept:
                self._per_key[key] = kept
            else:
                del self._per_key[key]

    def _clear_counters(self) -> None:
        self._global = []
        self._per_key.clear()
