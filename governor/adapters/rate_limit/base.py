"""Admission limiter interfaces.

The orchestrator depends on this abstraction (not the concrete implementation)
so the counting backend can be swapped without touching the fetch path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum

from governor.schemas.status import LimiterStatus


class CircuitState(str, Enum):
    """Global circuit states."""

    NORMAL = "normal"
    GLOBALLY_LIMITED = "globally_limited"


class AbstractAdmissionLimiter(ABC):
    """Interface for admission-control limiters."""

    @abstractmethod
    def can_admit(self, key: str) -> bool:
        """Decide whether a request for ``key`` may proceed now.

        Does not consume budget; call ``record`` once the request succeeded.
        """
        raise NotImplementedError

    @abstractmethod
    def record(self, key: str) -> None:
        """Count an admitted request against the global and per-key budgets."""
        raise NotImplementedError

    @abstractmethod
    def trip(self, reason: str) -> None:
        """Open the global circuit (e.g. upstream resource exhaustion)."""
        raise NotImplementedError

    @abstractmethod
    def status(self) -> LimiterStatus:
        raise NotImplementedError

    @abstractmethod
    def reset(self) -> None:
        """Clear all counters and close the circuit immediately."""
        raise NotImplementedError
