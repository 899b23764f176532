"""Admission-control adapters.

This package provides a small abstraction layer so the governor can start
with an in-memory sliding window and later move to a shared store without
changing the fetch orchestrator.
"""

from governor.adapters.rate_limit.base import AbstractAdmissionLimiter, CircuitState
from governor.adapters.rate_limit.sliding_window import SlidingWindowLimiter

__all__ = ["AbstractAdmissionLimiter", "CircuitState", "SlidingWindowLimiter"]
