"""Pydantic schemas for governor observability snapshots.

Field names are snake_case in Python and serialized as camelCase, which is
the shape status dashboards already consume.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LimiterStatus(_CamelModel):
    """Point-in-time view of the sliding-window limiter."""

    global_requests: int = Field(..., description="Requests recorded in the current window.")
    endpoint_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Requests per normalized endpoint key in the current window.",
    )
    is_limited: bool = Field(..., description="Whether the global circuit is open.")
    max_global: int = Field(..., description="Global cap per window.")
    max_per_endpoint: int = Field(..., description="Per-endpoint cap per window.")


class CacheStats(_CamelModel):
    """Point-in-time view of the response cache."""

    total_entries: int
    valid_entries: int
    expired_entries: int
    max_size: int
    usage_percent: str = Field(..., description="Occupancy formatted like '12.0%'.")
    hits: int = 0
    misses: int = 0
    evictions: int = 0


class GovernorStatus(_CamelModel):
    """Combined snapshot served by the status endpoint."""

    rate_limiter: LimiterStatus
    cache: CacheStats
    queue_length: int
    is_processing_queue: bool


class EmergencyResetResponse(_CamelModel):
    status: str = "resetting"
    warmup_delay_seconds: float


class InvalidateResponse(_CamelModel):
    resource_type: str
    removed: int
