"""Pydantic schemas for governed resource reads."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class FetchResponse(BaseModel):
    """Result of a governed read.

    ``status`` tells the client how fresh ``data`` is: ``fresh`` came from the
    store just now, ``cached`` from the TTL cache, ``stale`` from the last
    known good snapshot. ``pending`` and ``unavailable`` carry no data.
    """

    status: Literal["fresh", "cached", "stale", "pending", "unavailable"]
    resource_type: str
    data: Any = Field(None, description="Rows or a single row, depending on the request.")
    error: str | None = Field(
        None,
        description="Why fresh data could not be served (stale/pending/unavailable).",
    )
