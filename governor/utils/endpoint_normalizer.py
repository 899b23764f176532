"""Canonical tracking keys for admission control.

Structurally similar requests share one limiter bucket: every existence
check on ``businesses`` counts against ``businesses_existence_check`` no
matter which id it looks up.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

UNKNOWN_KEY = "unknown"
EXISTENCE_SUFFIX = "_existence_check"
OWNER_SUFFIX = "_by_business"

# Projections cheap enough to count as "does it exist?" lookups
_MINIMAL_PROJECTIONS = {"id"}


class RequestShape(str, Enum):
    """Coarse shape of a request against a resource."""

    PLAIN = "plain"
    EXISTENCE_CHECK = "existence_check"
    BY_OWNER = "by_owner"


@dataclass(frozen=True)
class RequestDescriptor:
    """Tagged description of a request: which resource, and in what shape."""

    resource: str | None
    shape: RequestShape = RequestShape.PLAIN

    @classmethod
    def from_query(
        cls,
        resource: str | None,
        *,
        columns: str = "*",
        filters: Mapping[str, Any] | None = None,
        limit: int | None = None,
        owner_field: str = "business_id",
    ) -> "RequestDescriptor":
        """Derive the descriptor for a select query.

        A single-row read with a minimal projection is an existence check,
        even when it also filters by owner.
        """

        projection = {c.strip() for c in columns.split(",") if c.strip()}
        if limit == 1 and projection and projection <= _MINIMAL_PROJECTIONS:
            return cls(resource, RequestShape.EXISTENCE_CHECK)
        if filters and owner_field in filters:
            return cls(resource, RequestShape.BY_OWNER)
        return cls(resource, RequestShape.PLAIN)


def normalize(descriptor: Any) -> str:
    """Map a request descriptor to its canonical limiter key.

    Anything that cannot be resolved to a resource collapses to ``"unknown"``
    so it is still rate limited, only more coarsely.
    """

    if not isinstance(descriptor, RequestDescriptor):
        return UNKNOWN_KEY

    resource = (descriptor.resource or "").strip() if isinstance(descriptor.resource, str) else ""
    if not resource:
        return UNKNOWN_KEY

    if descriptor.shape == RequestShape.EXISTENCE_CHECK:
        return f"{resource}{EXISTENCE_SUFFIX}"
    if descriptor.shape == RequestShape.BY_OWNER:
        return f"{resource}{OWNER_SUFFIX}"
    return resource
