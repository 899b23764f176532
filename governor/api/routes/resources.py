from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status

from governor.core.auth import verify_api_key
from governor.core.config import settings
from governor.core.dependencies import Governor, get_governor
from governor.schemas.fetch import FetchResponse
from governor.services.fetch_orchestrator import FetchStatus
from governor.services.request_queue import Priority

router = APIRouter(tags=["Resources"])

# Query parameters with a meaning of their own; everything else is a filter
_RESERVED_PARAMS = {"select", "limit", "single", "queue_priority"}

_STATUS_CODES = {
    FetchStatus.FRESH: status.HTTP_200_OK,
    FetchStatus.CACHED: status.HTTP_200_OK,
    FetchStatus.STALE: status.HTTP_200_OK,
    FetchStatus.PENDING: status.HTTP_202_ACCEPTED,
    FetchStatus.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.get(
    "/resources/{table}",
    response_model=FetchResponse,
    dependencies=[Depends(verify_api_key)],
    responses={
        202: {"model": FetchResponse, "description": "Remote call failed; a retry is scheduled."},
        503: {"model": FetchResponse, "description": "Not admitted and no snapshot; request deferred."},
    },
)
async def read_resource(
    table: str,
    request: Request,
    response: Response,
    governor: Annotated[Governor, Depends(get_governor)],
    select: str = Query("*", description="Comma-separated projection."),
    limit: int | None = Query(None, ge=1, description="Maximum rows."),
    single: bool = Query(False, description="Return a single object."),
    queue_priority: Priority = Query(Priority.NORMAL, description="Queue priority if deferred."),
) -> FetchResponse:
    """Read a table through the request governor.

    Any query parameter other than ``select``, ``limit``, ``single`` and
    ``queue_priority`` is an equality filter (``?business_id=42``), so a
    table column named ``priority`` can be filtered on directly.

    Returns:
        FetchResponse: 200 for fresh/cached/stale data, 202 when a retry is
            pending, 503 (with Retry-After) when the request was deferred.

    Raises:
        RemoteStoreAppError: Retries exhausted (handled as 502).
    """
    filters = {
        name: value
        for name, value in request.query_params.items()
        if name not in _RESERVED_PARAMS
    }

    result = await governor.select(
        table,
        columns=select,
        filters=filters,
        limit=limit,
        single=single,
        priority=queue_priority,
    )

    response.status_code = _STATUS_CODES[result.status]
    if result.status == FetchStatus.UNAVAILABLE:
        response.headers["Retry-After"] = str(int(settings.governor.drain_interval_seconds) or 1)

    return FetchResponse(
        status=result.status.value,
        resource_type=result.resource_type,
        data=result.data,
        error=result.error,
    )
