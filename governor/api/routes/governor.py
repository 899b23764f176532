from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from governor.core.auth import verify_api_key
from governor.core.dependencies import Governor, get_governor
from governor.schemas.status import EmergencyResetResponse, GovernorStatus, InvalidateResponse

router = APIRouter(
    prefix="/governor",
    tags=["Governor"],
    dependencies=[Depends(verify_api_key)],
)


@router.get("/status", response_model=GovernorStatus)
async def governor_status(governor: Annotated[Governor, Depends(get_governor)]) -> GovernorStatus:
    """Snapshot of limiter counters, cache occupancy and queue backlog."""

    return governor.status()


@router.post(
    "/emergency-reset",
    response_model=EmergencyResetResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def emergency_reset(
    governor: Annotated[Governor, Depends(get_governor)],
) -> EmergencyResetResponse:
    """Clear limiter, cache and queue, then re-warm the primary resource.

    The state is cleared before the response is sent; the warm-up fetch runs
    in the background after the configured delay.
    """

    governor.recovery.emergency_reset()
    return EmergencyResetResponse(warmup_delay_seconds=governor.recovery.delay_seconds)


@router.post("/cache/{resource_type}/invalidate", response_model=InvalidateResponse)
async def invalidate_cache(
    resource_type: str,
    governor: Annotated[Governor, Depends(get_governor)],
) -> InvalidateResponse:
    """Drop cached reads of one resource type, e.g. after an external write."""

    removed = governor.cache.invalidate(resource_type)
    return InvalidateResponse(resource_type=resource_type, removed=removed)
