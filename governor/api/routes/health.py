from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check. Does not touch the data store or consume limiter budget."""

    return {"status": "ok"}
