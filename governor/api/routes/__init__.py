from __future__ import annotations

from governor.api.routes.governor import router as governor_router
from governor.api.routes.health import router as health_router
from governor.api.routes.resources import router as resources_router

__all__ = ["governor_router", "health_router", "resources_router"]
