from __future__ import annotations

from throttle.api.routes.generate import router as generate_router
from throttle.api.routes.health import router as health_router
from throttle.api.routes.limiter import router as limiter_router

__all__ = ["generate_router", "health_router", "limiter_router"]
