"""Application factory for the limiter admin API.

Centralizes app construction (metadata, middleware, handlers, routers, and
the shared limiter's lifecycle) so tests can build isolated instances.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from throttle.api.routes import generate_router, health_router, limiter_router
from throttle.core.config import settings
from throttle.core.exception_handlers import setup_exception_handlers
from throttle.core.logging import configure_logging
from throttle.core.middleware import request_id_middleware
from throttle.core.openapi import apply_openapi_customizations
from throttle.core.rate_limit import get_rate_limiter, shutdown_rate_limiter


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Start the scheduler on the server's loop; drain queued calls on the
    # way out so no caller is left waiting on a dead process.
    get_rate_limiter().start()
    try:
        yield
    finally:
        await shutdown_rate_limiter(drain=True)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Outbound Throttle",
        description=(
            "Admin API for the process-wide outbound request rate limiter that "
            "throttles calls to third-party generative-AI providers. Exposes "
            "live configuration, queue depth and counters, plus a throttled text "
            "generation endpoint. Requires X-API-Key."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(limiter_router, prefix="/v1")
    app.include_router(generate_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
