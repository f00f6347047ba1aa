from __future__ import annotations

from fastapi import APIRouter

from throttle.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Reports the outbound queue depth alongside the status so load balancers
    and dashboards can spot backpressure without credentials.

    Returns:
        dict: ``{"status": "ok", "queue_length": <int>}``.
    """

    return {"status": "ok", "queue_length": get_rate_limiter().get_queue_length()}
