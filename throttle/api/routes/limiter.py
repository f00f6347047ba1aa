from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from throttle.core.auth import verify_api_key
from throttle.core.rate_limit import get_rate_limiter
from throttle.schemas.limiter import LimiterConfigUpdate, LimiterStateResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Limiter"], dependencies=[Depends(verify_api_key)])


@router.get("/limiter", response_model=LimiterStateResponse)
async def get_limiter_state() -> LimiterStateResponse:
    """Return the outbound limiter's live configuration and counters."""
    return LimiterStateResponse.from_stats(get_rate_limiter().get_stats())


@router.patch("/limiter", response_model=LimiterStateResponse)
async def update_limiter_config(update: LimiterConfigUpdate) -> LimiterStateResponse:
    """Reconfigure the outbound limiter without restarting it.

    Only the fields present in the body change. Queued operations are kept
    and pick up the new rate on the next scheduler tick.

    Args:
        update: Fields to change.

    Returns:
        LimiterStateResponse: State after the update.
    """
    limiter = get_rate_limiter()

    if update.max_operations_per_window is not None:
        limiter.set_max_operations_per_window(update.max_operations_per_window)
    if update.queue_warning_threshold is not None:
        limiter.set_queue_warning_threshold(update.queue_warning_threshold)

    logger.info(
        "limiter.admin_update",
        extra={"fields": sorted(update.model_dump(exclude_none=True))},
    )
    return LimiterStateResponse.from_stats(limiter.get_stats())
