"""Process-wide outbound rate limiter.

Every consumer that talks to a rate-limited third-party API shares one
limiter, so the configured rate applies to the process as a whole rather than
to each client object.

The instance is built lazily from ``settings.limiter`` and is never rebuilt
when settings change: the limiter owns its live configuration (see the admin
routes), and rebuilding would strand queued work.
"""

from __future__ import annotations

import logging
import threading

from throttle.adapters.rate_limit import Operation, RateLimiter
from throttle.adapters.rate_limit.base import T
from throttle.core.config import LimiterSettings, settings

logger = logging.getLogger(__name__)


_limiter: RateLimiter | None = None
# Sync routes run in the threadpool, so first use can race.
_limiter_lock = threading.Lock()


def build_rate_limiter(limiter_settings: LimiterSettings | None = None) -> RateLimiter:
    """Create a limiter from settings.

    Args:
        limiter_settings: Optional settings; defaults to global settings.

    Returns:
        RateLimiter: New, not yet started limiter.
    """
    cfg = limiter_settings or settings.limiter
    return RateLimiter(
        cfg.max_operations_per_window,
        cfg.queue_warning_threshold,
        tick_interval_seconds=cfg.tick_interval_seconds,
    )


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter, creating it on first use.

    A limiter closed during shutdown is replaced on the next call so that a
    restarted app (or the next test) gets a working instance.

    Returns:
        RateLimiter: Shared limiter instance.
    """

    global _limiter

    with _limiter_lock:
        if _limiter is None or _limiter.closed:
            _limiter = build_rate_limiter()
            config = _limiter.get_config()
            logger.info(
                "rate_limiter.created",
                extra={
                    "max_operations_per_window": config.max_operations_per_window,
                    "queue_warning_threshold": config.queue_warning_threshold,
                    "tick_interval_s": settings.limiter.tick_interval_seconds,
                },
            )
        return _limiter


async def run_throttled(operation: Operation[T]) -> T:
    """Run ``operation`` through the shared limiter.

    Convenience for call sites that do not hold a limiter reference.
    """
    return await get_rate_limiter().execute(operation)


async def shutdown_rate_limiter(*, drain: bool = True) -> None:
    """Close the shared limiter if one was created.

    Args:
        drain: Wait for queued work to finish before stopping (default), or
            fail it with ``LimiterClosedError``.
    """

    global _limiter

    with _limiter_lock:
        limiter, _limiter = _limiter, None
    if limiter is not None:
        await limiter.aclose(drain=drain)
