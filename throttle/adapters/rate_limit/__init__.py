"""Client-side rate limiting for outbound operations.

The in-memory limiter queues excess work in submission order and promotes it
from a background scheduler as window capacity frees up. Call sites depend on
``AbstractRateLimiter`` so the strategy can be swapped later.
"""

from throttle.adapters.rate_limit.base import (
    AbstractRateLimiter,
    LimiterStats,
    Operation,
    RateLimiterConfig,
)
from throttle.adapters.rate_limit.in_memory import RateLimiter

__all__ = [
    "AbstractRateLimiter",
    "LimiterStats",
    "Operation",
    "RateLimiter",
    "RateLimiterConfig",
]
