"""Walk through the rate limiter's behaviour against a fake API.

Run with:
    python -m throttle.scripts.demo

Each scenario builds its own limiter, fires a burst of simulated API calls
and logs how long the burst took and what the queue looked like.
"""

from __future__ import annotations

import asyncio
import logging
import time

from throttle.adapters.rate_limit import RateLimiter
from throttle.core.logging import configure_logging

logger = logging.getLogger("throttle.demo")

FAKE_LATENCY_SECONDS = 0.05


async def fake_api_call(request_id: int, *, fail: bool = False) -> str:
    logger.info("demo.request_started", extra={"demo_request": request_id})
    await asyncio.sleep(FAKE_LATENCY_SECONDS)
    if fail:
        raise RuntimeError(f"Request {request_id} failed")
    return f"Response {request_id}"


async def _burst(limiter: RateLimiter, count: int, offset: int = 0) -> tuple[list[str], float]:
    start = time.perf_counter()
    calls = [
        limiter.execute(lambda i=i: fake_api_call(i + offset))
        for i in range(count)
    ]
    gathered = asyncio.gather(*calls)
    # Let every submission reach the limiter before sampling the queue.
    await asyncio.sleep(0)
    logger.info(
        "demo.burst_submitted",
        extra={"requests": count, "queue_length": limiter.get_queue_length()},
    )
    results = await gathered
    return results, time.perf_counter() - start


async def burst_under_limit() -> None:
    async with RateLimiter(10, 20) as limiter:
        results, elapsed = await _burst(limiter, 5)
    logger.info(
        "demo.burst_under_limit",
        extra={"completed": len(results), "elapsed_s": round(elapsed, 3)},
    )


async def burst_over_limit() -> None:
    async with RateLimiter(5, 20) as limiter:
        results, elapsed = await _burst(limiter, 20)
    # 20 calls at 5/s: four windows, so roughly three seconds end to end.
    logger.info(
        "demo.burst_over_limit",
        extra={"completed": len(results), "elapsed_s": round(elapsed, 3)},
    )


async def queue_warning() -> None:
    # 2/s with a threshold of 5: the queue crosses it during the burst and
    # the limiter logs a single "Queue length has reached" warning.
    async with RateLimiter(2, 5) as limiter:
        results, elapsed = await _burst(limiter, 10)
    logger.info(
        "demo.queue_warning",
        extra={"completed": len(results), "elapsed_s": round(elapsed, 3)},
    )


async def dynamic_config() -> None:
    async with RateLimiter(5, 20) as limiter:
        _, slow = await _burst(limiter, 10)
        limiter.set_max_operations_per_window(20)
        _, fast = await _burst(limiter, 10, offset=10)
    logger.info(
        "demo.dynamic_config",
        extra={
            "elapsed_at_5_s": round(slow, 3),
            "elapsed_at_20_s": round(fast, 3),
            "speedup_pct": round((slow - fast) / slow * 100, 1) if slow else 0.0,
        },
    )


async def error_isolation() -> None:
    async with RateLimiter(10, 20) as limiter:
        outcomes = await asyncio.gather(
            *(
                limiter.execute(lambda i=i: fake_api_call(i, fail=i % 3 == 0))
                for i in range(10)
            ),
            return_exceptions=True,
        )
    failed = sum(isinstance(o, Exception) for o in outcomes)
    logger.info(
        "demo.error_isolation",
        extra={"succeeded": len(outcomes) - failed, "failed": failed},
    )


SCENARIOS = (
    burst_under_limit,
    burst_over_limit,
    queue_warning,
    dynamic_config,
    error_isolation,
)


async def run_all() -> None:
    for scenario in SCENARIOS:
        logger.info("demo.scenario", extra={"scenario": scenario.__name__})
        await scenario()


def main() -> None:
    configure_logging()
    asyncio.run(run_all())


if __name__ == "__main__":
    main()
