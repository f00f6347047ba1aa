"""Rate-limited decorator for LLM clients."""

from __future__ import annotations

from typing import Any

from throttle.adapters.llm.base import AbstractLLMClient
from throttle.adapters.rate_limit import AbstractRateLimiter


class ThrottledLLMClient(AbstractLLMClient):
    """Route every call of an inner client through a rate limiter.

    Results and exceptions pass through untouched; only the start time of
    each provider call changes. Several wrappers may share one limiter, in
    which case the rate applies to all of them together.
    """

    def __init__(self, inner: AbstractLLMClient, limiter: AbstractRateLimiter) -> None:
        self.inner = inner
        self.limiter = limiter

    async def generate_json(
        self,
        prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        return await self.limiter.execute(
            lambda: self.inner.generate_json(prompt, schema=schema, **kwargs)
        )

    async def generate_text(self, prompt: str, **kwargs: Any) -> str:
        return await self.limiter.execute(
            lambda: self.inner.generate_text(prompt, **kwargs)
        )
