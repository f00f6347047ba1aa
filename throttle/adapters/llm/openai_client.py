"""OpenAI LLM client adapter."""

import json
import logging
import time
from typing import Any

from openai import AsyncOpenAI

from throttle.adapters.llm.base import AbstractLLMClient
from throttle.core.errors import LLMAppError

logger = logging.getLogger(__name__)

# Chat-completion options forwarded verbatim when the caller provides them
_PASSTHROUGH_PARAMS = (
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
    "seed",
)


class OpenAIClient(AbstractLLMClient):
    """Chat-completions client built on the official async SDK.

    This class does no throttling of its own; wrap it in
    ``ThrottledLLMClient`` to share the process-wide rate limit.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout_seconds: float = 45.0,
    ) -> None:
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
        )
        self.model = model

    def _build_request(
        self,
        system: str,
        prompt: str,
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        request_params: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": kwargs.pop("temperature", 0.2),
        }
        for param in _PASSTHROUGH_PARAMS:
            if param in kwargs:
                request_params[param] = kwargs[param]
        return request_params

    async def _complete(self, request_params: dict[str, Any]) -> str:
        start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(**request_params)
        except Exception as exc:
            raise LLMAppError(
                code="llm_request_failed",
                message=f"OpenAI API error: {exc}",
                details={"model": self.model},
            ) from exc

        content = response.choices[0].message.content
        logger.debug(
            "llm.completion",
            extra={
                "model": self.model,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        if content is None:
            raise LLMAppError(
                code="llm_empty_response",
                message="LLM returned empty response",
                details={"model": self.model},
            )
        return content.strip()

    async def generate_json(
        self,
        prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        request_params = self._build_request(
            "Output JSON only. No extra text or markdown formatting.",
            prompt,
            kwargs,
        )
        if schema is not None:
            request_params["response_format"] = {"type": "json_object"}

        content = await self._complete(request_params)
        try:
            return json.loads(content)
        except json.JSONDecodeError as exc:
            raise LLMAppError(
                code="llm_invalid_json",
                message=f"LLM returned invalid JSON: {exc}",
                details={"model": self.model},
            ) from exc

    async def generate_text(self, prompt: str, **kwargs: Any) -> str:
        system = kwargs.pop("system", "You are a helpful writing assistant.")
        return await self._complete(self._build_request(system, prompt, kwargs))
