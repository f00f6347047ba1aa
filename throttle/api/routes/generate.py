from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends

from throttle.adapters.llm import AbstractLLMClient, create_llm_client, create_provider_client
from throttle.core.auth import verify_api_key
from throttle.schemas.generate import GenerateRequest, GenerateResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generation"], dependencies=[Depends(verify_api_key)])


@lru_cache(maxsize=1)
def _shared_provider_client() -> AbstractLLMClient:
    return create_provider_client()


def get_llm_client() -> AbstractLLMClient:
    """Provider client reused across requests, throttled by the live limiter.

    The wrapper is rebuilt per request so a limiter replaced after shutdown
    is picked up without restarting the provider client.
    """
    return create_llm_client(_shared_provider_client())


@router.post("/generate", response_model=GenerateResponse)
async def generate_text(
    body: GenerateRequest,
    llm: AbstractLLMClient = Depends(get_llm_client),
) -> GenerateResponse:
    """Generate text through the shared outbound rate limit.

    Requests beyond the configured rate wait in the limiter's queue instead
    of being rejected.

    Raises:
        LLMAppError: Provider failure (502).
        LimiterClosedError: The limiter is shutting down (503).
        ValidationAppError: Provider is not configured (400).
    """
    options: dict[str, Any] = {}
    if body.system is not None:
        options["system"] = body.system
    if body.max_tokens is not None:
        options["max_tokens"] = body.max_tokens

    text = await llm.generate_text(body.prompt, **options)
    logger.info("llm.generated", extra={"chars": len(text)})
    return GenerateResponse(text=text)
