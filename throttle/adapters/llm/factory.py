"""Factory for LLM client instances."""

from throttle.adapters.llm.base import AbstractLLMClient
from throttle.adapters.llm.openai_client import OpenAIClient
from throttle.adapters.llm.throttled import ThrottledLLMClient
from throttle.core.config import settings
from throttle.core.errors import ValidationAppError
from throttle.core.rate_limit import get_rate_limiter


def create_provider_client() -> AbstractLLMClient:
    """Build the bare client for the configured provider."""
    provider = settings.llm.provider.lower()

    if provider == "openai":
        if not settings.llm.api_key:
            raise ValidationAppError(
                code="llm_missing_api_key",
                message="OpenAI provider requires LLM_API_KEY environment variable",
            )
        return OpenAIClient(
            api_key=settings.llm.api_key,
            model=settings.llm.model,
            base_url=settings.llm.base_url,
            timeout_seconds=settings.llm.timeout_seconds,
        )

    raise ValidationAppError(
        code="llm_unknown_provider",
        message=f"Unknown LLM provider: '{provider}'. Supported providers: openai",
    )


def create_llm_client(inner: AbstractLLMClient | None = None) -> AbstractLLMClient:
    """Build the configured provider client.

    When ``LIMITER_ENABLED`` is true (the default) the client is wrapped so
    its calls share the process-wide outbound rate limit.

    Args:
        inner: Existing provider client to reuse; a new one is built from
            settings when omitted.

    Returns:
        AbstractLLMClient: Ready-to-use client.

    Raises:
        ValidationAppError: If provider-specific requirements are not met.
    """
    client = inner or create_provider_client()
    if settings.limiter.enabled:
        return ThrottledLLMClient(client, get_rate_limiter())
    return client
