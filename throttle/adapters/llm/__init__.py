"""LLM adapter layer - provider clients and the throttling wrapper."""

from throttle.adapters.llm.base import AbstractLLMClient
from throttle.adapters.llm.factory import create_llm_client, create_provider_client
from throttle.adapters.llm.openai_client import OpenAIClient
from throttle.adapters.llm.throttled import ThrottledLLMClient

__all__ = [
    "AbstractLLMClient",
    "OpenAIClient",
    "ThrottledLLMClient",
    "create_llm_client",
    "create_provider_client",
]
