from abc import ABC, abstractmethod
from typing import Any


class AbstractLLMClient(ABC):
    """Interface for generative-AI clients whose calls may be throttled."""

    @abstractmethod
    async def generate_json(
        self,
        prompt: str,
        *,
        schema: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Generate a structured JSON response from the model.

        Args:
            prompt: Prompt to send to the model.
            schema: Optional JSON schema; when given, JSON mode is enforced.
            **kwargs: Provider-specific options (e.g., temperature, max_tokens).

        Returns:
            dict[str, Any]: Parsed JSON object returned by the model.

        Raises:
            LLMAppError: If the provider call fails or the response cannot be parsed.
        """
        ...

    @abstractmethod
    async def generate_text(self, prompt: str, **kwargs: Any) -> str:
        """Generate free-form text (story beats, descriptions, dialogue)."""
        ...
