"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any


class LLMProvider(ABC):
    """Backend that answers rendered prompts.

    ``Execute prompt`` actions render a template and hand the text to a provider
    (OpenAI, a local LLaMA model, or the offline echo provider).
    """

    name: str = "llm"

    @abstractmethod
    def generate(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Generate a completion for a rendered prompt.

        Args:
            prompt: The rendered prompt text.
            max_tokens: Maximum tokens to generate.
            temperature: Sampling temperature.
            **kwargs: Additional provider-specific parameters.

        Returns:
            The completion text.
        """


class EchoProvider(LLMProvider):
    """Returns the prompt unchanged. Useful offline and for dry runs."""

    name = "echo"

    def generate(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        if max_tokens is not None:
            return prompt[: max_tokens * 4]
        return prompt
