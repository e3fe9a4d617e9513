"""OpenAI LLM provider implementation."""

import logging
from typing import Any

from openai import OpenAI

from agent_workflows.core.config import LLMConfig
from agent_workflows.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Sends rendered prompts to the OpenAI chat completions API."""

    name = "openai"

    def __init__(self, config: LLMConfig, client: OpenAI | None = None) -> None:
        """Initialize the OpenAI provider.

        Args:
            config: LLM configuration.
            client: Pre-built client (tests inject a mock here).

        Raises:
            ValueError: If API key is not provided.
        """
        if client is None and not config.openai_api_key:
            raise ValueError("OpenAI API key is required")

        self.config = config
        self.client = client or OpenAI(api_key=config.openai_api_key)
        self.model = config.openai_model
        self.temperature = config.openai_temperature

        logger.info("OpenAI provider initialized", extra={"model": self.model})

    def generate(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        temp = temperature if temperature is not None else self.temperature

        logger.debug("Requesting completion", extra={"prompt_chars": len(prompt)})

        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temp,
            **kwargs,
        )

        content = response.choices[0].message.content or ""
        logger.debug("Completion received", extra={"response_chars": len(content)})

        return content
