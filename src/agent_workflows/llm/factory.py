"""Factory for creating LLM providers."""

import logging

from agent_workflows.core.config import LLMConfig
from agent_workflows.llm.provider import EchoProvider, LLMProvider

logger = logging.getLogger(__name__)


class LLMFactory:
    """Factory for creating LLM provider instances."""

    @staticmethod
    def create(config: LLMConfig) -> LLMProvider:
        """Create an LLM provider based on configuration.

        Raises:
            ValueError: If provider type is not supported.
        """
        logger.info("Creating LLM provider", extra={"provider": config.provider})

        if config.provider == "openai":
            from agent_workflows.llm.openai_provider import OpenAIProvider

            return OpenAIProvider(config)
        elif config.provider == "llama":
            from agent_workflows.llm.llama_provider import LLaMAProvider

            return LLaMAProvider(config)
        elif config.provider == "echo":
            return EchoProvider()
        else:
            raise ValueError(f"Unsupported LLM provider: {config.provider}")
