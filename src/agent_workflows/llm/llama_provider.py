"""Local LLaMA LLM provider implementation."""

import logging
from typing import Any

from agent_workflows.core.config import LLMConfig
from agent_workflows.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class LLaMAProvider(LLMProvider):
    """Runs prompts against a local LLaMA model.

    Requires the optional ``llama`` extra:
        pip install agent-workflows[llama]
    """

    name = "llama"

    def __init__(self, config: LLMConfig) -> None:
        """Load the model.

        Raises:
            ValueError: If model path is not provided.
            ImportError: If llama-cpp-python is not installed.
        """
        if not config.llama_model_path:
            raise ValueError("LLaMA model path is required")

        try:
            from llama_cpp import Llama
        except ImportError as e:
            raise ImportError(
                "llama-cpp-python is required for the LLaMA provider. "
                "Install it with: pip install agent-workflows[llama]"
            ) from e

        self.config = config

        logger.info("Loading LLaMA model", extra={"model_path": str(config.llama_model_path)})

        self.llm = Llama(
            model_path=str(config.llama_model_path),
            n_ctx=config.llama_n_ctx,
            n_threads=config.llama_n_threads,
            verbose=False,
        )

    def generate(
        self,
        prompt: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        result = self.llm.create_chat_completion(
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens or 512,
            temperature=temperature if temperature is not None else 0.7,
            **kwargs,
        )
        return result["choices"][0]["message"]["content"] or ""
