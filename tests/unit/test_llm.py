"""Unit tests for LLM providers."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from agent_workflows.core.config import LLMConfig
from agent_workflows.llm.factory import LLMFactory
from agent_workflows.llm.openai_provider import OpenAIProvider
from agent_workflows.llm.provider import EchoProvider


def test_factory_creates_echo_provider() -> None:
    provider = LLMFactory.create(LLMConfig(provider="echo"))
    assert isinstance(provider, EchoProvider)
    assert provider.generate("hello") == "hello"
    assert provider.generate("abcdefghij", max_tokens=1) == "abcd"


def test_factory_requires_openai_key() -> None:
    with pytest.raises(ValueError, match="OpenAI API key is required"):
        LLMFactory.create(LLMConfig(provider="openai", openai_api_key=None))


def test_factory_requires_llama_model_path() -> None:
    with pytest.raises(ValueError, match="model path is required"):
        LLMFactory.create(LLMConfig(provider="llama"))


def test_factory_rejects_unknown_provider() -> None:
    config = LLMConfig.model_construct(provider="mystery")
    with pytest.raises(ValueError, match="Unsupported LLM provider"):
        LLMFactory.create(config)


def test_openai_provider_sends_chat_completion(llm_config: LLMConfig) -> None:
    client = Mock()
    client.chat.completions.create.return_value = Mock(
        choices=[Mock(message=Mock(content="Looks good"))]
    )
    config = llm_config.model_copy(update={"openai_model": "gpt-4o", "openai_temperature": 0.2})
    provider = OpenAIProvider(config, client=client)

    assert provider.generate("Review this") == "Looks good"
    client.chat.completions.create.assert_called_once_with(
        model="gpt-4o",
        messages=[{"role": "user", "content": "Review this"}],
        temperature=0.2,
    )

    provider.generate("Again", max_tokens=50, temperature=0.0)
    assert client.chat.completions.create.call_args.kwargs["max_tokens"] == 50
    assert client.chat.completions.create.call_args.kwargs["temperature"] == 0.0
