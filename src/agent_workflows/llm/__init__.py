"""LLM package initialization."""

from agent_workflows.llm.factory import LLMFactory
from agent_workflows.llm.provider import EchoProvider, LLMProvider

__all__ = [
    "EchoProvider",
    "LLMFactory",
    "LLMProvider",
]
