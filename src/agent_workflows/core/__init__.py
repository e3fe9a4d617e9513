"""Core package initialization."""

from agent_workflows.core.config import (
    ExecutorConfig,
    GitHubConfig,
    LLMConfig,
    WorkflowConfig,
)
from agent_workflows.core.errors import ErrorKind, ExitStatus, WorkflowRunnerError

__all__ = [
    "ErrorKind",
    "ExecutorConfig",
    "ExitStatus",
    "GitHubConfig",
    "LLMConfig",
    "WorkflowConfig",
    "WorkflowRunnerError",
]
