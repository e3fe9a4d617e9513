"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from helpers import TDD_STEPS, FakeCollaborator, make_workflow

from agent_workflows.core.config import (
    ExecutorConfig,
    GitHubConfig,
    LLMConfig,
    WorkflowConfig,
)
from agent_workflows.workflow.abort import AbortMonitor
from agent_workflows.workflow.definition import WorkflowDefinition
from agent_workflows.workflow.executor import WorkflowExecutor
from agent_workflows.workflow.library import WorkflowLibrary


@pytest.fixture
def control_dir(tmp_path: Path) -> Path:
    """Provide a temporary control directory."""
    return tmp_path / ".agent-workflows"


@pytest.fixture
def abort_monitor(control_dir: Path) -> AbortMonitor:
    return AbortMonitor(control_dir)


@pytest.fixture
def prompts() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def commands() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def library() -> WorkflowLibrary:
    return WorkflowLibrary()


@pytest.fixture
def executor(
    abort_monitor: AbortMonitor,
    library: WorkflowLibrary,
    prompts: FakeCollaborator,
    commands: FakeCollaborator,
) -> WorkflowExecutor:
    return WorkflowExecutor(
        abort_monitor=abort_monitor,
        library=library,
        prompts=prompts,
        commands=commands,
    )


@pytest.fixture
def tdd_workflow() -> WorkflowDefinition:
    return make_workflow("tdd", TDD_STEPS)


@pytest.fixture
def llm_config() -> LLMConfig:
    """Provide a test LLM configuration."""
    return LLMConfig(provider="echo")


@pytest.fixture
def github_config() -> GitHubConfig:
    """Provide a test GitHub configuration."""
    return GitHubConfig(
        token="test-token",
        repository="test-owner/test-repo",
    )


@pytest.fixture
def executor_config(tmp_path: Path, control_dir: Path) -> ExecutorConfig:
    workflows_dir = tmp_path / "workflows"
    prompts_dir = tmp_path / "prompts"
    workflows_dir.mkdir()
    prompts_dir.mkdir()
    return ExecutorConfig(
        workflows_dir=workflows_dir,
        prompts_dir=prompts_dir,
        control_dir=control_dir,
        commands={"greet": "echo hello"},
    )


@pytest.fixture
def workflow_config(llm_config: LLMConfig, executor_config: ExecutorConfig) -> WorkflowConfig:
    """Provide a test workflow configuration."""
    return WorkflowConfig(
        log_level="DEBUG",
        json_logs=False,
        llm=llm_config,
        github=GitHubConfig(),
        executor=executor_config,
    )


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """The CLI and server reconfigure root logging; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
