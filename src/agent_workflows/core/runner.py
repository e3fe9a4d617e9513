"""Wires configuration, collaborators and the executor together."""

import logging
from collections.abc import Mapping
from pathlib import Path

from agent_workflows.collaborators.base import Collaborator, CollaboratorResult
from agent_workflows.collaborators.commands import CommandCollaborator
from agent_workflows.collaborators.git import GitOperations
from agent_workflows.collaborators.issues import IssueTracker
from agent_workflows.collaborators.prompts import PromptCollaborator, PromptLibrary
from agent_workflows.core.config import WorkflowConfig
from agent_workflows.core.errors import ConfigError
from agent_workflows.llm.factory import LLMFactory
from agent_workflows.llm.provider import LLMProvider
from agent_workflows.workflow.abort import AbortMonitor, CancellationToken
from agent_workflows.workflow.actions import ActionKind
from agent_workflows.workflow.executor import WorkflowExecutor
from agent_workflows.workflow.library import WorkflowLibrary
from agent_workflows.workflow.run import WorkflowRun

logger = logging.getLogger(__name__)


class UnavailableCollaborator:
    """Stands in for a collaborator that could not be configured."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def invoke(
        self,
        kind: ActionKind,
        params: Mapping[str, object],
        context: Mapping[str, object],
    ) -> CollaboratorResult:
        raise ConfigError(self.reason)


class WorkflowRunner:
    """Entry point for running named workflows.

    Loads workflow definitions and prompts from the configured directories and
    builds the default collaborators. Prompt execution is only available when
    an LLM provider can be created; GitHub issue commands only when a token and
    repository are configured.
    """

    def __init__(
        self,
        config: WorkflowConfig | None = None,
        *,
        llm: LLMProvider | None = None,
        issues: IssueTracker | None = None,
        work_dir: Path | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Configuration object. If None, loads from environment.
            llm: Provider for prompt actions. If None, created from config.
            issues: Issue tracker. If None, created when GitHub is configured.
            work_dir: Directory git and shell commands run in (default: cwd).
        """
        self.config = config or WorkflowConfig()
        executor_config = self.config.executor
        self.work_dir = work_dir or Path.cwd()

        self.abort_monitor = AbortMonitor(executor_config.control_dir)
        if executor_config.clear_abort_on_start and self.abort_monitor.clear():
            logger.info("Removed stale abort marker on start")

        self.library = WorkflowLibrary()
        self.library.load_directory(executor_config.workflows_dir)
        self.prompt_library = PromptLibrary.from_directory(executor_config.prompts_dir)

        self.prompts: Collaborator = self._build_prompts(llm)

        self.issues = issues
        if self.issues is None and self.config.github.token and self.config.github.repository:
            self.issues = IssueTracker(self.config.github)

        self.git = GitOperations(
            self.work_dir,
            timeout=executor_config.command_timeout_seconds,
            abort_monitor=self.abort_monitor,
        )
        self.commands = CommandCollaborator(
            work_dir=self.work_dir,
            git=self.git,
            issues=self.issues,
            shell_commands=executor_config.commands,
            timeout=executor_config.command_timeout_seconds,
        )

        self.executor = WorkflowExecutor(
            abort_monitor=self.abort_monitor,
            library=self.library,
            prompts=self.prompts,
            commands=self.commands,
            max_depth=executor_config.max_depth,
        )
        logger.info(
            "Workflow runner initialized",
            extra={"workflows": self.library.names(), "commands": self.commands.names()},
        )

    def _build_prompts(self, llm: LLMProvider | None) -> Collaborator:
        if llm is None:
            try:
                llm = LLMFactory.create(self.config.llm)
            except (ValueError, ImportError) as e:
                logger.warning("Prompt execution unavailable", extra={"error": str(e)})
                return UnavailableCollaborator(f"LLM provider unavailable: {e}")
        return PromptCollaborator(self.prompt_library, llm)

    def run(
        self,
        name: str,
        variables: dict[str, object] | None = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> WorkflowRun:
        """Run the named workflow to a terminal status.

        Raises:
            WorkflowError: If no workflow with that name is loaded.
        """
        definition = self.library.get(name)
        return self.executor.run(definition, variables, cancellation=cancellation)

    def close(self) -> None:
        if self.issues is not None:
            self.issues.close()
