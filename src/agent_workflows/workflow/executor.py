"""The workflow state machine executor.

A run moves ``not_started -> running -> completed | aborted | failed``. While
running it loops over the definition's path: check for abort, enter the state,
dispatch its action, check for abort again, then either complete (terminal
state) or move to the successor.

The executor keeps no memory between runs; the abort marker is the only
state shared between runs and processes.
"""

from __future__ import annotations

import logging

from agent_workflows.collaborators.base import Collaborator
from agent_workflows.core.errors import (
    AbortError,
    ActionError,
    WorkflowError,
    WorkflowRunnerError,
    wrap_exception,
)
from agent_workflows.workflow.abort import AbortMonitor, CancellationToken
from agent_workflows.workflow.definition import WorkflowDefinition
from agent_workflows.workflow.dispatcher import ActionDispatcher
from agent_workflows.workflow.library import WorkflowLibrary
from agent_workflows.workflow.run import RunStatus, WorkflowRun

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


class WorkflowExecutor:
    """Drives workflow runs to a terminal status.

    Args:
        abort_monitor: Source of the cross-process abort signal.
        library: Definitions available to ``Run workflow`` actions.
        prompts: Collaborator for ``Execute prompt`` actions.
        commands: Collaborator for ``Execute command`` actions.
        max_depth: Maximum nesting depth of ``Run workflow`` invocations.
    """

    def __init__(
        self,
        *,
        abort_monitor: AbortMonitor,
        library: WorkflowLibrary | None = None,
        prompts: Collaborator | None = None,
        commands: Collaborator | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self._abort_monitor = abort_monitor
        self._max_depth = max_depth
        self._dispatcher = ActionDispatcher(
            run_nested=self._run_nested,
            library=library,
            prompts=prompts,
            commands=commands,
        )

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def start(
        self,
        definition: WorkflowDefinition,
        context: dict[str, object] | None = None,
        *,
        parent: WorkflowRun | None = None,
        cancellation: CancellationToken | None = None,
    ) -> WorkflowRun:
        """Create a fresh, not yet started run."""

        if cancellation is None:
            cancellation = parent.cancellation if parent is not None else CancellationToken()
        return WorkflowRun(
            definition=definition,
            context=dict(context or {}),
            parent=parent,
            cancellation=cancellation,
        )

    def run(
        self,
        definition: WorkflowDefinition,
        context: dict[str, object] | None = None,
        *,
        parent: WorkflowRun | None = None,
        cancellation: CancellationToken | None = None,
    ) -> WorkflowRun:
        """Create a run and drive it to completion."""

        run = self.start(definition, context, parent=parent, cancellation=cancellation)
        return self.execute(run)

    def execute(self, run: WorkflowRun) -> WorkflowRun:
        """Drive a not yet started run to a terminal status."""

        run.mark_running()
        extra = {"run_id": run.id, "workflow": run.definition.name, "depth": run.depth}
        logger.info("Workflow run started", extra=extra)

        try:
            self._drive(run)
        except Exception as e:
            logger.exception("Workflow run crashed", extra=extra)
            if run.status is RunStatus.RUNNING:
                run.fail(
                    WorkflowError(
                        f"Unexpected error running workflow '{run.definition.name}'",
                        cause=wrap_exception(e),
                    )
                )

        if run.status is RunStatus.COMPLETED:
            logger.info("Workflow run completed", extra={**extra, "actions": len(run.log)})
        elif run.status is RunStatus.ABORTED:
            logger.warning(
                "Workflow run aborted",
                extra={**extra, "state": run.current_state, "error": str(run.error)},
            )
        else:
            logger.error(
                "Workflow run failed",
                extra={**extra, "state": run.current_state, "error": str(run.error)},
            )
        return run

    def _drive(self, run: WorkflowRun) -> None:
        guard = self._check_nesting(run)
        if guard is not None:
            run.fail(guard)
            return

        definition = run.definition
        current: str | None = definition.start
        while current is not None:
            aborted = self._check_abort(run)
            if aborted is not None:
                run.abort(aborted)
                return

            run.enter(current)
            logger.debug(
                "Entering state",
                extra={"run_id": run.id, "workflow": definition.name, "state": current},
            )
            result = self._dispatcher.dispatch(definition.action_for(current), run)

            # An action may fail because it signalled abort; abort wins.
            aborted = self._check_abort(run)
            if aborted is not None:
                run.abort(aborted)
                return

            if not result.ok:
                error = result.error or ActionError(
                    result.message or f"Action failed in state '{current}'",
                    action=definition.action_for(current).kind.value,
                )
                if isinstance(error, AbortError):
                    run.cancellation.cancel(error.reason)
                    run.abort(error)
                else:
                    run.fail(error)
                return

            if definition.is_terminal(current):
                run.complete()
                return
            current = definition.next_state(current)

        run.fail(WorkflowError(f"Workflow '{definition.name}' has no path to its terminal state"))

    def _check_abort(self, run: WorkflowRun) -> AbortError | None:
        if self._abort_monitor.is_aborted():
            reason = self._abort_monitor.reason()
            run.cancellation.cancel(reason)
            return AbortError(reason)
        if run.cancellation.cancelled:
            return AbortError(run.cancellation.reason)
        return None

    def _check_nesting(self, run: WorkflowRun) -> WorkflowRunnerError | None:
        chain = " -> ".join(run.ancestry())
        if run.depth > self._max_depth:
            return WorkflowError(
                f"Maximum workflow nesting depth ({self._max_depth}) exceeded: {chain}"
            )
        parent = run.parent
        while parent is not None:
            if parent.definition.name == run.definition.name:
                return WorkflowError(f"Recursive workflow invocation: {chain}")
            parent = parent.parent
        return None

    def _run_nested(
        self, definition: WorkflowDefinition, context: dict[str, object], parent: WorkflowRun
    ) -> WorkflowRun:
        return self.run(definition, context, parent=parent, cancellation=parent.cancellation)
