"""Action dispatch.

Maps an action descriptor onto a collaborator call (or a nested run) and
records exactly one execution-log entry per dispatch. Failures come back as
values on :class:`ActionResult`; nothing raised by a collaborator escapes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from agent_workflows.collaborators.base import Collaborator
from agent_workflows.core.errors import (
    AbortError,
    ActionError,
    ConfigError,
    WorkflowError,
    WorkflowRunnerError,
    format_chain,
    wrap_exception,
)
from agent_workflows.workflow.actions import (
    ActionDescriptor,
    ActionKind,
    ExecuteCommandAction,
    ExecutePromptAction,
    LogAction,
    RunWorkflowAction,
)
from agent_workflows.workflow.definition import WorkflowDefinition
from agent_workflows.workflow.library import WorkflowLibrary
from agent_workflows.workflow.run import ActionLogEntry, RunStatus, WorkflowRun, utc_now

logger = logging.getLogger(__name__)

NestedRunner = Callable[[WorkflowDefinition, dict[str, object], WorkflowRun], WorkflowRun]


@dataclass(frozen=True, slots=True)
class ActionResult:
    ok: bool
    message: str
    details: dict[str, object] | None = None
    error: WorkflowRunnerError | None = None

    @classmethod
    def failure(cls, error: WorkflowRunnerError) -> ActionResult:
        return cls(ok=False, message=str(error), error=error)


class ActionDispatcher:
    def __init__(
        self,
        *,
        run_nested: NestedRunner,
        library: WorkflowLibrary | None = None,
        prompts: Collaborator | None = None,
        commands: Collaborator | None = None,
    ) -> None:
        self._run_nested = run_nested
        self._library = library
        self._prompts = prompts
        self._commands = commands

    def dispatch(self, action: ActionDescriptor, run: WorkflowRun) -> ActionResult:
        state = run.current_state or ""
        started = utc_now()
        try:
            result = self._dispatch(action, run)
        except Exception as e:
            logger.exception(
                "Unexpected error dispatching action",
                extra={"run_id": run.id, "state": state, "action": action.kind.value},
            )
            result = ActionResult.failure(
                ActionError(
                    f"Action '{action.kind.value}' failed in state '{state}'",
                    action=action.kind.value,
                    target=action.target,
                    cause=wrap_exception(e),
                )
            )

        run.log.append(
            ActionLogEntry(
                state=state,
                kind=action.kind,
                target=action.target,
                started_at=started,
                finished_at=utc_now(),
                ok=result.ok,
                message=result.message,
                error=format_chain(result.error) if result.error is not None else None,
                details=result.details,
            )
        )
        return result

    def _dispatch(self, action: ActionDescriptor, run: WorkflowRun) -> ActionResult:
        if isinstance(action, LogAction):
            return self._log(action, run)
        if isinstance(action, ExecutePromptAction):
            return self._invoke(self._prompts, action, run)
        if isinstance(action, ExecuteCommandAction):
            return self._invoke(self._commands, action, run)
        if isinstance(action, RunWorkflowAction):
            return self._run_workflow(action, run)
        raise TypeError(f"Unsupported action descriptor: {action!r}")

    def _log(self, action: LogAction, run: WorkflowRun) -> ActionResult:
        level = logging.getLevelName(action.level.upper())
        logger.log(
            level if isinstance(level, int) else logging.INFO,
            action.message,
            extra={"run_id": run.id, "workflow": run.definition.name, "state": run.current_state},
        )
        return ActionResult(ok=True, message=action.message)

    def _invoke(
        self,
        collaborator: Collaborator | None,
        action: ExecutePromptAction | ExecuteCommandAction,
        run: WorkflowRun,
    ) -> ActionResult:
        label = "Prompt" if action.kind is ActionKind.EXECUTE_PROMPT else "Command"
        if collaborator is None:
            return ActionResult.failure(
                ActionError(
                    f"{label} '{action.target}' cannot run",
                    action=action.kind.value,
                    target=action.target,
                    cause=ConfigError(f"No collaborator configured for {action.kind.value}"),
                )
            )

        params = {"name": action.target, "arguments": dict(action.arguments)}
        try:
            outcome = collaborator.invoke(action.kind, params, dict(run.context))
        except Exception as e:
            cause = wrap_exception(e)
            if isinstance(cause, AbortError):
                return ActionResult.failure(cause)
            logger.warning(
                "Collaborator call failed",
                extra={
                    "run_id": run.id,
                    "state": run.current_state,
                    "action": action.kind.value,
                    "target": action.target,
                    "error": str(cause),
                },
            )
            return ActionResult.failure(
                ActionError(
                    f"{label} '{action.target}' failed",
                    action=action.kind.value,
                    target=action.target,
                    cause=cause,
                )
            )

        run.context.update(outcome.context_updates)
        details: dict[str, object] = dict(outcome.details or {})
        if outcome.context_updates:
            details["updated_variables"] = sorted(outcome.context_updates)
        return ActionResult(ok=True, message=outcome.outcome, details=details or None)

    def _run_workflow(self, action: RunWorkflowAction, run: WorkflowRun) -> ActionResult:
        if self._library is None:
            return ActionResult.failure(
                WorkflowError(f"Cannot resolve workflow '{action.workflow}': no library")
            )
        try:
            definition = self._library.get(action.workflow)
        except WorkflowError as e:
            return ActionResult.failure(e)

        child_context = dict(run.context)
        child_context.update(action.arguments)
        child = self._run_nested(definition, child_context, run)

        details: dict[str, object] = {
            "run_id": child.id,
            "status": child.status.value,
            "terminal_state": child.current_state,
            "actions": len(child.log),
        }
        if child.status is RunStatus.COMPLETED:
            run.context.update(child.context)
            return ActionResult(
                ok=True, message=f"Workflow '{definition.name}' completed", details=details
            )
        if child.status is RunStatus.ABORTED and isinstance(child.error, AbortError):
            return ActionResult(
                ok=False, message=str(child.error), details=details, error=child.error
            )
        return ActionResult(
            ok=False,
            message=f"Workflow '{definition.name}' failed",
            details=details,
            error=ActionError(
                f"Workflow '{definition.name}' failed in state '{child.current_state}'",
                action=action.kind.value,
                target=action.workflow,
                cause=child.error,
            ),
        )
