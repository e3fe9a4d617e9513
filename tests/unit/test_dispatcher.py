from __future__ import annotations

from collections.abc import Mapping
from unittest.mock import Mock

import pytest
from helpers import FakeCollaborator, make_workflow

from agent_workflows.collaborators.base import CollaboratorResult
from agent_workflows.core.errors import ActionError, ProtocolError, WorkflowRunnerError
from agent_workflows.workflow.actions import (
    ActionKind,
    ExecuteCommandAction,
    ExecutePromptAction,
    LogAction,
)
from agent_workflows.workflow.dispatcher import ActionDispatcher
from agent_workflows.workflow.run import WorkflowRun


@pytest.fixture
def run() -> WorkflowRun:
    definition = make_workflow("demo", [("only", 'Log "hello"')])
    run = WorkflowRun(definition=definition, context={"issue_name": "login"})
    run.mark_running()
    run.enter("only")
    return run


def _dispatcher(**collaborators: object) -> ActionDispatcher:
    return ActionDispatcher(run_nested=Mock(), **collaborators)  # type: ignore[arg-type]


def test_log_action_always_succeeds_and_is_recorded(
    run: WorkflowRun, caplog: pytest.LogCaptureFixture
) -> None:
    dispatcher = _dispatcher()

    with caplog.at_level("INFO"):
        result = dispatcher.dispatch(LogAction(message="hello", level="warning"), run)

    assert result.ok
    assert len(run.log) == 1
    entry = run.log[0]
    assert entry.state == "only"
    assert entry.kind is ActionKind.LOG
    assert entry.message == "hello"
    assert entry.finished_at >= entry.started_at
    assert any(r.levelname == "WARNING" and r.getMessage() == "hello" for r in caplog.records)


def test_prompt_receives_name_arguments_and_context(run: WorkflowRun) -> None:
    prompts = FakeCollaborator()
    dispatcher = _dispatcher(prompts=prompts)

    dispatcher.dispatch(ExecutePromptAction(prompt="review", arguments={"focus": "tests"}), run)

    kind, name, arguments, context = prompts.calls[0]
    assert kind is ActionKind.EXECUTE_PROMPT
    assert name == "review"
    assert arguments == {"focus": "tests"}
    assert context == {"issue_name": "login"}


def test_collaborator_receives_a_copy_of_the_context(run: WorkflowRun) -> None:
    def mutate(arguments: dict[str, str], context: Mapping[str, object]) -> CollaboratorResult:
        context["sneaky"] = True  # type: ignore[index]
        return CollaboratorResult(outcome="done")

    dispatcher = _dispatcher(commands=FakeCollaborator({"mutate": mutate}))

    result = dispatcher.dispatch(ExecuteCommandAction(command="mutate"), run)

    assert result.ok
    assert "sneaky" not in run.context


def test_collaborator_error_is_wrapped_with_target(run: WorkflowRun) -> None:
    def fail(arguments: dict[str, str], context: Mapping[str, object]) -> CollaboratorResult:
        raise ProtocolError("Unknown command 'deploy'")

    dispatcher = _dispatcher(commands=FakeCollaborator({"deploy": fail}))

    result = dispatcher.dispatch(ExecuteCommandAction(command="deploy"), run)

    assert not result.ok
    assert isinstance(result.error, ActionError)
    assert result.error.action == "execute_command"
    assert result.error.target == "deploy"
    assert isinstance(result.error.cause, ProtocolError)
    entry = run.log[0]
    assert entry.ok is False
    assert entry.error is not None
    assert "caused by: protocol: Unknown command 'deploy'" in entry.error


def test_foreign_exceptions_are_adopted(run: WorkflowRun) -> None:
    def fail(arguments: dict[str, str], context: Mapping[str, object]) -> CollaboratorResult:
        raise RuntimeError("socket closed")

    dispatcher = _dispatcher(prompts=FakeCollaborator({"review": fail}))

    result = dispatcher.dispatch(ExecutePromptAction(prompt="review"), run)

    assert isinstance(result.error, ActionError)
    assert isinstance(result.error.cause, WorkflowRunnerError)
    assert isinstance(result.error.cause.cause, RuntimeError)


def test_unexpected_dispatch_errors_still_log_one_entry(run: WorkflowRun) -> None:
    dispatcher = _dispatcher()

    result = dispatcher.dispatch(Mock(kind=ActionKind.LOG, target=""), run)

    assert not result.ok
    assert isinstance(result.error, ActionError)
    assert len(run.log) == 1


def test_log_is_append_only_in_dispatch_order(run: WorkflowRun) -> None:
    dispatcher = _dispatcher()
    for i in range(3):
        dispatcher.dispatch(LogAction(message=f"m{i}"), run)

    assert [e.message for e in run.log] == ["m0", "m1", "m2"]
    assert [e["message"] for e in run.log.to_json()] == ["m0", "m1", "m2"]
