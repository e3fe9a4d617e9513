from __future__ import annotations

import pytest

from agent_workflows.core.errors import WorkflowParseError
from agent_workflows.workflow.actions import (
    ActionKind,
    ExecuteCommandAction,
    ExecutePromptAction,
    LogAction,
    RunWorkflowAction,
    parse_action,
)


def test_parse_log_action() -> None:
    action = parse_action('Log "Starting review"')
    assert action == LogAction(message="Starting review")
    assert action.kind is ActionKind.LOG
    assert action.target == ""


def test_parse_log_action_with_level() -> None:
    assert parse_action('log warn "Careful"') == LogAction(message="Careful", level="warning")
    assert parse_action('Log ERROR "Broken"') == LogAction(message="Broken", level="error")


def test_parse_log_action_unquoted() -> None:
    assert parse_action("Log information only") == LogAction(message="information only")


def test_parse_execute_prompt_with_arguments() -> None:
    action = parse_action('Execute prompt "review" with focus="error handling" depth=2')
    assert isinstance(action, ExecutePromptAction)
    assert action.prompt == "review"
    assert action.arguments == {"focus": "error handling", "depth": "2"}
    assert action.target == "review"


def test_parse_run_workflow_and_command() -> None:
    nested = parse_action('Run workflow "tdd" with issue_name=login')
    assert nested == RunWorkflowAction(workflow="tdd", arguments={"issue_name": "login"})
    assert nested.kind is ActionKind.RUN_WORKFLOW

    command = parse_action('EXECUTE COMMAND "commit"')
    assert command == ExecuteCommandAction(command="commit")
    assert command.kind is ActionKind.EXECUTE_COMMAND


def test_parse_action_unescapes_quotes() -> None:
    action = parse_action(r'Log "say \"hi\""')
    assert isinstance(action, LogAction)
    assert action.message == 'say "hi"'


@pytest.mark.parametrize(
    "text",
    [
        "",
        "Deploy everything",
        'Execute prompt ""',
        'Execute prompt "review" with focus',
        'Run workflow "tdd" with key="unterminated',
    ],
)
def test_parse_action_rejects_malformed(text: str) -> None:
    with pytest.raises(WorkflowParseError) as exc:
        parse_action(text, state="review")
    assert exc.value.state == "review"
