from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from enum import Enum

from agent_workflows.core.errors import WorkflowParseError


class ActionKind(str, Enum):
    LOG = "log"
    EXECUTE_PROMPT = "execute_prompt"
    RUN_WORKFLOW = "run_workflow"
    EXECUTE_COMMAND = "execute_command"


LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass(frozen=True, slots=True)
class LogAction:
    message: str
    level: str = "info"

    @property
    def kind(self) -> ActionKind:
        return ActionKind.LOG

    @property
    def target(self) -> str:
        return ""


@dataclass(frozen=True, slots=True)
class ExecutePromptAction:
    prompt: str
    arguments: dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> ActionKind:
        return ActionKind.EXECUTE_PROMPT

    @property
    def target(self) -> str:
        return self.prompt


@dataclass(frozen=True, slots=True)
class RunWorkflowAction:
    workflow: str
    arguments: dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> ActionKind:
        return ActionKind.RUN_WORKFLOW

    @property
    def target(self) -> str:
        return self.workflow


@dataclass(frozen=True, slots=True)
class ExecuteCommandAction:
    command: str
    arguments: dict[str, str] = field(default_factory=dict)

    @property
    def kind(self) -> ActionKind:
        return ActionKind.EXECUTE_COMMAND

    @property
    def target(self) -> str:
        return self.command


ActionDescriptor = LogAction | ExecutePromptAction | RunWorkflowAction | ExecuteCommandAction

_QUOTED = r'"(?P<value>(?:[^"\\]|\\.)*)"'
_WITH_ARGS = r"(?:\s+with\s+(?P<args>.+))?"

_LOG_RE = re.compile(
    r"^log(?:\s+(?P<level>" + "|".join(LOG_LEVELS) + r"|warn))?\s+(?P<rest>.+)$",
    re.IGNORECASE,
)
_TARGETED: list[tuple[re.Pattern[str], type]] = [
    (re.compile(r"^execute\s+prompt\s+" + _QUOTED + _WITH_ARGS + r"$", re.I), ExecutePromptAction),
    (re.compile(r"^run\s+workflow\s+" + _QUOTED + _WITH_ARGS + r"$", re.I), RunWorkflowAction),
    (
        re.compile(r"^execute\s+command\s+" + _QUOTED + _WITH_ARGS + r"$", re.I),
        ExecuteCommandAction,
    ),
]


def _unquote(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def _parse_arguments(raw: str | None, *, state: str | None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        tokens = shlex.split(raw)
    except ValueError as e:
        raise WorkflowParseError(f"Malformed action arguments: {raw!r}", state=state, cause=e) from e

    arguments: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        key = key.strip()
        if not sep or not key:
            raise WorkflowParseError(
                f"Action argument must be key=value, got {token!r}", state=state
            )
        arguments[key] = value
    return arguments


def parse_action(text: str, *, state: str | None = None) -> ActionDescriptor:
    """Parse the free-text action of a state into a descriptor.

    Exactly four kinds are recognised; anything else is a parse error.
    """

    body = text.strip()
    if not body:
        raise WorkflowParseError("Empty action", state=state)

    match = _LOG_RE.match(body)
    if match:
        level = (match.group("level") or "info").lower()
        if level == "warn":
            level = "warning"
        rest = match.group("rest").strip()
        quoted = re.fullmatch(_QUOTED, rest)
        message = _unquote(quoted.group("value")) if quoted else rest
        return LogAction(message=message, level=level)

    for pattern, action_type in _TARGETED:
        match = pattern.match(body)
        if match is None:
            continue
        target = _unquote(match.group("value")).strip()
        if not target:
            raise WorkflowParseError(f"Action target is empty: {body!r}", state=state)
        arguments = _parse_arguments(match.group("args"), state=state)
        return action_type(target, arguments)

    raise WorkflowParseError(f"Unknown action: {body!r}", state=state)
