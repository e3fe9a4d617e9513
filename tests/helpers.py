"""Shared test helpers: workflow builders and a recording collaborator."""

from __future__ import annotations

from collections.abc import Callable, Mapping

from agent_workflows.collaborators.base import CollaboratorResult
from agent_workflows.workflow.actions import ActionKind
from agent_workflows.workflow.definition import WorkflowDefinition, parse_workflow

Handler = Callable[[dict[str, str], Mapping[str, object]], CollaboratorResult]

TDD_STEPS = [
    ("start", 'Log "Starting TDD cycle"'),
    ("review", 'Execute prompt "review"'),
    ("correct", 'Execute prompt "correct"'),
    ("test", 'Execute command "test"'),
    ("commit", 'Execute prompt "commit"'),
]


def workflow_markdown(
    name: str, steps: list[tuple[str, str]], *, title: str = "", description: str = ""
) -> str:
    """Build workflow Markdown for a linear list of ``(state, action)`` steps."""

    lines = ["---", f"name: {name}"]
    if title:
        lines.append(f"title: {title}")
    if description:
        lines.append(f"description: {description}")
    lines += ["---", "", "```mermaid", "stateDiagram-v2", f"    [*] --> {steps[0][0]}"]
    for (src, _), (dst, _) in zip(steps, steps[1:]):
        lines.append(f"    {src} --> {dst}")
    lines += [f"    {steps[-1][0]} --> [*]", "```", "", "## Actions", ""]
    lines += [f"- {state}: {action}" for state, action in steps]
    return "\n".join(lines) + "\n"


def make_workflow(name: str, steps: list[tuple[str, str]]) -> WorkflowDefinition:
    return parse_workflow(workflow_markdown(name, steps), default_name=name)


class FakeCollaborator:
    """Records calls and answers from per-name handlers."""

    def __init__(self, handlers: dict[str, Handler] | None = None) -> None:
        self.handlers: dict[str, Handler] = dict(handlers or {})
        self.calls: list[tuple[ActionKind, str, dict[str, str], dict[str, object]]] = []

    def invoke(
        self,
        kind: ActionKind,
        params: Mapping[str, object],
        context: Mapping[str, object],
    ) -> CollaboratorResult:
        name = str(params["name"])
        raw = params.get("arguments") or {}
        arguments = {str(k): str(v) for k, v in dict(raw).items()}  # type: ignore[call-overload]
        self.calls.append((kind, name, arguments, dict(context)))
        handler = self.handlers.get(name)
        if handler is None:
            return CollaboratorResult(outcome=f"{name} ok")
        return handler(arguments, context)

    @property
    def names(self) -> list[str]:
        return [name for _, name, _, _ in self.calls]
