from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from agent_workflows.workflow.actions import ActionKind


@dataclass(frozen=True, slots=True)
class CollaboratorResult:
    outcome: str
    context_updates: dict[str, object] = field(default_factory=dict)
    details: dict[str, object] | None = None


class Collaborator(Protocol):
    """An external system the dispatcher calls into.

    ``params`` always carries ``name`` (the prompt or command identifier) and
    ``arguments`` (the action's ``with`` arguments). Failures are raised; the
    dispatcher wraps them.
    """

    def invoke(
        self,
        kind: ActionKind,
        params: Mapping[str, object],
        context: Mapping[str, object],
    ) -> CollaboratorResult: ...


def request_name(params: Mapping[str, object]) -> str:
    name = params.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Collaborator request has no name")
    return name.strip()


def request_arguments(params: Mapping[str, object]) -> dict[str, str]:
    raw = params.get("arguments") or {}
    if not isinstance(raw, Mapping):
        raise ValueError("Collaborator request arguments must be a mapping")
    return {str(k): str(v) for k, v in raw.items()}
