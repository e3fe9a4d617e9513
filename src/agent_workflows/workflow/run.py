"""Runtime state of a single workflow execution."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from agent_workflows.core.errors import (
    ExitStatus,
    WorkflowRunnerError,
    exit_status_for,
    format_chain,
)
from agent_workflows.workflow.abort import CancellationToken
from agent_workflows.workflow.actions import ActionKind
from agent_workflows.workflow.definition import WorkflowDefinition


class RunStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({RunStatus.COMPLETED, RunStatus.ABORTED, RunStatus.FAILED})

ALLOWED_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.NOT_STARTED: {RunStatus.RUNNING},
    RunStatus.RUNNING: {RunStatus.COMPLETED, RunStatus.ABORTED, RunStatus.FAILED},
    RunStatus.COMPLETED: set(),
    RunStatus.ABORTED: set(),
    RunStatus.FAILED: set(),
}


class IllegalTransitionError(ValueError):
    pass


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class ActionLogEntry:
    """One dispatched action, as recorded in the execution log."""

    state: str
    kind: ActionKind
    target: str
    started_at: datetime
    finished_at: datetime
    ok: bool
    message: str
    error: str | None = None
    details: Mapping[str, object] | None = None

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "state": self.state,
            "kind": self.kind.value,
            "target": self.target,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "ok": self.ok,
            "message": self.message,
        }
        if self.error is not None:
            out["error"] = self.error
        if self.details:
            out["details"] = dict(self.details)
        return out


class ExecutionLog:
    """Append-only audit trail of a run's actions."""

    def __init__(self) -> None:
        self._entries: list[ActionLogEntry] = []

    def append(self, entry: ActionLogEntry) -> None:
        self._entries.append(entry)

    @property
    def entries(self) -> tuple[ActionLogEntry, ...]:
        return tuple(self._entries)

    def states(self) -> list[str]:
        return [e.state for e in self._entries]

    def __iter__(self) -> Iterator[ActionLogEntry]:
        return iter(tuple(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> ActionLogEntry:
        return self._entries[index]

    def to_json(self) -> list[dict[str, object]]:
        return [e.to_json() for e in self._entries]


@dataclass(eq=False)
class WorkflowRun:
    """A single execution of a :class:`WorkflowDefinition`.

    ``parent`` is only used for nesting depth and cycle detection; a run never
    drives or inspects its parent's state.
    """

    definition: WorkflowDefinition
    context: dict[str, object] = field(default_factory=dict)
    parent: WorkflowRun | None = None
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    status: RunStatus = RunStatus.NOT_STARTED
    current_state: str | None = None
    history: list[tuple[str, datetime]] = field(default_factory=list)
    log: ExecutionLog = field(default_factory=ExecutionLog)
    error: WorkflowRunnerError | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def depth(self) -> int:
        return 0 if self.parent is None else self.parent.depth + 1

    @property
    def finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def exit_status(self) -> ExitStatus:
        return exit_status_for(self.error)

    def ancestry(self) -> list[str]:
        """Workflow names from the root run down to this one."""

        names: list[str] = []
        node: WorkflowRun | None = self
        while node is not None:
            names.append(node.definition.name)
            node = node.parent
        return list(reversed(names))

    def _move(self, to: RunStatus) -> None:
        if to not in ALLOWED_TRANSITIONS[self.status]:
            raise IllegalTransitionError(f"Illegal transition: {self.status.value} -> {to.value}")
        self.status = to

    def mark_running(self) -> None:
        self._move(RunStatus.RUNNING)
        self.started_at = utc_now()

    def enter(self, state: str) -> None:
        self.current_state = state
        self.history.append((state, utc_now()))

    def complete(self) -> None:
        self._move(RunStatus.COMPLETED)
        self.completed_at = utc_now()

    def fail(self, error: WorkflowRunnerError) -> None:
        self._move(RunStatus.FAILED)
        self.error = error
        self.completed_at = utc_now()

    def abort(self, error: WorkflowRunnerError) -> None:
        self._move(RunStatus.ABORTED)
        self.error = error
        self.completed_at = utc_now()

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.id,
            "workflow": self.definition.name,
            "status": self.status.value,
            "current_state": self.current_state,
            "depth": self.depth,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": format_chain(self.error) if self.error is not None else None,
            "exit_status": int(self.exit_status),
            "log": self.log.to_json(),
        }
