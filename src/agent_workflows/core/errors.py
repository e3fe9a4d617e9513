"""Error taxonomy for workflow execution.

Every error carries an :class:`ErrorKind` and optionally owns the error that
caused it. Following ``cause`` from the outermost error yields the chain from
most specific to most general.
"""

from __future__ import annotations

import subprocess
from enum import Enum, IntEnum

UNKNOWN_ABORT_REASON = "Unknown abort reason"


class ErrorKind(str, Enum):
    IO = "io"
    TEMPLATE = "template"
    GIT_OPERATION = "git_operation"
    WORKFLOW = "workflow"
    ACTION = "action"
    PARSE = "parse"
    VALIDATION = "validation"
    STORAGE = "storage"
    PROTOCOL = "protocol"
    CONFIG = "config"
    ABORT = "abort"


class ExitStatus(IntEnum):
    """Process-level outcome. Downstream automation depends on these values."""

    SUCCESS = 0
    WARNING = 1
    ERROR = 2


class WorkflowRunnerError(Exception):
    """Base error record."""

    kind: ErrorKind = ErrorKind.ACTION

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def describe(self) -> str:
        return f"{self.kind.value}: {self.message}"


class IoError(WorkflowRunnerError):
    kind = ErrorKind.IO


class TemplateError(WorkflowRunnerError):
    kind = ErrorKind.TEMPLATE


class GitOperationError(WorkflowRunnerError):
    """A git command failed."""

    kind = ErrorKind.GIT_OPERATION

    def __init__(
        self, operation: str, details: str, *, cause: BaseException | None = None
    ) -> None:
        super().__init__(f"Git operation '{operation}' failed: {details}", cause=cause)
        self.operation = operation
        self.details = details


class WorkflowError(WorkflowRunnerError):
    """Resolution, nesting-depth and other run-level failures."""

    kind = ErrorKind.WORKFLOW


class ActionError(WorkflowRunnerError):
    """A dispatched action failed; ``cause`` holds the collaborator's error."""

    kind = ErrorKind.ACTION

    def __init__(
        self,
        message: str,
        *,
        action: str,
        target: str = "",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.action = action
        self.target = target


class WorkflowParseError(WorkflowRunnerError):
    """A workflow definition is malformed."""

    kind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        *,
        state: str | None = None,
        source: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        parts = [message]
        if state:
            parts.append(f"(state: {state})")
        if source:
            parts.append(f"[{source}]")
        super().__init__(" ".join(parts), cause=cause)
        self.state = state
        self.source = source


class WorkflowValidationError(WorkflowRunnerError):
    kind = ErrorKind.VALIDATION


class StorageError(WorkflowRunnerError):
    kind = ErrorKind.STORAGE


class ProtocolError(WorkflowRunnerError):
    kind = ErrorKind.PROTOCOL


class ConfigError(WorkflowRunnerError):
    kind = ErrorKind.CONFIG


class AbortError(WorkflowRunnerError):
    """Cooperative cancellation was observed."""

    kind = ErrorKind.ABORT

    def __init__(self, reason: str, *, cause: BaseException | None = None) -> None:
        self.reason = reason.strip() or UNKNOWN_ABORT_REASON
        super().__init__(f"Workflow aborted: {self.reason}", cause=cause)


def wrap_exception(exc: BaseException) -> WorkflowRunnerError:
    """Adopt an arbitrary exception into the taxonomy without losing it."""

    if isinstance(exc, WorkflowRunnerError):
        return exc
    if isinstance(exc, subprocess.TimeoutExpired):
        return IoError(f"Timed out after {exc.timeout}s: {exc.cmd}", cause=exc)
    if isinstance(exc, OSError):
        return IoError(str(exc) or type(exc).__name__, cause=exc)
    if isinstance(exc, (ValueError, TypeError, KeyError)):
        return WorkflowValidationError(str(exc) or type(exc).__name__, cause=exc)
    return WorkflowRunnerError(f"{type(exc).__name__}: {exc}", cause=exc)


def error_chain(error: BaseException) -> list[BaseException]:
    """Return the cause chain starting at ``error``."""

    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        if isinstance(current, WorkflowRunnerError):
            current = current.cause
        else:
            current = current.__cause__
    return chain


def format_chain(error: BaseException) -> str:
    """Render the chain, most specific first, indenting each level further."""

    lines: list[str] = []
    for depth, item in enumerate(error_chain(error)):
        if isinstance(item, WorkflowRunnerError):
            text = item.describe()
        else:
            text = f"{type(item).__name__}: {item}"
        prefix = "  " * depth
        lines.append(f"{prefix}{'caused by: ' if depth else ''}{text}")
    return "\n".join(lines)


def exit_status_for(error: BaseException | None) -> ExitStatus:
    if error is None:
        return ExitStatus.SUCCESS
    kind = error.kind if isinstance(error, WorkflowRunnerError) else None
    if kind in {ErrorKind.ABORT, ErrorKind.VALIDATION, ErrorKind.PARSE}:
        return ExitStatus.ERROR
    return ExitStatus.WARNING
