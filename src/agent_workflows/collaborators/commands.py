"""Command execution collaborator.

Routes ``Execute command "name"`` to a handler. Built-in handlers cover git
(``commit``, ``branch``, ``merge``) and issues (``issue_create``,
``issue_close``); shell commands come from configuration.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Callable, Mapping
from functools import partial
from pathlib import Path

from agent_workflows.collaborators.base import (
    CollaboratorResult,
    request_arguments,
    request_name,
)
from agent_workflows.collaborators.git import GitOperations, issue_branch_name
from agent_workflows.collaborators.issues import IssueTracker
from agent_workflows.core.errors import GitOperationError, IoError, ProtocolError
from agent_workflows.workflow.actions import ActionKind

logger = logging.getLogger(__name__)

CommandHandler = Callable[[dict[str, str], Mapping[str, object]], CollaboratorResult]

_OUTPUT_LIMIT = 4000
_TRUTHY = {"1", "true", "yes", "on"}


def _lookup(
    arguments: Mapping[str, str], context: Mapping[str, object], key: str, context_key: str
) -> str:
    value = arguments.get(key)
    if value is None:
        raw = context.get(context_key)
        value = "" if raw is None else str(raw)
    return value.strip()


class CommandCollaborator:
    def __init__(
        self,
        *,
        work_dir: Path,
        git: GitOperations | None = None,
        issues: IssueTracker | None = None,
        shell_commands: Mapping[str, str] | None = None,
        timeout: float = 600.0,
    ) -> None:
        self._work_dir = work_dir
        self._timeout = timeout
        self._handlers: dict[str, CommandHandler] = {}

        if git is not None:
            self.register("commit", partial(self._commit, git))
            self.register("branch", partial(self._branch, git))
            self.register("merge", partial(self._merge, git))
        if issues is not None:
            self.register("issue_create", partial(self._issue_create, issues))
            self.register("issue_close", partial(self._issue_close, issues))
        for name, command_line in (shell_commands or {}).items():
            self.register(name, partial(self._shell, name, command_line))

    def register(self, name: str, handler: CommandHandler) -> None:
        self._handlers[name] = handler

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def invoke(
        self,
        kind: ActionKind,
        params: Mapping[str, object],
        context: Mapping[str, object],
    ) -> CollaboratorResult:
        if kind is not ActionKind.EXECUTE_COMMAND:
            raise ProtocolError(f"Command collaborator cannot handle '{kind.value}'")
        name = request_name(params)
        handler = self._handlers.get(name)
        if handler is None:
            known = ", ".join(self.names()) or "none"
            raise ProtocolError(f"Unknown command '{name}' (available: {known})")
        logger.info("Executing command", extra={"command": name})
        return handler(request_arguments(params), context)

    def _shell(
        self,
        name: str,
        command_line: str,
        arguments: dict[str, str],
        context: Mapping[str, object],
    ) -> CollaboratorResult:
        argv = shlex.split(command_line)
        extra_args = arguments.get("args")
        if extra_args:
            argv.extend(shlex.split(extra_args))
        try:
            result = subprocess.run(
                argv,
                cwd=self._work_dir,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise IoError(f"Command '{name}' not found: {argv[0]}", cause=e) from e
        except subprocess.TimeoutExpired as e:
            raise IoError(f"Command '{name}' timed out after {self._timeout}s", cause=e) from e

        output = (result.stdout + result.stderr)[-_OUTPUT_LIMIT:]
        if result.returncode != 0:
            raise IoError(
                f"Command '{name}' exited with status {result.returncode}: {output.strip()}"
            )
        return CollaboratorResult(
            outcome=f"Command '{name}' succeeded",
            context_updates={f"{name}_output": output},
            details={"argv": argv, "returncode": result.returncode},
        )

    def _commit(
        self, git: GitOperations, arguments: dict[str, str], context: Mapping[str, object]
    ) -> CollaboratorResult:
        message = _lookup(arguments, context, "message", "commit_message") or "Workflow commit"
        sha = git.commit(message)
        if sha is None:
            return CollaboratorResult(outcome="Nothing to commit")
        return CollaboratorResult(
            outcome=f"Committed {sha[:8]}", context_updates={"last_commit": sha}
        )

    def _branch(
        self, git: GitOperations, arguments: dict[str, str], context: Mapping[str, object]
    ) -> CollaboratorResult:
        issue = _lookup(arguments, context, "issue", "issue_name")
        branch = git.create_issue_branch(issue)
        return CollaboratorResult(
            outcome=f"On branch {branch}", context_updates={"issue_branch": branch}
        )

    def _merge(
        self, git: GitOperations, arguments: dict[str, str], context: Mapping[str, object]
    ) -> CollaboratorResult:
        issue = _lookup(arguments, context, "issue", "issue_name")
        target = _lookup(arguments, context, "target", "merge_target") or "main"
        git.merge_issue_branch(issue, target=target)
        message = f"Merged {issue_branch_name(issue)} into {target}"
        if arguments.get("delete_branch", "").lower() in _TRUTHY:
            branch = issue_branch_name(issue)
            try:
                git.delete_branch(branch)
            except GitOperationError as e:
                # The merge stands even when the branch cannot be removed.
                logger.warning(
                    "Failed to delete merged branch", extra={"branch": branch, "error": e.details}
                )
                message += f" but failed to delete branch: {e.details}"
            else:
                message += " and deleted the branch"
        return CollaboratorResult(outcome=message, details={"commit": git.last_commit_info()})

    def _issue_create(
        self, issues: IssueTracker, arguments: dict[str, str], context: Mapping[str, object]
    ) -> CollaboratorResult:
        title = _lookup(arguments, context, "title", "issue_title")
        body = _lookup(arguments, context, "body", "issue_body")
        labels = [p.strip() for p in arguments.get("labels", "").split(",") if p.strip()]
        created = issues.create_issue(title=title, body=body, labels=labels or None)
        return CollaboratorResult(
            outcome=f"Created issue #{created.number}",
            context_updates={"issue_number": created.number, "issue_url": created.url},
        )

    def _issue_close(
        self, issues: IssueTracker, arguments: dict[str, str], context: Mapping[str, object]
    ) -> CollaboratorResult:
        raw = _lookup(arguments, context, "number", "issue_number")
        if not raw.isdigit():
            raise ValueError(f"issue_close needs a numeric issue number, got {raw!r}")
        issues.close_issue(issue_number=int(raw))
        return CollaboratorResult(outcome=f"Closed issue #{raw}")
