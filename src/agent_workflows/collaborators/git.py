"""Git operations used by ``Execute command`` actions.

Every failure is raised as a :class:`GitOperationError` carrying the operation
name and git's output. A merge that fails in a way no retry can fix (missing
source branch, conflicts) also signals abort so no further workflow steps run
on a broken tree.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from agent_workflows.core.errors import GitOperationError
from agent_workflows.workflow.abort import AbortMonitor

logger = logging.getLogger(__name__)

ISSUE_BRANCH_PREFIX = "issue/"
IRRECOVERABLE_MERGE_MARKERS = ("does not exist", "deleted", "CONFLICT", "Automatic merge failed")


def issue_branch_name(issue_name: str) -> str:
    name = issue_name.strip()
    if not name:
        raise ValueError("Issue name is required")
    return name if name.startswith(ISSUE_BRANCH_PREFIX) else f"{ISSUE_BRANCH_PREFIX}{name}"


class GitOperations:
    def __init__(
        self,
        work_dir: Path,
        *,
        timeout: float = 600.0,
        abort_monitor: AbortMonitor | None = None,
    ) -> None:
        self._work_dir = work_dir
        self._timeout = timeout
        self._abort_monitor = abort_monitor

    def _git(self, operation: str, *args: str) -> str:
        try:
            result = subprocess.run(
                ["git", *args],
                cwd=self._work_dir,
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except FileNotFoundError as e:
            raise GitOperationError(operation, "git executable not found", cause=e) from e
        except subprocess.TimeoutExpired as e:
            raise GitOperationError(
                operation, f"timed out after {self._timeout}s", cause=e
            ) from e

        if result.returncode != 0:
            details = (result.stderr or result.stdout).strip() or f"exit status {result.returncode}"
            raise GitOperationError(operation, details)
        return result.stdout.strip()

    def is_repository(self) -> bool:
        try:
            self._git("rev-parse", "rev-parse", "--git-dir")
        except GitOperationError:
            return False
        return True

    def current_branch(self) -> str:
        return self._git("current_branch", "rev-parse", "--abbrev-ref", "HEAD")

    def has_changes(self) -> bool:
        return bool(self._git("status", "status", "--porcelain"))

    def branch_exists(self, branch: str) -> bool:
        try:
            self._git("branch_exists", "rev-parse", "--verify", "--quiet", f"refs/heads/{branch}")
        except GitOperationError:
            return False
        return True

    def commit(self, message: str) -> str | None:
        """Stage everything and commit. Returns the new HEAD, or None if clean."""

        if not self.has_changes():
            logger.info("Nothing to commit", extra={"work_dir": str(self._work_dir)})
            return None
        self._git("add", "add", "--all")
        self._git("commit", "commit", "-m", message)
        sha = self._git("rev-parse", "rev-parse", "HEAD")
        logger.info("Committed changes", extra={"sha": sha})
        return sha

    def create_issue_branch(self, issue_name: str) -> str:
        """Switch to the issue's work branch, creating it from HEAD if needed."""

        branch = issue_branch_name(issue_name)
        if self.branch_exists(branch):
            self._git("checkout", "checkout", branch)
        else:
            self._git("create_branch", "checkout", "-b", branch)
        logger.info("On issue branch", extra={"branch": branch})
        return branch

    def merge_issue_branch(self, issue_name: str, *, target: str = "main") -> str:
        branch = issue_branch_name(issue_name)
        try:
            self._git("checkout", "checkout", target)
            self._git("merge", "merge", "--no-ff", branch, "-m", f"Merge {branch} into {target}")
        except GitOperationError as e:
            logger.error(
                "Merge failed", extra={"branch": branch, "target": target, "error": e.details}
            )
            if self._abort_monitor is not None and any(
                marker in e.details for marker in IRRECOVERABLE_MERGE_MARKERS
            ):
                self._abort_monitor.signal_abort(
                    f"Merge of {branch} into {target} failed irrecoverably: {e.details}"
                )
            raise
        return target

    def delete_branch(self, branch: str) -> None:
        self._git("delete_branch", "branch", "-d", branch)

    def last_commit_info(self) -> str:
        return self._git("log", "log", "-1", "--format=%H|%s|%an|%ad")
