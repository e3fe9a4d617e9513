from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from agent_workflows.collaborators.git import GitOperations, issue_branch_name
from agent_workflows.core.errors import GitOperationError
from agent_workflows.workflow.abort import AbortMonitor


class FakeGit:
    """Answers ``git`` invocations from a table keyed by the first argument."""

    def __init__(self, responses: dict[str, Mock]) -> None:
        self.responses = responses
        self.calls: list[list[str]] = []

    def __call__(self, argv: list[str], **kwargs: object) -> Mock:
        self.calls.append(argv)
        return self.responses.get(argv[1], Mock(returncode=0, stdout="", stderr=""))


def test_issue_branch_name() -> None:
    assert issue_branch_name("login") == "issue/login"
    assert issue_branch_name("issue/login") == "issue/login"
    with pytest.raises(ValueError):
        issue_branch_name("  ")


def test_commit_returns_sha(monkeypatch, tmp_path: Path) -> None:
    fake = FakeGit(
        {
            "status": Mock(returncode=0, stdout=" M app.py\n", stderr=""),
            "rev-parse": Mock(returncode=0, stdout="deadbeef\n", stderr=""),
        }
    )
    monkeypatch.setattr(subprocess, "run", fake)

    sha = GitOperations(tmp_path).commit("Add login")

    assert sha == "deadbeef"
    assert ["git", "commit", "-m", "Add login"] in fake.calls


def test_commit_skips_clean_tree(monkeypatch, tmp_path: Path) -> None:
    fake = FakeGit({"status": Mock(returncode=0, stdout="", stderr="")})
    monkeypatch.setattr(subprocess, "run", fake)

    assert GitOperations(tmp_path).commit("noop") is None
    assert [argv[1] for argv in fake.calls] == ["status"]


def test_non_zero_exit_raises(monkeypatch, tmp_path: Path) -> None:
    fake = FakeGit(
        {
            "rev-parse": Mock(returncode=1, stdout="", stderr=""),
            "checkout": Mock(returncode=1, stdout="", stderr="pathspec did not match"),
        }
    )
    monkeypatch.setattr(subprocess, "run", fake)

    with pytest.raises(GitOperationError) as exc:
        GitOperations(tmp_path).create_issue_branch("login")

    assert exc.value.operation == "create_branch"
    assert exc.value.details == "pathspec did not match"


def test_missing_git_binary(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr(subprocess, "run", Mock(side_effect=FileNotFoundError("git")))

    with pytest.raises(GitOperationError, match="git executable not found"):
        GitOperations(tmp_path).current_branch()


def test_merge_conflict_signals_abort(monkeypatch, tmp_path: Path) -> None:
    fake = FakeGit(
        {
            "merge": Mock(
                returncode=1,
                stdout="",
                stderr="CONFLICT (content): Merge conflict in app.py",
            )
        }
    )
    monkeypatch.setattr(subprocess, "run", fake)
    monitor = AbortMonitor(tmp_path / ".agent-workflows")

    with pytest.raises(GitOperationError):
        GitOperations(tmp_path, abort_monitor=monitor).merge_issue_branch("login")

    assert monitor.is_aborted()
    assert "Merge of issue/login into main failed irrecoverably" in monitor.reason()


def test_recoverable_merge_failure_does_not_abort(monkeypatch, tmp_path: Path) -> None:
    fake = FakeGit(
        {"merge": Mock(returncode=1, stdout="", stderr="Please commit your changes first")}
    )
    monkeypatch.setattr(subprocess, "run", fake)
    monitor = AbortMonitor(tmp_path / ".agent-workflows")

    with pytest.raises(GitOperationError):
        GitOperations(tmp_path, abort_monitor=monitor).merge_issue_branch("login", target="dev")

    assert not monitor.is_aborted()
    assert ["git", "checkout", "dev"] in fake.calls
