from __future__ import annotations

from pathlib import Path

import pytest
from helpers import TDD_STEPS, make_workflow, workflow_markdown

from agent_workflows.core.errors import WorkflowError, WorkflowParseError
from agent_workflows.workflow.library import WorkflowLibrary, discover_workflow_files


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_load_directory(tmp_path: Path) -> None:
    _write(tmp_path / "b.md", workflow_markdown("beta", [("go", 'Log "b"')], title="Beta"))
    _write(tmp_path / "a.md", workflow_markdown("tdd", TDD_STEPS))
    _write(tmp_path / "notes.txt", "not a workflow")

    library = WorkflowLibrary()
    loaded = library.load_directory(tmp_path)

    assert [d.name for d in loaded] == ["tdd", "beta"]
    assert library.names() == ["beta", "tdd"]
    assert "tdd" in library
    assert library.get("beta").title == "Beta"
    assert library.get("beta").source == str(tmp_path / "b.md")


def test_discover_missing_directory(tmp_path: Path) -> None:
    assert discover_workflow_files(tmp_path / "missing") == []


def test_get_unknown_workflow() -> None:
    library = WorkflowLibrary([make_workflow("tdd", TDD_STEPS)])
    with pytest.raises(WorkflowError, match="Workflow not found: 'deploy'"):
        library.get("deploy")


def test_parse_errors_propagate(tmp_path: Path) -> None:
    _write(tmp_path / "broken.md", "# nothing\n")
    with pytest.raises(WorkflowParseError):
        WorkflowLibrary().load_directory(tmp_path)


def test_add_replaces_by_name() -> None:
    library = WorkflowLibrary()
    library.add(make_workflow("tdd", TDD_STEPS))
    library.add(make_workflow("tdd", [("only", 'Log "x"')]))

    assert library.get("tdd").path() == ["only"]
    assert len(library.definitions()) == 1
