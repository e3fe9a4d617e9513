"""Named workflow definitions available to runs and ``Run workflow`` actions."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from agent_workflows.core.errors import WorkflowError
from agent_workflows.workflow.definition import WorkflowDefinition, load_workflow

logger = logging.getLogger(__name__)


def discover_workflow_files(directory: Path) -> list[Path]:
    """Return workflow files in a stable order."""

    if not directory.exists():
        return []
    candidates = [p for p in directory.iterdir() if p.is_file() and p.suffix == ".md"]
    return sorted(candidates, key=lambda p: p.name)


class WorkflowLibrary:
    """Thread-safe registry of definitions by name."""

    def __init__(self, definitions: list[WorkflowDefinition] | None = None) -> None:
        self._lock = threading.Lock()
        self._definitions: dict[str, WorkflowDefinition] = {}
        for definition in definitions or []:
            self.add(definition)

    def add(self, definition: WorkflowDefinition) -> None:
        with self._lock:
            existing = self._definitions.get(definition.name)
            if existing is not None and existing.source != definition.source:
                logger.warning(
                    "Replacing workflow definition",
                    extra={
                        "workflow": definition.name,
                        "previous_source": existing.source,
                        "source": definition.source,
                    },
                )
            self._definitions[definition.name] = definition

    def load_directory(self, directory: Path) -> list[WorkflowDefinition]:
        """Load every ``*.md`` workflow in ``directory``; parse errors propagate."""

        loaded = [load_workflow(path) for path in discover_workflow_files(directory)]
        for definition in loaded:
            self.add(definition)
        logger.info(
            "Workflows loaded", extra={"directory": str(directory), "count": len(loaded)}
        )
        return loaded

    def get(self, name: str) -> WorkflowDefinition:
        with self._lock:
            definition = self._definitions.get(name)
        if definition is None:
            raise WorkflowError(f"Workflow not found: '{name}'")
        return definition

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._definitions

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._definitions)

    def definitions(self) -> list[WorkflowDefinition]:
        with self._lock:
            return [self._definitions[n] for n in sorted(self._definitions)]
