"""Prompt execution collaborator.

Prompts are Jinja2 templates stored as files in a prompts directory. A prompt
whose first line is ``{% partial %}`` is a partial: it cannot be executed on
its own but other prompts may ``{% include "name" %}`` it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path

from jinja2 import (
    Environment,
    FunctionLoader,
    StrictUndefined,
    TemplateError as JinjaTemplateError,
    TemplateNotFound,
)

from agent_workflows.collaborators.base import (
    CollaboratorResult,
    request_arguments,
    request_name,
)
from agent_workflows.core.errors import ProtocolError, TemplateError
from agent_workflows.llm.provider import LLMProvider
from agent_workflows.workflow.actions import ActionKind

logger = logging.getLogger(__name__)

PROMPT_SUFFIXES = (".md.j2", ".md.jinja2", ".md.liquid", ".jinja2", ".j2", ".md", ".txt")
PARTIAL_MARKER = "{% partial %}"


def prompt_name_for(path: Path) -> str:
    name = path.name
    for suffix in PROMPT_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


class PromptLibrary:
    """Named prompt templates rendered with Jinja2."""

    def __init__(self, prompts: Mapping[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._sources: dict[str, str] = {}
        self._partials: set[str] = set()
        for name, text in (prompts or {}).items():
            self.add(name, text)
        self._env = Environment(
            loader=FunctionLoader(self._load_source),
            undefined=StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            cache_size=0,
        )

    @classmethod
    def from_directory(cls, directory: Path) -> PromptLibrary:
        library = cls()
        library.load_directory(directory)
        return library

    def load_directory(self, directory: Path) -> int:
        if not directory.exists():
            logger.info("Prompt directory not found", extra={"directory": str(directory)})
            return 0
        count = 0
        for path in sorted(directory.rglob("*")):
            if not path.is_file() or not path.name.endswith(PROMPT_SUFFIXES):
                continue
            relative = path.relative_to(directory)
            name = (relative.parent / prompt_name_for(path)).as_posix()
            self.add(name, path.read_text(encoding="utf-8"))
            count += 1
        logger.info("Prompts loaded", extra={"directory": str(directory), "count": count})
        return count

    def add(self, name: str, text: str) -> None:
        stripped = text.lstrip()
        is_partial = stripped.startswith(PARTIAL_MARKER)
        if is_partial:
            text = stripped[len(PARTIAL_MARKER) :].lstrip("\n")
        with self._lock:
            self._sources[name] = text
            if is_partial:
                self._partials.add(name)
            else:
                self._partials.discard(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(n for n in self._sources if n not in self._partials)

    def is_partial(self, name: str) -> bool:
        with self._lock:
            return name in self._partials

    def _load_source(self, name: str) -> str | None:
        with self._lock:
            if name in self._sources:
                return self._sources[name]
            for suffix in PROMPT_SUFFIXES:
                if name.endswith(suffix) and name[: -len(suffix)] in self._sources:
                    return self._sources[name[: -len(suffix)]]
        return None

    def render(self, name: str, variables: Mapping[str, object]) -> str:
        if self.is_partial(name):
            raise TemplateError(f"Prompt '{name}' is a partial and cannot be rendered directly")
        try:
            template = self._env.get_template(name)
            return template.render(**variables)
        except TemplateNotFound as e:
            raise TemplateError(f"Prompt not found: '{e.name}'", cause=e) from e
        except JinjaTemplateError as e:
            raise TemplateError(f"Failed to render prompt '{name}': {e}", cause=e) from e


class PromptCollaborator:
    """Renders a prompt with the run context and sends it to an LLM provider."""

    def __init__(self, library: PromptLibrary, llm: LLMProvider) -> None:
        self._library = library
        self._llm = llm

    def invoke(
        self,
        kind: ActionKind,
        params: Mapping[str, object],
        context: Mapping[str, object],
    ) -> CollaboratorResult:
        if kind is not ActionKind.EXECUTE_PROMPT:
            raise ProtocolError(f"Prompt collaborator cannot handle '{kind.value}'")

        name = request_name(params)
        variables: dict[str, object] = dict(context)
        variables.update(request_arguments(params))

        rendered = self._library.render(name, variables)
        logger.info(
            "Executing prompt",
            extra={"prompt": name, "provider": self._llm.name, "prompt_chars": len(rendered)},
        )
        try:
            response = self._llm.generate(rendered)
        except Exception as e:
            raise ProtocolError(f"LLM provider '{self._llm.name}' failed: {e}", cause=e) from e

        key = name.replace("/", "_").replace("-", "_")
        return CollaboratorResult(
            outcome=f"Prompt '{name}' executed",
            context_updates={"last_response": response, f"{key}_response": response},
            details={"provider": self._llm.name, "response_chars": len(response)},
        )
