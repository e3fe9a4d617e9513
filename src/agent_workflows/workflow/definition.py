"""Workflow definitions and their Markdown source format.

A workflow file is Markdown with optional YAML front matter, a mermaid
``stateDiagram`` describing a single linear path and an ``## Actions`` list
giving one action per state::

    ---
    name: tdd
    title: Test driven development
    ---
    ```mermaid
    stateDiagram-v2
        [*] --> start
        start --> test
        test --> [*]
    ```

    ## Actions

    - start: Log "Starting"
    - test: Execute command "test"

The state that transitions to ``[*]`` is the terminal state: its action runs
last and the workflow completes after it.

Definitions are validated eagerly and are immutable once loaded.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

import yaml

from agent_workflows.core.errors import IoError, WorkflowParseError
from agent_workflows.workflow.actions import ActionDescriptor, parse_action

END_MARKER = "[*]"

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\n(?P<body>.*?)^---[ \t]*$\n?", re.S | re.M)
_DIAGRAM_RE = re.compile(r"^```mermaid[ \t]*\n(?P<body>.*?)^```[ \t]*$", re.S | re.M)
_ACTIONS_HEADING_RE = re.compile(r"^#{1,6}\s+actions\s*$", re.I | re.M)
_HEADING_RE = re.compile(r"^#{1,6}\s+", re.M)
_DIAGRAM_HEADER_RE = re.compile(r"^statediagram(?:-v2)?$", re.I)
_DIRECTION_RE = re.compile(r"^direction\s+(?:TB|BT|LR|RL|TD)$", re.I)

_STATE_NAME = r"[A-Za-z0-9_][A-Za-z0-9_\-]*"
_NODE = r"\[\*\]|" + _STATE_NAME
_TRANSITION_RE = re.compile(
    r"^(?P<src>" + _NODE + r")\s*-->\s*(?P<dst>" + _NODE + r")(?:\s*:\s*(?P<label>.*))?$"
)
_DESCRIPTION_RE = re.compile(r"^(?P<state>" + _STATE_NAME + r")\s*:\s*(?P<text>.+)$")
_ACTION_LINE_RE = re.compile(r"^\s*[-*]\s+(?P<state>" + _STATE_NAME + r")\s*:\s*(?P<body>.+)$")


@dataclass(frozen=True, slots=True)
class WorkflowStateDef:
    name: str
    action: ActionDescriptor
    description: str = ""


@dataclass(frozen=True, slots=True)
class WorkflowDefinition:
    """An immutable, validated workflow."""

    name: str
    states: tuple[WorkflowStateDef, ...]
    transitions: Mapping[str, str]
    start: str
    terminal: str
    title: str = ""
    description: str = ""
    source: str | None = None
    _index: Mapping[str, WorkflowStateDef] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "transitions", MappingProxyType(dict(self.transitions)))
        object.__setattr__(self, "_index", MappingProxyType({s.name: s for s in self.states}))

    def state(self, name: str) -> WorkflowStateDef:
        return self._index[name]

    def has_state(self, name: str) -> bool:
        return name in self._index

    def action_for(self, name: str) -> ActionDescriptor:
        return self._index[name].action

    def next_state(self, name: str) -> str | None:
        return self.transitions.get(name)

    def is_terminal(self, name: str) -> bool:
        return name == self.terminal

    def path(self) -> list[str]:
        """States in execution order, start to terminal."""

        order = [self.start]
        while order[-1] != self.terminal:
            order.append(self.transitions[order[-1]])
        return order


def load_workflow(path: Path) -> WorkflowDefinition:
    """Load and validate a workflow file."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise IoError(f"Cannot read workflow file {path}: {e}", cause=e) from e
    return parse_workflow(text, default_name=path.stem, source=str(path))


def _split_front_matter(text: str, source: str | None) -> tuple[dict[str, object], str]:
    match = _FRONT_MATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        meta = yaml.safe_load(match.group("body"))
    except yaml.YAMLError as e:
        raise WorkflowParseError(
            "Front matter is not valid YAML", source=source, cause=e
        ) from e
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise WorkflowParseError("Front matter must be a mapping", source=source)
    return meta, text[match.end() :]


def _actions_section(body: str) -> str | None:
    heading = _ACTIONS_HEADING_RE.search(body)
    if heading is None:
        return None
    rest = body[heading.end() :]
    following = _HEADING_RE.search(rest)
    return rest[: following.start()] if following else rest


def _meta_str(meta: Mapping[str, object], key: str, source: str | None) -> str:
    value = meta.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise WorkflowParseError(f"Front matter '{key}' must be a string", source=source)
    return value.strip()


def parse_workflow(
    text: str, *, default_name: str, source: str | None = None
) -> WorkflowDefinition:
    """Parse workflow Markdown into a validated :class:`WorkflowDefinition`."""

    text = text.replace("\r\n", "\n")
    meta, body = _split_front_matter(text, source)
    name = _meta_str(meta, "name", source) or default_name.strip()
    if not name:
        raise WorkflowParseError("Workflow name is empty", source=source)

    diagram = _DIAGRAM_RE.search(body)
    if diagram is None or "statediagram" not in diagram.group("body").lower():
        raise WorkflowParseError("Missing mermaid stateDiagram block", source=source)

    edges: list[tuple[str, str]] = []
    descriptions: dict[str, str] = {}
    order: list[str] = []

    def _see(state: str) -> None:
        if state != END_MARKER and state not in order:
            order.append(state)

    for raw_line in diagram.group("body").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("%%") or _DIAGRAM_HEADER_RE.match(line):
            continue
        transition = _TRANSITION_RE.match(line)
        if transition:
            src, dst = transition.group("src"), transition.group("dst")
            _see(src)
            _see(dst)
            edges.append((src, dst))
            continue
        described = _DESCRIPTION_RE.match(line)
        if described:
            descriptions[described.group("state")] = described.group("text").strip()
            continue
        if _DIRECTION_RE.match(line):
            continue
        raise WorkflowParseError(f"Unrecognised diagram line: {line!r}", source=source)

    start, terminal, transitions = _validate_graph(edges, order, source)
    actions = _parse_actions(body, order, source)

    states = tuple(
        WorkflowStateDef(name=s, action=actions[s], description=descriptions.get(s, ""))
        for s in order
    )
    return WorkflowDefinition(
        name=name,
        states=states,
        transitions=transitions,
        start=start,
        terminal=terminal,
        title=_meta_str(meta, "title", source),
        description=_meta_str(meta, "description", source),
        source=source,
    )


def _validate_graph(
    edges: list[tuple[str, str]], order: list[str], source: str | None
) -> tuple[str, str, dict[str, str]]:
    folded: dict[str, str] = {}
    for state in order:
        other = folded.setdefault(state.casefold(), state)
        if other != state:
            raise WorkflowParseError(
                f"State name collides with '{other}'", state=state, source=source
            )

    starts = [dst for src, dst in edges if src == END_MARKER]
    if not starts:
        raise WorkflowParseError("Missing start transition '[*] --> state'", source=source)
    if len(starts) > 1:
        raise WorkflowParseError(
            "Multiple start transitions", state=", ".join(starts), source=source
        )
    start = starts[0]
    if start == END_MARKER:
        raise WorkflowParseError("Start transition cannot target '[*]'", source=source)

    terminals = [src for src, dst in edges if dst == END_MARKER and src != END_MARKER]
    if not terminals:
        raise WorkflowParseError("Missing terminal transition 'state --> [*]'", source=source)
    if len(terminals) > 1:
        raise WorkflowParseError(
            "Multiple terminal transitions", state=", ".join(terminals), source=source
        )
    terminal = terminals[0]

    transitions: dict[str, str] = {}
    for src, dst in edges:
        if END_MARKER in (src, dst):
            continue
        if src == terminal:
            raise WorkflowParseError(
                "Terminal state must not have an outgoing transition", state=src, source=source
            )
        if src in transitions:
            raise WorkflowParseError(
                "State has more than one outgoing transition", state=src, source=source
            )
        transitions[src] = dst

    for state in order:
        if state != terminal and state not in transitions:
            raise WorkflowParseError(
                "Non-terminal state has no outgoing transition", state=state, source=source
            )

    visited = [start]
    current = start
    while current != terminal:
        current = transitions[current]
        if current in visited:
            raise WorkflowParseError(
                "Cycle detected before reaching the terminal state", state=current, source=source
            )
        visited.append(current)

    for state in order:
        if state not in visited:
            raise WorkflowParseError(
                "State is not reachable from the start state", state=state, source=source
            )

    return start, terminal, transitions


def _parse_actions(
    body: str, order: list[str], source: str | None
) -> dict[str, ActionDescriptor]:
    section = _actions_section(body)
    if section is None:
        raise WorkflowParseError("Missing '## Actions' section", source=source)

    actions: dict[str, ActionDescriptor] = {}
    for line in section.splitlines():
        match = _ACTION_LINE_RE.match(line)
        if match is None:
            continue
        state = match.group("state")
        if state not in order:
            raise WorkflowParseError("Action given for unknown state", state=state, source=source)
        if state in actions:
            raise WorkflowParseError("State has more than one action", state=state, source=source)
        try:
            actions[state] = parse_action(match.group("body"), state=state)
        except WorkflowParseError as e:
            if e.source is None and source is not None:
                raise WorkflowParseError(
                    f"Invalid action: {match.group('body').strip()!r}",
                    state=state,
                    source=source,
                    cause=e,
                ) from e
            raise

    for state in order:
        if state not in actions:
            raise WorkflowParseError("State has no action", state=state, source=source)
    return actions
