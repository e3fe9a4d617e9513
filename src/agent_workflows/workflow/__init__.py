"""Workflow domain concepts.

This package introduces first-class types for:
- Workflow definitions parsed from Markdown (states, transitions, actions)
- Action dispatch against external collaborators
- Cooperative abort through a file marker
- The state machine executor that drives runs to completion

Import the submodules directly, e.g.
``from agent_workflows.workflow.executor import WorkflowExecutor``.
"""

__all__: list[str] = []
