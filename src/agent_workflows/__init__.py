"""Agent Workflows.

Runs declarative, Markdown-defined workflows: a linear state diagram whose
states dispatch log, prompt, command and nested-workflow actions, with
cooperative cancellation through a filesystem abort marker.
"""

__version__ = "0.1.0"

from agent_workflows.core.config import WorkflowConfig

__all__ = ["__version__", "WorkflowConfig"]
