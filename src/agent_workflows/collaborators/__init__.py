"""External collaborators reached by action dispatch.

The executor only knows the :class:`~agent_workflows.collaborators.base.Collaborator`
protocol. The modules here are the default implementations: prompt rendering
and LLM execution, shell / git commands and GitHub issues.
"""

__all__: list[str] = []
