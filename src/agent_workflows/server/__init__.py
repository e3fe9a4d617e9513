"""FastAPI server adapter for agent-workflows.

Keeps business logic in ``agent_workflows.workflow`` and the runner; routing,
CORS and run tracking live here.
"""

from __future__ import annotations

__all__ = ["create_app"]

from agent_workflows.server.app import create_app
