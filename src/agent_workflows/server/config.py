"""Configuration for the REST server.

The server starts without GitHub or LLM credentials; workflows that need them
fail at the action that uses them, like they do on the command line.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseSettings):
    """Settings for the REST API."""

    runs_state_file: Path = Field(
        default=Path(".agent-workflows/runs.json"),
        description="JSON file the run records are persisted to.",
    )
    max_run_records: int = Field(
        default=500,
        ge=1,
        description="Finished runs beyond this many are dropped, oldest first.",
    )

    # Dev-friendly CORS. Override via AGENT_WORKFLOWS_SERVER_CORS_ORIGINS=...
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="AGENT_WORKFLOWS_SERVER_", env_file=".env", extra="ignore"
    )

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
