"""Configuration for the workflow runner."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_workflows.core.logging import configure_logging


class LLMConfig(BaseSettings):
    """Configuration for LLM providers used by prompt actions."""

    provider: Literal["openai", "llama", "echo"] = Field(
        default="openai",
        description="LLM provider to use",
    )

    # OpenAI settings
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4",
        description="OpenAI model to use",
    )
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Temperature for OpenAI model",
    )

    # LLaMA settings
    llama_model_path: Path | None = Field(
        default=None,
        description="Path to LLaMA model file",
    )
    llama_n_ctx: int = Field(
        default=4096,
        gt=0,
        description="Context window size for LLaMA",
    )
    llama_n_threads: int | None = Field(
        default=None,
        description="Number of threads for LLaMA (None = auto)",
    )

    model_config = SettingsConfigDict(
        env_prefix="AGENT_WORKFLOWS_LLM_",
        env_file=".env",
        extra="ignore",
    )


class GitHubConfig(BaseSettings):
    """Configuration for the GitHub issue collaborator."""

    token: str | None = Field(
        default=None,
        description="GitHub personal access token",
    )
    repository: str | None = Field(
        default=None,
        description="Repository in format 'owner/repo'",
    )
    base_url: str = Field(
        default="https://api.github.com",
        description="GitHub API base URL",
    )

    model_config = SettingsConfigDict(
        env_prefix="AGENT_WORKFLOWS_GITHUB_",
        env_file=".env",
        extra="ignore",
    )


class ExecutorConfig(BaseSettings):
    """Configuration for workflow loading and execution."""

    workflows_dir: Path = Field(
        default=Path("workflows"),
        description="Directory containing workflow definitions (*.md)",
    )
    prompts_dir: Path = Field(
        default=Path("prompts"),
        description="Directory containing prompt templates",
    )
    control_dir: Path = Field(
        default=Path(".agent-workflows"),
        description="Directory holding the abort marker",
    )
    max_depth: int = Field(
        default=10,
        ge=1,
        description="Maximum nesting depth for 'Run workflow' actions",
    )
    command_timeout_seconds: float = Field(
        default=600.0,
        gt=0,
        description="Timeout for shell and git commands",
    )
    commands: dict[str, str] = Field(
        default_factory=dict,
        description="Shell commands available to 'Execute command', by name",
    )
    clear_abort_on_start: bool = Field(
        default=False,
        description="Remove a stale abort marker when the process starts",
    )

    model_config = SettingsConfigDict(
        env_prefix="AGENT_WORKFLOWS_EXECUTOR_",
        env_file=".env",
        extra="ignore",
    )


class WorkflowConfig(BaseSettings):
    """Main configuration for the workflow runner."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    json_logs: bool = Field(
        default=True,
        description="Emit structured JSON log lines",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="LLM configuration",
    )
    github: GitHubConfig = Field(
        default_factory=GitHubConfig,
        description="GitHub configuration",
    )
    executor: ExecutorConfig = Field(
        default_factory=ExecutorConfig,
        description="Executor configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="AGENT_WORKFLOWS_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = "DEBUG" if self.debug else self.log_level
        configure_logging(level, json_output=self.json_logs)
