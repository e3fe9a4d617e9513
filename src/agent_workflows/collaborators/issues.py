"""GitHub issue tracking wrapper."""

import logging
from dataclasses import dataclass

from github import Auth, Github, GithubException
from github.Repository import Repository

from agent_workflows.core.config import GitHubConfig
from agent_workflows.core.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CreatedIssue:
    """Minimal issue metadata returned from GitHub."""

    repository: str
    number: int
    title: str
    url: str


class IssueTracker:
    """Creates and closes issues for ``issue_*`` commands."""

    def __init__(self, config: GitHubConfig, repo: Repository | None = None) -> None:
        """Connect to the configured repository.

        Args:
            config: GitHub configuration.
            repo: Pre-resolved repository (tests inject a mock here).

        Raises:
            ValueError: If required configuration is missing.
            StorageError: If the repository cannot be reached.
        """
        if not config.repository:
            raise ValueError("GitHub repository is required")

        self.config = config
        self._github: Github | None = None

        if repo is not None:
            self.repo = repo
            return

        if not config.token:
            raise ValueError("GitHub token is required")

        self._github = Github(auth=Auth.Token(config.token), base_url=config.base_url)
        try:
            self.repo = self._github.get_repo(config.repository)
        except GithubException as e:
            raise StorageError(
                f"Failed to connect to repository {config.repository}", cause=e
            ) from e
        logger.info("Connected to repository", extra={"repo": config.repository})

    def create_issue(
        self, *, title: str, body: str = "", labels: list[str] | None = None
    ) -> CreatedIssue:
        if not title.strip():
            raise ValueError("Issue title is required")
        try:
            issue = self.repo.create_issue(title=title.strip(), body=body, labels=labels or [])
        except GithubException as e:
            raise StorageError(f"Failed to create issue {title!r}", cause=e) from e
        logger.info("Created issue", extra={"issue_number": issue.number, "title": issue.title})
        return CreatedIssue(
            repository=self.config.repository or "",
            number=issue.number,
            title=issue.title,
            url=issue.html_url,
        )

    def close_issue(self, *, issue_number: int) -> None:
        if issue_number <= 0:
            raise ValueError("issue_number must be a positive integer")
        try:
            self.repo.get_issue(issue_number).edit(state="closed")
        except GithubException as e:
            raise StorageError(f"Failed to close issue #{issue_number}", cause=e) from e
        logger.info("Closed issue", extra={"issue_number": issue_number})

    def close(self) -> None:
        if self._github is not None:
            self._github.close()
