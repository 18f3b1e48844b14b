"""
GitHub integration for issue publication.

Provides the issue-tracker contract used by the board and an implementation
backed by the gh CLI (`gh api`), plus repository resolution for a project.
"""

import json
import logging
from abc import ABC, abstractmethod
from urllib.parse import quote

from squadboard.git.runner import CommandResult, run_gh, run_git
from squadboard.lib.config import ProjectConfig

logger = logging.getLogger(__name__)


# Timeout for GitHub CLI operations (seconds)
GH_TIMEOUT_SECONDS = 30

_GITHUB_REMOTE_PREFIXES = (
    "git@github.com:",
    "https://github.com/",
    "ssh://git@github.com/",
)


class TrackerError(Exception):
    """A call to the issue tracker failed."""
    pass


class RepoNotConfigured(TrackerError):
    """No GitHub repository could be resolved for a project."""
    pass


def parse_github_repo_from_remote(url: str) -> str | None:
    """Parse owner/repo from a GitHub remote URL.

    Handles git@github.com:, https://github.com/ and ssh://git@github.com/
    forms, with or without a trailing .git.
    """
    url = url.strip()
    if url.endswith(".git"):
        url = url[:-len(".git")]

    for prefix in _GITHUB_REMOTE_PREFIXES:
        if url.startswith(prefix):
            url = url[len(prefix):]
            break

    owner, sep, name = url.partition("/")
    if not sep or not owner or not name:
        return None
    return f"{owner}/{name}"


def resolve_repo(project: ProjectConfig, timeout: int = GH_TIMEOUT_SECONDS) -> str:
    """Resolve the GitHub owner/repo for a project.

    Uses GITHUB_REPO from project.env when set, else the origin remote.

    Raises:
        RepoNotConfigured: If neither source yields a repository.
    """
    if project.github_repo:
        return project.github_repo

    result = run_git(["remote", "get-url", "origin"], project.repo_path, timeout=timeout)
    if result.success:
        repo = parse_github_repo_from_remote(result.stdout)
        if repo:
            return repo

    raise RepoNotConfigured(f"No GitHub repository configured for project {project.id}")


class IssueTracker(ABC):
    """Issue-tracker contract consumed by issue publication."""

    def resolve_repo(self, project: ProjectConfig) -> str:
        return resolve_repo(project)

    @abstractmethod
    def get_label(self, repo: str, name: str) -> dict | None:
        """Return the label, or None if it doesn't exist.

        Raises:
            TrackerError: For any failure other than not-found.
        """

    @abstractmethod
    def create_label(self, repo: str, attrs: dict) -> dict:
        """Create a label. Raises TrackerError on failure."""

    @abstractmethod
    def create_issue(self, repo: str, attrs: dict) -> dict:
        """Create an issue. Raises TrackerError on failure."""


class GhIssueTracker(IssueTracker):
    """Issue tracker backed by `gh api`."""

    def __init__(self, timeout: int = GH_TIMEOUT_SECONDS):
        self.timeout = timeout

    def resolve_repo(self, project: ProjectConfig) -> str:
        return resolve_repo(project, self.timeout)

    def _api(self, path: str, method: str = "GET", body: dict | None = None) -> CommandResult:
        args = ["api", "-X", method, path]
        if body is not None:
            args += ["--input", "-"]
        result = run_gh(args, timeout=self.timeout, input=json.dumps(body) if body is not None else None)
        if result.timed_out:
            raise TrackerError(f"GitHub API timeout ({method} {path})")
        return result

    def _json(self, result: CommandResult, what: str) -> dict:
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            raise TrackerError(f"Invalid JSON from gh while {what}") from None

    def get_label(self, repo: str, name: str) -> dict | None:
        result = self._api(f"repos/{repo}/labels/{quote(name, safe='')}")
        if result.returncode != 0:
            if "404" in result.stderr or "Not Found" in result.stderr:
                return None
            raise TrackerError(f"Failed to fetch label '{name}': {result.stderr.strip()}")
        return self._json(result, f"fetching label '{name}'")

    def create_label(self, repo: str, attrs: dict) -> dict:
        result = self._api(f"repos/{repo}/labels", method="POST", body=attrs)
        if result.returncode != 0:
            raise TrackerError(f"Failed to create label '{attrs.get('name')}': {result.stderr.strip()}")
        logger.info(f"[PUBLISH] Created label '{attrs.get('name')}' in {repo}")
        return self._json(result, "creating label")

    def create_issue(self, repo: str, attrs: dict) -> dict:
        result = self._api(f"repos/{repo}/issues", method="POST", body=attrs)
        if result.returncode != 0:
            raise TrackerError(f"Failed to create issue '{attrs.get('title')}': {result.stderr.strip()}")
        return self._json(result, "creating issue")
