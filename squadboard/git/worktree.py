"""Build worktree provisioning and repository branch detection.

Every build card gets an isolated worktree at
<repo>/.squads/worktrees/<agent-slug>-<card-id> on branch
squads/<agent-slug>-<card-id>, created from the repo's default branch.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from squadboard.git.runner import run_git, DEFAULT_TIMEOUT
from squadboard.lib.config import ProjectConfig
from squadboard.lib.constants import BRANCH_PREFIX, WORKTREES_DIR

logger = logging.getLogger(__name__)


class WorktreeError(Exception):
    """Worktree could not be provisioned."""
    pass


def worktree_name(agent_slug: str, card_id: str) -> str:
    return f"{agent_slug}-{card_id}"


def worktree_branch(agent_slug: str, card_id: str) -> str:
    return f"{BRANCH_PREFIX}{worktree_name(agent_slug, card_id)}"


def detect_default_branch(repo_path: Path, fallback: str = "main", timeout: int = DEFAULT_TIMEOUT) -> str:
    """Detect the repository's default branch.

    Tries origin/HEAD first, then a local main/master branch, then
    ``fallback``. A timed-out git call counts as a miss.
    """
    result = run_git(["symbolic-ref", "refs/remotes/origin/HEAD"], repo_path, timeout=timeout)
    if result.success and result.stdout.strip():
        return result.stdout.strip().rsplit("/", 1)[-1]

    result = run_git(["branch", "--list", "main", "master"], repo_path, timeout=timeout)
    if result.success:
        names = {line.strip().lstrip("* ").strip() for line in result.stdout.splitlines()}
        if "main" in names:
            return "main"
        if "master" in names:
            return "master"

    return fallback


class WorktreeProvisioner(ABC):
    """Ensures an isolated worktree + branch exists for build-lane work."""

    @abstractmethod
    def ensure(self, project: ProjectConfig, agent_slug: str, card_id: str) -> Path:
        """Return the worktree path, creating it if needed.

        Raises:
            WorktreeError: If the worktree can't be created.
        """

    @abstractmethod
    def default_branch(self, project: ProjectConfig) -> str:
        """Return the repository's default branch."""


class GitWorktreeProvisioner(WorktreeProvisioner):
    """Provisions worktrees with `git worktree add`, every call bounded by a timeout."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT):
        self.timeout = timeout

    def default_branch(self, project: ProjectConfig) -> str:
        return detect_default_branch(project.repo_path, project.default_branch, self.timeout)

    def ensure(self, project: ProjectConfig, agent_slug: str, card_id: str) -> Path:
        name = worktree_name(agent_slug, card_id)
        path = project.repo_path / WORKTREES_DIR / name
        branch = worktree_branch(agent_slug, card_id)

        if path.exists():
            logger.debug(f"[WORKTREE] Reusing {path}")
            return path

        path.parent.mkdir(parents=True, exist_ok=True)
        base_branch = self.default_branch(project)

        result = run_git(
            ["worktree", "add", "-b", branch, str(path), base_branch],
            project.repo_path,
            timeout=self.timeout,
        )
        if result.success:
            logger.info(f"[WORKTREE] Created {path} on {branch} from {base_branch}")
            return path

        if result.timed_out:
            raise WorktreeError(f"git worktree add timed out after {self.timeout}s")

        # Branch survives from an earlier worktree: attach it instead
        if "already exists" in result.output:
            retry = run_git(["worktree", "add", str(path), branch], project.repo_path, timeout=self.timeout)
            if retry.success:
                logger.info(f"[WORKTREE] Attached existing branch {branch} at {path}")
                return path
            raise WorktreeError(f"Failed to attach worktree for {branch}: {retry.output}")

        raise WorktreeError(f"Failed to create worktree for {branch}: {result.output}")
