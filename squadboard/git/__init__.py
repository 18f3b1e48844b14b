"""Git and gh CLI access for squadboard.

Every call goes through run_command() with an explicit timeout; a timeout
is reported like any other failure so callers never hang on git or gh.
"""

from squadboard.git.runner import CommandResult, run_command, run_gh, run_git
from squadboard.git.worktree import (
    WorktreeError,
    WorktreeProvisioner,
    GitWorktreeProvisioner,
    detect_default_branch,
    worktree_name,
    worktree_branch,
)

__all__ = [
    "CommandResult",
    "run_command",
    "run_gh",
    "run_git",
    "WorktreeError",
    "WorktreeProvisioner",
    "GitWorktreeProvisioner",
    "detect_default_branch",
    "worktree_name",
    "worktree_branch",
]
