"""
Configuration loaders for squadboard.

Loads board tunables from board.env and per-project settings from
projects/<project_id>/project.env under the squadboard home directory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from . import envparse

logger = logging.getLogger(__name__)

HOME_ENV_VAR = "SQUADBOARD_HOME"
DEFAULT_HOME = Path.home() / ".squadboard"

BOARD_DEFAULTS = {
    "GIT_TIMEOUT": "60",
    "GH_TIMEOUT": "30",
    "AGENT_TIMEOUT": "900",
    "TRANSCRIPT_LIMIT": "500",
    "LOCK_TIMEOUT": "60",
    "DISPATCH_WORKERS": "4",
}


@dataclass
class ProjectConfig:
    """Project-level configuration from project.env"""
    id: str
    name: str
    repo_path: Path
    github_repo: str  # owner/repo, empty when it should be detected from the origin remote
    default_branch: str  # Fallback when origin/HEAD can't be detected
    dir: Path


@dataclass
class BoardSettings:
    """Board-wide tunables from board.env (timeouts in seconds)."""
    git_timeout: int = 60
    gh_timeout: int = 30
    agent_timeout: int = 900
    transcript_limit: int = 500
    lock_timeout: int = 60
    dispatch_workers: int = 4


def get_home(override: str | None = None) -> Path:
    """Resolve the squadboard home directory.

    Precedence: explicit override, $SQUADBOARD_HOME, ~/.squadboard.
    """
    if override:
        return Path(override).expanduser()
    env_home = os.environ.get(HOME_ENV_VAR)
    if env_home:
        return Path(env_home).expanduser()
    return DEFAULT_HOME


def _int_setting(env: dict, key: str) -> int:
    raw = env.get(key, BOARD_DEFAULTS[key])
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {key}={raw!r} in board.env, using {BOARD_DEFAULTS[key]}")
        return int(BOARD_DEFAULTS[key])
    if value <= 0:
        logger.warning(f"{key} must be positive (got {value}), using {BOARD_DEFAULTS[key]}")
        return int(BOARD_DEFAULTS[key])
    return value


def load_board_settings(home: Path) -> BoardSettings:
    """Load board.env and return BoardSettings (defaults when absent)."""
    env = envparse.load_env(home / "board.env", defaults=BOARD_DEFAULTS)
    return BoardSettings(
        git_timeout=_int_setting(env, "GIT_TIMEOUT"),
        gh_timeout=_int_setting(env, "GH_TIMEOUT"),
        agent_timeout=_int_setting(env, "AGENT_TIMEOUT"),
        transcript_limit=_int_setting(env, "TRANSCRIPT_LIMIT"),
        lock_timeout=_int_setting(env, "LOCK_TIMEOUT"),
        dispatch_workers=_int_setting(env, "DISPATCH_WORKERS"),
    )


def project_dir(home: Path, project_id: str) -> Path:
    return home / "projects" / project_id


def load_project_config(project_dir: Path) -> ProjectConfig:
    """Load project.env and return ProjectConfig.

    Raises:
        FileNotFoundError: if project.env doesn't exist
        KeyError: if REPO_PATH is missing
    """
    env = envparse.load_env(project_dir / "project.env")
    return ProjectConfig(
        id=project_dir.name,
        name=env.get("PROJECT_NAME", project_dir.name),
        repo_path=Path(env["REPO_PATH"]).expanduser(),
        github_repo=env.get("GITHUB_REPO", ""),
        default_branch=env.get("DEFAULT_BRANCH", "main"),
        dir=project_dir,
    )


def load_project(home: Path, project_id: str) -> ProjectConfig:
    """Load a project by id from the home directory."""
    return load_project_config(project_dir(home, project_id))


def list_projects(home: Path) -> list[ProjectConfig]:
    """List all configured projects, skipping invalid ones."""
    projects_dir = home / "projects"
    if not projects_dir.exists():
        return []

    projects = []
    for d in sorted(projects_dir.iterdir()):
        if not d.is_dir() or not (d / "project.env").exists():
            continue
        try:
            projects.append(load_project_config(d))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping project {d.name}: {e}")
    return projects
