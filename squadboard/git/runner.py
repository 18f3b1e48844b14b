"""Bounded subprocess runner for the git and gh CLIs.

Every external command the board runs has a timeout. A timeout or a
missing executable comes back as a failed CommandResult, never as an
exception, so callers decide what a failure means for them.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined stdout/stderr, for error messages."""
        return (self.stdout + self.stderr).strip()


def run_command(
    cmd: list[str],
    timeout: int = DEFAULT_TIMEOUT,
    input: str | None = None,
) -> CommandResult:
    try:
        result = subprocess.run(
            cmd,
            input=input,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"[CMD] {' '.join(cmd[:3])} timed out after {timeout}s")
        return CommandResult(-1, "", f"Command timed out after {timeout}s", timed_out=True)
    except FileNotFoundError:
        return CommandResult(-1, "", f"{cmd[0]} executable not found")
    return CommandResult(result.returncode, result.stdout, result.stderr)


def run_git(args: list[str], cwd: Path, timeout: int = DEFAULT_TIMEOUT) -> CommandResult:
    """Run ``git -C <cwd> <args>``."""
    return run_command(["git", "-C", str(cwd)] + args, timeout=timeout)


def run_gh(args: list[str], timeout: int = DEFAULT_TIMEOUT, input: str | None = None) -> CommandResult:
    """Run ``gh <args>``, optionally feeding ``input`` on stdin."""
    return run_command(["gh"] + args, timeout=timeout, input=input)
