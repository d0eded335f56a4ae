"""
Git Operations for Package Management.

This module runs the git commands pam needs.

Key features:
- Shallow, blob-filtered, single-branch clone with optional branch pin
- In-place pull with "already up to date" detection
- Non-blocking: each command is an asyncio subprocess
"""

import asyncio
import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

# git prints "Already up to date." (older releases: "Already up-to-date.")
_UP_TO_DATE = re.compile(r"Already up[ -]to[ -]date", re.IGNORECASE)


class GitError(Exception):
    """Base exception for git-related errors."""

    pass


@dataclass
class GitResult:
    """
    Completed git command.

    Attributes:
        returncode: Process exit status
        output: Combined stdout and stderr
    """

    returncode: int
    output: str

    @property
    def up_to_date(self) -> bool:
        """Whether the output carries git's already-up-to-date marker."""
        return bool(_UP_TO_DATE.search(self.output))


def git_executable() -> str | None:
    """Path of the git executable, or None when it is not on PATH."""
    return shutil.which("git")


def build_clone_command(
    repo_url: str, target_dir: Path, branch: str | None = None
) -> list[str]:
    """
    Build the clone command line.

    Args:
        repo_url: Git repository URL
        target_dir: Target directory for clone
        branch: Optional branch or tag to clone

    Returns:
        argv list
    """
    cmd = ["git", "clone", "--depth=1", "--filter=blob:none", "--single-branch"]
    if branch:
        cmd.append(f"--branch={branch}")
    cmd.extend([repo_url, str(target_dir)])
    return cmd


def build_pull_command(repo_dir: Path) -> list[str]:
    """Build the update-in-place command line."""
    return ["git", "-C", str(repo_dir), "pull"]


async def run_git(cmd: list[str]) -> GitResult:
    """
    Run a git command without blocking the event loop.

    Args:
        cmd: argv list starting with "git"

    Returns:
        GitResult with the exit status and captured output

    Raises:
        GitError: If git cannot be started
    """
    env = os.environ.copy()
    # Stable, untranslated messages for output classification
    env["LC_ALL"] = "C"
    # Never block on a credential prompt
    env["GIT_TERMINAL_PROMPT"] = "0"

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=env,
        )
    except FileNotFoundError as e:
        raise GitError("git command not found. Please install git.") from e
    except OSError as e:
        raise GitError(f"Failed to start git: {e}") from e

    stdout, _ = await process.communicate()
    output = (stdout or b"").decode("utf-8", errors="replace")
    return GitResult(returncode=process.returncode, output=output)


async def clone_package(
    repo_url: str, target_dir: Path, branch: str | None = None
) -> GitResult:
    """
    Clone a package repository.

    Args:
        repo_url: Git repository URL
        target_dir: Target directory for clone
        branch: Optional branch or tag to clone

    Returns:
        GitResult of the successful clone

    Raises:
        GitError: If the clone fails
    """
    result = await run_git(build_clone_command(repo_url, target_dir, branch))

    if result.returncode != 0:
        raise GitError(f"Failed to clone repository: {_last_line(result.output)}")

    return result


async def pull_package(repo_dir: Path) -> GitResult:
    """
    Update a cloned package in place.

    Args:
        repo_dir: Package repository directory

    Returns:
        GitResult; check ``up_to_date`` to tell a no-op from an update

    Raises:
        GitError: If the pull fails
    """
    result = await run_git(build_pull_command(repo_dir))

    if result.returncode != 0:
        raise GitError(f"Failed to pull repository: {_last_line(result.output)}")

    return result


def _last_line(output: str) -> str:
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    return lines[-1] if lines else "no output"
