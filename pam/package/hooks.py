"""
Package Lifecycle Hooks.

This module runs the per-package hooks.

Key features:
- Hook types: post_checkout (after install/update) and configure (on register)
- Python callables or shell commands (string or argv list)
- Environment variable injection for commands
- Subprocess execution with timeout
- Failures captured in a HookResult, never raised to the caller
"""

import inspect
import os
import shlex
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pam.logging import get_logger

logger = get_logger("hooks")


class HookError(Exception):
    """Base exception for hook-related errors."""

    pass


class HookType(Enum):
    """Hook type enumeration."""

    POST_CHECKOUT = "post_checkout"
    CONFIGURE = "configure"


@dataclass(frozen=True)
class HookResult:
    """
    Outcome of one hook invocation.

    Attributes:
        hook_type: Which hook ran
        package: Package name
        error: Failure message, None on success
    """

    hook_type: HookType
    package: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def execute_hook(
    hook: Any,
    hook_type: HookType,
    package: str,
    package_dir: Path | None = None,
    env_vars: dict[str, str] | None = None,
    timeout: int = 300,
) -> None:
    """
    Execute a lifecycle hook.

    Args:
        hook: Callable taking no arguments, or a shell command
        hook_type: Type of hook
        package: Package name
        package_dir: Package directory (working directory for commands)
        env_vars: Additional environment variables for commands
        timeout: Timeout in seconds for commands

    Raises:
        HookError: If the hook fails
    """
    if callable(hook):
        try:
            result = hook()
        except Exception as e:
            raise HookError(f"{hook_type.value} hook raised {type(e).__name__}: {e}") from e
        if inspect.iscoroutine(result):
            result.close()
            raise HookError(f"{hook_type.value} hook must be synchronous")
        return

    if isinstance(hook, str):
        try:
            cmd = shlex.split(hook)
        except ValueError as e:
            raise HookError(f"Invalid {hook_type.value} hook command: {e}") from e
    elif isinstance(hook, (list, tuple)) and all(isinstance(part, str) for part in hook):
        cmd = list(hook)
    else:
        raise HookError(f"Unsupported {hook_type.value} hook: {hook!r}")

    if not cmd:
        raise HookError(f"Empty {hook_type.value} hook command")

    env = os.environ.copy()
    if env_vars:
        env.update(env_vars)
    env["PAM_PACKAGE_NAME"] = package
    env["PAM_HOOK_TYPE"] = hook_type.value
    if package_dir is not None:
        env["PAM_PACKAGE_DIR"] = str(package_dir)

    cwd = package_dir if package_dir is not None and package_dir.is_dir() else None

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise HookError(
            f"{hook_type.value} hook timed out after {timeout} seconds"
        ) from e
    except OSError as e:
        raise HookError(f"Failed to execute {hook_type.value} hook: {e}") from e

    if result.returncode != 0:
        raise HookError(
            f"{hook_type.value} hook failed with exit code {result.returncode}:\n"
            f"stdout: {result.stdout}\n"
            f"stderr: {result.stderr}"
        )


def run_hook(
    hook: Any,
    hook_type: HookType,
    package: str,
    package_dir: Path | None = None,
    timeout: int = 300,
) -> HookResult | None:
    """
    Run a hook if one is set, logging and capturing any failure.

    Args:
        hook: Hook value from the package spec (may be None)
        hook_type: Type of hook
        package: Package name
        package_dir: Package directory
        timeout: Timeout in seconds for commands

    Returns:
        HookResult, or None when the package has no such hook
    """
    if hook is None:
        return None

    if hook_type is HookType.POST_CHECKOUT:
        logger.info("Running post checkout for %s", package)

    try:
        execute_hook(hook, hook_type, package, package_dir, timeout=timeout)
    except HookError as e:
        logger.error("Hook failed for %s: %s", package, e)
        return HookResult(hook_type=hook_type, package=package, error=str(e))

    return HookResult(hook_type=hook_type, package=package)
