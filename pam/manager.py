"""
Package Manager.

This module provides the long-lived owner of the declared package set.

Key features:
- Registration of the package tree and configuration (manage)
- install / upgrade / clean / status / health against the registered tree
- Named command dispatch for command surfaces
- Interactive confirmation for clean

Each operation snapshots the registered tree and config into a
ReconcileContext and hands it to a stateless Reconciler.
"""

import asyncio
import threading
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from pam.config import PamConfig
from pam.config.toml_handler import load_declaration
from pam.logging import get_logger
from pam.package.health import HealthCheck, check_health
from pam.package.hooks import HookResult
from pam.package.reconciler import (
    Confirm,
    ReconcileContext,
    Reconciler,
    Reindex,
    RunReport,
)
from pam.package.status import StatusReport, collect_status

logger = get_logger("manager")

AFFIRMATIVE = ("y", "yes")


class PamError(Exception):
    """Base exception for package manager errors."""

    pass


class UnknownCommandError(PamError):
    """Raised when a command name is not recognised."""

    pass


def prompt_confirm(
    candidates: list[str], input_func: Callable[[str], str] | None = None
) -> bool:
    """
    Ask whether the listed directories may be removed.

    Args:
        candidates: Directory names to remove
        input_func: Prompt function (defaults to the builtin input)

    Returns:
        True only for an explicit "y" or "yes"
    """
    message = (
        "Remove the following directories?\n" + "\n".join(candidates) + "\n[y/N]: "
    )
    try:
        answer = (input_func or input)(message)
    except EOFError:
        return False
    return answer.strip().lower() in AFFIRMATIVE


class Pam:
    """
    Declarative package manager.

    Example:
        pam = Pam()
        pam.manage(
            [
                {"source": "mvllow/pam.nvim"},
                {
                    "source": "ThePrimeagen/harpoon",
                    "as": "baboon",
                    "branch": "harpoon2",
                    "dependencies": [{"source": "nvim-lua/plenary.nvim"}],
                },
            ],
            {"install_root": "~/.local/share/nvim/site/pack/pam/start"},
        )
        pam.install()
    """

    def __init__(
        self,
        packages: Sequence[Any] | None = None,
        config: PamConfig | None = None,
        reindex: Reindex | None = None,
    ):
        """
        Initialize Pam.

        Args:
            packages: Initial package tree (configure hooks are not run)
            config: Initial configuration (defaults to schema defaults)
            reindex: Re-index step override (defaults to help tags)
        """
        self._packages: list[Any] = list(packages or [])
        self._config = config or PamConfig.default()
        self._reconciler = Reconciler(reindex)
        self._lock = threading.Lock()

    @classmethod
    def from_declaration(
        cls,
        file_path: Path,
        overrides: Mapping[str, Any] | None = None,
        reindex: Reindex | None = None,
    ) -> "Pam":
        """
        Create a manager from a pam.toml declaration file.

        Args:
            file_path: Declaration file
            overrides: Config fields taking precedence over the file's
            reindex: Re-index step override

        Returns:
            Pam with the declared tree registered

        Raises:
            TOMLError: If the file cannot be loaded
            ConfigError: If the config table is invalid
        """
        packages, file_config = load_declaration(file_path)
        config = PamConfig.from_mapping(file_config).merged(overrides)
        return cls(packages, config, reindex)

    @property
    def packages(self) -> list[Any]:
        with self._lock:
            return list(self._packages)

    @property
    def config(self) -> PamConfig:
        with self._lock:
            return self._config

    def context(self) -> ReconcileContext:
        """Snapshot of the registered tree and config for one operation."""
        with self._lock:
            return ReconcileContext(packages=tuple(self._packages), config=self._config)

    def manage(
        self,
        packages: Sequence[Any] | None,
        config: Mapping[str, Any] | PamConfig | None = None,
        configure: bool = True,
    ) -> list[HookResult]:
        """
        Register the package tree and configuration.

        Supplied config fields replace the current ones; the others are kept.
        Every package's configure hook then runs once, parents first.

        Args:
            packages: Package tree (replaces the registered one)
            config: Config fields to change, or a complete PamConfig
            configure: Run configure hooks

        Returns:
            Results of the configure hooks that ran

        Raises:
            ConfigError: If the config fields are invalid
        """
        with self._lock:
            if isinstance(config, PamConfig):
                new_config = config
            else:
                new_config = self._config.merged(config)
            self._packages = list(packages or [])
            self._config = new_config

        if not configure:
            return []
        return self._reconciler.configure(self.context())

    async def install_async(self) -> RunReport:
        return await self._reconciler.install(self.context())

    async def upgrade_async(self) -> RunReport:
        return await self._reconciler.upgrade(self.context())

    def install(self) -> RunReport:
        """Install missing packages of the registered tree."""
        return asyncio.run(self.install_async())

    def upgrade(self) -> RunReport:
        """Upgrade installed packages of the registered tree."""
        return asyncio.run(self.upgrade_async())

    def clean(self, confirm: Confirm | None = None) -> RunReport:
        """
        Remove undeclared package directories.

        Args:
            confirm: Confirmation callback (defaults to an interactive prompt)
        """
        return self._reconciler.clean(self.context(), confirm or prompt_confirm)

    def status(self) -> StatusReport:
        """Status of the registered tree against the install root."""
        context = self.context()
        return collect_status(context.packages, context.config)

    def health(self) -> list[HealthCheck]:
        """Health checks for the registered tree and config."""
        context = self.context()
        return check_health(context.packages, context.config)

    def run_command(self, name: str, confirm: Confirm | None = None) -> Any:
        """
        Run a named operation against the registered tree.

        Args:
            name: install, upgrade (update), clean, list (status) or health
            confirm: Confirmation callback for clean

        Returns:
            The operation's report

        Raises:
            UnknownCommandError: If the name is not recognised (nothing runs)
        """
        commands: dict[str, Callable[[], Any]] = {
            "install": self.install,
            "upgrade": self.upgrade,
            "update": self.upgrade,
            "clean": lambda: self.clean(confirm),
            "list": self.status,
            "status": self.status,
            "health": self.health,
        }

        if name not in commands:
            logger.error("Invalid subcommand: %s", name)
            raise UnknownCommandError(f"Invalid subcommand: {name}")

        return commands[name]()
