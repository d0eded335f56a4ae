"""
Package Reconciler.

This module makes the install root match a declared package tree.

Key features:
- install: fetch every declared package that is missing
- upgrade: update every declared package that is present
- clean: remove undeclared package directories after confirmation
- configure: run registration-time hooks
- One asyncio task per package; results joined before the single
  re-index step and the summary

Failures are contained per package: a failed clone, a raising hook or an
undeletable directory is reported and the rest of the run continues.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pam.config import PamConfig
from pam.logging import get_logger
from pam.package.fetch import (
    FetchOutcome,
    FetchStatus,
    FilesystemError,
    install_package,
    remove_package_dir,
    upgrade_package,
)
from pam.package.helptags import generate_helptags
from pam.package.hooks import HookResult, HookType, run_hook
from pam.package.manifest import PackageSpec
from pam.package.paths import ResolvedPackage, package_name, resolve_package
from pam.package.walker import iter_package_tree

logger = get_logger("reconciler")

Fetch = Callable[[ResolvedPackage], Awaitable[FetchOutcome]]
Confirm = Callable[[list[str]], bool]
Reindex = Callable[[PamConfig], Any]


@dataclass(frozen=True)
class ReconcileContext:
    """
    Everything one reconciliation pass reads.

    Attributes:
        packages: Declared package tree (read-only for the pass)
        config: Configuration for the pass
    """

    packages: Sequence[Any]
    config: PamConfig


@dataclass
class RunReport:
    """
    Aggregated result of one operation.

    Attributes:
        operation: "install", "upgrade" or "clean"
        outcomes: One outcome per valid node, in declaration (pre-order) order
        hooks: Results of the post_checkout hooks that ran
        invalid: Validation messages for skipped nodes
        removed: Directories removed by clean
        errors: Directories clean failed to remove
        reindexed: Whether the re-index step ran
        cancelled: Whether clean was declined
    """

    operation: str
    outcomes: list[FetchOutcome] = field(default_factory=list)
    hooks: list[HookResult] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    reindexed: bool = False
    cancelled: bool = False

    def count(self, status: FetchStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def failed(self) -> list[FetchOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    @property
    def ok(self) -> bool:
        """True when no package failed to fetch or be removed."""
        return not self.failed and not self.errors


def default_reindex(config: PamConfig) -> int:
    """Regenerate help tags under the install root."""
    return generate_helptags(config.install_root)


def find_untracked(install_root: Path, managed: set[str] | dict[str, Any]) -> list[str]:
    """
    Directories under the install root that are not managed.

    Args:
        install_root: Directory holding one directory per package
        managed: Managed package names

    Returns:
        Sorted directory names
    """
    if not install_root.is_dir():
        return []

    return sorted(
        entry.name
        for entry in install_root.iterdir()
        if entry.is_dir() and entry.name not in managed
    )


class Reconciler:
    """
    Reconciles an install root against a declared package tree.

    The reconciler keeps no state between calls; each operation receives a
    ReconcileContext.
    """

    def __init__(self, reindex: Reindex | None = None):
        """
        Initialize Reconciler.

        Args:
            reindex: Called once after a run that changed packages
                (defaults to help tag generation)
        """
        self.reindex = reindex or default_reindex

    async def install(self, context: ReconcileContext) -> RunReport:
        """
        Install every declared package that is not on disk.

        post_checkout runs for each package that was installed.

        Args:
            context: Package tree and config

        Returns:
            RunReport
        """
        logger.info("Installing packages...")
        try:
            context.config.install_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # packages then fail individually
            logger.error("Cannot create %s: %s", context.config.install_root, e)

        report = await self._run(
            context, "install", install_package, FetchStatus.INSTALLED
        )

        if not report.count(FetchStatus.INSTALLED) and report.ok:
            logger.info("All packages are already installed")
        else:
            self._summarize(report)

        return report

    async def upgrade(self, context: ReconcileContext) -> RunReport:
        """
        Update every declared package that is on disk.

        post_checkout runs for each package that was updated.

        Args:
            context: Package tree and config

        Returns:
            RunReport
        """
        logger.info("Upgrading packages...")

        report = await self._run(
            context, "upgrade", upgrade_package, FetchStatus.UPDATED
        )

        if not report.count(FetchStatus.UPDATED) and report.ok:
            logger.info("Packages are already up to date")
        else:
            self._summarize(report)

        return report

    def clean(self, context: ReconcileContext, confirm: Confirm) -> RunReport:
        """
        Remove package directories that are no longer declared.

        Args:
            context: Package tree and config
            confirm: Receives the candidate names; deletion proceeds only
                if it returns True

        Returns:
            RunReport with removed directories
        """
        report = RunReport(operation="clean")
        managed = self._managed_names(context, report)
        to_remove = find_untracked(context.config.install_root, managed)

        if not to_remove:
            logger.info("No packages to remove")
            return report

        if not confirm(to_remove):
            logger.info("Clean cancelled")
            report.cancelled = True
            return report

        logger.info("Removing unused packages...")
        for name in to_remove:
            try:
                remove_package_dir(context.config.install_root / name)
            except FilesystemError as e:
                logger.error("%s", e)
                report.errors.append(name)
                continue
            logger.info("Removed %s", name)
            report.removed.append(name)

        if report.removed:
            self._reindex(context.config, report)

        return report

    def configure(self, context: ReconcileContext) -> list[HookResult]:
        """
        Run every package's configure hook once, parents before dependencies.

        Hook failures are logged and returned, never raised.

        Args:
            context: Package tree and config

        Returns:
            Results of the hooks that ran
        """
        results = []
        for tree_node in iter_package_tree(context.packages):
            if not tree_node.valid:
                logger.warning("%s", tree_node.error)
                continue

            spec = tree_node.spec
            name = package_name(spec.source, spec.alias)
            result = run_hook(
                spec.configure,
                HookType.CONFIGURE,
                name,
                context.config.install_root / name,
                timeout=context.config.hook_timeout,
            )
            if result is not None:
                results.append(result)

        return results

    async def _run(
        self,
        context: ReconcileContext,
        operation: str,
        fetch: Fetch,
        hook_status: FetchStatus,
    ) -> RunReport:
        report = RunReport(operation=operation)
        path_locks: dict[Path, asyncio.Lock] = {}
        claimed_by: dict[Path, str] = {}
        tasks: list[asyncio.Task] = []

        # The walk dispatches each package before descending into its
        # dependencies; nothing here waits for a fetch to finish.
        for tree_node in iter_package_tree(context.packages):
            if not tree_node.valid:
                logger.warning("%s", tree_node.error)
                report.invalid.append(tree_node.error)
                continue

            package = resolve_package(tree_node.spec, context.config)
            if package.install_path in claimed_by:
                logger.warning(
                    "%s and %s both resolve to %s; processing them one after another",
                    claimed_by[package.install_path],
                    package.source,
                    package.install_path,
                )
            else:
                claimed_by[package.install_path] = package.source

            lock = path_locks.setdefault(package.install_path, asyncio.Lock())
            tasks.append(
                asyncio.create_task(
                    self._process(package, lock, fetch, hook_status, context.config, report)
                )
            )

        report.outcomes.extend(await asyncio.gather(*tasks))

        if any(outcome.status is hook_status for outcome in report.outcomes):
            await asyncio.to_thread(self._reindex, context.config, report)

        return report

    async def _process(
        self,
        package: ResolvedPackage,
        lock: asyncio.Lock,
        fetch: Fetch,
        hook_status: FetchStatus,
        config: PamConfig,
        report: RunReport,
    ) -> FetchOutcome:
        async with lock:
            try:
                outcome = await fetch(package)
            except Exception as e:
                outcome = FetchOutcome(
                    status=FetchStatus.FAILED,
                    name=package.name,
                    source=package.source,
                    install_path=package.install_path,
                    detail=f"{type(e).__name__}: {e}",
                )

            _notify(outcome)

            if outcome.status is hook_status:
                result = await asyncio.to_thread(
                    run_hook,
                    package.spec.post_checkout,
                    HookType.POST_CHECKOUT,
                    package.name,
                    package.install_path,
                    config.hook_timeout,
                )
                if result is not None:
                    report.hooks.append(result)

        return outcome

    def _reindex(self, config: PamConfig, report: RunReport) -> None:
        if not config.helptags:
            return

        logger.info("Refreshing help tags...")
        try:
            self.reindex(config)
        except Exception as e:
            logger.error("Failed to refresh help tags: %s", e)
            return
        report.reindexed = True

    def _managed_names(self, context: ReconcileContext, report: RunReport) -> set[str]:
        names = set()
        for tree_node in iter_package_tree(context.packages):
            if not tree_node.valid:
                logger.warning("%s", tree_node.error)
                report.invalid.append(tree_node.error)
                continue
            spec: PackageSpec = tree_node.spec
            names.add(package_name(spec.source, spec.alias))
        return names

    def _summarize(self, report: RunReport) -> None:
        counts = ", ".join(
            f"{report.count(status)} {status.value}"
            for status in FetchStatus
            if report.count(status)
        )
        if report.failed:
            logger.error("Finished %s with failures: %s", report.operation, counts)
        else:
            logger.info("Finished %s: %s", report.operation, counts)


def _notify(outcome: FetchOutcome) -> None:
    if outcome.failed:
        logger.error("%s", outcome.describe())
    else:
        logger.info("%s", outcome.describe())
