"""
Package Fetching.

This module acquires and updates the files of a single package.

Key features:
- Install: clone (remote) or copy (local directory); no-op when present
- Upgrade: pull (remote) or re-copy (local directory); skip when absent
- Every call ends in exactly one FetchOutcome; errors never escape
"""

import asyncio
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pam.package.git_ops import GitError, clone_package, pull_package
from pam.package.paths import ResolvedPackage


class FilesystemError(Exception):
    """Raised when copying or deleting package files fails."""

    pass


class FetchStatus(Enum):
    """Terminal state of a fetch."""

    INSTALLED = "installed"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result of fetching one package.

    Attributes:
        status: Terminal state
        name: Package name
        source: Declared source
        install_path: Package directory
        detail: Skip reason or failure cause
    """

    status: FetchStatus
    name: str
    source: str
    install_path: Path
    detail: str | None = None

    @property
    def changed(self) -> bool:
        """Whether files on disk were created or modified."""
        return self.status in (FetchStatus.INSTALLED, FetchStatus.UPDATED)

    @property
    def failed(self) -> bool:
        return self.status is FetchStatus.FAILED

    def describe(self) -> str:
        """One human-readable line for this outcome."""
        label = f"{self.name} ({self.source})"
        if self.status is FetchStatus.INSTALLED:
            return f"Installed {label}"
        if self.status is FetchStatus.UPDATED:
            return f"Upgraded {label}"
        if self.status is FetchStatus.UNCHANGED:
            return f"Unchanged {label}"
        if self.status is FetchStatus.SKIPPED:
            return f"Skipped {label}: {self.detail}"
        return f"Failed {label}: {self.detail}"


def _outcome(
    package: ResolvedPackage, status: FetchStatus, detail: str | None = None
) -> FetchOutcome:
    return FetchOutcome(
        status=status,
        name=package.name,
        source=package.source,
        install_path=package.install_path,
        detail=detail,
    )


def copy_local_package(source_dir: Path, target_dir: Path) -> None:
    """
    Copy a local package directory recursively.

    Raises:
        FilesystemError: If the copy fails
    """
    try:
        shutil.copytree(source_dir, target_dir, symlinks=True)
    except (OSError, shutil.Error) as e:
        raise FilesystemError(f"Failed to copy {source_dir} to {target_dir}: {e}") from e


def remove_package_dir(target_dir: Path) -> None:
    """
    Remove a package directory (or a symlink to one) recursively.

    Raises:
        FilesystemError: If the removal fails
    """
    try:
        if target_dir.is_symlink() or target_dir.is_file():
            target_dir.unlink()
        else:
            shutil.rmtree(target_dir)
    except OSError as e:
        raise FilesystemError(f"Failed to remove {target_dir}: {e}") from e


async def install_package(package: ResolvedPackage) -> FetchOutcome:
    """
    Install a package if its directory does not exist yet.

    Args:
        package: Resolved package

    Returns:
        INSTALLED, UNCHANGED (already present) or FAILED
    """
    if package.install_path.exists():
        return _outcome(package, FetchStatus.UNCHANGED, "already installed")

    try:
        if package.repository.is_local:
            await asyncio.to_thread(
                copy_local_package, Path(package.repository.reference), package.install_path
            )
        else:
            await clone_package(
                package.repository.reference, package.install_path, package.spec.branch
            )
    except (GitError, FilesystemError) as e:
        return _outcome(package, FetchStatus.FAILED, str(e))

    return _outcome(package, FetchStatus.INSTALLED)


async def upgrade_package(package: ResolvedPackage) -> FetchOutcome:
    """
    Update an installed package in place.

    Args:
        package: Resolved package

    Returns:
        UPDATED, UNCHANGED (already up to date), SKIPPED (not installed) or FAILED
    """
    if not package.install_path.exists():
        return _outcome(package, FetchStatus.SKIPPED, "not installed")

    try:
        if package.repository.is_local:
            source_dir = Path(package.repository.reference)
            await asyncio.to_thread(remove_package_dir, package.install_path)
            await asyncio.to_thread(copy_local_package, source_dir, package.install_path)
            return _outcome(package, FetchStatus.UPDATED)

        result = await pull_package(package.install_path)
    except (GitError, FilesystemError) as e:
        return _outcome(package, FetchStatus.FAILED, str(e))

    if result.up_to_date:
        return _outcome(package, FetchStatus.UNCHANGED, "already up to date")
    return _outcome(package, FetchStatus.UPDATED)
