"""
Package Status Reporting.

Cross-references the declared tree with the install root: which packages
are managed and installed, which are declared but missing, which nodes are
invalid, and which directories on disk nobody declared.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pam.config import PamConfig
from pam.package.paths import package_name
from pam.package.reconciler import find_untracked
from pam.package.walker import build_registry, iter_package_tree


@dataclass(frozen=True)
class PackageEntry:
    """
    One declared node as seen by the status report.

    Attributes:
        depth: Nesting depth (0 for top-level packages)
        is_last: Last among its siblings (for tree drawing)
        name: Resolved package name (None for invalid nodes)
        source: Declared source (None for invalid nodes)
        installed: Whether the package directory exists
        error: Validation message for invalid nodes
    """

    depth: int
    is_last: bool
    name: str | None = None
    source: str | None = None
    installed: bool = False
    error: str | None = None

    @property
    def valid(self) -> bool:
        return self.error is None


@dataclass
class StatusReport:
    """
    Status of a declared tree against its install root.

    Attributes:
        install_root: Inspected directory
        entries: Every declared node in pre-order
        untracked: Directories under the install root not declared
    """

    install_root: Path
    entries: list[PackageEntry] = field(default_factory=list)
    untracked: list[str] = field(default_factory=list)

    @property
    def managed(self) -> list[PackageEntry]:
        return [entry for entry in self.entries if entry.valid and entry.installed]

    @property
    def missing(self) -> list[PackageEntry]:
        return [entry for entry in self.entries if entry.valid and not entry.installed]

    @property
    def invalid(self) -> list[PackageEntry]:
        return [entry for entry in self.entries if not entry.valid]


def collect_status(packages: Sequence[Any], config: PamConfig) -> StatusReport:
    """
    Build the status report for a declared tree.

    Args:
        packages: Declared package tree
        config: Configuration (install root)

    Returns:
        StatusReport
    """
    report = StatusReport(install_root=config.install_root)

    for tree_node in iter_package_tree(packages):
        if not tree_node.valid:
            report.entries.append(
                PackageEntry(
                    depth=tree_node.depth,
                    is_last=tree_node.is_last,
                    error=tree_node.error,
                )
            )
            continue

        spec = tree_node.spec
        name = package_name(spec.source, spec.alias)
        report.entries.append(
            PackageEntry(
                depth=tree_node.depth,
                is_last=tree_node.is_last,
                name=name,
                source=spec.source,
                installed=(config.install_root / name).exists(),
            )
        )

    report.untracked = find_untracked(config.install_root, build_registry(packages))
    return report


def format_status(report: StatusReport) -> list[str]:
    """
    Render a status report as text lines.

    Dependencies are drawn under their package with tree glyphs.

    Example output::

        pam.nvim (mvllow/pam.nvim)
        baboon (ThePrimeagen/harpoon)
        └── plenary.nvim (nvim-lua/plenary.nvim) [missing]
    """
    lines = []
    # Whether each open ancestor level still has siblings below it
    open_levels: list[bool] = []

    for entry in report.entries:
        del open_levels[entry.depth:]
        prefix = "".join("│   " if more else "    " for more in open_levels[1:])
        if entry.depth > 0:
            prefix += "└── " if entry.is_last else "├── "
        open_levels.append(not entry.is_last)

        if not entry.valid:
            lines.append(f"{prefix}! {entry.error}")
            continue

        line = f"{prefix}{entry.name} ({entry.source})"
        if not entry.installed:
            line += " [missing]"
        lines.append(line)

    if report.untracked:
        lines.append("")
        lines.append(f"Untracked packages: {', '.join(report.untracked)}")
        lines.append("Consider removing untracked packages with `pm clean`.")

    return lines
