"""
Health checks.

Diagnostics for a pam setup: is git available, does the install root
exist, are the declared packages well-formed, and is anything installed
that is no longer declared.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pam.config import PamConfig
from pam.package.git_ops import git_executable
from pam.package.manifest import EXAMPLE_SPEC
from pam.package.status import collect_status


class HealthLevel(Enum):
    """Severity of a health check."""

    OK = "ok"
    WARN = "warn"
    ERROR = "error"


@dataclass(frozen=True)
class HealthCheck:
    """
    One diagnostic result.

    Attributes:
        section: Heading the check belongs to
        level: Severity
        message: What was found
        advice: Suggested fixes
    """

    section: str
    level: HealthLevel
    message: str
    advice: list[str] = field(default_factory=list)


def check_external_tools() -> list[HealthCheck]:
    section = "External tools"
    if git_executable() is None:
        return [
            HealthCheck(
                section,
                HealthLevel.ERROR,
                "`git` executable not found.",
                [
                    "Install it with your package manager.",
                    "Check that your `$PATH` is set correctly.",
                ],
            )
        ]
    return [HealthCheck(section, HealthLevel.OK, "`git` executable found.")]


def check_config(config: PamConfig) -> list[HealthCheck]:
    section = "Config"
    root = config.install_root
    if root.is_dir():
        return [HealthCheck(section, HealthLevel.OK, f"`install_root`: '{root}'")]
    return [
        HealthCheck(
            section,
            HealthLevel.ERROR,
            f"`install_root` not found: '{root}'",
            [
                "Run `pm install` to create it, or",
                "set `install_root` in the [config] table of your pam.toml.",
            ],
        )
    ]


def check_packages(packages: Sequence[Any], config: PamConfig) -> list[HealthCheck]:
    """Checks for declared packages and untracked directories."""
    status = collect_status(packages, config)
    section = f"Managed packages ({len(status.entries)})"
    checks = []

    for entry in status.entries:
        indent = "   " * (entry.depth - 1) + "└─ " if entry.depth else ""
        if not entry.valid:
            checks.append(
                HealthCheck(
                    section,
                    HealthLevel.ERROR,
                    f"{indent}{entry.error}",
                    [
                        f"Ensure the package has a valid 'source', e.g.: `{EXAMPLE_SPEC}`",
                    ],
                )
            )
        elif entry.installed:
            checks.append(
                HealthCheck(section, HealthLevel.OK, f"{indent}{entry.name} `{entry.source}`")
            )
        else:
            checks.append(
                HealthCheck(
                    section,
                    HealthLevel.WARN,
                    f"{indent}{entry.name} `{entry.source}` is not installed",
                    ["Run `pm install`."],
                )
            )

    if status.untracked:
        checks.append(
            HealthCheck(
                "Untracked packages",
                HealthLevel.WARN,
                f"Found untracked packages: `{', '.join(status.untracked)}`",
                ["Consider removing untracked packages with `pm clean`."],
            )
        )
    else:
        checks.append(
            HealthCheck("Untracked packages", HealthLevel.OK, "No untracked packages found.")
        )

    return checks


def check_health(packages: Sequence[Any], config: PamConfig) -> list[HealthCheck]:
    """
    Run every health check.

    Args:
        packages: Declared package tree
        config: Configuration

    Returns:
        Checks in report order
    """
    return [
        *check_external_tools(),
        *check_config(config),
        *check_packages(packages, config),
    ]
