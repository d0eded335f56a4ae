"""
pm health command.

Report problems with git, the configuration and the declared packages.
"""

from typing import Any

from pam.package.health import HealthLevel
from pm.commands import load_manager

_MARKS = {
    HealthLevel.OK: "OK",
    HealthLevel.WARN: "WARNING",
    HealthLevel.ERROR: "ERROR",
}


def health_command(args: Any) -> int:
    """
    Execute health command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (1 if any check is an error)
    """
    manager = load_manager(args)
    checks = manager.health()

    section = None
    for check in checks:
        if check.section != section:
            section = check.section
            print(f"\n{section}")
        print(f"- {_MARKS[check.level]} {check.message}")
        for advice in check.advice:
            print(f"  - ADVICE: {advice}")

    return 1 if any(check.level is HealthLevel.ERROR for check in checks) else 0
