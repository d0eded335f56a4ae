"""
pm list command.

Show the declared package tree, missing packages and untracked directories.
"""

from typing import Any

from pam.package.status import format_status
from pm.commands import load_manager


def query_command(args: Any) -> int:
    """
    Execute list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 unless the declaration has invalid packages)
    """
    manager = load_manager(args)
    report = manager.status()

    print(f"Managed packages in {report.install_root}:")
    for line in format_status(report):
        print(f"  {line}" if line else line)

    return 1 if report.invalid else 0
