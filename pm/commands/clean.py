"""
pm clean command.

Remove package directories that are no longer declared.
"""

from typing import Any

from pam.manager import prompt_confirm
from pm.commands import load_manager


def clean_command(args: Any) -> int:
    """
    Execute clean command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success or cancel, 1 if a directory could not be removed)
    """
    manager = load_manager(args)

    if args.noconfirm:
        report = manager.clean(lambda candidates: True)
    else:
        report = manager.clean(prompt_confirm)

    return 0 if report.ok else 1
