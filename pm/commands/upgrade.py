"""
pm upgrade command.

Update every declared package that is installed.
"""

import asyncio
from typing import Any

from pam.manager import Pam
from pm.commands import load_manager


def upgrade_command(args: Any) -> int:
    """
    Execute upgrade command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero if any package failed)
    """
    manager = load_manager(args)
    return asyncio.run(upgrade_async(manager))


async def upgrade_async(manager: Pam) -> int:
    """Async upgrade implementation."""
    report = await manager.upgrade_async()
    return 0 if report.ok else 1
