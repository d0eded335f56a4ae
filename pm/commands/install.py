"""
pm install command.

Install every declared package that is not on disk yet.
"""

import asyncio
from typing import Any

from pam.manager import Pam
from pam.package.fetch import FetchStatus
from pm.commands import load_manager


def install_command(args: Any) -> int:
    """
    Execute install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero if any package failed)
    """
    manager = load_manager(args)

    # Run async install
    return asyncio.run(install_async(manager, args))


async def install_async(manager: Pam, args: Any) -> int:
    """Async install implementation."""
    report = await manager.install_async()

    if args.verbose:
        print(
            f"\nInstalled: {report.count(FetchStatus.INSTALLED)}, "
            f"Failed: {len(report.failed)}"
        )

    return 0 if report.ok else 1
