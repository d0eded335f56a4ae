"""
pm subcommands.

Each module exposes ``<name>_command(args) -> int`` returning an exit code.
"""

from typing import Any

from pam.logging import get_logger
from pam.manager import Pam
from pam.package.paths import package_name
from pam.package.walker import flatten_package_tree

logger = get_logger("pm")


def load_manager(args: Any) -> Pam:
    """
    Build a manager from the declaration file named on the command line.

    Configure hooks are not run; packages that declare one get a warning.

    Args:
        args: Parsed command-line arguments

    Returns:
        Pam with the declared tree registered

    Raises:
        PMError: If the declaration file does not exist
    """
    from pm.cli import PMError

    if not args.file.exists():
        raise PMError(
            f"Declaration file not found: {args.file}. Run `pm init` to create one."
        )

    manager = Pam.from_declaration(args.file, {"install_root": args.install_root})
    logger.debug("Using %s with config %s", args.file, manager.config.to_mapping())

    configured = [
        package_name(spec.source, spec.alias)
        for spec in flatten_package_tree(manager.packages)
        if spec.configure is not None
    ]
    if configured:
        logger.warning(
            "configure hooks only run when pam is embedded, skipping: %s",
            ", ".join(configured),
        )

    return manager
