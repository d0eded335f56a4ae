"""
pm init command.

Write a commented starter declaration file.
"""

from typing import Any

from pam.config.toml_handler import declaration_template, write_toml


def init_command(args: Any) -> int:
    """
    Execute init command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 once the file is written)

    Raises:
        PMError: If the file exists and --force was not given
    """
    from pm.cli import PMError

    if args.file.exists() and not args.force:
        raise PMError(f"{args.file} already exists (use --force to overwrite)")

    write_toml(args.file, declaration_template())
    print(f"Wrote {args.file}")
    return 0
