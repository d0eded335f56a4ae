"""
pm CLI - pam package manager.

Command-line interface over the package tree declared in pam.toml.

Usage:
    pm install                   Install missing packages
    pm upgrade                   Upgrade installed packages (alias: update)
    pm clean                     Remove undeclared packages
    pm list                      List declared packages (alias: status)
    pm health                    Check git, config and packages
    pm init                      Write a starter pam.toml
"""

import argparse
import os
import sys
from pathlib import Path

from pam.config import ConfigError
from pam.config.toml_handler import TOMLError
from pam.logging import set_level, setup_logging
from pam.manager import PamError

COMMANDS = ("install", "upgrade", "update", "clean", "list", "status", "health", "init")


class PMError(Exception):
    """Base exception for pm errors."""

    pass


def default_declaration_file() -> Path:
    """Declaration file used when --file is not given."""
    if os.environ.get("PAM_FILE"):
        return Path(os.environ["PAM_FILE"]).expanduser()
    config_home = os.environ.get("XDG_CONFIG_HOME") or "~/.config"
    return Path(config_home).expanduser() / "pam" / "pam.toml"


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="pm",
        description="pam - declarative package manager for editor plugins",
        add_help=False,
    )

    parser.add_argument("-h", "--help", action="store_true", help="Show help")
    parser.add_argument(
        "-f", "--file", type=Path, default=None, help="Declaration file (pam.toml)"
    )
    parser.add_argument(
        "--install-root", default=None, help="Override the configured install root"
    )
    parser.add_argument(
        "-y", "--noconfirm", action="store_true", help="Skip confirmation prompts"
    )
    parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing file on init"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only report warnings and errors"
    )

    # Free-form so unknown commands get our own error instead of argparse's
    parser.add_argument("command", nargs="?", help="Operation to run")

    return parser


def print_help():
    """Print help message."""
    help_text = """
pm - pam package manager

Usage:
    pm [options] <command>

Commands:
    install                      Install missing packages
    upgrade, update              Upgrade installed packages
    clean                        Remove undeclared packages
    list, status                 List declared packages
    health                       Check git, config and packages
    init                         Write a starter pam.toml

Options:
    -f, --file <path>            Declaration file (default: $PAM_FILE or
                                 $XDG_CONFIG_HOME/pam/pam.toml)
    --install-root <dir>         Override the configured install root
    -y, --noconfirm              Skip confirmation prompts
    --force                      Overwrite an existing file on init
    -v, --verbose                Verbose output
    -q, --quiet                  Only report warnings and errors
    -h, --help                   Show this help
"""
    print(help_text.strip())


def main(argv: list[str] | None = None) -> int:
    """Main entry point for pm CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)
    if args.file is None:
        args.file = default_declaration_file()

    setup_logging()
    if args.verbose:
        set_level("DEBUG")
    elif args.quiet:
        set_level("WARNING")

    try:
        if args.help or not args.command:
            print_help()
            return 0

        if args.command not in COMMANDS:
            print(f"Error: Invalid subcommand: {args.command}", file=sys.stderr)
            print(f"Valid subcommands: {', '.join(COMMANDS)}", file=sys.stderr)
            return 1

        if args.command == "init":
            from pm.commands.init import init_command

            return init_command(args)

        elif args.command == "install":
            from pm.commands.install import install_command

            return install_command(args)

        elif args.command in ("upgrade", "update"):
            from pm.commands.upgrade import upgrade_command

            return upgrade_command(args)

        elif args.command == "clean":
            from pm.commands.clean import clean_command

            return clean_command(args)

        elif args.command in ("list", "status"):
            from pm.commands.query import query_command

            return query_command(args)

        elif args.command == "health":
            from pm.commands.health import health_command

            return health_command(args)

    except (PMError, PamError, ConfigError, TOMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
