"""
TOML File I/O Handler.

This module reads and writes pam declaration files (``pam.toml``).

Key features:
- Parse TOML files using tomllib
- Write TOML files using tomlkit (preserves comments and formatting)
- Split a declaration into its package tree and config overrides
- Generate a commented starter declaration from the config schema

A declaration file looks like::

    [config]
    install_root = "~/.local/share/nvim/site/pack/pam/start"

    [[packages]]
    source = "ThePrimeagen/harpoon"
    as = "baboon"
    branch = "harpoon2"

    [[packages.dependencies]]
    source = "nvim-lua/plenary.nvim"
"""

import tomllib
from pathlib import Path
from typing import Any

import tomlkit

from pam.config.schema import PAM_SCHEMA, ConfigField


class TOMLError(Exception):
    """Base exception for TOML-related errors."""

    pass


def read_toml(file_path: Path) -> dict[str, Any]:
    """
    Read and parse a TOML file.

    Args:
        file_path: Path to the TOML file

    Returns:
        Parsed TOML data as dictionary

    Raises:
        TOMLError: If file cannot be read or parsed
    """
    try:
        with open(file_path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise TOMLError(f"TOML file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise TOMLError(f"Failed to parse TOML file {file_path}: {e}") from e
    except OSError as e:
        raise TOMLError(f"Failed to read TOML file {file_path}: {e}") from e


def write_toml(file_path: Path, data: Any) -> None:
    """
    Write data to a TOML file using tomlkit (preserves formatting).

    Args:
        file_path: Path to the TOML file
        data: Mapping or tomlkit document to write

    Raises:
        TOMLError: If file cannot be written
    """
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "w", encoding="utf-8") as f:
            tomlkit.dump(data, f)
    except (OSError, TypeError, ValueError) as e:
        raise TOMLError(f"Failed to write TOML file {file_path}: {e}") from e


def load_declaration(file_path: Path) -> tuple[list[Any], dict[str, Any]]:
    """
    Load a declaration file.

    Package nodes are returned exactly as declared; malformed nodes are kept
    so the engine can report and skip them individually.

    Args:
        file_path: Path to pam.toml

    Returns:
        Tuple of (package nodes, config overrides)

    Raises:
        TOMLError: If the file cannot be read or has the wrong top-level shape
    """
    data = read_toml(file_path)

    packages = data.get("packages", [])
    if not isinstance(packages, list):
        raise TOMLError(f"'packages' must be an array of tables in {file_path}")

    config = data.get("config", {})
    if not isinstance(config, dict):
        raise TOMLError(f"'config' must be a table in {file_path}")

    return packages, dict(config)


def declaration_template(
    schema: dict[str, ConfigField] | None = None,
) -> tomlkit.TOMLDocument:
    """
    Build a starter declaration document with descriptive comments.

    Args:
        schema: Config schema to document (defaults to PAM_SCHEMA)

    Returns:
        tomlkit document, ready for write_toml
    """
    schema = PAM_SCHEMA if schema is None else schema

    doc = tomlkit.document()
    doc.add(tomlkit.comment("pam declaration file"))
    doc.add(tomlkit.comment("Run `pm install` after editing the package list."))
    doc.add(tomlkit.nl())

    config_table = tomlkit.table()
    for field_name, field in schema.items():
        if field.description:
            config_table.add(tomlkit.comment(field.description))
        if field.min is not None and field.type_ is int:
            config_table.add(tomlkit.comment(f"Constraints: min: {field.min}"))
        config_table.add(field_name, field.default)
        config_table.add(tomlkit.nl())
    doc.add("config", config_table)

    packages = tomlkit.aot()
    example = tomlkit.table()
    example.add(tomlkit.comment("post_checkout runs in the package directory after"))
    example.add(tomlkit.comment("install or upgrade, e.g. post_checkout = \"make\"."))
    example.add(tomlkit.comment("configure hooks are only run when pam is embedded;"))
    example.add(tomlkit.comment("`pm` skips them with a warning."))
    example.add("source", "mvllow/pam.nvim")
    packages.append(example)

    pinned = tomlkit.table()
    pinned.add(tomlkit.comment("Rename, pin a branch and declare dependencies"))
    pinned.add("source", "ThePrimeagen/harpoon")
    pinned.add("as", "baboon")
    pinned.add("branch", "harpoon2")
    dependencies = tomlkit.aot()
    dependency = tomlkit.table()
    dependency.add("source", "nvim-lua/plenary.nvim")
    dependencies.append(dependency)
    pinned.add("dependencies", dependencies)
    packages.append(pinned)

    doc.add("packages", packages)
    return doc
