"""
Package Specifications.

This module defines the declared package node and its validation.

Key features:
- PackageSpec dataclass (source, alias, branch, dependencies, hooks)
- Non-raising validity predicate used at every node of a walk
- Normalisation of plain mappings (TOML tables, inline dicts)

A node is valid when it is a record (a PackageSpec or a mapping) whose
``source`` is a non-empty string. Anything else is skipped by the engine
with a warning instead of aborting the run.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

# Accepted mapping keys for the optional fields, first match wins
_ALIAS_KEYS = ("as", "alias")
_CONFIGURE_KEYS = ("configure", "config")

EXAMPLE_SPEC = "{ source = 'mvllow/modes.nvim' }"


class ManifestError(Exception):
    """Base exception for package specification errors."""

    pass


class ValidationError(ManifestError):
    """Raised when a package node is malformed."""

    pass


@dataclass
class PackageSpec:
    """
    A declared package.

    Attributes:
        source: 'owner/repo' shorthand, git URL, or local directory path
        alias: Local name overriding the one derived from source
        branch: Branch or tag to clone
        dependencies: Child nodes, owned by this package
        post_checkout: Hook run after a successful install or update
        configure: Hook run once when the package list is registered
    """

    source: str
    alias: str | None = None
    branch: str | None = None
    dependencies: list[Any] = field(default_factory=list)
    post_checkout: Any = None
    configure: Any = None


def validate_package_spec(node: Any) -> bool:
    """
    Check that a node is a usable package specification.

    Args:
        node: Candidate node (PackageSpec, mapping, or anything else)

    Returns:
        True if the node is a record with a non-empty string source
    """
    if isinstance(node, PackageSpec):
        source = node.source
    elif isinstance(node, Mapping):
        source = node.get("source")
    else:
        return False

    return isinstance(source, str) and bool(source.strip())


def describe_invalid(node: Any) -> str:
    """
    Explain why a node failed validation.

    Args:
        node: Node for which validate_package_spec returned False

    Returns:
        Human-readable reason
    """
    if not isinstance(node, (PackageSpec, Mapping)):
        return (
            f"Invalid package {node!r}: expected a table with a source, "
            f"for example {EXAMPLE_SPEC}"
        )
    return (
        f"Invalid package {dict(node) if isinstance(node, Mapping) else node!r}: "
        f"'source' must be a non-empty string, for example {EXAMPLE_SPEC}"
    )


def dependencies_of(node: Any) -> list[Any]:
    """
    Child nodes declared by a node.

    Args:
        node: Any node

    Returns:
        List of child nodes (empty for non-records or missing/invalid lists)
    """
    if isinstance(node, PackageSpec):
        children = node.dependencies
    elif isinstance(node, Mapping):
        children = node.get("dependencies")
    else:
        return []

    if isinstance(children, Sequence) and not isinstance(children, (str, bytes)):
        return list(children)
    return []


def coerce_package_spec(node: Any) -> PackageSpec:
    """
    Normalise a valid node into a PackageSpec.

    Dependencies are carried over unchanged; they are validated on their own
    when the walk reaches them.

    Args:
        node: PackageSpec or mapping

    Returns:
        PackageSpec

    Raises:
        ValidationError: If the node is not valid
    """
    if not validate_package_spec(node):
        raise ValidationError(describe_invalid(node))

    if isinstance(node, PackageSpec):
        _check_fields(node.source, node.alias, node.branch)
        return node

    alias = _first(node, _ALIAS_KEYS)
    branch = node.get("branch")
    _check_fields(node["source"], alias, branch)

    return PackageSpec(
        source=node["source"],
        alias=alias,
        branch=branch or None,
        dependencies=dependencies_of(node),
        post_checkout=node.get("post_checkout"),
        configure=_first(node, _CONFIGURE_KEYS),
    )


def _check_fields(source: str, alias: Any, branch: Any) -> None:
    if alias is not None and (not isinstance(alias, str) or not alias.strip()):
        raise ValidationError(f"Invalid alias for {source}: {alias!r}")
    if alias is not None and ("/" in alias or "\\" in alias):
        raise ValidationError(f"Alias must be a plain directory name: {alias!r}")
    if branch is not None and not isinstance(branch, str):
        raise ValidationError(f"Invalid branch for {source}: {branch!r}")


def _first(node: Mapping, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if node.get(key) is not None:
            return node[key]
    return None
