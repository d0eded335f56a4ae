"""
Package Tree Walking.

This module traverses a declared package tree.

Key features:
- Depth-first pre-order: a package is visited before its dependencies
- Every node visited exactly once per traversal
- Invalid nodes are reported, not fatal, and their subtree is not entered
- Registry (name -> spec) construction for managed/untracked checks

Duplicate sources in different branches are visited independently; the
walk never deduplicates, so install/upgrade counts match the declaration.
"""

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from pam.package.manifest import (
    PackageSpec,
    ValidationError,
    coerce_package_spec,
    dependencies_of,
    describe_invalid,
    validate_package_spec,
)
from pam.package.paths import package_name

_RESERVED_NAMES = {"", ".", ".."}


@dataclass(frozen=True)
class TreeNode:
    """
    One visited node.

    Attributes:
        node: The node exactly as declared
        depth: 0 for top-level packages, +1 per dependency level
        spec: Normalised spec, None when the node is invalid
        error: Validation message, None when the node is valid
        parent: Spec of the enclosing package, None at top level
        is_last: Whether the node is the last of its siblings
    """

    node: Any
    depth: int
    spec: PackageSpec | None
    error: str | None = None
    parent: PackageSpec | None = None
    is_last: bool = True

    @property
    def valid(self) -> bool:
        return self.spec is not None


def check_node(node: Any) -> tuple[PackageSpec | None, str | None]:
    """
    Validate and normalise a single node.

    Args:
        node: Declared node

    Returns:
        (spec, None) for a valid node, (None, reason) otherwise
    """
    if not validate_package_spec(node):
        return None, describe_invalid(node)

    try:
        spec = coerce_package_spec(node)
    except ValidationError as e:
        return None, str(e)

    # The name becomes a single directory directly under the install root
    name = package_name(spec.source, spec.alias)
    if name in _RESERVED_NAMES or "/" in name or "\\" in name:
        return None, f"Invalid package {spec.source!r}: cannot derive a directory name"

    return spec, None


def iter_package_tree(
    nodes: Sequence[Any] | None,
    depth: int = 0,
    parent: PackageSpec | None = None,
) -> Iterator[TreeNode]:
    """
    Iterate over a package tree depth-first, parents before children.

    Args:
        nodes: Top-level (or dependency) nodes
        depth: Depth of the given nodes
        parent: Spec owning the given nodes

    Yields:
        TreeNode for every node, valid or not
    """
    if not nodes:
        return

    last_index = len(nodes) - 1
    for index, node in enumerate(nodes):
        spec, error = check_node(node)
        yield TreeNode(
            node=node,
            depth=depth,
            spec=spec,
            error=error,
            parent=parent,
            is_last=index == last_index,
        )

        if spec is not None:
            yield from iter_package_tree(spec.dependencies, depth + 1, spec)


def walk_package_tree(
    nodes: Sequence[Any] | None,
    action: Callable[[TreeNode], Any],
) -> None:
    """
    Apply an action to every node, pre-order.

    The action for a node returns before any of its dependencies are
    visited; whatever it schedules may still be running.

    Args:
        nodes: Package tree
        action: Called once per TreeNode
    """
    for tree_node in iter_package_tree(nodes):
        action(tree_node)


def flatten_package_tree(nodes: Sequence[Any] | None) -> list[PackageSpec]:
    """
    Flatten a tree into its valid specs, parents before children.

    Args:
        nodes: Package tree

    Returns:
        Valid PackageSpecs in pre-order
    """
    return [tree_node.spec for tree_node in iter_package_tree(nodes) if tree_node.valid]


def build_registry(nodes: Sequence[Any] | None) -> dict[str, PackageSpec]:
    """
    Build the managed registry: package name -> spec.

    When two nodes share a name, the first declared one is kept.

    Args:
        nodes: Package tree

    Returns:
        Ordered mapping of managed package names
    """
    registry: dict[str, PackageSpec] = {}
    for spec in flatten_package_tree(nodes):
        registry.setdefault(package_name(spec.source, spec.alias), spec)
    return registry
