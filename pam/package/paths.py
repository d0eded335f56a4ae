"""
Package name and install path resolution.

Maps a declared source to the directory it lives in under the install root
and to the reference it is fetched from.
"""

import re
from dataclasses import dataclass
from pathlib import Path

from pam.config import PamConfig
from pam.package.manifest import PackageSpec

# "https://", "ssh://", "file://", ...
_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")
# scp-like git syntax: git@github.com:owner/repo.git
_SCP_LIKE = re.compile(r"^[\w.-]+@[\w.-]+:")


@dataclass(frozen=True)
class Repository:
    """
    Where a package is fetched from.

    Attributes:
        reference: Local directory path or git remote URL
        is_local: True when reference is a directory to copy
    """

    reference: str
    is_local: bool


@dataclass(frozen=True)
class ResolvedPackage:
    """
    A package spec with its name, install path and repository resolved.

    Attributes:
        spec: The declared package
        name: Directory name under the install root
        install_path: Absolute install path
        repository: Fetch location
    """

    spec: PackageSpec
    name: str
    install_path: Path
    repository: Repository

    @property
    def source(self) -> str:
        return self.spec.source


def expand_source(source: str) -> str:
    """Expand a leading ``~`` to the home directory."""
    if source == "~" or source.startswith("~/"):
        return str(Path.home()) + source[1:]
    return source


def package_name(source: str, alias: str | None = None) -> str:
    """
    Derive the local package name.

    Args:
        source: Declared source
        alias: Optional name override

    Returns:
        The alias if given, otherwise the final path segment of the source

    Example:
        >>> package_name("owner/repo")
        'repo'
        >>> package_name("owner/repo", "foo")
        'foo'
    """
    if alias:
        return alias
    return expand_source(source).rstrip("/").rsplit("/", 1)[-1]


def install_path(name: str, config: PamConfig) -> Path:
    """Install path of a package name under the configured root."""
    return config.install_root / name


def resolve_repository(source: str, git_host: str = "https://github.com") -> Repository:
    """
    Resolve where a source is fetched from.

    Args:
        source: Declared source
        git_host: Host prefix for 'owner/repo' shorthand

    Returns:
        Repository: local directory, verbatim remote URL, or expanded shorthand
    """
    expanded = expand_source(source)
    if Path(expanded).is_dir():
        return Repository(reference=expanded, is_local=True)

    if _URL_SCHEME.match(source) or _SCP_LIKE.match(source):
        return Repository(reference=source, is_local=False)

    shorthand = source.strip("/")
    return Repository(reference=f"{git_host.rstrip('/')}/{shorthand}.git", is_local=False)


def resolve_package(spec: PackageSpec, config: PamConfig) -> ResolvedPackage:
    """
    Resolve name, install path and repository for a package.

    Args:
        spec: Validated package spec
        config: Reconciler configuration

    Returns:
        ResolvedPackage
    """
    name = package_name(spec.source, spec.alias)
    return ResolvedPackage(
        spec=spec,
        name=name,
        install_path=install_path(name, config),
        repository=resolve_repository(spec.source, config.git_host),
    )
