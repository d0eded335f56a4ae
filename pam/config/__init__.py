"""
pam Configuration - typed reconciler configuration backed by TOML.

This module provides:
- PamConfig, the immutable configuration a reconciliation run reads
- Merging of caller-supplied overrides over the current configuration
- Declaration file loading (see toml_handler)

Example usage:
    from pam.config import PamConfig

    config = PamConfig.default().merged({"install_root": "/tmp/pack/start"})
    print(config.install_root)
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from pam.config.schema import (
    PAM_SCHEMA,
    ValidationError,
    default_install_root,
    validate_config,
)


class ConfigError(Exception):
    """Base exception for config API errors."""

    pass


@dataclass(frozen=True)
class PamConfig:
    """
    Reconciler configuration.

    Attributes:
        install_root: Absolute directory holding one directory per package
        git_host: Host prefix for 'owner/repo' shorthand sources
        helptags: Whether the re-index step regenerates doc/tags files
        hook_timeout: Timeout in seconds for shell-command hooks
    """

    install_root: Path
    git_host: str = "https://github.com"
    helptags: bool = True
    hook_timeout: int = 300

    def __post_init__(self):
        # Normalise here so every resolved install path is absolute
        root = Path(self.install_root).expanduser()
        object.__setattr__(self, "install_root", root.absolute())
        object.__setattr__(self, "git_host", self.git_host.rstrip("/"))

    @classmethod
    def default(cls) -> "PamConfig":
        """Configuration with every field at its schema default."""
        return cls(install_root=Path(default_install_root()))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PamConfig":
        """
        Build a configuration from a (possibly partial) mapping.

        Missing fields take their defaults.

        Raises:
            ConfigError: If the mapping has unknown or invalid fields
        """
        return cls.default().merged(data)

    def merged(self, overrides: Mapping[str, Any] | None) -> "PamConfig":
        """
        Return a copy with the supplied fields replacing the current ones.

        Fields that are absent or None keep their current value.

        Args:
            overrides: Field name -> new value

        Returns:
            New PamConfig

        Raises:
            ConfigError: If an override is unknown or fails validation
        """
        if not overrides:
            return self

        supplied = {key: value for key, value in overrides.items() if value is not None}
        if isinstance(supplied.get("install_root"), Path):
            supplied["install_root"] = str(supplied["install_root"])

        try:
            validate_config(supplied, PAM_SCHEMA, partial=True)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        if "install_root" in supplied:
            supplied["install_root"] = Path(supplied["install_root"])

        return replace(self, **supplied)

    def to_mapping(self) -> dict[str, Any]:
        """Plain dictionary form, suitable for writing back to TOML."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["install_root"] = str(self.install_root)
        return data


__all__ = ["PamConfig", "ConfigError"]
