"""
Configuration Schema.

This module declares the fields pam understands in the ``[config]`` table of
a declaration file and validates values against them.

Key features:
- Type-checked field definitions with constraints
- Validation of partial (override) and complete configurations
"""

import os
from dataclasses import dataclass
from typing import Any


class SchemaError(Exception):
    """Base exception for schema-related errors."""

    pass


class ValidationError(SchemaError):
    """Raised when value validation fails."""

    pass


@dataclass
class ConfigField:
    """
    One field of the ``[config]`` table.

    Attributes:
        type_: Expected value type
        default: Value used when the declaration omits the field
        description: Written as a comment into generated templates
        min: Lower bound (numbers) or minimum length (strings)
    """

    type_: type
    default: Any
    description: str = ""
    min: Any = None

    def __post_init__(self):
        if not _is_instance(self.default, self.type_):
            raise SchemaError(
                f"Default value {self.default!r} does not match type {self.type_.__name__}"
            )
        if self.min is not None and self.type_ not in (int, float, str):
            raise SchemaError(f"min is not supported for {self.type_.__name__} fields")

    def validate(self, value: Any) -> None:
        """
        Check a value against the field's type and bound.

        Raises:
            ValidationError: If the value is rejected
        """
        if not _is_instance(value, self.type_):
            raise ValidationError(
                f"Expected type {self.type_.__name__}, got {type(value).__name__}"
            )
        if self.min is None:
            return

        if self.type_ is str:
            if len(value.strip()) < self.min:
                raise ValidationError(f"Must be at least {self.min} characters")
        elif value < self.min:
            raise ValidationError(f"Value {value} is less than minimum {self.min}")


def _is_instance(value: Any, type_: type) -> bool:
    # bool is a subclass of int, but `hook_timeout = true` is a mistake
    if type_ in (int, float) and isinstance(value, bool):
        return False
    if type_ is float and isinstance(value, int):
        return True
    return isinstance(value, type_)


def default_install_root() -> str:
    """
    Default install root: the editor's native package "start" directory.

    Honors ``$XDG_DATA_HOME`` and falls back to ``~/.local/share``.
    """
    data_home = os.environ.get("XDG_DATA_HOME") or "~/.local/share"
    return f"{data_home.rstrip('/')}/nvim/site/pack/pam/start"


PAM_SCHEMA: dict[str, ConfigField] = {
    "install_root": ConfigField(
        str,
        default_install_root(),
        "Directory every managed package is installed into",
        min=1,
    ),
    "git_host": ConfigField(
        str,
        "https://github.com",
        "Host used to expand 'owner/repo' shorthand sources",
        min=1,
    ),
    "helptags": ConfigField(
        bool,
        True,
        "Regenerate doc/tags help indexes after packages change",
    ),
    "hook_timeout": ConfigField(
        int,
        300,
        "Timeout in seconds for shell-command hooks",
        min=1,
    ),
}


def validate_config(
    config: dict[str, Any],
    schema: dict[str, ConfigField] | None = None,
    partial: bool = False,
) -> None:
    """
    Validate a configuration dictionary against a schema.

    Args:
        config: The configuration dictionary to validate
        schema: The schema dictionary (defaults to PAM_SCHEMA)
        partial: Allow missing fields (used for overrides)

    Raises:
        ValidationError: If validation fails
    """
    schema = PAM_SCHEMA if schema is None else schema

    for key in config:
        if key not in schema:
            raise ValidationError(f"Unknown configuration field: {key}")

    for field_name, field in schema.items():
        if field_name not in config:
            if partial:
                continue
            raise ValidationError(f"Missing required field: {field_name}")

        try:
            field.validate(config[field_name])
        except ValidationError as e:
            raise ValidationError(f"Field '{field_name}': {e}") from e
