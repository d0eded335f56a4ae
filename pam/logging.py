"""
Logging utilities for pam.

Every message the engine emits (installed, upgraded, failed, ...) goes
through the ``pam`` logger hierarchy, so the logger doubles as the
notification sink for whoever drives the engine.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Package root logger
_root_logger = logging.getLogger("pam")

DEFAULT_FORMAT = "(pam) %(message)s"


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for pam.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string (defaults to "(pam) <message>")
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from pam.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="pam.log")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    formatter = logging.Formatter(format or DEFAULT_FORMAT)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(level)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        file_handler.setLevel(level)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "reconciler", "fetch")

    Returns:
        Logger instance
    """
    if name == "pam" or name.startswith("pam."):
        return logging.getLogger(name)
    return logging.getLogger(f"pam.{name}")


def set_level(level: str | int) -> None:
    """
    Change the log level of the pam logger and its handlers.

    Args:
        level: Log level name or int
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    _root_logger.setLevel(level)
    for handler in _root_logger.handlers:
        handler.setLevel(level)
