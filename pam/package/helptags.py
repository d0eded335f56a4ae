"""
Help tag index generation.

Rebuilds the ``doc/tags`` file of every package under the install root, the
same index the editor's ``:helptags`` command writes, so new and updated
packages have working help.
"""

import re
from pathlib import Path

from pam.logging import get_logger

logger = get_logger("helptags")

# *tag-name* anchors; tags never contain whitespace, '*' or '|'
_TAG = re.compile(r"(?<![^\s(\[])\*([^*\s|]+)\*(?=[\s)\]]|$)")
# Translated help files use a language suffix instead of .txt: foo.jax, foo.cnx
_TRANSLATED = re.compile(r"^\.[a-z]{2}x$")


class HelptagsError(Exception):
    """Raised when a tags file cannot be written."""

    pass


def help_files(doc_dir: Path) -> list[Path]:
    """Help files in a doc directory, sorted by name."""
    return sorted(
        path
        for path in doc_dir.iterdir()
        if path.is_file() and (path.suffix == ".txt" or _TRANSLATED.match(path.suffix))
    )


def extract_tags(text: str) -> list[str]:
    """
    Extract help tag anchors from help text.

    Example:
        >>> extract_tags("*pam.txt*  The package manager  *Pam*")
        ['pam.txt', 'Pam']
    """
    return _TAG.findall(text)


def build_tags(doc_dir: Path) -> list[str]:
    """
    Build sorted tag lines for a doc directory.

    Returns:
        Lines in ``tag<TAB>file<TAB>/*tag*`` format; first definition wins
    """
    seen: dict[str, str] = {}
    for path in help_files(doc_dir):
        text = path.read_text(encoding="utf-8", errors="replace")
        for tag in extract_tags(text):
            if tag in seen:
                if seen[tag] != path.name:
                    logger.debug("Duplicate tag %s in %s", tag, path)
                continue
            seen[tag] = path.name

    return [f"{tag}\t{name}\t/*{_escape(tag)}*" for tag, name in sorted(seen.items())]


def _escape(tag: str) -> str:
    # Search patterns must not treat '\' or '/' specially
    return tag.replace("\\", "\\\\").replace("/", "\\/")


def write_tags(doc_dir: Path) -> bool:
    """
    Write ``doc/tags`` for one package.

    Returns:
        True if a tags file was written

    Raises:
        HelptagsError: If reading help files or writing the index fails
    """
    try:
        lines = build_tags(doc_dir)
        if not lines:
            return False
        (doc_dir / "tags").write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as e:
        raise HelptagsError(f"Failed to write help tags in {doc_dir}: {e}") from e
    return True


def generate_helptags(install_root: Path) -> int:
    """
    Regenerate help tags for every package under the install root.

    A package whose index cannot be written is logged and skipped.

    Args:
        install_root: Directory holding one directory per package

    Returns:
        Number of tags files written
    """
    if not install_root.is_dir():
        return 0

    written = 0
    for package_dir in sorted(install_root.iterdir()):
        doc_dir = package_dir / "doc"
        if not doc_dir.is_dir():
            continue
        try:
            if write_tags(doc_dir):
                written += 1
        except HelptagsError as e:
            logger.error("%s", e)

    return written
