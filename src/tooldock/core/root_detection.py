"""Locate the meaningful top of an extracted archive."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def detect_package_root(extracted_path: Path) -> Path:
    """Collapse a single wrapping directory such as ``node-v22.2.0-linux-x64/``.

    Hidden entries (names starting with ``.``) are ignored. If exactly one
    visible top-level entry exists and it is a directory, that directory is
    the root. Any other shape (no directories, several directories, or loose
    top-level files) yields ``extracted_path`` itself, which is always safe.

    Args:
        extracted_path: Directory produced by the archive extractor

    Returns:
        The package root
    """
    visible = sorted(entry for entry in extracted_path.iterdir() if not entry.name.startswith("."))
    directories = [entry for entry in visible if entry.is_dir() and not entry.is_symlink()]

    if len(directories) == 1 and len(visible) == 1:
        logger.debug("Using single top-level directory %s as package root", directories[0].name)
        return directories[0]

    logger.debug(
        "Using extract directory as package root (%d visible entries, %d directories)",
        len(visible),
        len(directories),
    )
    return extracted_path
