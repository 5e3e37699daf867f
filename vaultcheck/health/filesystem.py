"""Filesystem permission checks."""

from __future__ import annotations

import logging
import os
import stat
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

# Placeholder kept in otherwise empty directories
PLACEHOLDER = "empty"

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def is_executable(path: Path | str) -> bool:
    """True if any execute bit is set on ``path``."""
    mode = os.stat(path, follow_symlinks=False).st_mode
    return bool(stat.S_IMODE(mode) & _EXEC_BITS)


def is_writable(path: Path | str) -> bool:
    return os.access(path, os.W_OK)


def _walk(root: Path) -> Iterator[os.DirEntry[str]]:
    """Pre-order traversal: each directory entry is yielded before its children."""
    with os.scandir(root) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        yield entry
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(Path(entry.path))


def check_recursive_directory_writable(path: Path | str) -> bool:
    """Check that a directory and its content are writable and nothing in it is executable.

    Stops at the first offending entry. Stat results are read fresh for every
    entry, so a permission change made since the previous scan is always seen.
    """
    root = Path(path)
    if not root.is_dir():
        logger.debug("Not a directory: %s", root)
        return False

    try:
        for entry in _walk(root):
            if entry.name in (".", "..", PLACEHOLDER):
                continue
            if entry.is_file(follow_symlinks=False) and is_executable(entry.path):
                logger.info("Executable file found in %s: %s", root, entry.path)
                return False
            if not is_writable(entry.path):
                logger.info("Entry not writable in %s: %s", root, entry.path)
                return False
    except OSError as e:
        logger.warning("Could not scan %s: %s", root, e)
        return False

    return True
