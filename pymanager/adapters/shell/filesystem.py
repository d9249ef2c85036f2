"""
Filesystem helpers — symlink chains, executability, file size.

Read-only probes used by the catalog and the override manager.
None of these raise for a missing or unreadable path.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def resolve_symlinks(path: str, max_hops: int = 50) -> str:
    """Follow a symlink chain to its end, at most ``max_hops`` links.

    Relative link targets are resolved against the link's directory.
    A cyclic chain stops after ``max_hops`` and returns wherever it got
    to; a dangling link returns the dangling target.
    """
    current = path
    hops = 0
    while os.path.islink(current) and hops < max_hops:
        try:
            target = os.readlink(current)
        except OSError:
            break
        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(current), target)
        current = os.path.normpath(target)
        hops += 1

    if hops >= max_hops and os.path.islink(current):
        logger.debug("Symlink chain from %s exceeded %d hops", path, max_hops)
    return current


def is_executable(path: str) -> bool:
    """True for an existing regular file we may execute."""
    return os.path.isfile(path) and os.access(path, os.X_OK)


def file_size(path: str) -> int:
    """Size in bytes, 0 when the file is missing or unreadable."""
    try:
        return os.path.getsize(path)
    except OSError:
        return 0
