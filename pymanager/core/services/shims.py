"""
Shim publisher — make the override visible to child processes.

Children don't run our resolution logic; they search PATH. So on every
override change we publish a session-scoped directory:

    <shim_root>/pymanager-<session>/bin/
        python        #!/bin/sh exec <interpreter> "$@"
        python3       same
        python3.12    symlink → <interpreter>

and put its bin directory on PATH, after an active environment's bin
(never ahead of it). One ShimSet per session: the new one is staged
beside it and swapped in, so a failed write leaves the old one intact.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import stat
import tempfile
from collections.abc import MutableMapping

from pymanager.core.context import EngineContext
from pymanager.core.models.interpreter import Version, format_version
from pymanager.core.services.environment import env_bin_dir

logger = logging.getLogger(__name__)

SHIM_PREFIX = "pymanager-"

_SHIM_TEMPLATE = """#!/bin/sh
exec {target} "$@"
"""


# ── Search path helpers ─────────────────────────────────────────


def split_search_path(value: str) -> list[str]:
    return [entry for entry in value.split(os.pathsep) if entry]


def remove_entries(environ: MutableMapping[str, str], *dirs: str) -> None:
    """Drop every occurrence of ``dirs`` from PATH."""
    drop = {d for d in dirs if d}
    entries = [e for e in split_search_path(environ.get("PATH", "")) if e not in drop]
    environ["PATH"] = os.pathsep.join(entries)


def insert_entries(environ: MutableMapping[str, str], new_dirs: list[str]) -> None:
    """Put ``new_dirs`` at the front of PATH, or right after the env's bin.

    Existing occurrences of ``new_dirs`` are removed first.
    """
    remove_entries(environ, *new_dirs)
    entries = split_search_path(environ.get("PATH", ""))

    anchor = env_bin_dir(environ)
    if anchor and anchor in entries:
        at = entries.index(anchor) + 1
    else:
        at = 0
    entries[at:at] = new_dirs
    environ["PATH"] = os.pathsep.join(entries)


# ── Publisher ───────────────────────────────────────────────────


class ShimPublisher:
    """Writes and removes a session's shim directory."""

    def __init__(self, ctx: EngineContext):
        self.ctx = ctx

    def shim_dir(self) -> str:
        """Deterministic per-session directory name."""
        return os.path.join(self.ctx.config.shim_root, f"{SHIM_PREFIX}{self.ctx.session_id}")

    def publish(
        self,
        target: str,
        version: Version,
        extra_dirs: list[str] | None = None,
    ) -> str:
        """Write redirectors to ``target`` and put them on PATH.

        Args:
            target: Interpreter the shims exec.
            version: Its major.minor, for the ``pythonX.Y`` link.
            extra_dirs: Directories to place right after the shim bin
                (the interpreter's own bin, so pip3.X etc. resolve).

        Returns:
            The new shim directory.

        Raises:
            OSError: if the shims cannot be written. The previous ShimSet
                and PATH are left untouched in that case.
        """
        staging = self._stage(target, version)

        shim_dir = self.shim_dir()
        previous = self.ctx.override.shim_dir
        if previous and previous != shim_dir:
            self.retire(previous)
        if os.path.isdir(shim_dir):
            shutil.rmtree(shim_dir)
        os.rename(staging, shim_dir)

        bin_dir = os.path.join(shim_dir, "bin")
        dirs = [bin_dir]
        for extra in extra_dirs or []:
            if extra and extra not in dirs:
                dirs.append(extra)
        insert_entries(self.ctx.environ, dirs)

        logger.info("Published shims for %s in %s", target, bin_dir)
        return shim_dir

    def retire(self, shim_dir: str) -> None:
        """Remove a shim directory and its PATH entry. Safe to repeat."""
        if not shim_dir:
            return
        remove_entries(self.ctx.environ, os.path.join(shim_dir, "bin"))
        if os.path.isdir(shim_dir):
            shutil.rmtree(shim_dir)
            logger.info("Retired shims in %s", shim_dir)

    def _stage(self, target: str, version: Version) -> str:
        """Write a complete ShimSet into a hidden sibling directory."""
        root = self.ctx.config.shim_root
        os.makedirs(root, exist_ok=True)
        staging = tempfile.mkdtemp(prefix=f".{SHIM_PREFIX}{self.ctx.session_id}-", dir=root)
        try:
            bin_dir = os.path.join(staging, "bin")
            os.mkdir(bin_dir)
            for name in ("python", "python3"):
                self._write_redirector(os.path.join(bin_dir, name), target)
            os.symlink(target, os.path.join(bin_dir, f"python{format_version(version)}"))
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise
        return staging

    @staticmethod
    def _write_redirector(path: str, target: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write(_SHIM_TEMPLATE.format(target=shlex.quote(target)))
        mode = os.stat(path).st_mode
        os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
