"""
Interpreter catalog — discover installed interpreters, one per major.minor.

Flow:
    search patterns → candidate dirs → python* executables → probe → dedupe

The catalog is lazy: nothing is scanned until someone asks, and a scan
is reused until ``invalidate()`` (or ``scan(force=True)``). Every scan
rebuilds the whole catalog; records are never patched in place, so a
removed or re-pointed binary can't survive as a stale entry.
"""

from __future__ import annotations

import glob
import logging
import os
import re

from pymanager.adapters.languages.python import PythonProbe
from pymanager.adapters.shell.filesystem import is_executable, resolve_symlinks
from pymanager.core.config.loader import EngineConfig
from pymanager.core.models.interpreter import (
    InterpreterRecord,
    Version,
    parse_version_output,
)

logger = logging.getLogger(__name__)

_FILENAME_VERSION_RE = re.compile(r"^python(\d+)\.(\d+)$")

# Never interpreters, even though they match python*
_EXCLUDED_MARKERS = ("python-config", "pythonw")


class InterpreterCatalog:
    """Scans configured locations for interpreters and caches the result."""

    def __init__(self, config: EngineConfig, probe: PythonProbe | None = None):
        self.config = config
        self.probe = probe or PythonProbe(timeout=config.probe_timeout)
        self._records: dict[Version, InterpreterRecord] = {}
        self._scanned = False

    # ── Public API ──────────────────────────────────────────────

    @property
    def scanned(self) -> bool:
        return self._scanned

    def invalidate(self) -> None:
        """Forget the last scan; the next access rescans."""
        self._scanned = False

    def scan(self, force: bool = False) -> list[InterpreterRecord]:
        """Return the catalog, scanning first if needed.

        Records are sorted ascending by (major, minor). An empty list is a
        valid result: nothing installed is for the caller to report.
        """
        if force:
            self.invalidate()
        if not self._scanned:
            self._records = self._build()
            self._scanned = True
        return self.records()

    def records(self) -> list[InterpreterRecord]:
        return [self._records[v] for v in sorted(self._records)]

    def lookup(self, version: Version) -> InterpreterRecord | None:
        self.scan()
        return self._records.get(version)

    def latest(self) -> InterpreterRecord | None:
        """Newest interpreter by numeric (major, minor)."""
        self.scan()
        if not self._records:
            return None
        return self._records[max(self._records)]

    # ── Scanning ────────────────────────────────────────────────

    def _build(self) -> dict[Version, InterpreterRecord]:
        preferred = os.path.normpath(self.config.expanded_preferred_dir())
        found: dict[Version, InterpreterRecord] = {}

        for candidate in self._candidates():
            record = self._inspect(candidate)
            if record is None:
                continue

            existing = found.get(record.version)
            if existing is None or self._prefer(record, existing, preferred):
                if existing is not None:
                    logger.debug(
                        "Python %s: %s replaces %s", record.label, record.path, existing.path,
                    )
                found[record.version] = record

        logger.info(
            "Catalog scan found %d interpreter(s): %s",
            len(found),
            ", ".join(found[v].label for v in sorted(found)) or "none",
        )
        return found

    def _candidates(self) -> list[str]:
        """Every python* executable in the search directories, in priority order."""
        candidates: list[str] = []
        seen_dirs: set[str] = set()

        for pattern in self.config.expanded_search_paths():
            dirs = sorted(glob.glob(pattern)) if glob.has_magic(pattern) else [pattern]
            for directory in dirs:
                directory = os.path.normpath(directory)
                if directory in seen_dirs or not os.path.isdir(directory):
                    continue
                seen_dirs.add(directory)
                logger.debug("Searching %s", directory)

                for path in sorted(glob.glob(os.path.join(glob.escape(directory), "python*"))):
                    name = os.path.basename(path)
                    if any(marker in name for marker in _EXCLUDED_MARKERS):
                        continue
                    if not is_executable(path):
                        continue
                    candidates.append(path)

        return candidates

    def _inspect(self, path: str) -> InterpreterRecord | None:
        """Probe one candidate. None means "not an interpreter we manage"."""
        result = self.probe.version_output(path)
        if not result.ok:
            logger.debug("Rejecting %s: failed to execute (%s)", path, result.error)
            return None
        if not result.output.startswith("Python"):
            logger.debug("Rejecting %s: not a Python interpreter (%r)", path, result.output)
            return None

        version: Version | None = None
        patch: int | None = None

        parsed = parse_version_output(result.output)
        if parsed is not None:
            major, minor, patch = parsed
            version = (major, minor)

        # --version said something odd (or just "Python 3"): try the name
        if version is None:
            match = _FILENAME_VERSION_RE.match(os.path.basename(path))
            if match:
                version = (int(match.group(1)), int(match.group(2)))

        # Still nothing: ask the interpreter itself
        if version is None:
            version = self.probe.version_info(path)

        if version is None:
            logger.debug("Rejecting %s: cannot determine version", path)
            return None
        if version[0] == 2:
            logger.debug("Rejecting %s: Python 2", path)
            return None

        return InterpreterRecord(
            version=version,
            path=path,
            real_path=resolve_symlinks(path, self.config.max_symlink_hops),
            version_string=result.output.splitlines()[0],
            patch=patch,
        )

    @staticmethod
    def _prefer(new: InterpreterRecord, existing: InterpreterRecord, preferred: str) -> bool:
        """Whether ``new`` should replace ``existing`` for the same major.minor.

        The preferred user-local directory always wins; otherwise the
        higher patch release wins and ties keep the first one found.
        """
        if os.path.normpath(new.directory) == preferred:
            return True
        if os.path.normpath(existing.directory) == preferred:
            return False
        if new.patch is not None and existing.patch is not None:
            return new.patch > existing.patch
        return False
