"""
Override manager — setpy's engine: set, clear and query the session override.

``set`` never adopts a broken interpreter: it rescans, then checks the
binary is non-empty and actually runs before anything is committed.
Build mode remembers the pip-safety toggle it replaced so ``clear``
can put back exactly what was there, including "it was unset".

Session rule: build mode never survives into a new session. The
override interpreter may, but only through the exported PYTHON path.
"""

from __future__ import annotations

import glob
import logging
import os
from dataclasses import dataclass
from enum import Enum

from pymanager.adapters.shell.filesystem import file_size, is_executable, resolve_symlinks
from pymanager.core.context import EngineContext
from pymanager.core.models.interpreter import (
    InterpreterRecord,
    Version,
    format_version,
    parse_version,
    parse_version_output,
)
from pymanager.core.models.override import OverrideState
from pymanager.core.persistence.exported_state import (
    ExportedState,
    capture_toggle,
    enter_build_mode,
    export_bin_dir,
    export_interpreter,
    export_session,
    leave_build_mode,
    unexport_interpreter,
)
from pymanager.core.services.shims import (
    SHIM_PREFIX,
    ShimPublisher,
    remove_entries,
    split_search_path,
)

logger = logging.getLogger(__name__)

LATEST_ALIASES = ("latest", "auto")


class OverrideErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CORRUPT = "corrupt"
    EXEC_FAILED = "exec_failed"
    PUBLISH_FAILED = "publish_failed"


class OverrideError(Exception):
    """Raised when an override cannot be set."""

    def __init__(self, kind: OverrideErrorKind, message: str, available: list[str] | None = None):
        super().__init__(message)
        self.kind = kind
        self.available = available or []


@dataclass
class SetResult:
    """Outcome of a successful ``set``."""

    version: str
    path: str
    shim_dir: str
    build_mode: bool
    environment_active: bool = False


@dataclass
class ClearResult:
    """Outcome of ``clear``."""

    cleared_version: str | None = None
    cleared_build_mode: bool = False

    @property
    def nothing_to_clear(self) -> bool:
        return self.cleared_version is None and not self.cleared_build_mode


class OverrideManager:
    """Owns transitions of ``ctx.override``."""

    def __init__(self, ctx: EngineContext):
        self.ctx = ctx
        self.shims = ShimPublisher(ctx)

    def get(self) -> OverrideState:
        return self.ctx.override.model_copy(deep=True)

    # ── set ─────────────────────────────────────────────────────

    def set(self, version_arg: str, build_mode: bool = False) -> SetResult:
        """Make ``version_arg`` the session default.

        Accepts ``3.12``, ``python3.12``, ``py3.12``, ``latest`` or ``auto``.

        Raises:
            OverrideError: NOT_FOUND, CORRUPT, EXEC_FAILED, or
                PUBLISH_FAILED when the shims cannot be written.
        """
        catalog = self.ctx.catalog
        catalog.scan(force=True)
        available = [r.label for r in catalog.records()]

        record = self._pick(version_arg.strip(), available)
        target = self._target(record)

        if file_size(target) == 0:
            raise OverrideError(
                OverrideErrorKind.CORRUPT,
                f"Python binary at {target} is empty (0 bytes). "
                f"Please reinstall Python {record.label}.",
            )

        probe = self.ctx.probe.version_output(target)
        if not probe.ok:
            raise OverrideError(
                OverrideErrorKind.EXEC_FAILED,
                f"Python binary at {target} failed to execute: {probe.error}. "
                f"Please reinstall Python {record.label}.",
            )

        # ── Commit ──
        previous = self.ctx.override
        bin_dir = os.path.dirname(target)
        stale_bin = previous.bin_dir
        on_path = [e for e in split_search_path(self.ctx.environ.get("PATH", "")) if e != stale_bin]
        # Only a dir we put on PATH is ours to take off again
        owned_bin = "" if bin_dir in on_path else bin_dir

        try:
            shim_dir = self.shims.publish(target, record.version, extra_dirs=[bin_dir])
        except OSError as e:
            raise OverrideError(
                OverrideErrorKind.PUBLISH_FAILED,
                f"Could not write shims for Python {record.label}: {e}",
            ) from e

        if stale_bin and stale_bin != bin_dir:
            remove_entries(self.ctx.environ, stale_bin)
        export_bin_dir(self.ctx.environ, owned_bin)
        export_interpreter(self.ctx.environ, target)
        export_session(self.ctx.environ, self.ctx.session_id)

        saved = previous.saved_toggle
        enable_build = build_mode or previous.build_mode
        if build_mode and not previous.build_mode:
            saved = capture_toggle(self.ctx.environ)
            enter_build_mode(self.ctx.environ, saved)

        self.ctx.override = OverrideState(
            version=record.version,
            path=target,
            build_mode=enable_build,
            session_owner_id=self.ctx.session_id,
            saved_toggle=saved,
            shim_dir=shim_dir,
            bin_dir=owned_bin,
        )
        logger.info(
            "Override set to Python %s (%s)%s",
            record.label, target, " with build mode" if enable_build else "",
        )

        env = self.ctx.detector.detect(self.ctx.environ)
        return SetResult(
            version=record.label,
            path=target,
            shim_dir=shim_dir,
            build_mode=enable_build,
            environment_active=env.active,
        )

    def _pick(self, text: str, available: list[str]) -> InterpreterRecord:
        catalog = self.ctx.catalog

        if text in LATEST_ALIASES:
            record = catalog.latest()
            if record is None:
                raise OverrideError(
                    OverrideErrorKind.NOT_FOUND,
                    "No Python 3.x installations found on this system",
                )
            return record

        version = parse_version(text)
        if version is None:
            raise OverrideError(
                OverrideErrorKind.NOT_FOUND,
                f"Invalid Python version {text!r} (expected e.g. 3.12)",
                available,
            )

        record = catalog.lookup(version)
        if record is None:
            raise OverrideError(
                OverrideErrorKind.NOT_FOUND,
                f"Python {format_version(version)} not found on this system",
                available,
            )
        return record

    def _target(self, record: InterpreterRecord) -> str:
        """Real interpreter behind a record; pythonX.Y beside it if the chain is broken."""
        target = resolve_symlinks(record.path, self.ctx.config.max_symlink_hops)
        if not is_executable(target):
            sibling = os.path.join(record.directory, f"python{record.label}")
            if is_executable(sibling):
                target = sibling
        return target

    # ── clear ───────────────────────────────────────────────────

    def clear(self) -> ClearResult:
        """Remove the override and build mode. Clearing nothing is fine."""
        state = self.ctx.override
        result = ClearResult(
            cleared_version=state.label or None,
            cleared_build_mode=state.build_mode,
        )
        if result.nothing_to_clear:
            return result

        if state.build_mode:
            leave_build_mode(self.ctx.environ, state.saved_toggle)
        if state.active:
            unexport_interpreter(self.ctx.environ)
            self.shims.retire(state.shim_dir)
            remove_entries(self.ctx.environ, state.bin_dir)
            export_bin_dir(self.ctx.environ, "")

        self.ctx.override = OverrideState(session_owner_id=self.ctx.session_id)
        logger.info("Override cleared")
        return result

    # ── validation ──────────────────────────────────────────────

    def validate(self) -> InterpreterRecord | None:
        """Re-check the override against a fresh scan.

        Returns the catalog record, or None when the override has gone
        stale (uninstalled, or no longer executable).
        """
        version = self.ctx.override.version
        if version is None:
            return None
        self.ctx.catalog.scan(force=True)
        record = self.ctx.catalog.lookup(version)
        if record is None or not is_executable(record.path):
            logger.debug("Override %s is stale", format_version(version))
            return None
        return record

    # ── sessions ────────────────────────────────────────────────

    def begin_session(self) -> bool:
        """Apply the session-boundary rule. True when a new session began.

        A new session clears inherited build mode (restoring the toggle
        from its exported saved value) and takes ownership of the
        exported session id.
        """
        environ = self.ctx.environ
        exported = ExportedState.from_environ(environ)
        if exported.session_id == self.ctx.session_id:
            return False

        if exported.build_mode:
            logger.info("Clearing inherited build mode for new shell session")
            leave_build_mode(environ, exported.saved_toggle)

        self.ctx.override = self.ctx.override.model_copy(
            update={"build_mode": False, "session_owner_id": self.ctx.session_id},
        )
        export_session(environ, self.ctx.session_id)
        return True

    def restore(self) -> None:
        """Rebuild ``ctx.override`` from exported variables."""
        new_session = self.begin_session()
        exported = ExportedState.from_environ(self.ctx.environ)
        if not exported.python:
            return

        version = self._version_of(exported.python)
        if version is None:
            logger.debug("Cannot tell the version of exported PYTHON=%s", exported.python)
            return

        own_shims = self.shims.shim_dir()
        build_mode = exported.build_mode and not new_session
        self.ctx.override = OverrideState(
            version=version,
            path=exported.python,
            build_mode=build_mode,
            session_owner_id=self.ctx.session_id,
            saved_toggle=exported.saved_toggle if build_mode else self.ctx.override.saved_toggle,
            shim_dir=own_shims if os.path.isdir(own_shims) else "",
            bin_dir=exported.bin_dir,
        )
        logger.debug("Restored override %s from environment", format_version(version))

    def _version_of(self, python: str) -> Version | None:
        """Version of an exported interpreter: shim link name, else ask it."""
        pattern = os.path.join(
            glob.escape(self.ctx.config.shim_root), f"{SHIM_PREFIX}*", "bin", "python*.*",
        )
        path_entries = self.ctx.environ.get("PATH", "").split(os.pathsep)
        for link in glob.glob(pattern):
            if os.path.dirname(link) not in path_entries or not os.path.islink(link):
                continue
            if os.readlink(link) == python:
                version = parse_version(os.path.basename(link))
                if version is not None:
                    return version

        probe = self.ctx.probe.version_output(python)
        parsed = parse_version_output(probe.output) if probe.ok else None
        if parsed is not None:
            return parsed[0], parsed[1]
        return self.ctx.probe.version_info(python)
