"""
Exported state — the only engine state that crosses a process boundary.

Child processes can't see the parent's in-memory OverrideState. What
they do inherit is the environment, so exactly these variables are
written here and nothing else is shared:

    PYTHON / PYTHON3                      override interpreter (real path)
    PIP_REQUIRE_VIRTUALENV                pip-safety toggle
    PYMANAGER_BUILD_MODE                  "1" while build mode is on
    PYMANAGER_SAVED_PIP_REQUIRE_VIRTUALENV_SET / ..._VIRTUALENV
                                          toggle value before build mode
    PYMANAGER_BIN_DIR                     interpreter bin dir that set added to PATH
    PYMANAGER_SESSION_PID                 session that owns the above
    PATH                                  carries the shim directory

Everything in this module reads or writes a plain mutable mapping, so
the same code serves ``os.environ``, a test dict, or a context's copy.
"""

from __future__ import annotations

import shlex
from collections.abc import Mapping, MutableMapping

from pydantic import BaseModel, Field

from pymanager.core.models.override import SavedToggle

PYTHON_VARS = ("PYTHON", "PYTHON3")
PIP_TOGGLE_VAR = "PIP_REQUIRE_VIRTUALENV"
BUILD_MODE_VAR = "PYMANAGER_BUILD_MODE"
SAVED_TOGGLE_SET_VAR = "PYMANAGER_SAVED_PIP_REQUIRE_VIRTUALENV_SET"
SAVED_TOGGLE_VAR = "PYMANAGER_SAVED_PIP_REQUIRE_VIRTUALENV"
SESSION_VAR = "PYMANAGER_SESSION_PID"
BIN_DIR_VAR = "PYMANAGER_BIN_DIR"

EXPORTED_VARIABLES: tuple[str, ...] = (
    *PYTHON_VARS,
    PIP_TOGGLE_VAR,
    BUILD_MODE_VAR,
    SAVED_TOGGLE_SET_VAR,
    SAVED_TOGGLE_VAR,
    SESSION_VAR,
    BIN_DIR_VAR,
    "PATH",
)


class ExportedState(BaseModel):
    """Snapshot of the exported variables, as a child process sees them."""

    python: str = ""
    session_id: str = ""
    bin_dir: str = ""
    build_mode: bool = False
    saved_toggle: SavedToggle = Field(default_factory=SavedToggle)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> ExportedState:
        return cls(
            python=environ.get("PYTHON", "") or environ.get("PYTHON3", ""),
            session_id=environ.get(SESSION_VAR, ""),
            bin_dir=environ.get(BIN_DIR_VAR, ""),
            build_mode=environ.get(BUILD_MODE_VAR, "") == "1",
            saved_toggle=SavedToggle(
                was_set=environ.get(SAVED_TOGGLE_SET_VAR, "0") == "1",
                value=environ.get(SAVED_TOGGLE_VAR, ""),
            ),
        )


# ── Writers ─────────────────────────────────────────────────────


def export_interpreter(environ: MutableMapping[str, str], path: str) -> None:
    for var in PYTHON_VARS:
        environ[var] = path


def unexport_interpreter(environ: MutableMapping[str, str]) -> None:
    for var in PYTHON_VARS:
        environ.pop(var, None)


def capture_toggle(environ: Mapping[str, str]) -> SavedToggle:
    """Record the pip-safety toggle exactly, including "unset"."""
    if PIP_TOGGLE_VAR in environ:
        return SavedToggle(was_set=True, value=environ[PIP_TOGGLE_VAR])
    return SavedToggle()


def enter_build_mode(environ: MutableMapping[str, str], saved: SavedToggle) -> None:
    """Export build mode and the captured toggle; relax the toggle for pip."""
    environ[SAVED_TOGGLE_SET_VAR] = "1" if saved.was_set else "0"
    environ[SAVED_TOGGLE_VAR] = saved.value
    environ[BUILD_MODE_VAR] = "1"
    environ[PIP_TOGGLE_VAR] = "0"


def leave_build_mode(environ: MutableMapping[str, str], saved: SavedToggle) -> None:
    """Restore the toggle to its captured value and drop build-mode exports."""
    if saved.was_set:
        environ[PIP_TOGGLE_VAR] = saved.value
    else:
        environ.pop(PIP_TOGGLE_VAR, None)
    for var in (BUILD_MODE_VAR, SAVED_TOGGLE_SET_VAR, SAVED_TOGGLE_VAR):
        environ.pop(var, None)


def export_session(environ: MutableMapping[str, str], session_id: str) -> None:
    environ[SESSION_VAR] = session_id


def export_bin_dir(environ: MutableMapping[str, str], bin_dir: str) -> None:
    if bin_dir:
        environ[BIN_DIR_VAR] = bin_dir
    else:
        environ.pop(BIN_DIR_VAR, None)


# ── Shell rendering ─────────────────────────────────────────────


def shell_statements(before: Mapping[str, str], after: Mapping[str, str]) -> list[str]:
    """POSIX statements that turn ``before`` into ``after`` for exported vars.

    Used by ``setpy --eval`` so a parent shell can adopt changes made
    by a child process.
    """
    lines: list[str] = []
    for var in EXPORTED_VARIABLES:
        old, new = before.get(var), after.get(var)
        if old == new:
            continue
        if new is None:
            lines.append(f"unset {var}")
        else:
            lines.append(f"export {var}={shlex.quote(new)}")
    return lines
