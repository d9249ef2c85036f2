"""
OverrideState — the session's temporary default interpreter.

One logical instance per interactive session. The authoritative copy
lives in the EngineContext; the subset that crosses process boundaries
is defined in persistence/exported_state.py.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from pymanager.core.models.interpreter import Version, format_version


class SavedToggle(BaseModel):
    """Prior value of the pip-safety toggle, captured on entering build mode.

    ``was_set`` distinguishes "unset" from "set to the empty string".
    """

    was_set: bool = False
    value: str = ""


class OverrideState(BaseModel):
    """Temporary default version plus build-mode flag."""

    version: Version | None = None
    path: str = ""                  # resolved interpreter the override points at
    build_mode: bool = False
    session_owner_id: str = ""
    saved_toggle: SavedToggle = Field(default_factory=SavedToggle)
    shim_dir: str = ""
    bin_dir: str = ""               # interpreter bin dir this override added to PATH

    @model_validator(mode="after")
    def _build_mode_needs_version(self) -> OverrideState:
        if self.build_mode and self.version is None:
            raise ValueError("build mode requires an override version")
        return self

    @property
    def active(self) -> bool:
        return self.version is not None

    @property
    def label(self) -> str:
        return format_version(self.version) if self.version else ""

    def to_dict(self) -> dict:
        return {
            "version": self.label or None,
            "path": self.path or None,
            "build_mode": self.build_mode,
            "session_owner_id": self.session_owner_id,
            "shim_dir": self.shim_dir or None,
            "bin_dir": self.bin_dir or None,
        }
