"""
EnvironmentContext — what kind of managed environment the process is in.

Derived fresh for every resolution from environment variables and
filesystem heuristics. Only the interpreter version is cached, and
only by root directory (see services/environment.py).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from pymanager.core.models.interpreter import Version


class EnvironmentKind(str, Enum):
    NONE = "none"
    VENV = "venv"
    CONDA = "conda"
    POETRY = "poetry"
    PIPENV = "pipenv"


class EnvironmentContext(BaseModel):
    """The active environment, if any."""

    kind: EnvironmentKind = EnvironmentKind.NONE
    root_dir: str = ""
    bin_dir: str = ""
    name: str = ""                  # conda env name when only CONDA_DEFAULT_ENV is set
    version: Version | None = None
    synthesized: bool = False       # found by the PATH heuristic, not a marker

    @property
    def active(self) -> bool:
        return self.kind is not EnvironmentKind.NONE

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "root_dir": self.root_dir,
            "bin_dir": self.bin_dir,
            "name": self.name,
            "version": f"{self.version[0]}.{self.version[1]}" if self.version else None,
            "synthesized": self.synthesized,
        }
