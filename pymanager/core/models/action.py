"""
Action — the outcome of resolving one command.

The resolution policy never raises for a policy decision: it returns
an Action. The executor turns an Action into a process (or, for a
block, into exit status 1).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

BLOCKED_EXIT_CODE = 1


class ActionKind(str, Enum):
    RUN_SYSTEM = "run_system"           # defer to whatever PATH finds
    RUN_PATH = "run_path"               # run a specific interpreter/installer
    RUN_BUILD_MODE = "run_build_mode"   # pip outside an env, allowed by build mode
    BLOCK = "block"


class BlockReason(str, Enum):
    NOT_FOUND = "not_found"
    STALE_OVERRIDE = "stale_override"
    VERSION_MISMATCH = "version_mismatch"
    PIP_OUTSIDE_VENV = "pip_outside_venv"
    NO_DEFAULT = "no_default"


class Action(BaseModel):
    """What to do with a command request."""

    kind: ActionKind
    command: str                                # logical command name
    args: list[str] = Field(default_factory=list)   # arguments after the executable
    path: str | None = None
    reason: BlockReason | None = None
    message: str = ""                           # remediation text for blocks
    notice: str = ""                            # stderr note, e.g. build mode
    fallback_to_latest: bool = False            # retry with newest interpreter on 126/127

    @property
    def blocked(self) -> bool:
        return self.kind is ActionKind.BLOCK

    @property
    def argv(self) -> list[str]:
        """Full argument vector for execution."""
        return [self.path or self.command, *self.args]

    @classmethod
    def system(cls, command: str, args: list[str], **kwargs: Any) -> Action:
        return cls(kind=ActionKind.RUN_SYSTEM, command=command, args=list(args), **kwargs)

    @classmethod
    def run(cls, command: str, path: str, args: list[str], **kwargs: Any) -> Action:
        return cls(
            kind=ActionKind.RUN_PATH, command=command, path=path, args=list(args), **kwargs,
        )

    @classmethod
    def build_mode(cls, command: str, path: str, args: list[str], **kwargs: Any) -> Action:
        return cls(
            kind=ActionKind.RUN_BUILD_MODE,
            command=command,
            path=path,
            args=list(args),
            **kwargs,
        )

    @classmethod
    def block(cls, command: str, reason: BlockReason, message: str = "") -> Action:
        return cls(kind=ActionKind.BLOCK, command=command, reason=reason, message=message)
