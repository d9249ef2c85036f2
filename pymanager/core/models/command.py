"""
CommandRequest — a logical command name parsed once.

One handler serves every version-qualified command: ``python3.12``,
``py3.12`` and ``pip3.12`` all parse to a family plus a version.
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel

from pymanager.core.models.interpreter import Version, format_version

_BARE = {
    "python": "python",
    "python3": "python",
    "pip": "pip",
    "pip3": "pip",
}

_VERSIONED_RE = re.compile(r"^(python|py|pip)(\d+)\.(\d+)$")


class CommandRequest(BaseModel):
    """A managed command: ``python``, ``pip3``, ``python3.12``..."""

    name: str
    family: Literal["python", "pip"]
    version: Version | None = None

    @property
    def versioned(self) -> bool:
        return self.version is not None

    @property
    def label(self) -> str:
        return format_version(self.version) if self.version else ""

    @classmethod
    def parse(
        cls,
        name: str,
        min_version: Version = (3, 8),
        max_version: Version = (3, 25),
    ) -> CommandRequest:
        """Parse a command name.

        Raises:
            ValueError: if the name is not a managed command, or its
                version falls outside ``min_version``..``max_version``.
        """
        if name in _BARE:
            return cls(name=name, family=_BARE[name])

        match = _VERSIONED_RE.match(name)
        if not match:
            raise ValueError(f"Not a managed command: {name!r}")

        version = (int(match.group(2)), int(match.group(3)))
        if not (min_version <= version <= max_version):
            raise ValueError(
                f"{name!r} is outside the managed range "
                f"{format_version(min_version)}..{format_version(max_version)}"
            )
        family = "pip" if match.group(1) == "pip" else "python"
        return cls(name=name, family=family, version=version)


def is_pip_module(args: list[str]) -> bool:
    """``python -m pip ...``"""
    return len(args) >= 2 and args[0] == "-m" and args[1] == "pip"
