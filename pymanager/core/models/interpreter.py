"""
Interpreter models — one discovered interpreter per (major, minor).

Records are created by a catalog scan and replaced wholesale on the
next scan. They are frozen: nothing mutates a record in place.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict

Version = tuple[int, int]

# "3.12", "python3.12", "py3.12"
_VERSION_ARG_RE = re.compile(r"^(?:python|py)?(\d+)\.(\d+)$")

# "Python 3.12.4", "Python 3.13.0rc1", "Python 3.12"
_PRODUCT_RE = re.compile(r"^Python (\d+)\.(\d+)(?:\.(\d+))?")


def parse_version(text: str) -> Version | None:
    """Parse a ``major.minor`` version argument.

    Accepts an optional ``python`` or ``py`` prefix. A bare major
    (``"3"``) is incomplete and does not parse.
    """
    match = _VERSION_ARG_RE.match(text.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def format_version(version: Version) -> str:
    """``(3, 12)`` → ``"3.12"``."""
    return f"{version[0]}.{version[1]}"


def parse_version_output(output: str) -> tuple[int, int, int | None] | None:
    """Parse ``--version`` output into ``(major, minor, patch)``.

    Returns None when the output does not carry the ``Python``
    product signature.
    """
    match = _PRODUCT_RE.match(output.strip())
    if not match:
        return None
    patch = int(match.group(3)) if match.group(3) is not None else None
    return int(match.group(1)), int(match.group(2)), patch


class InterpreterRecord(BaseModel):
    """A cataloged interpreter."""

    model_config = ConfigDict(frozen=True)

    version: Version
    path: str                   # where the scan found it
    real_path: str              # symlink chain resolved
    version_string: str = ""    # raw ``--version`` output, e.g. "Python 3.12.4"
    patch: int | None = None

    @property
    def label(self) -> str:
        return format_version(self.version)

    @property
    def directory(self) -> str:
        return str(Path(self.path).parent)

    @property
    def info(self) -> str:
        """Human summary: ``Python 3.12.4 (/usr/bin/python3.12)``."""
        return f"{self.version_string or 'Python ' + self.label} ({self.real_path})"
