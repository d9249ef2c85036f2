"""Adapters — bindings to interpreters, processes and the filesystem.

Public re-exports for convenient access.
"""

from pymanager.adapters.languages.python import ProbeResult, PythonProbe
from pymanager.adapters.shell.command import CommandRunner

__all__ = [
    "CommandRunner",
    "ProbeResult",
    "PythonProbe",
]
