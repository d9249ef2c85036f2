"""
Domain models — Pydantic types for the resolution engine.

All models are re-exported here for convenient access:

    from pymanager.core.models import InterpreterRecord, Action, OverrideState
"""

from pymanager.core.models.action import Action, ActionKind, BlockReason
from pymanager.core.models.command import CommandRequest, is_pip_module
from pymanager.core.models.environment import EnvironmentContext, EnvironmentKind
from pymanager.core.models.interpreter import (
    InterpreterRecord,
    Version,
    format_version,
    parse_version,
    parse_version_output,
)
from pymanager.core.models.override import OverrideState, SavedToggle

__all__ = [
    # action.py
    "Action",
    "ActionKind",
    "BlockReason",
    # command.py
    "CommandRequest",
    # environment.py
    "EnvironmentContext",
    "EnvironmentKind",
    # interpreter.py
    "InterpreterRecord",
    # override.py
    "OverrideState",
    "SavedToggle",
    "Version",
    "format_version",
    "is_pip_module",
    "parse_version",
    "parse_version_output",
]
