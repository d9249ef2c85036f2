"""
Executor — turn an Action into an exit status.

    Block           → 1, nothing runs
    RunPath         → run the chosen binary
    RunBuildMode    → same, the caller has already shown the notice
    RunSystem       → run whatever PATH finds; for bypassed bare python,
                      a 126/127 retries with the newest cataloged interpreter
"""

from __future__ import annotations

import logging

from pymanager.adapters.shell.command import EXIT_NOT_EXECUTABLE, EXIT_NOT_FOUND
from pymanager.core.context import EngineContext
from pymanager.core.models.action import BLOCKED_EXIT_CODE, Action, ActionKind

logger = logging.getLogger(__name__)

FALLBACK_EXIT_CODES = (EXIT_NOT_FOUND, EXIT_NOT_EXECUTABLE)


def execute(ctx: EngineContext, action: Action) -> int:
    """Run ``action`` and return the exit status to propagate."""
    if action.blocked:
        logger.debug("%s blocked: %s", action.command, action.reason)
        return BLOCKED_EXIT_CODE

    code = ctx.runner.run(action.argv, ctx.environ)

    if (
        action.kind is ActionKind.RUN_SYSTEM
        and action.fallback_to_latest
        and code in FALLBACK_EXIT_CODES
        and ctx.engine_available
    ):
        latest = ctx.catalog.latest()
        if latest is not None:
            logger.info(
                "System %s unavailable (exit %d); falling back to Python %s",
                action.command, code, latest.label,
            )
            return ctx.runner.run([latest.path, *action.args], ctx.environ)

    return code
