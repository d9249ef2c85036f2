"""
Engine context — the single owner of all mutable engine state.

The hosting process creates one EngineContext and hands it to every
call; nothing in the engine reaches for globals. It holds:

    - environ:          the environment children will inherit (mutated
                        by setpy, shim publication, venv discovery)
    - catalog:          lazily scanned interpreters
    - override:         the session's OverrideState (authoritative copy)
    - engine_available: computed once at construction; False means
                        "fail open": every command goes to the system
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, field

from pymanager.adapters.languages.python import PythonProbe
from pymanager.adapters.shell.command import CommandRunner
from pymanager.core.config.loader import ConfigError, EngineConfig, load_config
from pymanager.core.models.override import OverrideState
from pymanager.core.services.catalog import InterpreterCatalog
from pymanager.core.services.environment import EnvironmentDetector

logger = logging.getLogger(__name__)

SESSION_ID_VAR = "PYMANAGER_SESSION_ID"
INTERACTIVE_VAR = "PYMANAGER_INTERACTIVE"


@dataclass
class EngineContext:
    """Everything one resolution needs, passed explicitly."""

    environ: dict[str, str]
    config: EngineConfig
    session_id: str
    interactive: bool
    catalog: InterpreterCatalog
    detector: EnvironmentDetector
    runner: CommandRunner = field(default_factory=CommandRunner)
    override: OverrideState = field(default_factory=OverrideState)
    engine_available: bool = True
    unavailable_reason: str = ""

    @property
    def probe(self) -> PythonProbe:
        return self.catalog.probe


def default_session_id(environ: Mapping[str, str]) -> str:
    """The interactive shell's identity: pinned, else our parent process."""
    return environ.get(SESSION_ID_VAR) or str(os.getppid())


def default_interactive(environ: Mapping[str, str]) -> bool:
    value = environ.get(INTERACTIVE_VAR)
    if value is not None:
        return value.lower() in ("1", "true", "yes")
    try:
        return sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def create_context(
    environ: Mapping[str, str] | None = None,
    config: EngineConfig | None = None,
    *,
    session_id: str | None = None,
    interactive: bool | None = None,
    probe: PythonProbe | None = None,
    runner: CommandRunner | None = None,
) -> EngineContext:
    """Build a context and bring its override state up to date.

    The environment is copied: the context owns its own mapping. When
    no config is given it is loaded; a broken config leaves the engine
    unavailable instead of failing.
    """
    env = dict(os.environ if environ is None else environ)
    available = True
    reason = ""

    if config is None:
        try:
            config = load_config(environ=env)
        except ConfigError as e:
            logger.warning("pymanager disabled, deferring to system commands: %s", e)
            config = EngineConfig()
            available = False
            reason = str(e)

    probe = probe or PythonProbe(timeout=config.probe_timeout)
    ctx = EngineContext(
        environ=env,
        config=config,
        session_id=session_id or default_session_id(env),
        interactive=default_interactive(env) if interactive is None else interactive,
        catalog=InterpreterCatalog(config, probe=probe),
        detector=EnvironmentDetector(probe=probe),
        runner=runner or CommandRunner(),
        engine_available=available,
        unavailable_reason=reason,
    )

    if ctx.engine_available:
        from pymanager.core.services.override import OverrideManager

        OverrideManager(ctx).restore()
    return ctx
