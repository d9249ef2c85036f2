"""
Diagnostics — the reports behind ``which``, ``diag`` and ``info``.

Builders only: nothing here prints or executes a command. Each report
is a dataclass with ``to_dict()`` so the CLI can render it as text or
JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pymanager.core.context import EngineContext
from pymanager.core.models.action import BlockReason
from pymanager.core.models.environment import EnvironmentContext
from pymanager.core.models.interpreter import format_version
from pymanager.core.persistence.exported_state import (
    BUILD_MODE_VAR,
    PIP_TOGGLE_VAR,
    PYTHON_VARS,
    SESSION_VAR,
)
from pymanager.core.services.resolution import bypass_reason, resolve_path

ENVIRONMENT_MARKERS = (
    "VIRTUAL_ENV",
    "CONDA_PREFIX",
    "CONDA_DEFAULT_ENV",
    "POETRY_ACTIVE",
    "PIPENV_ACTIVE",
)

_BLOCK_SUMMARY = {
    BlockReason.NO_DEFAULT: "(blocked - use explicit version or setpy)",
    BlockReason.PIP_OUTSIDE_VENV: "(blocked outside venv)",
    BlockReason.VERSION_MISMATCH: "(not available in environment)",
    BlockReason.STALE_OVERRIDE: "(stale override - run 'setpy clear')",
    BlockReason.NOT_FOUND: "(not found)",
}


# ── which ───────────────────────────────────────────────────────


@dataclass
class WhichEntry:
    """Where one command name would go."""

    command: str
    path: str | None = None
    reason: BlockReason | None = None
    managed: bool = True

    @property
    def ok(self) -> bool:
        return self.path is not None

    @property
    def result(self) -> str:
        if self.path:
            return self.path
        if self.reason is not None:
            return _BLOCK_SUMMARY[self.reason]
        return "(not found)"

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "path": self.path,
            "blocked": self.reason.value if self.reason else None,
            "managed": self.managed,
        }


def which(ctx: EngineContext, commands: list[str]) -> list[WhichEntry]:
    """Resolve each name without running anything."""
    entries: list[WhichEntry] = []
    for command in commands:
        action, path = resolve_path(ctx, command)
        entries.append(WhichEntry(
            command=command,
            path=path,
            reason=action.reason if action is not None else None,
            managed=action is not None,
        ))
    return entries


# ── diag ────────────────────────────────────────────────────────


@dataclass
class DiagReport:
    """Full internal state, for troubleshooting."""

    variables: dict[str, str | None] = field(default_factory=dict)
    session_id: str = ""
    interactive: bool = False
    engine_available: bool = True
    unavailable_reason: str = ""
    catalog_scanned: bool = False
    override: dict = field(default_factory=dict)
    bypass_reason: str = ""
    environment: dict = field(default_factory=dict)
    exported: dict[str, str | None] = field(default_factory=dict)
    subprocess_view: dict[str, str | None] = field(default_factory=dict)

    @property
    def bypass_active(self) -> bool:
        return bool(self.bypass_reason)

    @property
    def build_mode(self) -> bool:
        return bool(self.override.get("build_mode"))

    def to_dict(self) -> dict:
        return {
            "variables": self.variables,
            "session_id": self.session_id,
            "interactive": self.interactive,
            "engine_available": self.engine_available,
            "unavailable_reason": self.unavailable_reason or None,
            "catalog_scanned": self.catalog_scanned,
            "override": self.override,
            "build_mode": self.build_mode,
            "bypass": {"active": self.bypass_active, "reason": self.bypass_reason or None},
            "environment": self.environment,
            "exported": self.exported,
            "subprocess_view": self.subprocess_view,
        }


def diag(ctx: EngineContext) -> DiagReport:
    """Snapshot of everything the engine knows. Does not force a scan."""
    environ = ctx.environ
    consumed = (*ctx.config.bypass_variables, *ENVIRONMENT_MARKERS, "PYMANAGER_DEBUG", "SHLVL")

    report = DiagReport(
        variables={var: environ.get(var) for var in consumed},
        session_id=ctx.session_id,
        interactive=ctx.interactive,
        engine_available=ctx.engine_available,
        unavailable_reason=ctx.unavailable_reason,
        catalog_scanned=ctx.catalog.scanned,
        override=ctx.override.to_dict(),
        bypass_reason=bypass_reason(ctx),
    )

    env = ctx.detector.detect(environ)
    report.environment = env.to_dict()

    exported = (*PYTHON_VARS, PIP_TOGGLE_VAR, BUILD_MODE_VAR, SESSION_VAR)
    report.exported = {var: environ.get(var) for var in exported}
    report.subprocess_view = {
        name: ctx.runner.which(name, environ) for name in ("python", "python3", "pip")
    }
    return report


# ── info ────────────────────────────────────────────────────────


@dataclass
class InfoReport:
    """Human-oriented summary of environment and override status."""

    engine_available: bool = True
    override_version: str | None = None
    build_mode: bool = False
    environment: EnvironmentContext = field(default_factory=EnvironmentContext)
    environment_commands: list[WhichEntry] = field(default_factory=list)
    interpreters: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "engine_available": self.engine_available,
            "override": self.override_version,
            "build_mode": self.build_mode,
            "environment": self.environment.to_dict(),
            "environment_commands": [e.to_dict() for e in self.environment_commands],
            "interpreters": self.interpreters,
        }


def info(ctx: EngineContext) -> InfoReport:
    """Override, active environment and every cataloged interpreter."""
    report = InfoReport(
        engine_available=ctx.engine_available,
        override_version=ctx.override.label or None,
        build_mode=ctx.override.build_mode,
    )
    if not ctx.engine_available:
        return report

    env = ctx.detector.detect(ctx.environ)
    if env.active:
        env = env.model_copy(update={"version": ctx.detector.version(env, ctx.environ)})
        names = ["python", "python3", "pip", "pip3"]
        if env.version:
            label = format_version(env.version)
            names[2:2] = [f"python{label}"]
            names.append(f"pip{label}")
        report.environment_commands = which(ctx, names)
    report.environment = env

    report.interpreters = [
        {
            "version": record.label,
            "path": record.path,
            "info": record.info,
            "override": record.version == ctx.override.version,
        }
        for record in ctx.catalog.scan()
    ]
    return report
