"""
Resolution policy — decide what one managed command should run.

Per invocation, first match wins:

    0. engine unavailable      → RunSystem (fail open)
    1. bypass (CI, scripts...) → RunSystem, newest interpreter on 126/127
    2. active environment      → the environment's own binary
    3. session override        → override interpreter, pip gated by build mode
    4. nothing chosen          → catalog for pythonX.Y, NoDefault otherwise

``resolve`` never raises for a policy decision. Refusals come back as
``Action.block`` with a remediation message for the user.
"""

from __future__ import annotations

import logging
import os

from pymanager.adapters.shell.filesystem import is_executable
from pymanager.core.context import EngineContext
from pymanager.core.models.action import Action, BlockReason
from pymanager.core.models.command import CommandRequest, is_pip_module
from pymanager.core.models.environment import EnvironmentContext
from pymanager.core.models.interpreter import format_version
from pymanager.core.services.override import OverrideManager

logger = logging.getLogger(__name__)


def bypass_reason(ctx: EngineContext) -> str:
    """Why interception is off for this process, or "" when it is on."""
    for var in ctx.config.bypass_variables:
        if ctx.environ.get(var):
            return f"{var} is set"
    if not ctx.interactive:
        return "non-interactive shell"
    return ""


def should_bypass(ctx: EngineContext) -> bool:
    return bool(bypass_reason(ctx))


def system_name(request: CommandRequest) -> str:
    """The name to hand the system: ``py3.12`` runs as ``python3.12``."""
    if request.versioned:
        return f"{request.family}{request.label}"
    return request.name


class ResolutionPolicy:
    """Maps a command request onto an Action."""

    def __init__(self, ctx: EngineContext):
        self.ctx = ctx
        self.overrides = OverrideManager(ctx)

    def parse(self, command: str) -> CommandRequest:
        """Raises ValueError for names that are not managed commands."""
        return CommandRequest.parse(
            command,
            min_version=self.ctx.config.min_version,
            max_version=self.ctx.config.max_version,
        )

    def resolve(self, command: str | CommandRequest, args: list[str] | None = None) -> Action:
        """Decide what ``command args...`` should run."""
        request = command if isinstance(command, CommandRequest) else self.parse(command)
        args = list(args or [])

        if not self.ctx.engine_available:
            logger.debug("Engine unavailable: %s", self.ctx.unavailable_reason)
            return Action.system(system_name(request), args)

        reason = bypass_reason(self.ctx)
        if reason:
            logger.debug("Bypassing %s: %s", request.name, reason)
            return self._bypass(request, args)

        env = self.ctx.detector.detect(self.ctx.environ)
        if env.active:
            return self._in_environment(request, args, env)

        if self.ctx.override.active and not request.versioned:
            return self._with_override(request, args)

        return self._unmanaged(request, args)

    # ── 1. bypass ───────────────────────────────────────────────

    def _bypass(self, request: CommandRequest, args: list[str]) -> Action:
        if not request.versioned:
            return Action.system(
                request.name, args, fallback_to_latest=request.family == "python",
            )

        label = request.label
        venv = self.ctx.environ.get("VIRTUAL_ENV", "")
        if venv and os.path.isdir(os.path.join(venv, "bin")):
            installs = request.family == "pip" or is_pip_module(args)
            if installs:
                venv_version = self.ctx.detector.fast_version(self.ctx.environ)
                if venv_version is not None and venv_version != request.version:
                    return Action.block(
                        request.name,
                        BlockReason.VERSION_MISMATCH,
                        _bypass_mismatch_message(request, format_version(venv_version)),
                    )
                own = os.path.join(venv, "bin", request.family)
                if is_executable(own):
                    return Action.run(request.name, own, args)

        record = self.ctx.catalog.lookup(request.version)
        if record is not None:
            if request.family == "python":
                return Action.run(request.name, record.path, args)
            pip = os.path.join(record.directory, f"pip{label}")
            if is_executable(pip):
                return Action.run(request.name, pip, args)
        return Action.system(system_name(request), args)

    # ── 2. environment ──────────────────────────────────────────

    def _in_environment(
        self,
        request: CommandRequest,
        args: list[str],
        env: EnvironmentContext,
    ) -> Action:
        bin_dir = env.bin_dir

        if not request.versioned:
            own = os.path.join(bin_dir, request.name) if bin_dir else ""
            if own and is_executable(own):
                return Action.run(request.name, own, args)
            return Action.system(request.name, args)

        named = os.path.join(bin_dir, system_name(request)) if bin_dir else ""
        if named and is_executable(named):
            return Action.run(request.name, named, args)

        env_version = self.ctx.detector.version(env, self.ctx.environ)
        if env_version is not None and env_version == request.version:
            own = os.path.join(bin_dir, request.family) if bin_dir else ""
            if own and is_executable(own):
                return Action.run(request.name, own, args)
            return Action.system(request.family, args)

        logger.debug(
            "%s does not match environment version %s",
            request.name, format_version(env_version) if env_version else "unknown",
        )
        return Action.block(
            request.name,
            BlockReason.VERSION_MISMATCH,
            _env_mismatch_message(request, env_version and format_version(env_version)),
        )

    # ── 3. override ─────────────────────────────────────────────

    def _with_override(self, request: CommandRequest, args: list[str]) -> Action:
        state = self.ctx.override
        record = self.overrides.validate()
        if record is None:
            return Action.block(
                request.name, BlockReason.STALE_OVERRIDE, self._stale_message(state.label),
            )

        if request.family == "pip":
            if state.build_mode:
                return Action.build_mode(
                    request.name,
                    record.path,
                    ["-m", "pip", *args],
                    notice=f"[build mode] Running {request.name} with Python {state.label}...",
                )
            return Action.block(
                request.name,
                BlockReason.PIP_OUTSIDE_VENV,
                _pip_outside_message(request.name, "python3.x", tip=state.label),
            )

        if is_pip_module(args):
            if state.build_mode:
                return Action.build_mode(
                    request.name,
                    record.path,
                    args,
                    notice=(
                        f"[build mode] Running {request.name} -m pip "
                        f"with Python {state.label}..."
                    ),
                )
            return Action.block(
                request.name,
                BlockReason.PIP_OUTSIDE_VENV,
                _pip_outside_message(
                    f"{request.name} -m pip", f"python{state.label}", tip=state.label,
                ),
            )

        return Action.run(request.name, record.path, args)

    # ── 4. nothing chosen ───────────────────────────────────────

    def _unmanaged(self, request: CommandRequest, args: list[str]) -> Action:
        state = self.ctx.override

        if not request.versioned:
            if request.family == "pip":
                return Action.block(
                    request.name,
                    BlockReason.PIP_OUTSIDE_VENV,
                    _pip_outside_message(request.name, "python3.x", tip=state.label),
                )
            if is_pip_module(args):
                return Action.block(
                    request.name,
                    BlockReason.PIP_OUTSIDE_VENV,
                    _pip_outside_message(f"{request.name} -m pip", "python3.x"),
                )
            return Action.block(
                request.name, BlockReason.NO_DEFAULT, self._no_default_message(request.name),
            )

        label = request.label
        record = self.ctx.catalog.lookup(request.version)

        if request.family == "pip" or is_pip_module(args):
            if not state.build_mode:
                shown = request.name if request.family == "pip" else f"{request.name} -m pip"
                return Action.block(
                    request.name,
                    BlockReason.PIP_OUTSIDE_VENV,
                    _pip_outside_message(shown, f"python{label}", tip=state.label or label),
                )
            if record is None:
                return _not_found(request)
            pip_args = ["-m", "pip", *args] if request.family == "pip" else args
            return Action.build_mode(
                request.name,
                record.path,
                pip_args,
                notice=f"[build mode] Running {request.name} with Python {label}...",
            )

        if record is None:
            return _not_found(request)
        return Action.run(request.name, record.path, args)

    # ── Messages ────────────────────────────────────────────────

    def _stale_message(self, label: str) -> str:
        records = self.ctx.catalog.records()
        lines = [
            f"Error: Python {label} is no longer available.",
            "",
            "The previously set version may have been uninstalled.",
            "",
        ]
        if records:
            lines.append("Available Python versions:")
            lines.extend(f"  - {r.label} -> {r.path}" for r in records)
            lines += [
                "",
                "To fix:",
                "  1. setpy clear     (remove stale override)",
                "  2. setpy <version> (set a new version)",
            ]
        else:
            lines += ["No Python installations found.", "Run: setpy clear"]
        return "\n".join(lines)

    def _no_default_message(self, name: str) -> str:
        records = self.ctx.catalog.scan()
        lines = [f"Error: No default '{name}' command available", ""]
        if not records:
            lines.append("Warning: No Python 3.x installations found!")
            return "\n".join(lines)

        newest = records[-1].label
        lines += ["Available Python versions:", ""]
        lines.extend(f"  - python{r.label} -> {r.info}" for r in reversed(records))
        lines += [
            "",
            "Options:",
            f"   1. Create venv: python{newest} -m venv [venv-projname]"
            " && source [venv-projname]/bin/activate",
            f"   2. Set temporary default: setpy {newest}",
        ]
        return "\n".join(lines)


def _not_found(request: CommandRequest) -> Action:
    return Action.block(
        request.name,
        BlockReason.NOT_FOUND,
        f"Error: python{request.label} not found on this system",
    )


def _pip_outside_message(what: str, venv_python: str, tip: str = "") -> str:
    verb = "is blocked" if " -m pip" in what else "is not available"
    lines = [
        f"Error: {what} {verb} outside virtual environments",
        "",
        "To use pip:",
        f"   1. Create a virtual environment: {venv_python} -m venv [venv-projname]",
        "   2. Activate it: source [venv-projname]/bin/activate",
        "   3. Then use pip normally",
        "",
        "This prevents accidental system-wide package installations.",
    ]
    if tip:
        lines.append(f"Tip: Use 'setpy {tip} --build' to temporarily allow pip.")
    return "\n".join(lines)


def _env_mismatch_message(request: CommandRequest, env_label: str | None) -> str:
    family = request.family
    lines = [f"Error: {request.name} is not available in this environment", ""]
    if env_label:
        lines += [
            f"This environment uses Python {env_label}",
            f"   Available: {family}, {family}3, {family}{env_label}",
        ]
    else:
        lines += [
            "Unable to determine the active environment's Python version",
            f"   Available: {family}, {family}3",
        ]
    lines += ["", "To use a different Python version, deactivate first with: deactivate"]
    return "\n".join(lines)


def _bypass_mismatch_message(request: CommandRequest, venv_label: str) -> str:
    if request.family == "pip":
        what, instead = request.name, "'pip' or 'pip3'"
    else:
        what, instead = f"{request.name} -m pip", "'python -m pip' or 'pip'"
    return "\n".join([
        f"Error: {what} blocked - venv uses Python {venv_label}",
        "",
        f"This would install to system Python {request.label}, not your venv.",
        f"Use {instead} instead.",
    ])


def resolve_path(ctx: EngineContext, command: str) -> tuple[Action | None, str | None]:
    """Where ``command`` would go, for reporting. Never executes anything.

    Returns ``(action, path)``. Non-managed names have no action and
    are looked up on PATH.
    """
    try:
        action = ResolutionPolicy(ctx).resolve(command, [])
    except ValueError:
        return None, ctx.runner.which(command, ctx.environ)
    if action.blocked:
        return action, None
    if action.path:
        return action, action.path
    return action, ctx.runner.which(action.command, ctx.environ)
