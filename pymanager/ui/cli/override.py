"""
CLI command for the session override: ``setpy``.

Thin wrapper over ``pymanager.core.services.override``.
"""

from __future__ import annotations

import os
import sys

import click

from pymanager.core.context import EngineContext


def _engine(ctx: click.Context) -> EngineContext:
    obj = ctx.ensure_object(dict)
    if "engine" not in obj:
        from pymanager.core.context import create_context

        obj["engine"] = create_context(interactive=obj.get("interactive"))
    return obj["engine"]


@click.command()
@click.argument("version", required=False)
@click.option("--build", is_flag=True, help="Also allow pip outside virtual environments.")
@click.option("--quiet", "--silent", "-q", "quiet", is_flag=True, help="Only report errors.")
@click.option(
    "--eval",
    "as_eval",
    is_flag=True,
    help="Print export/unset statements for the calling shell (messages go to stderr).",
)
@click.pass_context
def setpy(
    ctx: click.Context,
    version: str | None,
    build: bool,
    quiet: bool,
    as_eval: bool,
) -> None:
    """Set, clear or show the temporary Python default.

    Examples:

        setpy 3.12            python/python3 use Python 3.12

        setpy 3.12 --build    same, and allow pip outside venvs

        setpy latest          newest installed version

        setpy clear           remove the override and build mode
    """
    from pymanager.core.persistence.exported_state import shell_statements
    from pymanager.core.services.override import OverrideError, OverrideManager

    engine = _engine(ctx)
    quiet = quiet or bool(engine.environ.get("PYMANAGER_QUIET"))
    err = as_eval

    if not engine.engine_available:
        click.secho(
            f"⚠️  pymanager is unavailable ({engine.unavailable_reason}); cannot change override",
            fg="yellow",
            err=True,
        )
        sys.exit(1)

    manager = OverrideManager(engine)
    before = dict(os.environ)

    if version is None:
        _show_status(engine, err=err)
    elif version.lower() in ("clear", "reset"):
        result = manager.clear()
        if not quiet:
            if result.nothing_to_clear:
                click.echo("No Python override or build mode is set.", err=err)
            if result.cleared_version:
                click.secho(
                    f"✅ Cleared Python override (was {result.cleared_version}).",
                    fg="green", err=err,
                )
            if result.cleared_build_mode:
                click.secho(
                    "✅ Cleared build mode (pip is now blocked outside venvs).",
                    fg="green", err=err,
                )
    else:
        try:
            result = manager.set(version, build_mode=build)
        except OverrideError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            if e.available:
                click.echo("", err=True)
                click.echo("Available versions:", err=True)
                for label in e.available:
                    click.echo(f"  - {label}", err=True)
            sys.exit(1)

        if not quiet:
            _show_set(result, err=err)

    if as_eval:
        for line in shell_statements(before, engine.environ):
            click.echo(line)


def _show_set(result, *, err: bool) -> None:
    click.secho(f"✅ Set Python {result.version} for this session.", fg="green", bold=True, err=err)
    click.echo("", err=err)
    click.echo(f"   Binary:   {result.path}", err=err)
    click.echo(f"   Wrappers: {os.path.join(result.shim_dir, 'bin')}/", err=err)
    click.echo("", err=err)
    click.echo("   Subprocesses will find:", err=err)
    click.echo(f"     python, python3, python{result.version} → {result.path}", err=err)
    click.echo("", err=err)

    if result.build_mode:
        click.secho("   ⚠️  BUILD MODE ENABLED - pip/pip3 allowed outside venv", fg="yellow", bold=True, err=err)
        click.secho("       This can install packages system-wide!", fg="yellow", err=err)
        click.secho("       Run 'setpy clear' when done building.", fg="yellow", err=err)
    else:
        click.echo("   Note: pip remains blocked outside venvs. Use --build to allow.", err=err)
    click.echo("", err=err)
    click.echo("   To clear: setpy clear", err=err)

    if result.environment_active:
        click.echo("", err=err)
        click.secho(
            "⚠️  You're in a virtual environment, which takes precedence.",
            fg="yellow", err=err,
        )


def _show_status(engine: EngineContext, *, err: bool) -> None:
    state = engine.override
    records = engine.catalog.scan()

    if state.active:
        click.secho(f"🐍 Current override: Python {state.label}", fg="cyan", bold=True, err=err)
        click.echo(f"   Binary: {state.path}", err=err)
        if state.build_mode:
            click.secho("   Build mode: ENABLED (pip allowed outside venv)", fg="yellow", err=err)
        click.echo("", err=err)
        click.echo("   To clear: setpy clear", err=err)
        return

    click.echo("No Python override is set.", err=err)
    click.echo("", err=err)
    click.echo("Usage: setpy <version> [--build]", err=err)
    click.echo("", err=err)
    if records:
        click.echo("Available versions:", err=err)
        for record in records:
            click.echo(f"   setpy {record.label}", err=err)
    else:
        click.secho("⚠️  No Python 3.x installations found", fg="yellow", err=err)
    click.echo("", err=err)
    click.echo("Run 'setpy --help' for more info.", err=err)
