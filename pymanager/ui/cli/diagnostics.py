"""
CLI commands for troubleshooting: ``which``, ``diag``, ``info``.

Thin wrappers over ``pymanager.core.services.diagnostics``.
"""

from __future__ import annotations

import json
import sys

import click

from pymanager.core.context import EngineContext


def _engine(ctx: click.Context) -> EngineContext:
    obj = ctx.ensure_object(dict)
    if "engine" not in obj:
        from pymanager.core.context import create_context

        obj["engine"] = create_context(interactive=obj.get("interactive"))
    return obj["engine"]


def _show(value: str | None) -> str:
    return value if value else "<not set>"


# ── which ───────────────────────────────────────────────────────


@click.command()
@click.argument("commands", nargs=-1, required=True)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def which(ctx: click.Context, commands: tuple[str, ...], as_json: bool) -> None:
    """Show the binary each command would actually run.

    Unlike the shell's ``which``, python/pip names go through the
    resolution rules (environment, override, build mode).

    Examples:

        pymanager which python

        pymanager which python3.12 pip
    """
    from pymanager.core.services.diagnostics import which as which_report

    entries = which_report(_engine(ctx), list(commands))

    if as_json:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2))
    elif len(entries) == 1:
        click.echo(entries[0].result)
    else:
        for entry in entries:
            click.echo(f"{entry.command}: {entry.result}")

    if not all(e.ok for e in entries):
        sys.exit(1)


# ── diag ────────────────────────────────────────────────────────


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def diag(ctx: click.Context, as_json: bool) -> None:
    """Dump internal state for troubleshooting."""
    from pymanager.core.services.diagnostics import diag as diag_report

    report = diag_report(_engine(ctx))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    click.secho("\n🔧 pymanager diagnostics", fg="cyan", bold=True)
    click.echo()

    click.secho("   Environment variables:", bold=True)
    for var, value in report.variables.items():
        click.echo(f"     {var}={_show(value)}")
    click.echo()

    click.secho("   Engine:", bold=True)
    click.echo(f"     Session:      {report.session_id}")
    click.echo(f"     Interactive:  {'yes' if report.interactive else 'no'}")
    if report.engine_available:
        click.echo("     Available:    yes")
    else:
        click.secho(f"     Available:    no ({report.unavailable_reason})", fg="red")
    click.echo(f"     Catalog scanned: {'yes' if report.catalog_scanned else 'no'}")
    click.echo(f"     Override:     {_show(report.override.get('version'))}")
    click.echo()

    if report.bypass_active:
        click.secho(f"   Bypass mode: ACTIVE ({report.bypass_reason})", fg="yellow")
    else:
        click.echo("   Bypass mode: INACTIVE (resolution rules apply)")

    env = report.environment
    if env.get("kind") != "none":
        label = " (found via PATH)" if env.get("synthesized") else ""
        click.secho(f"   Environment: DETECTED [{env['kind']}]{label}", fg="green")
    else:
        click.echo("   Environment: NOT DETECTED")

    if report.build_mode:
        click.secho("   Build mode:  ENABLED (pip allowed outside venv)", fg="yellow")
    else:
        click.echo("   Build mode:  DISABLED (pip blocked outside venv)")
    click.echo()

    click.secho("   Exported (inherited by subprocesses):", bold=True)
    for var, value in report.exported.items():
        click.echo(f"     {var}={_show(value)}")
    click.echo()

    click.secho("   What subprocesses will see on PATH:", bold=True)
    for name, path in report.subprocess_view.items():
        click.echo(f"     {name}: {path or 'not found'}")
    click.echo()
    click.echo("   Use 'pymanager which python' to see what would actually run.")
    click.echo()


# ── info ────────────────────────────────────────────────────────


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def info(ctx: click.Context, as_json: bool) -> None:
    """Summarize override, environment and installed versions."""
    from pymanager.core.services.diagnostics import info as info_report

    report = info_report(_engine(ctx))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if not report.engine_available:
        click.secho("⚠️  pymanager is unavailable; see 'pymanager diag'", fg="yellow")
        sys.exit(1)

    click.secho("\n🐍 Python environment status", fg="cyan", bold=True)
    click.echo()

    if report.override_version:
        click.secho(f"   Override active: {report.override_version}", fg="green")
        click.echo(f"     'python' and 'python3' → python{report.override_version}")
        if report.build_mode:
            click.secho("     Build mode: ENABLED", fg="yellow")
        click.echo("     (use 'setpy clear' to remove)")
        click.echo()

    env = report.environment
    if env.active:
        click.secho(f"   Environment active [{env.kind.value}]", fg="green", bold=True)
        if env.root_dir:
            click.echo(f"     Path: {env.root_dir}")
        if env.name:
            click.echo(f"     Name: {env.name}")
        version = f"{env.version[0]}.{env.version[1]}" if env.version else "unknown"
        click.echo(f"     Python version: {version}")
        click.echo()
        click.echo("     Commands in this environment:")
        for entry in report.environment_commands:
            click.echo(f"       {entry.command:<12} → {entry.result}")
        click.echo()
        click.echo("     Other Python versions are blocked while the environment is active.")
        click.echo()
    else:
        click.echo("   No environment active")
        click.echo()

    if not report.interpreters:
        click.secho("   ⚠️  No Python 3.x found on system", fg="yellow")
        click.echo()
        return

    click.secho("   Installed Python versions:", bold=True)
    for item in report.interpreters:
        marker = "  ← override" if item["override"] else ""
        click.echo()
        click.secho(f"     Python {item['version']}{marker}", bold=True)
        click.echo(f"       Path:  {item['path']}")
        click.echo(f"       Info:  {item['info']}")
        click.echo(f"       Usage: python{item['version']} -m venv <venv-name>")
    click.echo()
    click.echo("   pip is blocked for all system Python versions; use virtual environments.")
    click.echo()
