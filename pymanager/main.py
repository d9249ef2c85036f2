"""
pymanager — CLI entrypoint.

Usage:
    pymanager --help
    pymanager run python3 -c "print(1)"
    pymanager setpy 3.12 --build
    pymanager which python pip
"""

from __future__ import annotations

import os
import sys

import click

from pymanager import __version__
from pymanager.core.context import EngineContext
from pymanager.core.observability.logging_config import resolve_level, setup_logging


def _engine(ctx: click.Context) -> EngineContext:
    """The EngineContext for this invocation, created on first use."""
    obj = ctx.ensure_object(dict)
    if "engine" not in obj:
        from pymanager.core.context import create_context

        obj["engine"] = create_context(interactive=obj.get("interactive"))
    return obj["engine"]


@click.group()
@click.version_option(version=__version__, prog_name="pymanager")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--interactive/--non-interactive",
    default=None,
    help="Treat the calling shell as interactive (default: detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    interactive: bool | None,
) -> None:
    """pymanager — pick the right python and pip for every command."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["interactive"] = interactive

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(os.environ, debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("PYMANAGER_LOG_FILE"),
        log_file_level=os.environ.get("PYMANAGER_LOG_FILE_LEVEL"),
    )


@cli.command(
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx: click.Context, command: str, args: tuple[str, ...]) -> None:
    """Resolve COMMAND and run it with ARGS.

    Examples:

        pymanager run python3 script.py

        pymanager run python3.12 -m venv .venv

        pymanager run pip install requests
    """
    from pymanager.core.engine.executor import execute
    from pymanager.core.models.action import Action
    from pymanager.core.services.resolution import ResolutionPolicy

    engine = _engine(ctx)
    try:
        action = ResolutionPolicy(engine).resolve(command, list(args))
    except ValueError:
        # Not ours: behave exactly like the shell would
        action = Action.system(command, list(args))

    if action.blocked:
        click.echo(action.message, err=True)
    elif action.notice:
        click.echo(action.notice, err=True)

    sys.exit(execute(engine, action))


# ── Register sub-commands from pymanager/ui/cli/ ──────────────────

from pymanager.ui.cli.diagnostics import diag, info, which
from pymanager.ui.cli.override import setpy

cli.add_command(setpy)
cli.add_command(which)
cli.add_command(diag)
cli.add_command(info)


if __name__ == "__main__":
    cli()
