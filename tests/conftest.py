"""
Shared test fixtures and configuration.

Interpreters are faked with small ``/bin/sh`` scripts so that scans,
probes and executions all run for real. Every fake appends the
arguments it was run with to ``$FAKE_PYTHON_LOG`` when that is set.
"""

import stat
from pathlib import Path

import pytest

from pymanager.core.config.loader import EngineConfig
from pymanager.core.context import create_context

_FAKE_PYTHON = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "{version_output}"
  exit {version_exit}
fi
if [ "$1" = "-c" ]; then
  echo "{query_output}"
  exit 0
fi
if [ -n "$FAKE_PYTHON_LOG" ]; then
  echo "$0 $*" >> "$FAKE_PYTHON_LOG"
fi
exit {run_exit}
"""


def write_fake_python(
    directory: Path,
    name: str,
    version: str = "3.12.1",
    *,
    version_output: str | None = None,
    version_exit: int = 0,
    run_exit: int = 0,
) -> Path:
    """Create an executable fake interpreter and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    major_minor = ".".join(version.split(".")[:2])
    path = directory / name
    path.write_text(_FAKE_PYTHON.format(
        version_output=f"Python {version}" if version_output is None else version_output,
        version_exit=version_exit,
        query_output=major_minor,
        run_exit=run_exit,
    ))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def write_venv(root: Path, version: str = "3.11.4", *, key: str = "version") -> Path:
    """Create a venv layout: bin/activate, bin/python, bin/pip, pyvenv.cfg."""
    bin_dir = root / "bin"
    write_fake_python(bin_dir, "python", version)
    write_fake_python(bin_dir, "python3", version)
    write_fake_python(bin_dir, "pip", version)
    (bin_dir / "activate").write_text("# activate\n")
    (root / "pyvenv.cfg").write_text(f"home = /usr/bin\n{key} = {version}\n")
    return root


class RecordingRunner:
    """CommandRunner stand-in that records argv and returns canned codes."""

    def __init__(self, codes: dict[str, int] | None = None, found: dict[str, str] | None = None):
        self.calls: list[list[str]] = []
        self.codes = codes or {}
        self.found = found or {}

    def which(self, name, environ):
        return self.found.get(name)

    def run(self, argv, environ):
        self.calls.append(list(argv))
        return self.codes.get(argv[0], 0)


@pytest.fixture
def fake_python():
    """Factory for fake interpreters (see ``write_fake_python``)."""
    return write_fake_python


@pytest.fixture
def dir_a(tmp_path: Path) -> Path:
    return tmp_path / "a"


@pytest.fixture
def dir_b(tmp_path: Path) -> Path:
    return tmp_path / "b"


@pytest.fixture
def preferred_dir(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".local" / "bin"


@pytest.fixture
def engine_config(tmp_path: Path, dir_a: Path, dir_b: Path, preferred_dir: Path) -> EngineConfig:
    """Config scanning preferred_dir, a and b only, shims under tmp."""
    shim_root = tmp_path / "shims"
    shim_root.mkdir()
    return EngineConfig(
        search_paths=[str(preferred_dir), str(dir_a), str(dir_b)],
        preferred_dir=str(preferred_dir),
        shim_root=str(shim_root),
    )


@pytest.fixture
def base_environ(tmp_path: Path) -> dict[str, str]:
    """An environment with no markers and a PATH of empty system dirs."""
    system_bin = tmp_path / "system" / "bin"
    system_bin.mkdir(parents=True)
    return {
        "PATH": str(system_bin),
        "HOME": str(tmp_path / "home"),
    }


@pytest.fixture
def make_context(engine_config: EngineConfig, base_environ: dict[str, str]):
    """Factory for an interactive EngineContext in an isolated environment."""

    def _make(environ=None, *, interactive=True, session_id="1000", runner=None, config=None):
        env = dict(base_environ)
        env.update(environ or {})
        return create_context(
            env,
            config or engine_config,
            session_id=session_id,
            interactive=interactive,
            runner=runner,
        )

    return _make


@pytest.fixture
def two_pythons(fake_python, dir_a: Path, dir_b: Path) -> tuple[Path, Path]:
    """3.10 at a/python3.10, 3.12 at b/python3.12."""
    return (
        fake_python(dir_a, "python3.10", "3.10.13"),
        fake_python(dir_b, "python3.12", "3.12.1"),
    )


@pytest.fixture
def run_log(tmp_path: Path) -> Path:
    """A log file the fake interpreters append their arguments to."""
    return tmp_path / "run.log"


@pytest.fixture
def fake_venv():
    """Factory for venv layouts (see ``write_venv``)."""
    return write_venv


@pytest.fixture
def recording_runner():
    """Factory for RecordingRunner."""
    return RecordingRunner
