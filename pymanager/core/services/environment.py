"""
Environment detector — is this process inside a venv, conda, poetry or pipenv env?

Purely observational, with one exception: when the PATH heuristic
recognises a venv that nobody announced, it exports VIRTUAL_ENV into
the context's environment so later checks in the same process agree.
Explicit markers always win; the heuristic only runs when none is set.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
from collections.abc import Mapping, MutableMapping

from pymanager.adapters.languages.python import PythonProbe
from pymanager.core.models.environment import EnvironmentContext, EnvironmentKind
from pymanager.core.models.interpreter import Version

logger = logging.getLogger(__name__)

# venv writes "version = 3.12.1", virtualenv "version_info = 3.12.1.final.0"
_PYVENV_VERSION_RE = re.compile(r"^\s*version(?:_info)?\s*=\s*(\d+)\.(\d+)", re.MULTILINE)


def env_bin_dir(environ: Mapping[str, str]) -> str:
    """The active environment's bin directory, or "" when there is none."""
    for var in ("VIRTUAL_ENV", "CONDA_PREFIX"):
        root = environ.get(var, "")
        if root and os.path.isdir(os.path.join(root, "bin")):
            return os.path.join(root, "bin")
    return ""


def read_pyvenv_version(root_dir: str) -> Version | None:
    """major.minor from ``<root>/pyvenv.cfg`` without starting a process."""
    cfg = os.path.join(root_dir, "pyvenv.cfg")
    try:
        with open(cfg, encoding="utf-8") as f:
            content = f.read()
    except OSError:
        return None
    match = _PYVENV_VERSION_RE.search(content)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class EnvironmentDetector:
    """Detects the active environment and its interpreter version."""

    def __init__(self, probe: PythonProbe | None = None):
        self.probe = probe or PythonProbe()
        # Last-value cache: (root_dir, version)
        self._cached_root = ""
        self._cached_version: Version | None = None

    def detect(self, environ: MutableMapping[str, str]) -> EnvironmentContext:
        """Work out the active environment from markers, then the PATH heuristic."""
        venv = environ.get("VIRTUAL_ENV", "")
        if venv:
            return EnvironmentContext(
                kind=EnvironmentKind.VENV, root_dir=venv, bin_dir=env_bin_dir(environ),
            )

        conda_prefix = environ.get("CONDA_PREFIX", "")
        if conda_prefix:
            return EnvironmentContext(
                kind=EnvironmentKind.CONDA,
                root_dir=conda_prefix,
                bin_dir=env_bin_dir(environ),
                name=environ.get("CONDA_DEFAULT_ENV", ""),
            )
        if environ.get("CONDA_DEFAULT_ENV"):
            return EnvironmentContext(
                kind=EnvironmentKind.CONDA, name=environ["CONDA_DEFAULT_ENV"],
            )

        if environ.get("POETRY_ACTIVE"):
            return EnvironmentContext(kind=EnvironmentKind.POETRY)
        if environ.get("PIPENV_ACTIVE"):
            return EnvironmentContext(kind=EnvironmentKind.PIPENV)

        return self._detect_from_path(environ)

    def version(
        self,
        env: EnvironmentContext,
        environ: Mapping[str, str],
    ) -> Version | None:
        """The environment's interpreter version, cached by root directory."""
        if not env.active:
            return None
        if env.root_dir and env.root_dir == self._cached_root and self._cached_version:
            return self._cached_version

        version: Version | None = None
        if env.root_dir:
            # Fast path: pyvenv.cfg (venvs only have one)
            version = read_pyvenv_version(env.root_dir)
            if version is None:
                python = os.path.join(env.root_dir, "bin", "python")
                if os.access(python, os.X_OK):
                    version = self.probe.version_info(python)
        elif env.kind is EnvironmentKind.CONDA:
            python = shutil.which("python", path=environ.get("PATH", os.defpath))
            if python:
                version = self.probe.version_info(python)

        if version is not None and env.root_dir:
            self._cached_root = env.root_dir
            self._cached_version = version
        return version

    def fast_version(self, environ: Mapping[str, str]) -> Version | None:
        """pyvenv.cfg-only version of VIRTUAL_ENV (no process spawn)."""
        venv = environ.get("VIRTUAL_ENV", "")
        return read_pyvenv_version(venv) if venv else None

    # ── Heuristic ───────────────────────────────────────────────

    def _detect_from_path(self, environ: MutableMapping[str, str]) -> EnvironmentContext:
        """Recognise an unannounced venv from where ``python`` lives on PATH.

        ``<root>/bin/python*`` counts as a venv when ``<root>/bin/activate``
        and ``<root>/pyvenv.cfg`` both exist.
        """
        python = shutil.which("python", path=environ.get("PATH", os.defpath))
        if not python:
            return EnvironmentContext()

        bin_dir = os.path.dirname(python)
        if os.path.basename(bin_dir) != "bin":
            return EnvironmentContext()
        root = os.path.dirname(bin_dir)

        if not (
            os.path.isfile(os.path.join(bin_dir, "activate"))
            and os.path.isfile(os.path.join(root, "pyvenv.cfg"))
        ):
            return EnvironmentContext()

        if not environ.get("VIRTUAL_ENV"):
            logger.info("Detected unannounced venv at %s; exporting VIRTUAL_ENV", root)
            environ["VIRTUAL_ENV"] = root

        return EnvironmentContext(
            kind=EnvironmentKind.VENV,
            root_dir=root,
            bin_dir=bin_dir,
            synthesized=True,
        )
