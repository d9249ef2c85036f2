"""
Python probe — ask an interpreter what it is.

Runs ``--version`` and a ``sys.version_info`` query against a candidate
binary. Probes NEVER raise: every outcome, including a binary that
cannot be executed at all, comes back as a ProbeResult.
"""

from __future__ import annotations

import logging
import re
import subprocess

from pydantic import BaseModel

from pymanager.core.models.interpreter import Version

logger = logging.getLogger(__name__)

VERSION_QUERY = 'import sys; print(f"{sys.version_info.major}.{sys.version_info.minor}")'

_QUERY_RE = re.compile(r"^(\d+)\.(\d+)$")


class ProbeResult(BaseModel):
    """Outcome of running an interpreter once."""

    ok: bool
    output: str = ""
    return_code: int | None = None
    error: str | None = None


class PythonProbe:
    """Interpreter version probing.

    Args:
        timeout: Seconds to wait for a probe, or None to block.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    def version_output(self, executable: str) -> ProbeResult:
        """Run ``<executable> --version`` (stdout and stderr merged)."""
        return self._run([executable, "--version"])

    def version_info(self, executable: str) -> Version | None:
        """Ask the interpreter for ``major.minor`` via ``sys.version_info``."""
        result = self._run([executable, "-c", VERSION_QUERY])
        if not result.ok:
            return None
        match = _QUERY_RE.match(result.output)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    def _run(self, cmd: list[str]) -> ProbeResult:
        logger.debug("Probing: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ProbeResult(ok=False, error=f"timed out after {self.timeout}s")
        except OSError as e:
            return ProbeResult(ok=False, error=str(e))

        output = result.stdout.strip()
        if result.returncode != 0:
            return ProbeResult(
                ok=False,
                output=output,
                return_code=result.returncode,
                error=output or f"exit code {result.returncode}",
            )
        return ProbeResult(ok=True, output=output, return_code=0)
