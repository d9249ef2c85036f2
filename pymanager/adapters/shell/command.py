"""
Command runner — execute a resolved command in the foreground.

Unlike the probes, commands run attached to the caller's terminal:
stdin/stdout/stderr are inherited and the exit status is returned
unchanged. Launch failures map to the shell's conventional codes so
callers can tell "not found" (127) from "not executable" (126).
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from collections.abc import Mapping

logger = logging.getLogger(__name__)

EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


class CommandRunner:
    """Run commands and report their exit status."""

    def which(self, name: str, environ: Mapping[str, str]) -> str | None:
        """Look ``name`` up on the PATH of ``environ``."""
        return shutil.which(name, path=environ.get("PATH", os.defpath))

    def run(self, argv: list[str], environ: Mapping[str, str]) -> int:
        """Run ``argv`` and return its exit status.

        A bare ``argv[0]`` is looked up on the PATH of ``environ``.
        """
        executable = argv[0]
        if os.sep not in executable:
            found = self.which(executable, environ)
            if found is None:
                logger.debug("%s: not found on PATH", executable)
                return EXIT_NOT_FOUND
            executable = found

        logger.debug("Executing: %s", " ".join([executable, *argv[1:]]))
        try:
            result = subprocess.run([executable, *argv[1:]], env=dict(environ))
        except FileNotFoundError:
            return EXIT_NOT_FOUND
        except PermissionError:
            return EXIT_NOT_EXECUTABLE
        except OSError as e:
            # ENOEXEC and friends: present but cannot be run
            logger.debug("Cannot execute %s: %s", executable, e)
            return EXIT_NOT_EXECUTABLE
        return result.returncode
