"""
Logging configuration — one setup call at CLI start.

Modules only do ``logger = logging.getLogger(__name__)``; handlers and
levels are decided here.

Console level, highest precedence first:
    --debug / --verbose / --quiet  >  PYMANAGER_DEBUG  >  PYMANAGER_LOG_LEVEL  >  WARNING

PYMANAGER_LOG_FILE adds a file handler at PYMANAGER_LOG_FILE_LEVEL
(defaults to the console level).
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

# Console format by the most verbose level it applies to
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_QUIET_FORMAT = "%(message)s"

_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    environ: Mapping[str, str],
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> str:
    """Pick the console level from CLI flags and environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    if environ.get("PYMANAGER_DEBUG"):
        return "DEBUG"
    return environ.get("PYMANAGER_LOG_LEVEL", "WARNING")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name. Unknown names mean WARNING.
        log_file: Optional log file path.
        log_file_level: File level name; defaults to ``level``.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    # Root must let through whatever the chattiest handler wants
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _QUIET_FORMAT, None
    for threshold, candidate, candidate_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = candidate, candidate_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(name: str | None) -> int:
    level = logging.getLevelName(name.upper()) if name else logging.WARNING
    return level if isinstance(level, int) else logging.WARNING
