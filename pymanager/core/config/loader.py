"""
Configuration loader — optional YAML overrides for the engine.

Nothing here is required: ``EngineConfig()`` carries working defaults.
A YAML file named by PYMANAGER_CONFIG (or ~/.config/pymanager/config.yml
when present) may override any field. The engine only ever reads this
file; session state never goes to disk.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from pymanager.core.models.interpreter import Version, parse_version

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PYMANAGER_CONFIG"
DEFAULT_CONFIG_FILE = Path("~/.config/pymanager/config.yml")

# Scan order: user-local first, then package managers, system, custom roots
DEFAULT_SEARCH_PATHS: list[str] = [
    "~/.local/bin",
    "~/bin",
    "~/.pythons/*/bin",
    "~/Library/Python/*/bin",
    "/opt/homebrew/bin",
    "/opt/homebrew/opt/python@*/bin",
    "/usr/local/bin",
    "/usr/local/opt/python@*/bin",
    "/usr/bin",
    "/opt/python*/bin",
    "~/opt/python*/bin",
    "~/opt/python/*/bin",
    "/opt/python/*/bin",
]

DEFAULT_BYPASS_VARIABLES: list[str] = [
    "PYTHON_MANAGER_FORCE_BYPASS",
    "CI",
    "CODEX_SANDBOX_NETWORK_DISABLED",
]


class ConfigError(Exception):
    """Raised when engine configuration is invalid or unreadable."""


class EngineConfig(BaseModel):
    """Engine settings. Every field has a default."""

    search_paths: list[str] = Field(default_factory=lambda: list(DEFAULT_SEARCH_PATHS))
    preferred_dir: str = "~/.local/bin"
    min_version: Version = (3, 8)
    max_version: Version = (3, 25)
    max_symlink_hops: int = Field(default=50, ge=1)
    shim_root: str = Field(default_factory=tempfile.gettempdir)
    probe_timeout: float | None = None
    bypass_variables: list[str] = Field(
        default_factory=lambda: list(DEFAULT_BYPASS_VARIABLES)
    )

    @field_validator("min_version", "max_version", mode="before")
    @classmethod
    def _parse_version(cls, value: object) -> object:
        # YAML reads an unquoted 3.10 as the float 3.1
        if isinstance(value, float):
            raise ValueError(f"version {value!r} must be quoted, e.g. \"3.10\"")
        if isinstance(value, str):
            parsed = parse_version(value)
            if parsed is None:
                raise ValueError(f"expected a major.minor version, got {value!r}")
            return parsed
        return value

    def expanded_search_paths(self) -> list[str]:
        return [os.path.expanduser(p) for p in self.search_paths]

    def expanded_preferred_dir(self) -> str:
        return os.path.expanduser(self.preferred_dir)


def find_config_file(environ: Mapping[str, str] | None = None) -> Path | None:
    """Locate the optional config file.

    PYMANAGER_CONFIG wins when set (and must exist); otherwise the
    default location is used only if the file is there.
    """
    env = os.environ if environ is None else environ
    explicit = env.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit).expanduser()

    default = DEFAULT_CONFIG_FILE.expanduser()
    return default if default.is_file() else None


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Load engine configuration.

    Args:
        path: Explicit config path. If None, see ``find_config_file``.
        environ: Environment used to locate the file (default: os.environ).

    Returns:
        Validated EngineConfig (defaults when no file is configured).

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    if path is None:
        path = find_config_file(environ)

    if path is None:
        logger.debug("No config file, using defaults")
        return EngineConfig()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading engine config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return EngineConfig()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        config = EngineConfig.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid engine configuration: {e}") from e

    logger.info("Loaded config from %s (%d search paths)", path, len(config.search_paths))
    return config
