"""
Configuration and constants for Unburden.

Defines file paths, storage keys, breathing policy and system defaults.

Cross-platform support:
- Set UNBURDEN_ROOT environment variable to override the default data root
- On macOS: defaults to ~/Library/Application Support/unburden
- On Linux/Windows: defaults to ~/.unburden

Optional user settings live in settings.yaml under the data root.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Optional

import yaml

from unburden.errors import ConfigError


def _get_default_project_root() -> Path:
    """Get the default data root based on platform."""
    if env_root := os.environ.get("UNBURDEN_ROOT"):
        return Path(env_root).expanduser()

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "unburden"
    else:
        return Path.home() / ".unburden"


# Data root and directory structure
PROJECT_ROOT: Final[Path] = _get_default_project_root()
STATE_DB_PATH: Final[Path] = PROJECT_ROOT / "state.db"
SETTINGS_PATH: Final[Path] = PROJECT_ROOT / "settings.yaml"

# Storage keys (shared with the mobile app's key-value layout)
THOUGHTS_KEY: Final[str] = "thoughts"
THOUGHT_COUNT_KEY: Final[str] = "thoughtCount"
ZEN_SESSIONS_KEY: Final[str] = "zenSessionsCompleted"

# Thought display
RECENT_THOUGHTS_LIMIT: Final[int] = 3

# Breathing phase durations in milliseconds
INHALE_MS: Final[int] = 4000
HOLD_IN_MS: Final[int] = 2000
EXHALE_MS: Final[int] = 4000
HOLD_OUT_MS: Final[int] = 2000

# A session only counts once this many full cycles are done (about 36 seconds)
MIN_CYCLES_FOR_CREDIT: Final[int] = 3

# Logging
LOG_DIR: Final[Path] = PROJECT_ROOT / "logs"
LOG_FILE: Final[str] = "unburden.log"
LOG_LEVEL: Final[str] = "INFO"

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Effective user settings, defaults filled in."""

    timezone: Optional[str] = None
    db_path: Path = STATE_DB_PATH
    log_level: str = LOG_LEVEL


def load_settings(path: Path = SETTINGS_PATH) -> Settings:
    """
    Load user settings from a YAML file.

    Args:
        path: Path to settings.yaml.

    Returns:
        Settings with defaults for anything the file leaves out.

    Raises:
        ConfigError: If the file exists but cannot be parsed or holds
            values of the wrong shape.
    """
    path = Path(path)
    if not path.exists():
        return Settings()

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Could not read settings file {path}: {e}") from e

    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")

    return _settings_from_mapping(raw, path)


def _settings_from_mapping(raw: dict[str, Any], path: Path) -> Settings:
    settings = Settings()

    timezone = raw.get("timezone")
    if timezone is not None:
        if not isinstance(timezone, str):
            raise ConfigError(f"'timezone' in {path} must be a string")
        settings.timezone = timezone

    db_path = raw.get("db_path")
    if db_path is not None:
        if not isinstance(db_path, str):
            raise ConfigError(f"'db_path' in {path} must be a string")
        settings.db_path = Path(db_path).expanduser()

    log_level = raw.get("log_level")
    if log_level is not None:
        level = str(log_level).upper()
        if level not in _VALID_LOG_LEVELS:
            raise ConfigError(
                f"'log_level' in {path} must be one of {', '.join(_VALID_LOG_LEVELS)}"
            )
        settings.log_level = level

    return settings
