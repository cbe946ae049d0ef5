"""Configuration I/O utilities for reading and writing TOML config files."""

import os
import platform
import tomllib  # Built-in Python 3.11+
from pathlib import Path
from typing import Any

import tomli_w

from vcwatch.domain.entities import Preferences

LOCAL_CONFIG_DIR = ".vcwatch"
CONFIG_FILE_NAME = "config.toml"


def get_global_config_path() -> Path:
    """Get the path to the global config file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/vcwatch/config.toml or ~/.config/vcwatch/config.toml
    - Windows: %APPDATA%/vcwatch/config.toml

    Returns:
        Path to the global config file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "vcwatch" / CONFIG_FILE_NAME
        return Path.home() / ".config" / "vcwatch" / CONFIG_FILE_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / "vcwatch" / CONFIG_FILE_NAME
    return Path.home() / ".config" / "vcwatch" / CONFIG_FILE_NAME


def get_local_config_path(project_root: Path) -> Path:
    """Return the per-project config file path (may not exist)."""
    return project_root / LOCAL_CONFIG_DIR / CONFIG_FILE_NAME


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Args:
        path: Path to config.toml file

    Returns:
        Dictionary with parsed TOML data

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def preferences_to_data(preferences: Preferences) -> dict[str, str]:
    """Convert preferences into a ``[preferences]`` table."""
    return {
        "should_delete": preferences.should_delete.value,
        "commit_on_move": preferences.commit_on_move.value,
    }


def save_config_data(data: dict[str, Any], path: Path) -> None:
    """Write raw config data to a TOML file, creating parent directories.

    Args:
        data: Dictionary of config sections
        path: Destination path for config.toml
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)
