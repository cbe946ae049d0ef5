"""TOML-based configuration provider and preference store.

Config loading priority (highest to lowest):
1. Local: <project>/.vcwatch/config.toml
2. Global: ~/.config/vcwatch/config.toml (user defaults)
3. Built-in defaults

Preferences answered through "remember my choice" dialogs are written back
to the global file.
"""

import logging
from pathlib import Path

from vcwatch.domain.config import VCWatchConfig, preferences_from_data
from vcwatch.domain.entities import Preferences
from vcwatch.shared.config_io import (
    get_global_config_path,
    get_local_config_path,
    load_config_data,
    preferences_to_data,
    save_config_data,
)

logger = logging.getLogger(__name__)


class TomlConfigProvider:
    """Configuration provider that loads from TOML files.

    Implements config cascade:
    1. Load global config if present
    2. Load local config if present
    3. Local values override global values (key-level merge per section)
    4. Missing values fall back to built-in defaults

    Gracefully handles missing or invalid configs with warnings.
    """

    def __init__(self, global_path: Path | None = None) -> None:
        self._global_path = global_path

    @property
    def global_path(self) -> Path:
        return self._global_path or get_global_config_path()

    def load(self, project_root: Path | None = None) -> VCWatchConfig:
        """Load configuration with global fallback.

        Args:
            project_root: Project whose local config overrides the global one.

        Returns:
            VCWatchConfig instance with merged global/local values or defaults
        """
        config = VCWatchConfig.default()

        sources = [("global", self.global_path)]
        if project_root is not None:
            sources.append(("local", get_local_config_path(project_root)))

        for label, path in sources:
            if not path.exists():
                continue
            try:
                data = load_config_data(path)
                config = VCWatchConfig.from_partial(config, data)
                logger.debug("Loaded %s config from %s", label, path)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(
                    "Failed to parse %s config at %s: %s. Ignoring it.",
                    label,
                    path,
                    e,
                )

        return config


class TomlSettingsStore:
    """SettingsStore persisting preferences in the global config file.

    Other sections of the file are preserved when preferences are saved.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path or get_global_config_path()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            return load_config_data(self.path)
        except (FileNotFoundError, ValueError) as e:
            logger.warning("Failed to read settings from %s: %s", self.path, e)
            return {}

    def load(self) -> Preferences:
        data = self._read().get("preferences")
        if not isinstance(data, dict):
            return Preferences()
        try:
            return preferences_from_data(Preferences(), data)
        except ValueError as e:
            logger.warning("Invalid preferences in %s: %s. Using defaults.", self.path, e)
            return Preferences()

    def save(self, preferences: Preferences) -> None:
        path = self.path
        if path.exists():
            # Refuse to overwrite a file we cannot parse.
            data = load_config_data(path)
        else:
            data = {}
        data["preferences"] = preferences_to_data(preferences)
        save_config_data(data, path)
        logger.info("Saved preferences to %s", path)
