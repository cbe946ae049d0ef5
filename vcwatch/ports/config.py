"""Configuration and settings ports.

Defines the interfaces for loading configuration and persisting user
preferences across sessions.
"""

from pathlib import Path
from typing import Protocol

from vcwatch.domain.config import VCWatchConfig
from vcwatch.domain.entities import Preferences


class ConfigProvider(Protocol):
    """Protocol for loading and providing configuration."""

    def load(self, project_root: Path | None = None) -> VCWatchConfig:
        """Load configuration for a project.

        Args:
            project_root: Project whose .vcwatch/config.toml overrides the
                global config, or None for global settings only.

        Returns:
            VCWatchConfig instance with loaded or default values

        Note:
            Implementations should gracefully fall back to defaults
            if config file is missing or invalid.
        """
        ...


class SettingsStore(Protocol):
    """Protocol for persisting user preferences."""

    def load(self) -> Preferences:
        """Return the persisted preferences, or defaults."""
        ...

    def save(self, preferences: Preferences) -> None:
        """Persist preferences for future sessions."""
        ...
