"""Config domain models for vcwatch.

Configuration is stored in config.toml files (global and per project) and
represents backend, watcher and refresh settings plus persisted user
preferences. This module defines the validated configuration state.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any

from vcwatch.domain.entities import Preferences, RememberValue


@dataclass(frozen=True)
class BackendConfig:
    """Configuration for version-control command execution.

    Attributes:
        git_executable: Name or path of the git executable.
        command_timeout: Seconds before a VCS command is abandoned.

    Raises:
        ValueError: If command_timeout is not positive.
    """

    git_executable: str = "git"
    command_timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate backend config after initialization."""
        if self.command_timeout <= 0:
            raise ValueError(
                f"command_timeout must be positive, got {self.command_timeout}"
            )
        if not self.git_executable:
            raise ValueError("git_executable must not be empty")


@dataclass(frozen=True)
class WatcherConfig:
    """Configuration for filesystem watching.

    Attributes:
        enabled: Whether filesystem events drive cache invalidation.
        ignore_dirs: Directory names whose contents never produce events,
            except for control files that signal a metadata change.
    """

    enabled: bool = True
    ignore_dirs: list[str] = field(default_factory=lambda: [".git", ".svn", ".hg"])


@dataclass(frozen=True)
class RefreshConfig:
    """Configuration for background status scans.

    Attributes:
        workers: Threads used for bulk status queries.
        full_refresh_threshold: Pending invalidations of one root above which
            a single full refresh replaces the targeted ones.

    Raises:
        ValueError: If workers or full_refresh_threshold is not positive.
    """

    workers: int = 2
    full_refresh_threshold: int = 32

    def __post_init__(self) -> None:
        """Validate refresh config after initialization."""
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.full_refresh_threshold <= 0:
            raise ValueError(
                "full_refresh_threshold must be positive, "
                f"got {self.full_refresh_threshold}"
            )


@dataclass(frozen=True)
class VCWatchConfig:
    """Complete vcwatch configuration.

    Attributes:
        backend: Command execution settings
        watcher: Filesystem watcher settings
        refresh: Background refresh settings
        preferences: Persisted answers to confirmation prompts
    """

    backend: BackendConfig = field(default_factory=BackendConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    preferences: Preferences = field(default_factory=Preferences)

    @staticmethod
    def default() -> "VCWatchConfig":
        """Create a config with all default values."""
        return VCWatchConfig()

    @staticmethod
    def from_partial(base: "VCWatchConfig", data: dict[str, Any]) -> "VCWatchConfig":
        """Overlay raw TOML data onto an existing config.

        Unknown sections and keys are ignored. Values are validated by the
        section dataclasses.

        Raises:
            ValueError: If a value fails validation.
        """
        sections: dict[str, Any] = {}
        for name, section_type in (
            ("backend", BackendConfig),
            ("watcher", WatcherConfig),
            ("refresh", RefreshConfig),
        ):
            section_data = data.get(name)
            if not isinstance(section_data, dict):
                continue
            known = {f.name for f in fields(section_type)}
            updates = {k: v for k, v in section_data.items() if k in known}
            try:
                sections[name] = replace(getattr(base, name), **updates)
            except TypeError as e:
                raise ValueError(f"Invalid [{name}] section: {e}") from e

        prefs_data = data.get("preferences")
        if isinstance(prefs_data, dict):
            sections["preferences"] = preferences_from_data(base.preferences, prefs_data)

        return replace(base, **sections)


def preferences_from_data(base: Preferences, data: dict[str, Any]) -> Preferences:
    """Build Preferences from a raw ``[preferences]`` table.

    Raises:
        ValueError: If a value is not one of yes/no/ask.
    """
    updates: dict[str, RememberValue] = {}
    for key in ("should_delete", "commit_on_move"):
        if key not in data:
            continue
        raw = str(data[key]).lower()
        try:
            updates[key] = RememberValue(raw)
        except ValueError as e:
            raise ValueError(
                f"{key} must be one of yes/no/ask, got {data[key]!r}"
            ) from e
    return replace(base, **updates)
