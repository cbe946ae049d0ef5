"""Factory for session and adapter instantiation.

Centralizes the creation of sessions and their dependencies, keeping the
CLI layer free from direct adapter imports.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vcwatch.core.session import VCSession
    from vcwatch.domain.config import VCWatchConfig
    from vcwatch.ports.backend import BackendProvider
    from vcwatch.ports.config import SettingsStore
    from vcwatch.ports.host import HostUI, OverlayListener
    from vcwatch.ports.watcher import ChangeSink, FileWatcher


class SessionFactory:
    """Creates VCSession instances wired with the concrete adapters.

    Args:
        config: Loaded configuration.
        settings: Preference store; the TOML store by default.
    """

    def __init__(self, config: VCWatchConfig, settings: SettingsStore | None = None) -> None:
        self._config = config
        self._settings = settings

    def create_providers(self) -> list[BackendProvider]:
        """Create the backend providers probed during root discovery."""
        from vcwatch.adapters.git_cmd.git_backend import GitBackendProvider

        return [GitBackendProvider(self._config.backend)]

    def create_settings_store(self) -> SettingsStore:
        if self._settings is not None:
            return self._settings
        from vcwatch.adapters.config.toml_config_provider import TomlSettingsStore

        return TomlSettingsStore()

    def create_watcher_factory(self) -> Callable[[ChangeSink], FileWatcher] | None:
        """Return a watcher constructor, or None when watching is disabled."""
        if not self._config.watcher.enabled:
            return None
        from vcwatch.adapters.fs_watch.watchdog_watcher import WatchdogFileWatcher

        ignore_dirs = list(self._config.watcher.ignore_dirs)

        def create(sink: ChangeSink) -> FileWatcher:
            return WatchdogFileWatcher(sink, ignore_dirs)

        return create

    def create_session(
        self,
        ui: HostUI,
        listener: OverlayListener | None = None,
        watch: bool = True,
    ) -> VCSession:
        """Create an unattached session.

        Args:
            ui: Host dialogs.
            listener: Receives overlay changes.
            watch: Start a filesystem watcher on attach (if enabled in config).
        """
        from vcwatch.core.session import VCSession

        return VCSession(
            providers=self.create_providers(),
            ui=ui,
            settings=self.create_settings_store(),
            listener=listener,
            watcher_factory=self.create_watcher_factory() if watch else None,
            refresh=self._config.refresh,
        )


def find_project_root(start: Path, providers: list[BackendProvider]) -> Path:
    """Return the nearest working-copy root at or above ``start``.

    Falls back to ``start`` itself when no working copy encloses it.
    """
    start = start.resolve()
    if not start.is_dir():
        start = start.parent
    for directory in (start, *start.parents):
        if any(provider.is_root(directory) for provider in providers):
            return directory
    return start
