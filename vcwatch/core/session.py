"""Session lifecycle tying resolver, caches, watcher and dispatcher together.

A session is attached to one project at a time. Everything it owns is
created on attach and released on detach, so switching projects never
leaks watches, caches or background work from the previous one.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor
from dataclasses import replace
from pathlib import Path

from vcwatch.core.dispatcher import ActionDispatcher
from vcwatch.core.overlay import OverlayManager
from vcwatch.core.owner_queue import OwnerQueue
from vcwatch.core.refresher import StatusRefresher
from vcwatch.core.resolver import RootBinding, RootResolver, normalize_path
from vcwatch.domain.config import RefreshConfig
from vcwatch.domain.entities import ChangeEvent, Project
from vcwatch.domain.status import VCItemStatus
from vcwatch.ports.backend import BackendProvider
from vcwatch.ports.config import SettingsStore
from vcwatch.ports.host import HostUI, OverlayListener
from vcwatch.ports.watcher import ChangeSink, FileWatcher

logger = logging.getLogger(__name__)

WatcherFactory = Callable[[ChangeSink], FileWatcher]


class VCSession:
    """Version-control state for the project open in the host.

    All methods must be called on the owner thread, the thread that last
    called ``attach``. Work from the watcher and the refresh pool runs when
    the owner calls ``pump``.
    """

    def __init__(
        self,
        providers: Sequence[BackendProvider],
        ui: HostUI,
        settings: SettingsStore,
        listener: OverlayListener | None = None,
        watcher_factory: WatcherFactory | None = None,
        refresh: RefreshConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            providers: Backend providers used for root discovery.
            ui: Host dialogs.
            settings: Store of persisted preferences.
            listener: Receives overlay decoration changes.
            watcher_factory: Creates a watcher delivering to a sink, or None
                to run without filesystem events.
            refresh: Background refresh settings.
            executor: Executor for status queries instead of a thread pool.
        """
        self._refresh_config = refresh or RefreshConfig()
        self._listener = listener
        self._watcher_factory = watcher_factory
        self._executor = executor
        self._queue = OwnerQueue()
        self._resolver = RootResolver(providers, on_root_discovered=self._on_root_discovered)
        self._dispatcher = ActionDispatcher(self._resolver, ui, settings, self.force_refresh)
        self._project: Project | None = None
        self._watcher: FileWatcher | None = None
        self._refresher: StatusRefresher | None = None
        self._overlay: OverlayManager | None = None

    @property
    def project(self) -> Project | None:
        return self._project

    @property
    def attached(self) -> bool:
        return self._project is not None

    @property
    def dispatcher(self) -> ActionDispatcher:
        return self._dispatcher

    @property
    def resolver(self) -> RootResolver:
        return self._resolver

    @property
    def overlay(self) -> OverlayManager | None:
        return self._overlay

    def attach(self, project: Project, open_documents: Iterable[Path] = ()) -> None:
        """Start tracking ``project``.

        Scopes resolution to the project, starts watching it, discovers its
        working copy (which schedules the initial status scan) and lets the
        backends know about documents that are already open.
        """
        if self._project is not None:
            self.detach()

        project = replace(project, root=normalize_path(project.root))
        self._project = project
        self._queue.claim()
        self._resolver.set_scope([project.root])
        self._refresher = StatusRefresher(
            self._queue,
            self._on_refreshed,
            workers=self._refresh_config.workers,
            executor=self._executor,
        )
        self._overlay = OverlayManager(
            self._resolver,
            self._refresher,
            self._queue,
            listener=self._listener,
            full_refresh_threshold=self._refresh_config.full_refresh_threshold,
        )
        self._dispatcher.activate(project)

        if self._watcher_factory is not None:
            self._watcher = self._watcher_factory(self._on_watch_event)
            self._watcher.watch(project.root)
            self._watcher.start()

        if self._resolver.binding_for(project.root) is None:
            logger.info("Project %s is not under version control", project.root)

        for document in open_documents:
            self._dispatcher.file_reload(document)
        logger.debug("Attached to %s", project.root)

    def detach(self) -> None:
        """Stop watching, cancel background work and drop all state."""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        if self._refresher is not None:
            self._refresher.shutdown()
            self._refresher = None
        if self._project is not None:
            logger.debug("Detached from %s", self._project.root)
        self._queue.clear()
        self._dispatcher.deactivate()
        self._resolver.reset()
        self._overlay = None
        self._project = None

    def project_changed(self, project: Project | None, open_documents: Iterable[Path] = ()) -> None:
        """Switch to another project, or detach when ``project`` is None."""
        self.detach()
        if project is not None:
            self.attach(project, open_documents)

    def add_watched_directory(self, path: Path) -> None:
        """Extend resolution and watching to a directory outside the project."""
        self._resolver.add_scope(path)
        if self._watcher is not None:
            self._watcher.watch(normalize_path(path))

    def pump(self, max_items: int | None = None) -> int:
        """Run work posted to the owner thread. Returns the number of items run."""
        return self._queue.drain(max_items)

    def get_overlay(self, path: Path) -> VCItemStatus:
        if self._overlay is None:
            return VCItemStatus.UNKNOWN
        return self._overlay.get_overlay(path)

    def selection_changed(self, paths: Iterable[Path]) -> None:
        if self._overlay is not None:
            self._overlay.selection_changed(paths)

    def force_refresh(self) -> None:
        if self._overlay is not None:
            self._overlay.force_refresh()

    def refresh_blocking(self) -> None:
        """Refresh every discovered root on the calling thread."""
        if self._overlay is not None:
            self._overlay.refresh_blocking()

    def _on_root_discovered(self, binding: RootBinding) -> None:
        if self._watcher is not None:
            self._watcher.watch(binding.root)
        if self._overlay is not None:
            self._overlay.ensure_loading(binding)

    def _on_refreshed(self, binding: RootBinding) -> None:
        if self._overlay is not None:
            self._overlay.on_refreshed(binding)

    def _on_watch_event(self, event: ChangeEvent) -> None:
        # Watcher thread: only hand the event over.
        self._queue.post(self._handle_change, event)

    def _handle_change(self, event: ChangeEvent) -> None:
        if self._overlay is not None:
            self._overlay.on_change(event)

    def __enter__(self) -> VCSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.detach()
