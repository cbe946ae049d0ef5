"""Overlay decorations for the project tree.

Consumes filesystem change events, turns them into cache invalidations and
targeted refreshes, and tells the UI which visible items need a new
decoration. A directory is decorated with the worst status among its
descendants.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from vcwatch.core.owner_queue import OwnerQueue
from vcwatch.core.refresher import StatusRefresher
from vcwatch.core.resolver import RootBinding, RootResolver, normalize_path
from vcwatch.core.status_cache import is_within
from vcwatch.domain.entities import ChangeEvent, ChangeKind
from vcwatch.domain.status import VCItemStatus
from vcwatch.ports.host import OverlayListener

logger = logging.getLogger(__name__)


def collapse_subtrees(subtrees: Iterable[str]) -> list[str]:
    """Drop subtrees already covered by another subtree in the set.

    >>> collapse_subtrees(["src/a.py", "src", "docs/x.md"])
    ['docs/x.md', 'src']
    """
    result: list[str] = []
    for rel in sorted(set(subtrees)):
        if any(is_within(rel, kept) for kept in result):
            continue
        result.append(rel)
    return result


class OverlayManager:
    """Keeps overlay decorations of visible items in sync with the caches.

    Every method runs on the owner thread. Invalidations are coalesced:
    events handled in one pump of the owner queue produce a single flush,
    which issues at most one refresh per subtree (or one full refresh per
    root once too many subtrees are pending).
    """

    def __init__(
        self,
        resolver: RootResolver,
        refresher: StatusRefresher,
        owner_queue: OwnerQueue,
        listener: OverlayListener | None = None,
        full_refresh_threshold: int = 32,
    ) -> None:
        self._resolver = resolver
        self._refresher = refresher
        self._queue = owner_queue
        self._listener = listener
        self._threshold = full_refresh_threshold
        self._visible: dict[Path, VCItemStatus] = {}
        self._pending: dict[Path, tuple[RootBinding, set[str] | None]] = {}
        self._loading: set[Path] = set()
        self._flush_scheduled = False

    @property
    def visible(self) -> dict[Path, VCItemStatus]:
        """Decorations currently shown, keyed by absolute path."""
        return dict(self._visible)

    def get_overlay(self, path: Path) -> VCItemStatus:
        """Return the decoration for ``path`` from the cache without blocking.

        Paths outside every working copy are UNKNOWN. A root whose cache has
        not been loaded yet gets a background scan scheduled.
        """
        binding = self._resolver.binding_for(path)
        if binding is None:
            return VCItemStatus.UNKNOWN
        if not binding.cache.loaded:
            self.ensure_loading(binding)
        return binding.cache.get_overlay(binding.relative(normalize_path(path)))

    def ensure_loading(self, binding: RootBinding) -> None:
        """Schedule the initial bulk scan of a root once."""
        if binding.root in self._loading:
            return
        self._loading.add(binding.root)
        self._refresher.schedule(binding, binding.cache.force_refresh())

    def selection_changed(self, paths: Iterable[Path]) -> None:
        """Recompute decorations for the items now visible or selected.

        Only the given items are computed; items that left the selection are
        forgotten. The listener receives the items whose decoration differs
        from what was last reported.
        """
        visible: dict[Path, VCItemStatus] = {}
        changes: dict[Path, VCItemStatus] = {}
        for raw in paths:
            path = normalize_path(raw)
            status = self.get_overlay(path)
            visible[path] = status
            if self._visible.get(path) != status:
                changes[path] = status
        self._visible = visible
        self._notify(changes)

    def on_change(self, event: ChangeEvent) -> None:
        """Handle a filesystem change (owner thread)."""
        if event.kind is ChangeKind.METADATA:
            binding = self._resolver.binding_at(event.path)
            if binding is not None:
                self._queue_invalidation(binding, None)
        else:
            targets = [event.path] if event.dest_path is None else [event.path, event.dest_path]
            for target in targets:
                binding = self._resolver.binding_for(target)
                if binding is None:
                    continue
                rel = binding.relative(normalize_path(target))
                self._queue_invalidation(binding, rel or None)

        if self._pending and not self._flush_scheduled:
            self._flush_scheduled = True
            self._queue.post(self._flush)

    def on_refreshed(self, binding: RootBinding) -> None:
        """Recompute visible items under a root whose cache just changed."""
        changes: dict[Path, VCItemStatus] = {}
        for path, old in self._visible.items():
            if not path.is_relative_to(binding.root):
                continue
            status = self.get_overlay(path)
            if status != old:
                changes[path] = status
        self._visible.update(changes)
        self._notify(changes)

    def force_refresh(self) -> None:
        """Schedule a full refresh of every known root."""
        for binding in self._resolver.bindings():
            self._loading.add(binding.root)
            self._refresher.schedule(binding, binding.cache.force_refresh())

    def refresh_blocking(self) -> None:
        """Refresh every known root on the calling thread."""
        for binding in self._resolver.bindings():
            self._loading.add(binding.root)
            self._refresher.run_now(binding, binding.cache.force_refresh())

    def reset(self) -> None:
        """Forget visible items and pending invalidations."""
        self._visible.clear()
        self._pending.clear()
        self._loading.clear()
        self._flush_scheduled = False

    def _queue_invalidation(self, binding: RootBinding, rel: str | None) -> None:
        _, subtrees = self._pending.get(binding.root, (binding, set()))
        if subtrees is None:
            return
        if rel is None or len(subtrees) >= self._threshold:
            self._pending[binding.root] = (binding, None)
            return
        subtrees.add(rel)
        self._pending[binding.root] = (binding, subtrees)

    def _flush(self) -> None:
        self._flush_scheduled = False
        pending, self._pending = self._pending, {}
        for binding, subtrees in pending.values():
            if subtrees is None:
                self._loading.add(binding.root)
                self._refresher.schedule(binding, binding.cache.force_refresh())
                continue
            for rel in collapse_subtrees(subtrees):
                self._refresher.schedule(binding, binding.cache.invalidate(rel))

    def _notify(self, changes: dict[Path, VCItemStatus]) -> None:
        if changes and self._listener is not None:
            self._listener.overlays_changed(changes)
