"""Working-copy root discovery and path resolution.

Finds the nearest enclosing working-copy root of a path, similar to how git
walks up to find .git/, and binds each discovered root to exactly one
backend instance and one status cache.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from vcwatch.core.status_cache import StatusCache
from vcwatch.domain.entities import WatcherVCResult, to_relative_key
from vcwatch.domain.exceptions import VCWatchDomainError
from vcwatch.ports.backend import BackendProvider, VCBackend

logger = logging.getLogger(__name__)


@dataclass
class RootBinding:
    """A discovered working-copy root with its backend and cache."""

    root: Path
    backend: VCBackend
    cache: StatusCache = field(default_factory=StatusCache)

    def relative(self, path: Path) -> str:
        """Cache key of ``path`` inside this root."""
        return to_relative_key(path, self.root)


def normalize_path(path: Path | str) -> Path:
    """Return an absolute, symlink-resolved version of ``path``."""
    return Path(path).expanduser().resolve()


class RootResolver:
    """Resolves paths to the working copy that owns them.

    Only paths inside the configured scope (the project root and any extra
    watched directories) are resolved. Root lookups are memoized per
    directory; backends are created lazily the first time a root is found.
    """

    def __init__(
        self,
        providers: Sequence[BackendProvider],
        on_root_discovered: Callable[[RootBinding], None] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            providers: Backend providers, probed in order at each directory.
            on_root_discovered: Called once for every newly bound root.
        """
        self._providers = list(providers)
        self._on_root_discovered = on_root_discovered
        self._scope: list[Path] = []
        self._roots: dict[Path, RootBinding] = {}
        self._dir_roots: dict[Path, Path | None] = {}

    def set_scope(self, paths: Iterable[Path]) -> None:
        """Replace the set of directories whose paths may be resolved."""
        self._scope = [normalize_path(p) for p in paths]

    def add_scope(self, path: Path) -> None:
        """Add one directory to the resolvable scope."""
        path = normalize_path(path)
        if path not in self._scope:
            self._scope.append(path)

    def covers(self, path: Path) -> bool:
        """Return True if ``path`` lies inside the resolvable scope."""
        path = normalize_path(path)
        return any(path.is_relative_to(scope) for scope in self._scope)

    def bindings(self) -> list[RootBinding]:
        """Return every root discovered so far."""
        return list(self._roots.values())

    def binding_at(self, root: Path) -> RootBinding | None:
        """Return the binding whose root is exactly ``root``, if discovered."""
        return self._roots.get(normalize_path(root))

    def reset(self) -> None:
        """Forget scope, memoized lookups and discovered roots."""
        self._scope = []
        self._roots.clear()
        self._dir_roots.clear()

    def binding_for(self, path: Path, use_cache: bool = True) -> RootBinding | None:
        """Return the root binding owning ``path`` without querying status.

        Args:
            path: Any path, existing or not.
            use_cache: When False, directories are probed again instead of
                trusting memoized lookups.

        Returns:
            The binding, or None if the path is out of scope or not under
            version control.
        """
        path = normalize_path(path)
        if not self.covers(path):
            return None
        start = path if path.is_dir() else path.parent
        return self._find_root(start, use_cache)

    def resolve(self, path: Path, use_cache: bool = True) -> WatcherVCResult | None:
        """Resolve ``path`` to its working copy and current status.

        Args:
            path: Path to resolve.
            use_cache: When False, the root lookup is re-probed and the status
                comes from a fresh backend query rather than the cache.

        Returns:
            WatcherVCResult, or None if no working copy covers the path or
            the backend could not be queried.
        """
        path = normalize_path(path)
        binding = self.binding_for(path, use_cache)
        if binding is None:
            logger.debug("No working copy covers %s", path)
            return None

        rel = binding.relative(path)
        try:
            if use_cache and binding.cache.loaded:
                status = binding.cache.get_overlay(rel)
            else:
                status = binding.backend.get_status(path)
                # Directory statuses are aggregates; only files are cached.
                if rel and not path.is_dir():
                    binding.cache.put(rel, status)
        except VCWatchDomainError as e:
            logger.warning("Status query failed for %s: %s", path, e.message)
            return None

        return WatcherVCResult(path=path, root=binding.root, status=status, backend=binding.backend)

    def ensure_loaded(self, binding: RootBinding) -> bool:
        """Run a synchronous bulk query if the root's cache was never loaded.

        Returns:
            True if the cache is loaded afterwards.
        """
        if binding.cache.loaded:
            return True
        ticket = binding.cache.begin_refresh()
        try:
            entries = binding.backend.get_status_map()
        except VCWatchDomainError as e:
            logger.warning("Bulk status query failed for %s: %s", binding.root, e.message)
            binding.cache.abandon(ticket)
            return False
        return binding.cache.complete_refresh(ticket, entries)

    def _find_root(self, start: Path, use_cache: bool) -> RootBinding | None:
        visited: list[Path] = []
        found: tuple[Path, BackendProvider | None] | None = None
        current = start
        while True:
            if use_cache and current in self._dir_roots:
                cached_root = self._dir_roots[current]
                found = (cached_root, None) if cached_root is not None else None
                break
            visited.append(current)
            provider = self._probe(current)
            if provider is not None:
                found = (current, provider)
                break
            parent = current.parent
            if parent == current:
                break
            current = parent

        root = found[0] if found else None
        for directory in visited:
            self._dir_roots[directory] = root
        if found is None:
            return None

        root, provider = found
        binding = self._roots.get(root)
        if binding is None:
            if provider is None:
                provider = self._probe(root)
                if provider is None:
                    return None
            binding = self._bind(root, provider)
        return binding

    def _probe(self, directory: Path) -> BackendProvider | None:
        for provider in self._providers:
            try:
                if provider.is_root(directory):
                    return provider
            except OSError:
                continue
        return None

    def _bind(self, root: Path, provider: BackendProvider) -> RootBinding:
        binding = RootBinding(root=root, backend=provider.create(root))
        self._roots[root] = binding
        logger.info("Discovered %s working copy at %s", provider.kind, root)
        if self._on_root_discovered is not None:
            self._on_root_discovered(binding)
        return binding
