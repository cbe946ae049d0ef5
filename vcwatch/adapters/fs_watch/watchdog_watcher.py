"""Filesystem watcher built on watchdog.

Translates watchdog events into ChangeEvents. Changes inside version-control
control directories (.git, .svn, .hg) are dropped, except for the files that
signal a status change of the whole working copy (index, HEAD, refs), which
are reported as METADATA events on the working-copy root.
"""

import logging
import os
import threading
from collections.abc import Sequence
from pathlib import Path

from watchdog.events import (
    DirModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from vcwatch.domain.entities import ChangeEvent, ChangeKind
from vcwatch.ports.watcher import ChangeSink

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_DIRS = (".git", ".svn", ".hg")

# Files inside a control directory whose change means "statuses changed"
_CONTROL_FILES = frozenset({"index", "HEAD", "MERGE_HEAD", "ORIG_HEAD", "packed-refs", "wc.db"})
_CONTROL_DIRS = frozenset({"refs"})


def _is_control_file(parts: Sequence[str]) -> bool:
    if not parts:
        return False
    if len(parts) == 1:
        return parts[0] in _CONTROL_FILES
    return parts[0] in _CONTROL_DIRS


class ChangeEventHandler(FileSystemEventHandler):
    """Watchdog event handler forwarding ChangeEvents to a sink.

    Runs on the observer thread; the sink must be thread-safe.
    """

    def __init__(self, sink: ChangeSink, ignore_dirs: Sequence[str] = DEFAULT_IGNORE_DIRS) -> None:
        super().__init__()
        self._sink = sink
        self._ignore_dirs = frozenset(ignore_dirs)

    def classify(self, path: Path) -> tuple[bool, Path | None]:
        """Check whether ``path`` lies inside a control directory.

        Returns:
            (inside, root): ``inside`` is True for paths under an ignored
            directory. ``root`` is the working-copy root when the path is a
            control file signaling a metadata change, otherwise None.
        """
        parts = path.parts
        for i, part in enumerate(parts):
            if part in self._ignore_dirs:
                if _is_control_file(parts[i + 1 :]):
                    return True, Path(*parts[:i])
                return True, None
        return False, None

    def _emit(self, event: ChangeEvent) -> None:
        logger.debug("Change %s: %s", event.kind.value, event.path)
        try:
            self._sink(event)
        except Exception:
            logger.exception("Change sink failed for %s", event.path)

    def _forward(
        self,
        kind: ChangeKind,
        src: Path,
        dest: Path | None = None,
        is_directory: bool = False,
    ) -> None:
        roots: list[Path] = []
        paths: list[Path] = []
        for path in (src, dest):
            if path is None:
                continue
            inside, root = self.classify(path)
            if not inside:
                paths.append(path)
            elif root is not None and root not in roots:
                roots.append(root)

        for root in roots:
            self._emit(ChangeEvent(ChangeKind.METADATA, root))

        if not paths:
            return
        if kind is ChangeKind.MOVED and len(paths) == 1:
            # One end of the move is inside a control directory.
            kind = ChangeKind.CREATED if dest in paths else ChangeKind.DELETED
            self._emit(ChangeEvent(kind, paths[0], is_directory=is_directory))
            return
        self._emit(ChangeEvent(kind, src, dest, is_directory=is_directory))

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(
            ChangeKind.CREATED, Path(os.fsdecode(event.src_path)), is_directory=event.is_directory
        )

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(
            ChangeKind.DELETED, Path(os.fsdecode(event.src_path)), is_directory=event.is_directory
        )

    def on_modified(self, event: FileSystemEvent) -> None:
        if isinstance(event, DirModifiedEvent):
            return  # directory mtime churn carries no status information
        self._forward(ChangeKind.MODIFIED, Path(os.fsdecode(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(
            ChangeKind.MOVED,
            Path(os.fsdecode(event.src_path)),
            Path(os.fsdecode(event.dest_path)),
            is_directory=event.is_directory,
        )


class WatchdogFileWatcher:
    """FileWatcher implementation using a watchdog Observer.

    Every watched path is observed recursively. Watching a path already
    covered by a watched ancestor is a no-op; watching an ancestor of
    watched paths replaces them.
    """

    def __init__(self, sink: ChangeSink, ignore_dirs: Sequence[str] = DEFAULT_IGNORE_DIRS) -> None:
        self._handler = ChangeEventHandler(sink, ignore_dirs)
        self._watches: dict[Path, ObservedWatch | None] = {}
        self._observer: Observer | None = None
        self._lock = threading.Lock()

    @property
    def watched(self) -> list[Path]:
        return list(self._watches)

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def watch(self, path: Path) -> None:
        path = path.resolve()
        with self._lock:
            if any(path.is_relative_to(existing) for existing in self._watches):
                return
            for existing in [p for p in self._watches if p.is_relative_to(path)]:
                handle = self._watches.pop(existing)
                if self._observer is not None and handle is not None:
                    self._observer.unschedule(handle)
            self._watches[path] = None
            if self._observer is not None:
                self._watches[path] = self._schedule(self._observer, path)

    def start(self) -> None:
        with self._lock:
            if self._observer is not None:
                return
            observer = Observer()
            for path in self._watches:
                self._watches[path] = self._schedule(observer, path)
            observer.start()
            self._observer = observer
        logger.info("File watcher started for %d path(s)", len(self._watches))

    def stop(self) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
            for path in self._watches:
                self._watches[path] = None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5.0)
        logger.info("File watcher stopped")

    def _schedule(self, observer: Observer, path: Path) -> ObservedWatch | None:
        if not path.is_dir():
            logger.warning("Not watching %s: not a directory", path)
            return None
        logger.debug("Watching %s", path)
        return observer.schedule(self._handler, str(path), recursive=True)
