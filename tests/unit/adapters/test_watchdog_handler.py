"""Unit tests for the watchdog-based file watcher."""

import queue
import time
from pathlib import Path

import pytest
from watchdog.events import (
    DirCreatedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from vcwatch.adapters.fs_watch.watchdog_watcher import ChangeEventHandler, WatchdogFileWatcher
from vcwatch.domain.entities import ChangeEvent, ChangeKind

ROOT = Path("/work/repo")


@pytest.fixture
def events() -> list[ChangeEvent]:
    return []


@pytest.fixture
def handler(events: list[ChangeEvent]) -> ChangeEventHandler:
    return ChangeEventHandler(events.append)


class TestClassify:
    def test_regular_path(self, handler: ChangeEventHandler):
        assert handler.classify(ROOT / "src" / "a.py") == (False, None)

    @pytest.mark.parametrize(
        "rel",
        [".git/index", ".git/HEAD", ".git/refs/heads/main", ".git/packed-refs", ".svn/wc.db"],
    )
    def test_control_files_map_to_root(self, handler: ChangeEventHandler, rel: str):
        assert handler.classify(ROOT / rel) == (True, ROOT)

    @pytest.mark.parametrize("rel", [".git/objects/ab/cdef", ".git/index.lock", ".git"])
    def test_other_control_paths_are_dropped(self, handler: ChangeEventHandler, rel: str):
        assert handler.classify(ROOT / rel) == (True, None)

    def test_custom_ignore_dirs(self, events):
        handler = ChangeEventHandler(events.append, ignore_dirs=["node_modules"])
        assert handler.classify(ROOT / "node_modules" / "x.js") == (True, None)
        assert handler.classify(ROOT / ".git" / "config") == (False, None)


class TestEvents:
    def test_created_file(self, handler, events):
        handler.dispatch(FileCreatedEvent(str(ROOT / "a.txt")))
        assert events == [ChangeEvent(ChangeKind.CREATED, ROOT / "a.txt")]

    def test_created_directory(self, handler, events):
        handler.dispatch(DirCreatedEvent(str(ROOT / "pkg")))
        assert events == [ChangeEvent(ChangeKind.CREATED, ROOT / "pkg", is_directory=True)]

    def test_deleted_file(self, handler, events):
        handler.dispatch(FileDeletedEvent(str(ROOT / "a.txt")))
        assert events == [ChangeEvent(ChangeKind.DELETED, ROOT / "a.txt")]

    def test_modified_file(self, handler, events):
        handler.dispatch(FileModifiedEvent(str(ROOT / "a.txt")))
        assert events == [ChangeEvent(ChangeKind.MODIFIED, ROOT / "a.txt")]

    def test_directory_modification_is_ignored(self, handler, events):
        handler.dispatch(DirModifiedEvent(str(ROOT / "src")))
        assert events == []

    def test_moved_file(self, handler, events):
        handler.dispatch(FileMovedEvent(str(ROOT / "a.txt"), str(ROOT / "b.txt")))
        assert events == [ChangeEvent(ChangeKind.MOVED, ROOT / "a.txt", ROOT / "b.txt")]

    def test_index_change_is_metadata_event(self, handler, events):
        handler.dispatch(FileModifiedEvent(str(ROOT / ".git" / "index")))
        assert events == [ChangeEvent(ChangeKind.METADATA, ROOT)]

    def test_object_writes_are_dropped(self, handler, events):
        handler.dispatch(FileCreatedEvent(str(ROOT / ".git" / "objects" / "ab" / "cd")))
        assert events == []

    def test_atomic_index_replace_is_metadata_event(self, handler, events):
        handler.dispatch(
            FileMovedEvent(str(ROOT / ".git" / "index.lock"), str(ROOT / ".git" / "index"))
        )
        assert events == [ChangeEvent(ChangeKind.METADATA, ROOT)]

    def test_move_out_of_control_directory_is_creation(self, handler, events):
        handler.dispatch(FileMovedEvent(str(ROOT / ".git" / "tmp"), str(ROOT / "a.txt")))
        assert events == [ChangeEvent(ChangeKind.CREATED, ROOT / "a.txt")]

    def test_move_into_control_directory_is_deletion(self, handler, events):
        handler.dispatch(FileMovedEvent(str(ROOT / "a.txt"), str(ROOT / ".git" / "tmp")))
        assert events == [ChangeEvent(ChangeKind.DELETED, ROOT / "a.txt")]

    def test_failing_sink_is_logged(self, caplog):
        def sink(event):
            raise RuntimeError("sink broke")

        handler = ChangeEventHandler(sink)
        handler.dispatch(FileCreatedEvent(str(ROOT / "a.txt")))
        assert "Change sink failed" in caplog.text


class TestWatchBookkeeping:
    def test_nested_watch_is_covered_by_ancestor(self, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        watcher = WatchdogFileWatcher(lambda event: None)
        watcher.watch(tmp_path)
        watcher.watch(tmp_path / "sub")
        assert watcher.watched == [tmp_path.resolve()]

    def test_ancestor_replaces_nested_watches(self, tmp_path: Path):
        for name in ("a", "b"):
            (tmp_path / name).mkdir()
        watcher = WatchdogFileWatcher(lambda event: None)
        watcher.watch(tmp_path / "a")
        watcher.watch(tmp_path / "b")
        watcher.watch(tmp_path)
        assert watcher.watched == [tmp_path.resolve()]

    def test_stop_without_start_is_a_no_op(self, tmp_path: Path):
        watcher = WatchdogFileWatcher(lambda event: None)
        watcher.stop()
        assert not watcher.is_running


def wait_for(received: "queue.Queue[ChangeEvent]", predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            event = received.get(timeout=0.1)
        except queue.Empty:
            continue
        if predicate(event):
            return True
    return False


def test_observer_delivers_real_events(tmp_path: Path):
    received: queue.Queue[ChangeEvent] = queue.Queue()
    root = tmp_path.resolve()
    watcher = WatchdogFileWatcher(received.put)
    watcher.watch(root)
    watcher.start()
    try:
        assert watcher.is_running
        (root / "hello.txt").write_text("hi")
        assert wait_for(received, lambda e: e.path == root / "hello.txt")
    finally:
        watcher.stop()
    assert not watcher.is_running
