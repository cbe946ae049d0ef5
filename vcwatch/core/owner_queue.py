"""Marshaling of work onto the owner thread.

Watcher notifications and background scan results arrive on other threads.
They are posted here and run when the owner thread pumps the queue, so
cache and overlay state only ever change on one thread.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from queue import Empty, Queue
from typing import Any

logger = logging.getLogger(__name__)


class OwnerQueue:
    """Thread-safe queue of callables drained by a single owner thread."""

    def __init__(self) -> None:
        self._items: Queue[tuple[Callable[..., Any], tuple[Any, ...]]] = Queue()
        self._owner = threading.get_ident()

    @property
    def is_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner

    def claim(self) -> None:
        """Make the calling thread the owner."""
        self._owner = threading.get_ident()

    def post(self, func: Callable[..., Any], *args: Any) -> None:
        """Schedule ``func(*args)`` on the owner thread. Safe from any thread."""
        self._items.put((func, args))

    def drain(self, max_items: int | None = None) -> int:
        """Run queued callables on the calling (owner) thread.

        Callables posted while draining run in the same call. A failing
        callable is logged and does not stop the rest of the queue.

        Args:
            max_items: Stop after this many callables, or None for no limit.

        Returns:
            Number of callables run.
        """
        count = 0
        while max_items is None or count < max_items:
            try:
                func, args = self._items.get_nowait()
            except Empty:
                break
            count += 1
            try:
                func(*args)
            except Exception:
                logger.exception("Error running queued callback %r", func)
        return count

    def clear(self) -> None:
        """Drop every queued callable without running it."""
        while True:
            try:
                self._items.get_nowait()
            except Empty:
                return
