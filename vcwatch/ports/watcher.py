"""Filesystem watcher port interface."""

from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from vcwatch.domain.entities import ChangeEvent

ChangeSink = Callable[[ChangeEvent], None]


class FileWatcher(Protocol):
    """Protocol for observing filesystem mutations.

    Implementations call the sink from their own notification thread; the
    receiver is responsible for marshaling onto the owner thread.
    """

    def watch(self, path: Path) -> None:
        """Observe ``path`` recursively. Watching a path twice is a no-op."""
        ...

    def start(self) -> None:
        """Begin delivering events."""
        ...

    def stop(self) -> None:
        """Stop delivering events and release resources."""
        ...
