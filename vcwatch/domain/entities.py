"""Domain entities and value objects.

Core models passed between the resolver, the dispatcher and the host.
These are plain dataclasses with no dependencies on infrastructure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from vcwatch.domain.status import VCItemStatus

if TYPE_CHECKING:
    from vcwatch.ports.backend import VCBackend


class RememberValue(str, Enum):
    """Three-state persisted answer to a recurring question."""

    YES = "yes"
    NO = "no"
    ASK = "ask"


class ChangeKind(str, Enum):
    """Kind of filesystem change reported by a watcher.

    METADATA means the control directory of a working copy changed
    (index, HEAD, refs), so the whole root needs a fresh status scan.
    """

    CREATED = "created"
    DELETED = "deleted"
    MODIFIED = "modified"
    MOVED = "moved"
    METADATA = "metadata"


class CommitAction(str, Enum):
    """Answer to the post-move commit prompt."""

    COMMIT = "commit"
    CANCEL = "cancel"
    NEVER = "never"


@dataclass(frozen=True)
class WatcherVCResult:
    """Resolved binding of a path to its working copy.

    Attributes:
        path: Absolute path that was resolved.
        root: Root directory of the owning working copy.
        status: Status of ``path`` at resolution time.
        backend: Backend instance responsible for ``root``.
    """

    path: Path
    root: Path
    status: VCItemStatus
    backend: VCBackend

    @property
    def relative_path(self) -> str:
        """``path`` relative to ``root`` in POSIX form ("" for the root)."""
        return to_relative_key(self.path, self.root)


@dataclass(frozen=True)
class Project:
    """The project currently open in the host editor.

    Attributes:
        root: Project root directory.
        output_path: Build output directory, if the project has one.
    """

    root: Path
    output_path: Path | None = None

    @property
    def output_path_absolute(self) -> Path:
        """Build output location, falling back to the project root."""
        if self.output_path is None:
            return self.root
        if self.output_path.is_absolute():
            return self.output_path
        return self.root / self.output_path

    def relative_path(self, path: Path) -> str:
        """Return ``path`` relative to the project root when it is inside it."""
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return str(path)


@dataclass(frozen=True)
class Preferences:
    """User preferences persisted across sessions.

    Attributes:
        should_delete: Whether confirmed deletions of tracked files are
            removed from version control without asking.
        commit_on_move: Whether a commit is offered after a tracked file
            is moved. NO means never ask again.
    """

    should_delete: RememberValue = RememberValue.ASK
    commit_on_move: RememberValue = RememberValue.ASK


@dataclass(frozen=True)
class ChangeEvent:
    """A filesystem change observed under a watched directory."""

    kind: ChangeKind
    path: Path
    dest_path: Path | None = None
    is_directory: bool = False


@dataclass(frozen=True)
class RememberReply:
    """Answer to a yes/no dialog that offers a "remember my choice" toggle."""

    accepted: bool
    remember: bool = False


@dataclass(frozen=True)
class CommitReply:
    """Answer to the commit-message prompt."""

    action: CommitAction
    message: str = ""


def to_relative_key(path: Path, root: Path) -> str:
    """Convert an absolute path into a cache key relative to ``root``.

    Raises:
        ValueError: If ``path`` is not inside ``root``.
    """
    rel = path.relative_to(root).as_posix()
    return "" if rel == "." else rel
