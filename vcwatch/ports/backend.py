"""Version Control System (VCS) backend port interface.

Defines the capability set every backend (git, svn, ...) offers to the
resolver and the action dispatcher.
"""

from pathlib import Path
from typing import Protocol

from vcwatch.domain.status import VCItemStatus


class VCBackend(Protocol):
    """Protocol for one working copy of a version control system.

    File actions return True when the backend performed the operation, which
    tells the host to suppress its default behavior. Commands run
    synchronously; failures raise BackendCommandError.
    """

    @property
    def kind(self) -> str:
        """Short backend name (e.g., "git")."""
        ...

    @property
    def root(self) -> Path:
        """Absolute root directory of the working copy."""
        ...

    def get_status_map(self, subtree: str | None = None) -> dict[str, VCItemStatus]:
        """Query the status of every non-clean path under the root.

        Args:
            subtree: Optional path relative to the root limiting the query.

        Returns:
            Mapping of root-relative POSIX paths to status. Paths missing
            from the mapping are up to date.

        Raises:
            BackendCommandError: If the status command fails.
        """
        ...

    def get_status(self, path: Path) -> VCItemStatus:
        """Query the status of a single absolute path.

        Raises:
            BackendCommandError: If the status command fails.
        """
        ...

    def file_new(self, path: Path) -> bool:
        """Put a newly created file under version control."""
        ...

    def file_open(self, path: Path) -> bool:
        """Hook called when a tracked file is opened (checkout/lock)."""
        ...

    def file_reload(self, path: Path) -> bool:
        """Hook called when a tracked file is reloaded from disk."""
        ...

    def file_modify_readonly(self, path: Path) -> bool:
        """Hook called before a read-only tracked file is modified."""
        ...

    def file_before_rename(self, path: Path) -> bool:
        """Hook called before a tracked file is renamed."""
        ...

    def file_rename(self, old_path: Path, new_path: Path) -> bool:
        """Rename a tracked path inside version-control metadata."""
        ...

    def file_move(self, old_path: Path, new_path: Path) -> bool:
        """Move a tracked path inside version-control metadata."""
        ...

    def file_delete(self, paths: list[Path], confirm: bool) -> bool:
        """Remove tracked paths from version control and disk."""
        ...

    def build_project(self) -> bool:
        """Hook called when the project is built."""
        ...

    def test_project(self) -> bool:
        """Hook called when the project is tested."""
        ...

    def save_project(self) -> bool:
        """Hook called when the project file is saved."""
        ...

    def commit(self, paths: list[Path], message: str) -> bool:
        """Commit the given paths with a message."""
        ...


class BackendProvider(Protocol):
    """Protocol for discovering working-copy roots of one VCS kind."""

    @property
    def kind(self) -> str:
        """Short backend name (e.g., "git")."""
        ...

    def is_root(self, directory: Path) -> bool:
        """Return True if ``directory`` is the root of a working copy."""
        ...

    def create(self, root: Path) -> VCBackend:
        """Create the backend instance owning ``root``."""
        ...
