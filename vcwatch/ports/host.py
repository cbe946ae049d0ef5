"""Host editor port interfaces.

Dialogs and overlay rendering belong to the host editor. The core only
talks to them through these protocols, which keeps it testable with
recording fakes.
"""

from pathlib import Path
from typing import Protocol

from vcwatch.domain.entities import CommitReply, RememberReply
from vcwatch.domain.status import VCItemStatus


class HostUI(Protocol):
    """Protocol for user interaction owned by the host editor."""

    def show_error(self, title: str, message: str) -> None:
        """Show a blocking error dialog."""
        ...

    def confirm(self, title: str, message: str) -> bool:
        """Show a blocking OK/Cancel dialog.

        Returns:
            True if the user pressed OK.
        """
        ...

    def ask_remember(self, title: str, message: str) -> RememberReply:
        """Show a blocking Yes/No dialog with a "remember my choice" toggle."""
        ...

    def ask_commit_message(self, title: str, message: str, default: str) -> CommitReply:
        """Ask for a commit message, offering ``default`` as editable text."""
        ...

    def request_add_to_vcs(self, path: Path) -> None:
        """Ask, without blocking, whether ``path`` should be added.

        The host answers later through
        ``ActionDispatcher.resolve_pending_add(path, accepted)``.
        """
        ...


class OverlayListener(Protocol):
    """Protocol for the UI layer that draws overlay decorations."""

    def overlays_changed(self, changes: dict[Path, VCItemStatus]) -> None:
        """Receive new decorations for items whose status changed."""
        ...
