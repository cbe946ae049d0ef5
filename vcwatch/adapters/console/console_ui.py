"""Console implementations of the host ports, used by the CLI."""

from collections.abc import Callable
from pathlib import Path

import click

from vcwatch.domain.entities import CommitAction, CommitReply, RememberReply
from vcwatch.domain.status import VCItemStatus


class ConsoleUI:
    """HostUI backed by click prompts.

    Requests to add a file to version control are queued and answered when
    the caller invokes ``answer_add_requests``, which keeps the dispatcher
    from blocking while the file is being opened.

    Args:
        assume_yes: Answer every confirmation with yes without prompting.
    """

    def __init__(self, assume_yes: bool = False) -> None:
        self._assume_yes = assume_yes
        self._add_requests: list[Path] = []

    def show_error(self, title: str, message: str) -> None:
        click.echo(click.style(f"{title}: ", fg="red", bold=True) + message, err=True)

    def confirm(self, title: str, message: str) -> bool:
        if self._assume_yes:
            return True
        click.echo(click.style(title, bold=True))
        return click.confirm(message, default=False)

    def ask_remember(self, title: str, message: str) -> RememberReply:
        if self._assume_yes:
            return RememberReply(accepted=True)
        click.echo(click.style(title, bold=True))
        accepted = click.confirm(message, default=True)
        remember = click.confirm("Remember this choice?", default=False)
        return RememberReply(accepted=accepted, remember=remember)

    def ask_commit_message(self, title: str, message: str, default: str) -> CommitReply:
        if self._assume_yes:
            return CommitReply(CommitAction.COMMIT, default)
        click.echo(click.style(title, bold=True))
        choice = click.prompt(
            f"{message} [c]ommit, [s]kip, [n]ever ask again",
            type=click.Choice(["c", "s", "n"]),
            default="c",
            show_choices=False,
        )
        if choice == "n":
            return CommitReply(CommitAction.NEVER)
        if choice == "s":
            return CommitReply(CommitAction.CANCEL)
        text = click.prompt("Commit message", default=default)
        return CommitReply(CommitAction.COMMIT, text)

    def request_add_to_vcs(self, path: Path) -> None:
        self._add_requests.append(path)

    def answer_add_requests(self, resolve: Callable[[Path, bool], bool]) -> int:
        """Prompt for every queued add request and pass the answers on.

        Args:
            resolve: Usually ``ActionDispatcher.resolve_pending_add``.

        Returns:
            Number of files added.
        """
        added = 0
        requests, self._add_requests = self._add_requests, []
        for path in requests:
            accepted = self._assume_yes or click.confirm(
                f"Add {path} to version control?", default=True
            )
            if resolve(path, accepted):
                added += 1
        return added


class ConsoleListener:
    """OverlayListener printing one line per changed decoration."""

    def __init__(self, base: Path | None = None) -> None:
        self._base = base

    def _label(self, path: Path) -> str:
        if self._base is not None and path.is_relative_to(self._base):
            return path.relative_to(self._base).as_posix() or "."
        return str(path)

    def overlays_changed(self, changes: dict[Path, VCItemStatus]) -> None:
        for path in sorted(changes):
            status = changes[path]
            click.echo(f"{status.badge} {self._label(path)}  ({status.name.lower()})")
