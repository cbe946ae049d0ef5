"""vcwatch CLI entrypoint.

Command-line host for the version-control status overlay: shows statuses,
watches a working copy and routes file operations through the same action
handlers an editor would call.
"""

from __future__ import annotations

import functools
import logging
import shutil
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from vcwatch.core.session import VCSession
    from vcwatch.domain.config import VCWatchConfig
    from vcwatch.ports.host import HostUI, OverlayListener

from vcwatch.core.errors import (
    VCWatchCliError,
    not_in_working_copy_error,
    unknown_setting_error,
)
from vcwatch.domain.entities import Project, RememberValue
from vcwatch.domain.exceptions import PathNotWatchedError, VCWatchDomainError
from vcwatch.domain.status import VCItemStatus
from vcwatch.version import __version__

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
PREFERENCE_KEYS = ["should_delete", "commit_on_move"]


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    VCWatchCliError exceptions are re-raised to use their built-in
    formatting; domain errors are converted to CLI errors with their hint.

    Args:
        command_name: Name of the command for error messages.

    Returns:
        Decorated function with error handling.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (VCWatchCliError, click.Abort):
                raise
            except VCWatchDomainError as e:
                raise VCWatchCliError(e.message, hint=e.hint) from e
            except OSError as e:
                raise VCWatchCliError(
                    f"{command_name} failed: {e}",
                    hint="Check file permissions and filesystem access",
                ) from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise VCWatchCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


def _load_config(project_root: Path | None) -> VCWatchConfig:
    from vcwatch.adapters.config.toml_config_provider import TomlConfigProvider

    return TomlConfigProvider().load(project_root)


@contextmanager
def _open_session(
    path: Path,
    ui: HostUI,
    listener: OverlayListener | None = None,
    watch: bool = False,
) -> Iterator[VCSession]:
    """Attach a session to the working copy enclosing ``path``."""
    from vcwatch.adapters.factory import SessionFactory, find_project_root
    from vcwatch.domain.config import VCWatchConfig

    probe = SessionFactory(VCWatchConfig.default())
    project_root = find_project_root(path, probe.create_providers())
    factory = SessionFactory(_load_config(project_root))
    session = factory.create_session(ui, listener=listener, watch=watch)
    with session:
        session.attach(Project(root=project_root))
        yield session


def _status_rows(session: VCSession, path: Path, show_ignored: bool) -> list[tuple[str, str]]:
    from vcwatch.core.resolver import normalize_path
    from vcwatch.core.status_cache import is_within

    target = normalize_path(path)
    binding = session.resolver.binding_for(target)
    if binding is None:
        not_in_working_copy_error(path)
    session.refresh_blocking()

    subtree = binding.relative(target)
    rows: list[tuple[str, str]] = []
    for rel, status in sorted(binding.cache.snapshot.entries.items()):
        if subtree and not is_within(rel, subtree):
            continue
        if status is VCItemStatus.IGNORED and not show_ignored:
            continue
        if status is VCItemStatus.UP_TO_DATE:
            continue
        rows.append((status.badge, rel))
    return rows


@click.group()
@click.version_option(version=__version__, prog_name="vcwatch")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """vcwatch - version-control status overlays and file actions.

    Tracks the status of every file in a working copy and keeps deletes,
    moves and new files in sync with version control.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path), required=False, default=None)
@click.option("--ignored", "show_ignored", is_flag=True, help="Include ignored paths.")
@click.pass_context
@handle_cli_errors("status")
def status(ctx: click.Context, path: Path | None, show_ignored: bool) -> None:
    """Show paths that are not up to date under PATH (default: current directory)."""
    from vcwatch.adapters.console.console_ui import ConsoleUI

    path = path or Path.cwd()
    with _open_session(path, ConsoleUI()) as session:
        rows = _status_rows(session, path, show_ignored)

    if not rows:
        click.echo("Working copy clean")
        return
    for badge, rel in rows:
        click.echo(f"{badge} {rel}")


def _watch_selection(session: VCSession, base: Path) -> list[Path]:
    """Items shown by ``watch``: PATH, its children and every changed entry."""
    items = [base]
    if base.is_dir():
        items.extend(sorted(p for p in base.iterdir() if not p.name.startswith(".")))
    for binding in session.resolver.bindings():
        for rel, status in binding.cache.snapshot.entries.items():
            if status is VCItemStatus.IGNORED:
                continue
            candidate = binding.root / rel
            if candidate.is_relative_to(base):
                items.append(candidate)
    return items


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path), required=False)
@click.option(
    "--interval",
    type=float,
    default=0.5,
    show_default=True,
    help="Seconds between event-queue pumps.",
)
@click.pass_context
@handle_cli_errors("watch")
def watch(ctx: click.Context, path: Path | None, interval: float) -> None:
    """Print status changes under PATH as they happen, until interrupted."""
    from vcwatch.adapters.console.console_ui import ConsoleListener, ConsoleUI
    from vcwatch.core.resolver import normalize_path

    base = normalize_path(path or Path.cwd())
    with _open_session(base, ConsoleUI(), ConsoleListener(base), watch=True) as session:
        if session.resolver.binding_for(base) is None:
            not_in_working_copy_error(base)
        session.refresh_blocking()
        click.echo(f"Watching {base} (Ctrl+C to stop)")
        try:
            while True:
                session.pump()
                session.selection_changed(_watch_selection(session, base))
                time.sleep(interval)
        except KeyboardInterrupt:
            click.echo("\nStopped watching")


@cli.command(name="rm")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Answer yes to every confirmation.")
@click.pass_context
@handle_cli_errors("rm")
def remove(ctx: click.Context, paths: tuple[Path, ...], yes: bool) -> None:
    """Delete PATHS, removing tracked ones from version control."""
    from vcwatch.adapters.console.console_ui import ConsoleUI

    with _open_session(paths[0], ConsoleUI(assume_yes=yes)) as session:
        handled = session.dispatcher.file_delete(list(paths), confirm=True)

    if not handled:
        for path in paths:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()

    removed = [p for p in paths if not p.exists() and not p.is_symlink()]
    for path in removed:
        click.echo(f"Deleted {path}")


@cli.command(name="mv")
@click.argument("source", type=click.Path(exists=True, path_type=Path))
@click.argument("destination", type=click.Path(path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Commit the move without prompting.")
@click.pass_context
@handle_cli_errors("mv")
def move(ctx: click.Context, source: Path, destination: Path, yes: bool) -> None:
    """Move SOURCE to DESTINATION, keeping version control informed."""
    from vcwatch.adapters.console.console_ui import ConsoleUI

    if destination.is_dir():
        destination = destination / source.name
    if destination.exists():
        raise VCWatchCliError(f"Destination '{destination}' already exists")

    with _open_session(source, ConsoleUI(assume_yes=yes)) as session:
        if not session.dispatcher.file_move(source, destination):
            shutil.move(str(source), str(destination))
        if destination.exists():
            click.echo(f"Moved {source} to {destination}")
            if session.dispatcher.file_moved(source, destination):
                click.echo("Committed")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--yes", "-y", is_flag=True, help="Add without prompting.")
@click.pass_context
@handle_cli_errors("add")
def add(ctx: click.Context, path: Path, yes: bool) -> None:
    """Treat PATH as a new file opened in the editor and offer to add it."""
    from vcwatch.adapters.console.console_ui import ConsoleUI

    ui = ConsoleUI(assume_yes=yes)
    with _open_session(path, ui) as session:
        session.dispatcher.file_new(path)
        session.dispatcher.file_open(path)
        added = ui.answer_add_requests(session.dispatcher.resolve_pending_add)
    if added:
        click.echo(f"Added {path}")


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option("--message", "-m", required=True, help="Commit message.")
@click.pass_context
@handle_cli_errors("commit")
def commit(ctx: click.Context, paths: tuple[Path, ...], message: str) -> None:
    """Commit PATHS with MESSAGE."""
    from vcwatch.adapters.console.console_ui import ConsoleUI

    if not message.strip():
        raise VCWatchCliError("Commit message must not be empty")

    with _open_session(paths[0], ConsoleUI()) as session:
        binding = session.resolver.binding_for(paths[0])
        if binding is None:
            not_in_working_copy_error(paths[0])
        for path in paths[1:]:
            other = session.resolver.binding_for(path)
            if other is None or other.root != binding.root:
                raise PathNotWatchedError(
                    f"'{path}' is not inside the working copy at {binding.root}",
                    hint="Commit paths from one working copy at a time",
                )
        binding.backend.commit([p.resolve() for p in paths], message)
    click.echo(f"Committed {len(paths)} path(s)")


@cli.group()
def config() -> None:
    """Manage vcwatch configuration files.

    vcwatch uses a two-tier configuration system:
    - Local: .vcwatch/config.toml (project-specific settings)
    - Global: ~/.config/vcwatch/config.toml (user defaults and preferences)

    Local settings override global settings. Missing values use built-in defaults.
    """
    pass


def _display_path_status(path: Path, label: str) -> None:
    """Display a config path with its existence status."""
    status = "exists" if path.exists() else "not created"
    color = "green" if path.exists() else "yellow"
    click.echo(f"{label}{path}")
    click.echo(f"  Status: {click.style(status, fg=color)}")


def _display_config_summary(config: VCWatchConfig) -> None:
    """Display a summary of config settings."""
    click.echo("  [backend]")
    click.echo(f"    git_executable = {config.backend.git_executable}")
    click.echo(f"    command_timeout = {config.backend.command_timeout}")
    click.echo("  [watcher]")
    click.echo(f"    enabled = {config.watcher.enabled}")
    click.echo(f"    ignore_dirs = {', '.join(config.watcher.ignore_dirs)}")
    click.echo("  [refresh]")
    click.echo(f"    workers = {config.refresh.workers}")
    click.echo(f"    full_refresh_threshold = {config.refresh.full_refresh_threshold}")
    click.echo("  [preferences]")
    click.echo(f"    should_delete = {config.preferences.should_delete.value}")
    click.echo(f"    commit_on_move = {config.preferences.commit_on_move.value}")


@config.command(name="show")
@click.pass_context
@handle_cli_errors("config show")
def config_show(ctx: click.Context) -> None:
    """Show configuration file locations and effective settings."""
    from vcwatch.adapters.factory import SessionFactory, find_project_root
    from vcwatch.domain.config import VCWatchConfig
    from vcwatch.shared.config_io import get_global_config_path, get_local_config_path

    providers = SessionFactory(VCWatchConfig.default()).create_providers()
    project_root = find_project_root(Path.cwd(), providers)

    _display_path_status(get_global_config_path(), "Global config: ")
    _display_path_status(get_local_config_path(project_root), "Local config:  ")
    click.echo("\nEffective configuration (merged global + local):")
    _display_config_summary(_load_config(project_root))


@config.command(name="set")
@click.argument("key")
@click.argument("value", type=click.Choice([v.value for v in RememberValue], case_sensitive=False))
@click.pass_context
@handle_cli_errors("config set")
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist a preference (should_delete or commit_on_move) as yes, no or ask."""
    from vcwatch.adapters.config.toml_config_provider import TomlSettingsStore

    if key not in PREFERENCE_KEYS:
        unknown_setting_error(key, PREFERENCE_KEYS)

    try:
        store = TomlSettingsStore()
        preferences = store.load()
        store.save(replace(preferences, **{key: RememberValue(value.lower())}))
    except ValueError as e:
        raise VCWatchCliError(
            str(e),
            hint=f"Fix or remove {store.path} and try again",
        ) from e
    click.echo(f"Set {key} = {value.lower()}")


def main() -> int:
    """Main entrypoint for the CLI."""
    try:
        cli(obj={})
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
