"""Routing of editor lifecycle events to version-control backends.

Every handler answers the host with a boolean: True means "handled, suppress
the default editor behavior", False means "not mine, carry on". Handlers
never raise into the host. Mutating operations always resolve paths with a
fresh backend query so they never act on a stale cache.
"""

from __future__ import annotations

import functools
import logging
import os
import stat
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from vcwatch.core.action_errors import format_action_error, log_action_error
from vcwatch.core.resolver import RootResolver, normalize_path
from vcwatch.domain.entities import (
    CommitAction,
    Preferences,
    Project,
    RememberValue,
    WatcherVCResult,
)
from vcwatch.domain.exceptions import BackendCommandError
from vcwatch.domain.status import VCItemStatus
from vcwatch.ports.backend import VCBackend
from vcwatch.ports.config import SettingsStore
from vcwatch.ports.host import HostUI

logger = logging.getLogger(__name__)

CONFIRM_TITLE = "Confirm"
ERROR_TITLE = "Version control error"
UNSAFE_DELETE_TITLE = "Unsafe delete operation"
CONFIRM_UNVERSIONED_DELETE = (
    "The selection contains unversioned files. They will be deleted permanently:"
)
CONFIRM_LOCAL_MODS_DELETE = (
    "The selection contains files with local modifications. The changes will be lost:"
)
ASK_REMOVE_FROM_VCS = "Would you like to remove the file(s) from version control?"
ASK_COMMIT = "Would you like to create a commit for this action?"

PREVIEW_LIMIT = 9
PREVIEW_ELLIPSIS = "(...)"


class DeleteAbort(str, Enum):
    """Reason a batch delete is refused as unsafe."""

    DIFFERENT_DIRECTORIES = "different_directories"
    MIXED_SELECTION = "mixed_selection"

    @property
    def message(self) -> str:
        if self is DeleteAbort.DIFFERENT_DIRECTORIES:
            return "The selected versioned elements are located in different directories."
        return "The selection mixes versioned and unversioned elements."


@dataclass
class DeletePlan:
    """Classification of a batch of paths about to be deleted.

    Attributes:
        tracked: Paths under version control, all in one directory.
        regular: Paths the default filesystem delete can handle.
        has_modification: Root-relative files with local changes.
        has_unknown: Root-relative files inside tracked directories that are
            unversioned or ignored.
        backend: Backend owning the tracked paths.
        abort: Why the batch must not be deleted, if it must not.
    """

    tracked: list[Path] = field(default_factory=list)
    regular: list[Path] = field(default_factory=list)
    has_modification: list[str] = field(default_factory=list)
    has_unknown: list[str] = field(default_factory=list)
    backend: VCBackend | None = None
    abort: DeleteAbort | None = None


def format_file_preview(names: Sequence[str]) -> str:
    """Render a bounded list of file names for a confirmation dialog.

    Up to nine names are shown in full. Longer lists show the first nine,
    an ellipsis line and the last name.
    """
    if len(names) <= PREVIEW_LIMIT:
        return "\n".join(names)
    return "\n".join([*names[:PREVIEW_LIMIT], PREVIEW_ELLIPSIS, names[-1]])


def _is_hidden(entry: os.DirEntry) -> bool:
    if entry.name.startswith("."):
        return True
    hidden_flag = getattr(stat, "FILE_ATTRIBUTE_HIDDEN", 0)
    if not hidden_flag:
        return False
    try:
        attributes = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
    except OSError:
        return False
    return bool(attributes & hidden_flag)


def list_visible_files(directory: Path) -> list[Path]:
    """Recursively list files below ``directory``, skipping hidden entries."""
    files: list[Path] = []
    try:
        with os.scandir(directory) as entries:
            children = sorted(entries, key=lambda e: e.name)
    except OSError:
        return files
    for entry in children:
        if _is_hidden(entry):
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            is_dir = False
        if is_dir:
            files.extend(list_visible_files(Path(entry.path)))
        else:
            files.append(Path(entry.path))
    return files


def guarded(operation_name: str):
    """Decorator keeping exceptions from reaching the host editor.

    A failing backend command is logged and shown to the user, and the
    default action stays suppressed. Anything else is logged and the
    handler declines.

    Args:
        operation_name: Name of the operation for messages.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(self: ActionDispatcher, *args, **kwargs) -> bool:
            try:
                return func(self, *args, **kwargs)
            except (KeyboardInterrupt, SystemExit):
                raise
            except BackendCommandError as e:
                log_action_error(e, operation_name)
                self._ui.show_error(ERROR_TITLE, format_action_error(e, operation_name))
                return True
            except Exception as e:
                log_action_error(e, operation_name)
                return False

        return wrapper

    return decorator


class ActionDispatcher:
    """Applies version-control policy to editor lifecycle events."""

    def __init__(
        self,
        resolver: RootResolver,
        ui: HostUI,
        settings: SettingsStore,
        on_force_refresh: Callable[[], None],
    ) -> None:
        """Initialize the dispatcher.

        Args:
            resolver: Resolver used to find the backend owning each path.
            ui: Host dialogs.
            settings: Store of persisted preferences.
            on_force_refresh: Called to refresh every cache after a change
                the watcher cannot see (e.g., an add to the index).
        """
        self._resolver = resolver
        self._ui = ui
        self._settings = settings
        self._on_force_refresh = on_force_refresh
        self._project: Project | None = None
        self._active = False
        self._add_buffer: list[Path] = []
        self._pending_adds: dict[Path, WatcherVCResult] = {}

    @property
    def project(self) -> Project | None:
        return self._project

    @property
    def pending_adds(self) -> list[Path]:
        """Paths waiting for the user's answer to "add to version control?"."""
        return list(self._pending_adds)

    def activate(self, project: Project | None) -> None:
        """Start handling events for ``project``."""
        self._project = project
        self._active = True

    def deactivate(self) -> None:
        """Stop handling events and forget buffered state."""
        self._project = None
        self._active = False
        self._add_buffer.clear()
        self._pending_adds.clear()

    def _resolve_known(self, path: Path) -> WatcherVCResult | None:
        result = self._resolver.resolve(path, use_cache=False)
        if result is None or result.status is VCItemStatus.UNKNOWN:
            return None
        return result

    def _remember(self, preferences: Preferences) -> None:
        try:
            self._settings.save(preferences)
        except (OSError, ValueError) as e:
            logger.warning("Could not persist preferences: %s", e)

    # File actions

    @guarded("rename")
    def file_before_rename(self, path: Path) -> bool:
        result = self._resolve_known(path)
        if result is None:
            return False
        return result.backend.file_before_rename(result.path)

    @guarded("rename")
    def file_rename(self, old_path: Path, new_path: Path) -> bool:
        result = self._resolve_known(old_path)
        if result is None:
            return False
        return result.backend.file_rename(result.path, normalize_path(new_path))

    def plan_delete(self, paths: Sequence[Path]) -> DeletePlan:
        """Classify a batch of paths for deletion.

        Untracked and ignored paths are regular. Tracked directories are
        expanded so their unversioned and locally modified files can be
        confirmed with the user. All tracked paths must share one parent
        directory, and tracked and regular paths must not be mixed.
        """
        plan = DeletePlan()
        for raw in paths:
            path = normalize_path(raw)
            result = self._resolver.resolve(path, use_cache=False)
            if result is None or not result.status.is_tracked:
                plan.regular.append(path)
                continue

            if path.is_dir():
                binding = self._resolver.binding_for(path)
                if binding is not None and self._resolver.ensure_loaded(binding):
                    for file in list_visible_files(path):
                        rel = binding.relative(file)
                        status = binding.cache.get_overlay(rel)
                        if not status.is_tracked:
                            plan.has_unknown.append(rel)
                        elif status.has_local_changes:
                            plan.has_modification.append(rel)
            elif result.status.has_local_changes:
                plan.has_modification.append(result.relative_path)

            if plan.tracked and plan.tracked[0].parent != path.parent:
                plan.abort = DeleteAbort.DIFFERENT_DIRECTORIES
                return plan
            plan.tracked.append(path)
            if plan.backend is None:
                plan.backend = result.backend

        if plan.tracked and plan.regular:
            plan.abort = DeleteAbort.MIXED_SELECTION
        return plan

    @guarded("delete")
    def file_delete(self, paths: Sequence[Path], confirm: bool) -> bool:
        """Delete a batch of paths, removing tracked ones through the backend.

        Returns:
            False when the host should perform its default delete, True when
            the delete was handled or refused.
        """
        if not paths:
            return False

        plan = self.plan_delete(paths)
        if plan.abort is not None:
            logger.info("Refusing unsafe delete: %s", plan.abort.value)
            self._ui.show_error(UNSAFE_DELETE_TITLE, plan.abort.message)
            return True
        if not plan.tracked or plan.backend is None:
            return False
        if not confirm:
            return False

        if plan.has_unknown:
            message = f"{CONFIRM_UNVERSIONED_DELETE}\n\n{format_file_preview(plan.has_unknown)}"
            if not self._ui.confirm(CONFIRM_TITLE, message):
                return True
        if plan.has_modification:
            message = f"{CONFIRM_LOCAL_MODS_DELETE}\n\n{format_file_preview(plan.has_modification)}"
            if not self._ui.confirm(CONFIRM_TITLE, message):
                return True

        preferences = self._settings.load()
        if preferences.should_delete is RememberValue.YES:
            return plan.backend.file_delete(plan.tracked, confirm)
        if preferences.should_delete is RememberValue.ASK:
            reply = self._ui.ask_remember(CONFIRM_TITLE, ASK_REMOVE_FROM_VCS)
            if reply.remember:
                remembered = RememberValue.YES if reply.accepted else RememberValue.NO
                self._remember(replace(preferences, should_delete=remembered))
            if reply.accepted:
                return plan.backend.file_delete(plan.tracked, confirm)
        return True

    @guarded("move")
    def file_move(self, old_path: Path, new_path: Path) -> bool:
        source = self._resolve_known(old_path)
        if source is None:
            return False
        new_path = normalize_path(new_path)
        # A destination that does not exist yet is judged by its directory.
        location = new_path if new_path.exists() else new_path.parent
        if self._resolve_known(location) is None:
            return False
        return source.backend.file_move(source.path, new_path)

    @guarded("commit")
    def file_moved(self, old_path: Path, new_path: Path) -> bool:
        """Offer a commit after a tracked file was moved.

        Returns:
            True if a commit was made.
        """
        result = self._resolve_known(new_path)
        if result is None:
            return False

        old_path = normalize_path(old_path)
        if self._project is not None:
            from_label = self._project.relative_path(old_path)
            to_label = self._project.relative_path(result.path)
        else:
            from_label, to_label = str(old_path), str(result.path)
        default_message = f"Moved {from_label} to {to_label}"

        preferences = self._settings.load()
        if preferences.commit_on_move is RememberValue.NO:
            return False
        if preferences.commit_on_move is RememberValue.YES:
            message = default_message
        else:
            reply = self._ui.ask_commit_message(CONFIRM_TITLE, ASK_COMMIT, default_message)
            if reply.action is CommitAction.NEVER:
                self._remember(replace(preferences, commit_on_move=RememberValue.NO))
                return False
            if reply.action is not CommitAction.COMMIT or not reply.message.strip():
                return False
            message = reply.message

        return result.backend.commit([old_path, result.path], message)

    @guarded("build")
    def build_project(self) -> bool:
        if self._project is None:
            return False
        result = self._resolve_known(self._project.output_path_absolute)
        if result is None:
            return False
        return result.backend.build_project()

    @guarded("test")
    def test_project(self) -> bool:
        if self._project is None:
            return False
        result = self._resolve_known(self._project.output_path_absolute)
        if result is None:
            return False
        return result.backend.test_project()

    @guarded("save")
    def save_project(self, file_name: Path) -> bool:
        result = self._resolve_known(file_name)
        if result is None:
            return False
        return result.backend.save_project()

    @guarded("add")
    def file_new(self, path: Path) -> bool:
        """Remember a new file; the add prompt is shown once it is opened.

        Files outside every working copy can never be added and are not
        remembered.
        """
        if not self._active:
            return False
        path = normalize_path(path)
        if self._resolver.binding_for(path) is None:
            return False
        if path not in self._add_buffer:
            self._add_buffer.append(path)
        return False

    @guarded("open")
    def file_open(self, path: Path) -> bool:
        if not self._active:
            return False
        path = normalize_path(path)
        result = self._resolver.resolve(path, use_cache=False)
        if result is None:
            if path in self._add_buffer:
                self._add_buffer.remove(path)
            return False

        if path in self._add_buffer:
            self._add_buffer.remove(path)
            self._pending_adds[path] = result
            self._ui.request_add_to_vcs(path)

        if result.status is VCItemStatus.UNKNOWN:
            return False
        return result.backend.file_open(path)

    @guarded("add")
    def resolve_pending_add(self, path: Path, accepted: bool) -> bool:
        """Resume a pending "add to version control?" question.

        Args:
            path: The path passed to ``HostUI.request_add_to_vcs``.
            accepted: The user's answer.

        Returns:
            True if the file was added.
        """
        result = self._pending_adds.pop(normalize_path(path), None)
        if result is None or not accepted:
            return False
        added = result.backend.file_new(result.path)
        self._on_force_refresh()
        return added

    @guarded("reload")
    def file_reload(self, path: Path) -> bool:
        if not self._active:
            return False
        result = self._resolve_known(path)
        if result is None:
            return False
        return result.backend.file_reload(result.path)

    @guarded("modify")
    def file_modify_readonly(self, path: Path) -> bool:
        if not self._active:
            return False
        result = self._resolve_known(path)
        if result is None:
            return False
        return result.backend.file_modify_readonly(result.path)
