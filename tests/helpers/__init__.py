"""Test helper utilities for the vcwatch test suite."""

from tests.helpers.cli_assertions import (
    assert_command_failed,
    assert_command_success,
    assert_error_message,
    assert_files_removed,
    assert_output_contains,
    assert_status_line,
)
from tests.helpers.fakes import (
    FAKE_MARKER,
    DeferredExecutor,
    FakeBackend,
    FakeProvider,
    MemorySettingsStore,
    RecordingListener,
    RecordingUI,
    RecordingWatcher,
    SyncExecutor,
)

__all__ = [
    "assert_command_success",
    "assert_command_failed",
    "assert_output_contains",
    "assert_error_message",
    "assert_status_line",
    "assert_files_removed",
    "FAKE_MARKER",
    "DeferredExecutor",
    "FakeBackend",
    "FakeProvider",
    "MemorySettingsStore",
    "RecordingListener",
    "RecordingUI",
    "RecordingWatcher",
    "SyncExecutor",
]
