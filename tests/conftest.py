"""Pytest configuration and shared fixtures."""

import shutil
import subprocess
from pathlib import Path

import pytest

from tests.helpers.fakes import FAKE_MARKER, FakeProvider

# ============================================================================
# Git Repository Helpers
# ============================================================================
# These helpers consolidate git setup code to avoid duplication across tests.
# Use these functions in fixtures to create consistent test repositories.

GIT_AVAILABLE = shutil.which("git") is not None

requires_git = pytest.mark.skipif(not GIT_AVAILABLE, reason="git executable not available")


def run_git(path: Path, *args: str) -> subprocess.CompletedProcess[str]:
    """Run a git command in ``path`` and return the completed process."""
    return subprocess.run(
        ["git", *args],
        cwd=path,
        check=True,
        capture_output=True,
        text=True,
        timeout=10,
    )


def init_git_repo(
    path: Path,
    user_name: str = "Test User",
    user_email: str = "test@example.com",
) -> None:
    """Initialize a git repository with user configuration.

    Args:
        path: Directory to initialize as a git repository.
        user_name: Git user.name configuration value.
        user_email: Git user.email configuration value.

    Raises:
        subprocess.CalledProcessError: If git commands fail.
    """
    run_git(path, "init")
    run_git(path, "config", "user.name", user_name)
    run_git(path, "config", "user.email", user_email)
    run_git(path, "config", "commit.gpgsign", "false")


def git_add_and_commit(
    path: Path,
    message: str = "Initial commit",
    add_all: bool = True,
) -> None:
    """Stage files and create a git commit.

    Args:
        path: Git repository root directory.
        message: Commit message.
        add_all: If True, stages all files with 'git add .'.
    """
    if add_all:
        run_git(path, "add", ".")
    run_git(path, "commit", "-m", message)


def create_test_files(path: Path, files: dict[str, str]) -> None:
    """Create multiple files in a directory.

    Args:
        path: Base directory for file creation.
        files: Mapping of relative file paths to file contents.
               Parent directories are created automatically.

    Example:
        create_test_files(repo, {
            "main.py": "def main(): pass",
            "src/utils.py": "def helper(): pass",
        })
    """
    for file_path, content in files.items():
        full_path = path / file_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content)


def create_git_repo(
    path: Path,
    files: dict[str, str] | None = None,
    commit_message: str = "Initial commit",
) -> Path:
    """Create a complete git repository with optional committed files.

    Returns:
        Path to the repository root.
    """
    path.mkdir(parents=True, exist_ok=True)
    init_git_repo(path)

    if files:
        create_test_files(path, files)
        git_add_and_commit(path, message=commit_message)

    return path.resolve()


def git_log_messages(path: Path) -> list[str]:
    """Return commit subjects of ``path``, newest first."""
    return run_git(path, "log", "--format=%s").stdout.splitlines()


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the global config at a per-test directory.

    Keeps tests from reading or writing the developer's real preferences.

    Returns:
        The directory used as XDG_CONFIG_HOME.
    """
    config_home = tmp_path / "xdg-config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.delenv("APPDATA", raising=False)
    return config_home


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a git repository with a few committed files.

    Layout:
    - README.md
    - src/app.py, src/util.py
    - docs/guide.md

    Returns:
        Path to the git repository root.
    """
    if not GIT_AVAILABLE:
        pytest.skip("git executable not available")
    return create_git_repo(
        tmp_path / "repo",
        files={
            "README.md": "# Demo\n",
            "src/app.py": "print('app')\n",
            "src/util.py": "def helper():\n    return 1\n",
            "docs/guide.md": "Guide\n",
        },
    )


@pytest.fixture
def fake_root(tmp_path: Path) -> Path:
    """Create a working copy recognized by FakeProvider.

    Layout:
    - a.txt, b.txt
    - src/main.py, src/lib/util.py
    - docs/readme.md

    Returns:
        The resolved root directory.
    """
    root = tmp_path / "work"
    create_test_files(
        root,
        {
            FAKE_MARKER: "",
            "a.txt": "a",
            "b.txt": "b",
            "src/main.py": "main",
            "src/lib/util.py": "util",
            "docs/readme.md": "readme",
        },
    )
    return root.resolve()


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()
