"""Git backend implementing the VCBackend protocol using subprocess git commands."""

import logging
import subprocess
from pathlib import Path

from vcwatch.domain.config import BackendConfig
from vcwatch.domain.exceptions import BackendCommandError, BackendUnavailableError
from vcwatch.domain.status import VCItemStatus, worst

logger = logging.getLogger(__name__)

# Unmerged index/worktree pairs, see git-status(1) "Short Format"
_CONFLICT_CODES = frozenset({"DD", "AU", "UD", "UA", "DU", "AA", "UU"})

_STATUS_ARGS = [
    "status",
    "--porcelain=v1",
    "-z",
    "--untracked-files=normal",
    "--ignored=matching",
]


def parse_status_code(code: str) -> VCItemStatus:
    """Map a two-letter porcelain status code to a VCItemStatus.

    Args:
        code: The XY code of a porcelain v1 record (e.g., " M", "R ", "??").

    Returns:
        The matching status. Codes with no local change map to UP_TO_DATE.
    """
    if code == "??":
        return VCItemStatus.UNKNOWN
    if code == "!!":
        return VCItemStatus.IGNORED
    if code in _CONFLICT_CODES:
        return VCItemStatus.CONFLICTED

    index, worktree = code[0], code[1]
    if index in "ARC":
        return VCItemStatus.ADDED
    if "D" in code:
        return VCItemStatus.DELETED
    if index in "MT" or worktree in "MT":
        return VCItemStatus.MODIFIED
    return VCItemStatus.UP_TO_DATE


def iter_porcelain_records(output: str) -> list[tuple[str, str]]:
    """Split ``git status --porcelain=v1 -z`` output into (code, path) records.

    Directory records keep no trailing slash. For renames and copies the
    reported path is the destination.
    """
    records: list[tuple[str, str]] = []
    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        token = tokens[index]
        index += 1
        if len(token) < 4 or token[2] != " ":
            continue

        code = token[:2]
        records.append((code, token[3:].rstrip("/")))

        # Renamed/copied records are followed by a token holding the source path.
        if code[0] in "RC" or code[1] in "RC":
            index += 1

    return records


class GitBackend:
    """Git working copy backed by the git command-line tool."""

    kind = "git"

    def __init__(
        self,
        root: Path,
        git_executable: str = "git",
        timeout: float = 30.0,
    ) -> None:
        """Initialize the backend.

        Args:
            root: Absolute path to the working-copy root.
            git_executable: Name or path of the git executable.
            timeout: Seconds before a git command is abandoned.
        """
        self._root = root.resolve()
        self._git = git_executable
        self._timeout = timeout

    @property
    def root(self) -> Path:
        return self._root

    def _run_git(self, args: list[str]) -> subprocess.CompletedProcess[bytes]:
        """Run a git command in the working copy.

        Args:
            args: Git command arguments (without the executable).

        Returns:
            CompletedProcess of a successful command.

        Raises:
            BackendUnavailableError: If the git executable cannot be found.
            BackendCommandError: If git times out or exits with an error.
        """
        cmd = [self._git, "-C", str(self._root), *args]
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=self._timeout)
        except FileNotFoundError as e:
            raise BackendUnavailableError(
                f"git executable not found: {self._git}",
                command=cmd,
                hint="Install git or set [backend] git_executable in config.toml",
            ) from e
        except subprocess.TimeoutExpired as e:
            raise BackendCommandError(
                f"git {args[0]} timed out after {self._timeout:g}s",
                command=cmd,
                hint="Increase [backend] command_timeout in config.toml",
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            msg = f"git {args[0]} failed (git exit code {result.returncode})"
            if stderr:
                msg += f": {stderr}"
            raise BackendCommandError(
                msg,
                command=cmd,
                returncode=result.returncode,
                stderr=stderr,
            )
        return result

    def _relative(self, path: Path) -> str:
        rel = path.resolve().relative_to(self._root).as_posix()
        return "" if rel == "." else rel

    def _pathspecs(self, paths: list[Path]) -> list[str]:
        return [self._relative(p) or "." for p in paths]

    def _is_tracked(self, rel: str) -> bool:
        result = self._run_git(["ls-files", "-z", "--", rel or "."])
        return bool(result.stdout.strip(b"\0"))

    def get_status_map(self, subtree: str | None = None) -> dict[str, VCItemStatus]:
        args = list(_STATUS_ARGS)
        if subtree:
            args += ["--", subtree]
        output = self._run_git(args).stdout.decode("utf-8", errors="replace")

        statuses: dict[str, VCItemStatus] = {}
        for code, rel in iter_porcelain_records(output):
            if rel:
                statuses[rel] = parse_status_code(code)
        return statuses

    def get_status(self, path: Path) -> VCItemStatus:
        """Query the status of one path.

        Files report their own record. Directories report the worst local
        change below them, or their own record when git reports the
        directory as a whole (untracked or ignored).
        """
        rel = self._relative(path)
        records = self.get_status_map(rel or None)
        if rel in records:
            return records[rel]
        for key, status in records.items():
            if rel.startswith(key + "/"):
                return status

        if not self._is_tracked(rel):
            return VCItemStatus.UNKNOWN
        return worst(s for s in records.values() if s.has_local_changes)

    def file_new(self, path: Path) -> bool:
        self._run_git(["add", "--", *self._pathspecs([path])])
        logger.info("Added %s to git", path)
        return True

    def file_open(self, path: Path) -> bool:
        return False

    def file_reload(self, path: Path) -> bool:
        return False

    def file_modify_readonly(self, path: Path) -> bool:
        return False

    def file_before_rename(self, path: Path) -> bool:
        return False

    def file_rename(self, old_path: Path, new_path: Path) -> bool:
        return self.file_move(old_path, new_path)

    def file_move(self, old_path: Path, new_path: Path) -> bool:
        # new_path may not exist yet, so it is made relative without resolving.
        target = new_path.relative_to(self._root).as_posix()
        self._run_git(["mv", "--", self._relative(old_path), target])
        logger.info("Moved %s to %s with git", old_path, new_path)
        return True

    def file_delete(self, paths: list[Path], confirm: bool) -> bool:
        args = ["rm", "-r"]
        if confirm:
            args.append("-f")
        self._run_git([*args, "--", *self._pathspecs(paths)])
        logger.info("Removed %d path(s) from git", len(paths))
        return True

    def build_project(self) -> bool:
        return False

    def test_project(self) -> bool:
        return False

    def save_project(self) -> bool:
        return False

    def commit(self, paths: list[Path], message: str) -> bool:
        self._run_git(["commit", "-m", message, "--", *self._pathspecs(paths)])
        logger.info("Committed %d path(s): %s", len(paths), message)
        return True


class GitBackendProvider:
    """Discovers git working copies and creates their backends."""

    kind = "git"

    def __init__(self, config: BackendConfig | None = None) -> None:
        self._config = config or BackendConfig()

    def is_root(self, directory: Path) -> bool:
        # .git is a directory in a clone and a file in worktrees and submodules.
        return (directory / ".git").exists()

    def create(self, root: Path) -> GitBackend:
        return GitBackend(
            root,
            git_executable=self._config.git_executable,
            timeout=self._config.command_timeout,
        )
