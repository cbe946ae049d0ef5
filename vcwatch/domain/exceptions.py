"""Domain exceptions for vcwatch.

These exceptions represent failures of the version-control layer. Action
handlers catch them and degrade to "not handled"; the CLI converts them to
user-facing error messages.
"""


class VCWatchDomainError(Exception):
    """Base exception for all domain errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class BackendCommandError(VCWatchDomainError):
    """Raised when a version-control command exits with an error.

    Attributes:
        command: The command line that failed.
        returncode: Exit code of the tool, or None when it never finished.
        stderr: Captured error output.
    """

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr


class BackendUnavailableError(BackendCommandError):
    """Raised when the version-control executable cannot be found."""

    pass


class PathNotWatchedError(VCWatchDomainError):
    """Raised when a path is outside every known working copy."""

    pass
