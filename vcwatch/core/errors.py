"""CLI error handling with actionable hints.

Provides consistent error formatting and common error factory functions
for all vcwatch CLI commands.
"""

from pathlib import Path
from typing import NoReturn

import click


class VCWatchCliError(click.ClickException):
    """CLI error with actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.

    Example:
        raise VCWatchCliError(
            "Not inside a working copy",
            hint="Run vcwatch from inside a git repository",
        )
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present."""
        msg = self.message
        if self.hint:
            msg += f"\nHint: {self.hint}"
        return msg


def not_in_working_copy_error(path: Path) -> NoReturn:
    """Raise error when a path is not covered by any working copy.

    Raises:
        VCWatchCliError: Always raises with a hint.
    """
    raise VCWatchCliError(
        f"'{path}' is not inside a version-controlled working copy",
        hint="Run vcwatch from inside a git repository or pass a path within one",
    )


def unknown_setting_error(key: str, valid: list[str]) -> NoReturn:
    """Raise error when ``config set`` is given an unknown key.

    Raises:
        VCWatchCliError: Always raises listing the valid keys.
    """
    raise VCWatchCliError(
        f"Unknown setting '{key}'",
        hint=f"Valid settings: {', '.join(valid)}",
    )
