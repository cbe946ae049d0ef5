"""Action error handling utilities.

Action handlers never raise into the host editor. They catch exceptions
internally, log them with consistent severity and, for failures the user
must know about, show a message built here.

Design principles:
1. KeyboardInterrupt and SystemExit are always re-raised (never caught)
2. VCWatchDomainError subclasses carry user-friendly messages
3. Unexpected exceptions are logged with a traceback
"""

import logging

from vcwatch.domain.exceptions import BackendCommandError, VCWatchDomainError

logger = logging.getLogger(__name__)


def format_action_error(exception: Exception, operation_name: str) -> str:
    """Format an exception into a user-friendly error message.

    Args:
        exception: The exception that was caught.
        operation_name: Name of the operation (e.g., "delete").

    Returns:
        User-friendly error message string.
    """
    if isinstance(exception, BackendCommandError):
        msg = f"Version control {operation_name} failed: {exception.message}"
        if exception.hint:
            msg += f"\n{exception.hint}"
        return msg
    elif isinstance(exception, VCWatchDomainError):
        return exception.message
    elif isinstance(exception, OSError):
        return (
            f"I/O error during {operation_name}: {exception}. "
            "Check file permissions and filesystem access."
        )
    else:
        return f"Internal error during {operation_name}. Check logs for details."


def log_action_error(exception: Exception, operation_name: str) -> None:
    """Log an exception from an action handler with appropriate severity.

    Args:
        exception: The exception that was caught.
        operation_name: Name of the operation for log messages.
    """
    if isinstance(exception, VCWatchDomainError):
        logger.error(f"Error during {operation_name}: {exception.message}")
    elif isinstance(exception, OSError):
        logger.error(f"I/O error during {operation_name}: {exception}")
    else:
        logger.exception(f"Unexpected error during {operation_name}")
