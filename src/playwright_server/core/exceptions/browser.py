# src/playwright_server/core/exceptions/browser.py
"""
Browser and Command Execution Exception Classes

``ExecutionException`` is the catch-all for unclassified failures,
including crashed or closed contexts. It is the one execution-class
error that costs the session: the executor tears the session down after
reporting it.
"""

from typing import List, Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorKind, ErrorSeverity


class ExecutionException(AutomationException):
    """Unclassified failure while executing against a browser context."""

    kind = ErrorKind.EXECUTION
    default_category = ErrorCategory.BROWSER
    default_severity = ErrorSeverity.HIGH

    def __init__(
            self,
            message: str = "Command execution failed",
            session_id: Optional[str] = None,
            **kwargs
    ):
        super().__init__(message=message, **kwargs)
        self.session_id = session_id
        if session_id:
            self.add_context("session_id", session_id)


class CommandNotFoundException(AutomationException):
    """Raised when a command name has no registered handler."""

    kind = ErrorKind.COMMAND_NOT_FOUND
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW

    def __init__(self, command: str, **kwargs):
        super().__init__(message=f"Command '{command}' is not registered", **kwargs)
        self.command = command
        self.add_context("command", command)


class BrowserLaunchException(ExecutionException):
    """
    Exception for browser context launch failures.

    Raised when a persistent context cannot be started, typically due to
    missing executables, a bad proxy endpoint or exhausted resources.
    """

    default_severity = ErrorSeverity.CRITICAL

    def __init__(
            self,
            message: str,
            channel: Optional[str] = None,
            launch_args: Optional[List[str]] = None,
            **kwargs
    ):
        super().__init__(message=f"Failed to launch browser: {message}", **kwargs)

        if channel:
            self.add_context("channel", channel)

        if launch_args:
            self.add_context("launch_args", launch_args)
            self.add_context("launch_args_count", len(launch_args))
