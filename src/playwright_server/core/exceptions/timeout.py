# src/playwright_server/core/exceptions/timeout.py
"""
Timeout Exception Classes
"""

from typing import Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorKind, ErrorSeverity


class TimeoutException(AutomationException):
    """
    A browser operation exceeded its timeout.

    Covers element waits, page loads and every other Playwright call that
    gives up after its deadline.
    """

    kind = ErrorKind.TIMEOUT
    default_category = ErrorCategory.TIMEOUT
    default_severity = ErrorSeverity.MEDIUM

    def __init__(
            self,
            message: str = "Command execution exceeded timeout",
            timeout_duration: Optional[float] = None,
            operation_type: Optional[str] = None,
            **kwargs
    ):
        super().__init__(message=message, **kwargs)

        if timeout_duration:
            self.add_context("timeout_duration", timeout_duration)
        if operation_type:
            self.add_context("operation_type", operation_type)
