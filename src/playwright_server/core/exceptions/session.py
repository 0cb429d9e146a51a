# src/playwright_server/core/exceptions/session.py
"""
Session Registry Exception Classes
"""

from typing import Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorKind, ErrorSeverity


class SessionNotFoundException(AutomationException):
    """
    Raised when a session id does not resolve to a live session.

    Expired-and-cleaned sessions are indistinguishable from ids that
    never existed; no tombstones are kept.
    """

    kind = ErrorKind.SESSION_NOT_FOUND
    default_category = ErrorCategory.SESSION
    default_severity = ErrorSeverity.LOW

    def __init__(
            self,
            session_id: Optional[str] = None,
            message: str = "Session not found or has expired",
            **kwargs
    ):
        super().__init__(message=message, **kwargs)
        self.session_id = session_id
        if session_id:
            self.add_context("session_id", session_id)


class CapacityExceededException(AutomationException):
    """Raised when creating a session would exceed the concurrent limit."""

    kind = ErrorKind.CAPACITY_EXCEEDED
    default_category = ErrorCategory.SESSION
    default_severity = ErrorSeverity.HIGH

    def __init__(self, limit: int, **kwargs):
        super().__init__(
            message=(
                f"Maximum concurrent sessions limit reached ({limit}). "
                "Please try again later."
            ),
            **kwargs
        )
        self.limit = limit
        self.add_context("max_sessions", limit)
