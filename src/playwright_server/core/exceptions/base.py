# src/playwright_server/core/exceptions/base.py
"""
Base Exception Class for the Session Server

This module provides the foundation exception class that all other
server exceptions inherit from. It carries a stable kind tag, structured
context for logging, and an optional list of detail strings that are
surfaced to clients verbatim.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional
from uuid import uuid4

from .enums import ErrorCategory, ErrorKind, ErrorSeverity, LogLevel


class AutomationException(Exception):
    """
    Base exception class for all session server exceptions.

    Subclasses pin ``kind`` to one member of the closed ``ErrorKind``
    taxonomy; the HTTP layer and the sequence executor only ever look at
    ``kind``, ``message`` and ``details``.

    Attributes:
        message: Human-readable error description
        kind: Stable error kind tag
        error_code: Unique error identifier for tracking
        correlation_id: UUID for correlating related errors
        category: Error category for classification
        severity: Error severity level
        context: Additional context information (logged, not returned)
        details: Specific sub-reasons returned to the client
        original_exception: Underlying exception, if any

    Example:
        >>> try:
        ...     await page.goto(url)
        ... except Exception as e:
        ...     raise ExecutionException(
        ...         "Navigation failed",
        ...         original_exception=e
        ...     ).add_context("url", url)
    """

    kind: ClassVar[ErrorKind] = ErrorKind.EXECUTION
    default_category: ClassVar[ErrorCategory] = ErrorCategory.INFRASTRUCTURE
    default_severity: ClassVar[ErrorSeverity] = ErrorSeverity.MEDIUM

    def __init__(
            self,
            message: str,
            error_code: Optional[str] = None,
            correlation_id: Optional[str] = None,
            category: Optional[ErrorCategory] = None,
            severity: Optional[ErrorSeverity] = None,
            context: Optional[Dict[str, Any]] = None,
            details: Optional[List[str]] = None,
            original_exception: Optional[BaseException] = None
    ):
        """
        Initialize automation exception.

        Args:
            message: Clear, actionable error description
            error_code: Unique identifier (auto-generated if None)
            correlation_id: UUID for tracking related errors (auto-generated if None)
            category: Error category (class default if None)
            severity: Severity level (class default if None)
            context: Additional debugging context
            details: Specific sub-reasons for the client
            original_exception: Original exception that caused this error
        """
        super().__init__(message)

        self.message = message
        self.timestamp = datetime.now(timezone.utc)
        self.error_code = error_code or self._generate_error_code()
        self.correlation_id = correlation_id or str(uuid4())
        self.category = category or self.default_category
        self.severity = severity or self.default_severity
        self.log_level = LogLevel.from_severity(self.severity)
        self.context: Dict[str, Any] = dict(context or {})
        self.details: List[str] = list(details or [])

        self.original_exception = original_exception
        if original_exception is not None:
            self.context.setdefault("original_type", type(original_exception).__name__)
            self.context.setdefault("original_message", str(original_exception))

    def _generate_error_code(self) -> str:
        """Generate a unique error code based on exception type and timestamp."""
        class_name = self.__class__.__name__.replace("Exception", "").upper()
        timestamp = self.timestamp.strftime("%Y%m%d_%H%M%S_%f")[:19]
        return f"{class_name}_{timestamp}"

    def add_context(self, key: str, value: Any) -> 'AutomationException':
        """
        Add contextual information to the exception.

        Supports method chaining for fluent error construction.

        Example:
            >>> exception = ExecutionException("Click failed") \
            ...     .add_context("session_id", session_id) \
            ...     .add_context("selector", "#submit")
        """
        self.context[key] = value
        return self

    def add_detail(self, detail: str) -> 'AutomationException':
        """Append a client-facing sub-reason."""
        if detail and detail not in self.details:
            self.details.append(detail)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for structured logging.

        Returns:
            Dict: Complete exception data
        """
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "error_code": self.error_code,
            "correlation_id": self.correlation_id,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "log_level": self.log_level.value,
            "context": dict(self.context),
            "details": list(self.details),
            "timestamp": self.timestamp.isoformat(),
            "original_exception": {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception)
            } if self.original_exception else None,
        }

    def to_response(self) -> Dict[str, Any]:
        """Client-facing error envelope."""
        return {
            "type": self.kind.value,
            "message": self.message,
            "details": list(self.details) or None,
        }

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        """Return a concise representation suitable for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"kind={self.kind.value}, "
            f"message='{self.message[:50]}', "
            f"error_code='{self.error_code}'"
            f")"
        )
