# src/playwright_server/core/exceptions/enums.py
"""
Exception Classification Enums

This module defines enums for categorizing and prioritizing exceptions
raised by the session server. ``ErrorKind`` is the closed, stable tag
every error carries across the HTTP boundary; category and severity feed
logging and monitoring.
"""

from enum import Enum
from typing import Dict


class ErrorKind(str, Enum):
    """
    Stable error kind tags exposed to clients.

    The value of each member is what the HTTP layer emits in the ``type``
    field of an error envelope and in ``errorType`` of failed sequence
    steps.
    """

    SESSION_NOT_FOUND = "SessionNotFound"
    CAPACITY_EXCEEDED = "CapacityExceeded"
    COMMAND_NOT_FOUND = "CommandNotFound"
    VALIDATION = "ValidationError"
    PROXY_VALIDATION = "ProxyValidationError"
    TIMEOUT = "Timeout"
    ELEMENT_NOT_FOUND = "ElementNotFound"
    EXECUTION = "ExecutionError"

    def is_validation_class(self) -> bool:
        """Errors detected before any side effect takes place."""
        return self in (
            ErrorKind.VALIDATION,
            ErrorKind.PROXY_VALIDATION,
            ErrorKind.COMMAND_NOT_FOUND,
            ErrorKind.CAPACITY_EXCEEDED,
        )

    def http_status(self) -> int:
        """HTTP status code the API layer answers with."""
        status_mapping: Dict[ErrorKind, int] = {
            ErrorKind.SESSION_NOT_FOUND: 404,
            ErrorKind.CAPACITY_EXCEEDED: 503,
            ErrorKind.COMMAND_NOT_FOUND: 400,
            ErrorKind.VALIDATION: 400,
            ErrorKind.PROXY_VALIDATION: 400,
            ErrorKind.TIMEOUT: 408,
            ErrorKind.ELEMENT_NOT_FOUND: 404,
            ErrorKind.EXECUTION: 500,
        }
        return status_mapping[self]


class ErrorSeverity(str, Enum):
    """
    Error severity levels for exception prioritization.

    Usage:
        >>> error = SomeException(severity=ErrorSeverity.HIGH)
        >>> if error.severity == ErrorSeverity.CRITICAL:
        ...     alert_operations_team(error)
    """

    LOW = "low"
    """
    Client mistakes: malformed requests, unknown commands, unknown sessions.
    """

    MEDIUM = "medium"
    """
    Step failures inside a live session: timeouts, missing elements.
    """

    HIGH = "high"
    """
    Failures that cost a session: unclassified execution errors, capacity.
    """

    CRITICAL = "critical"
    """
    Failures that prevent the server from serving at all: browser launch,
    invalid global configuration.
    """


class ErrorCategory(str, Enum):
    """
    Error categories for organizing exception types by functional area.
    """

    SESSION = "session"
    """Session lookup and capacity errors."""

    BROWSER = "browser"
    """Browser launch failures, crashes, closed contexts."""

    ELEMENT = "element"
    """UI element interaction errors: not found, not attached."""

    TIMEOUT = "timeout"
    """Timeout-related errors: page loads, element waits."""

    VALIDATION = "validation"
    """Malformed requests and parameters."""

    CONFIGURATION = "configuration"
    """Configuration errors, including proxy settings."""

    INFRASTRUCTURE = "infrastructure"
    """Anything unclassified."""


class LogLevel(str, Enum):
    """
    Logging levels aligned with standard Python logging.

    These levels determine how loudly an exception is logged.
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_numeric(self) -> int:
        """Convert to Python logging numeric level."""
        import logging

        level_mapping: Dict[LogLevel, int] = {
            LogLevel.DEBUG: logging.DEBUG,
            LogLevel.INFO: logging.INFO,
            LogLevel.WARNING: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
            LogLevel.CRITICAL: logging.CRITICAL,
        }
        return level_mapping[self]

    @classmethod
    def from_severity(cls, severity: ErrorSeverity) -> 'LogLevel':
        """Determine log level from error severity."""
        severity_mapping: Dict[ErrorSeverity, LogLevel] = {
            ErrorSeverity.LOW: LogLevel.INFO,
            ErrorSeverity.MEDIUM: LogLevel.WARNING,
            ErrorSeverity.HIGH: LogLevel.ERROR,
            ErrorSeverity.CRITICAL: LogLevel.CRITICAL,
        }
        return severity_mapping[severity]
