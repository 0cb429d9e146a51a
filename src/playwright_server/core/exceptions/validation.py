# src/playwright_server/core/exceptions/validation.py
"""
Validation Exception Classes

Validation-class errors are raised before any side effect: nothing is
launched, created or scheduled when one of these surfaces.
"""

from typing import List, Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorKind, ErrorSeverity


class ValidationException(AutomationException):
    """Malformed request shape or command parameters."""

    kind = ErrorKind.VALIDATION
    default_category = ErrorCategory.VALIDATION
    default_severity = ErrorSeverity.LOW

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message=message, **kwargs)
        self.field = field
        if field:
            self.add_context("field", field)


class ProxyValidationException(AutomationException):
    """
    Invalid proxy configuration.

    ``details`` lists every specific violation found, e.g.
    "Proxy authentication incomplete: username and password must both be
    provided or both be omitted", so clients can fix everything at once.
    """

    kind = ErrorKind.PROXY_VALIDATION
    default_category = ErrorCategory.CONFIGURATION
    default_severity = ErrorSeverity.LOW

    def __init__(self, message: str, details: Optional[List[str]] = None, **kwargs):
        super().__init__(message=message, details=details, **kwargs)
