# src/playwright_server/core/exceptions/__init__.py
"""
Session server exception hierarchy.

Every error that crosses the core's boundary is an ``AutomationException``
subclass carrying one ``ErrorKind`` tag.
"""

from .base import AutomationException
from .browser import BrowserLaunchException, CommandNotFoundException, ExecutionException
from .element import ElementNotFoundException
from .enums import ErrorCategory, ErrorKind, ErrorSeverity, LogLevel
from .session import CapacityExceededException, SessionNotFoundException
from .timeout import TimeoutException
from .utils import classify_automation_error
from .validation import ProxyValidationException, ValidationException

__all__ = [
    "AutomationException",
    "BrowserLaunchException",
    "CapacityExceededException",
    "CommandNotFoundException",
    "ElementNotFoundException",
    "ErrorCategory",
    "ErrorKind",
    "ErrorSeverity",
    "ExecutionException",
    "LogLevel",
    "ProxyValidationException",
    "SessionNotFoundException",
    "TimeoutException",
    "ValidationException",
    "classify_automation_error",
]
