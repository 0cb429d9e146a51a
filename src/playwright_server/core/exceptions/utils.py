# src/playwright_server/core/exceptions/utils.py
"""
Exception Utility Functions
"""

from typing import Any, Dict, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..browser_constants import BrowserErrorKeywords
from .base import AutomationException
from .browser import ExecutionException
from .element import ElementNotFoundException
from .timeout import TimeoutException


def classify_automation_error(
        error: BaseException,
        selector: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
) -> AutomationException:
    """
    Convert an error raised by the automation library into the taxonomy.

    This is the single place where Playwright failures are classified:

    - errors already in the taxonomy pass through unchanged
    - ``playwright.TimeoutError`` or timeout-shaped messages → ``TimeoutException``
    - element-missing-shaped messages → ``ElementNotFoundException``
    - everything else, including closed or crashed contexts → ``ExecutionException``
    """
    if isinstance(error, AutomationException):
        return error

    error_message = getattr(error, "message", None) or str(error) or type(error).__name__
    error_context = dict(context or {})

    if isinstance(error, PlaywrightTimeoutError) or (
            isinstance(error, PlaywrightError)
            and BrowserErrorKeywords.is_timeout_error(error_message)
    ):
        return TimeoutException(
            message=error_message,
            original_exception=error,
            context=error_context,
            operation_type="playwright_operation"
        )

    if (
            BrowserErrorKeywords.is_element_missing_error(error_message)
            and not BrowserErrorKeywords.is_crash_error(error_message)
    ):
        return ElementNotFoundException(
            selector=selector,
            original_exception=error,
            context=error_context
        )

    exception = ExecutionException(
        message=error_message,
        original_exception=error,
        context=error_context
    )
    if BrowserErrorKeywords.is_crash_error(error_message):
        exception.add_context("context_closed", True)
    return exception
