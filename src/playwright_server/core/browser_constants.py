# src/playwright_server/core/browser_constants.py
"""
Browser Management Constants

This module defines constants and enums used throughout the browser
management and command execution code to avoid magic strings.
"""

from enum import Enum
from typing import List


class BrowserErrorKeywords:
    """
    Keywords that indicate specific types of browser errors.

    These are used to classify exceptions based on error messages
    from Playwright when the exception type alone is not conclusive.
    """

    TIMEOUT_KEYWORDS: List[str] = [
        "timeout",
    ]

    ELEMENT_MISSING_KEYWORDS: List[str] = [
        "waiting for selector",
        "not found",
        "no node found",
        "element is not attached",
    ]

    # Context closed or crashed underneath an in-flight call
    CRASH_KEYWORDS: List[str] = [
        "crash",
        "crashed",
        "target closed",
        "target page, context or browser has been closed",
        "browser has been closed",
        "disconnected",
    ]

    @classmethod
    def is_timeout_error(cls, error_message: str) -> bool:
        """Check if error message indicates a timeout."""
        error_lower = error_message.lower()
        return any(keyword in error_lower for keyword in cls.TIMEOUT_KEYWORDS)

    @classmethod
    def is_element_missing_error(cls, error_message: str) -> bool:
        """Check if error message indicates a missing element."""
        error_lower = error_message.lower()
        return any(keyword in error_lower for keyword in cls.ELEMENT_MISSING_KEYWORDS)

    @classmethod
    def is_crash_error(cls, error_message: str) -> bool:
        """Check if error message indicates the context went away."""
        error_lower = error_message.lower()
        return any(keyword in error_lower for keyword in cls.CRASH_KEYWORDS)


class WaitUntilOptions(str, Enum):
    """Page navigation wait conditions."""

    LOAD = "load"
    DOMCONTENTLOADED = "domcontentloaded"
    NETWORKIDLE = "networkidle"
    COMMIT = "commit"


class BrowserDefaults:
    """Default values for command execution."""

    DEFAULT_WAIT_UNTIL = WaitUntilOptions.LOAD.value
    WAIT_FOR_SELECTOR_TIMEOUT = 30000

    # Recordings are renamed to this once the context has flushed them
    RECORDING_FILE_NAME = "video.webm"
    RECORDING_EXTENSION = ".webm"

    DEFAULT_LOCALE = "en-US"
