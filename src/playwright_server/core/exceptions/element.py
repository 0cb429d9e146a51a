# src/playwright_server/core/exceptions/element.py
"""
Element-Related Exception Classes
"""

from typing import List, Optional

from .base import AutomationException
from .enums import ErrorCategory, ErrorKind, ErrorSeverity


class ElementNotFoundException(AutomationException):
    """
    Exception for when elements cannot be located on the page.

    Raised when a selector doesn't match anything in the DOM at the time
    the command runs.
    """

    kind = ErrorKind.ELEMENT_NOT_FOUND
    default_category = ErrorCategory.ELEMENT
    default_severity = ErrorSeverity.MEDIUM

    def __init__(
            self,
            selector: Optional[str] = None,
            page_url: Optional[str] = None,
            **kwargs
    ):
        """
        Initialize element not found exception.

        Args:
            selector: Element selector that failed
            page_url: Page URL at the time of failure
            **kwargs: Additional exception arguments
        """
        super().__init__(
            message=f"Element matching selector '{selector or 'unknown'}' not found",
            **kwargs
        )

        self.selector = selector
        self.page_url = page_url

        if selector:
            self.add_context("selector", selector)
            issues = self._analyze_selector(selector)
            if issues:
                self.add_context("selector_issues", issues)

        if page_url:
            self.add_context("page_url", page_url)

    @staticmethod
    def _analyze_selector(selector: str) -> List[str]:
        """Spot selector shapes that commonly lead to misses."""
        issues = []

        if len(selector) > 100:
            issues.append("very_long_selector")

        if selector.count(" ") > 5:
            issues.append("deeply_nested")

        if "nth-child" in selector or "nth-of-type" in selector:
            issues.append("position_dependent")

        return issues
