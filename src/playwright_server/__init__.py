"""Remote-controllable Playwright browser sessions over HTTP."""

__version__ = "1.0.0"
