# src/playwright_server/core/browser_manager.py
"""
Browser Automation Capability

This module is the only place that talks to Playwright's launcher:
- ``BrowserFactory`` turns configuration into persistent-context options
- ``BrowserAutomation`` owns the Playwright driver and opens/closes one
  isolated persistent context per session

Every session gets its own user data directory, so cookies, storage and
navigation state are never shared between sessions.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import BrowserContext, Playwright, async_playwright

from .browser_constants import BrowserDefaults
from .exceptions import BrowserLaunchException
from .logger import get_logger, get_performance_timer
from .proxy import proxy_log_view
from ..config.settings import Settings, get_settings
from ..models.proxy import ProxyConfig
from ..models.recording import VideoSize


class BrowserFactory:
    """
    Factory for persistent-context launch options.

    Uses Pydantic settings instead of hardcoded constants, so the same
    code serves headed production runs and headless test runs.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger("browser_factory")

    def create_context_options(
            self,
            proxy: Optional[ProxyConfig] = None,
            record_video_dir: Optional[Path] = None,
            record_video_size: Optional[VideoSize] = None,
            **overrides
    ) -> Dict[str, Any]:
        """
        Create ``launch_persistent_context`` options.

        Args:
            proxy: Effective proxy of the session, if any
            record_video_dir: Directory receiving the video, enables recording
            record_video_size: Video frame size (defaults from settings)
            **overrides: Override specific options

        Returns:
            Dictionary of options for Playwright
        """
        browser_settings = self.settings.browser

        options: Dict[str, Any] = {
            "headless": browser_settings.headless,
            "args": browser_settings.args.copy() + self._get_browser_specific_args(browser_settings.headless),
            "viewport": {
                "width": browser_settings.viewport_width,
                "height": browser_settings.viewport_height,
            },
            "ignore_https_errors": browser_settings.ignore_https_errors,
            "locale": BrowserDefaults.DEFAULT_LOCALE,
        }

        if browser_settings.channel:
            options["channel"] = browser_settings.channel

        if proxy is not None:
            options["proxy"] = proxy.to_playwright_proxy()

        if record_video_dir is not None:
            size = record_video_size or VideoSize(
                width=self.settings.recording.video_width,
                height=self.settings.recording.video_height
            )
            options["record_video_dir"] = str(record_video_dir)
            options["record_video_size"] = size.to_playwright()

        options.update(overrides)

        self.logger.debug(
            "Created context options",
            channel=options.get("channel"),
            headless=options["headless"],
            args_count=len(options["args"]),
            recording=record_video_dir is not None
        )

        return options

    def _get_browser_specific_args(self, headless: bool) -> List[str]:
        """Chromium command line arguments."""
        args = [
            "--disable-background-timer-throttling",
            "--disable-backgrounding-occluded-windows",
            "--disable-renderer-backgrounding",
        ]
        if headless:
            args.append("--disable-extensions")
        return args


class BrowserAutomation:
    """
    Owns the Playwright driver and hands out isolated contexts.

    ``start`` must run inside the event loop that later uses the
    contexts; the application lifespan takes care of that.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger = get_logger("browser_automation")
        self.factory = BrowserFactory(self.settings)
        self._playwright: Optional[Playwright] = None

    @property
    def is_running(self) -> bool:
        return self._playwright is not None

    async def start(self) -> None:
        if self._playwright is not None:
            return
        self._playwright = await async_playwright().start()
        self.logger.info(
            "Playwright driver started",
            channel=self.settings.browser.channel,
            headless=self.settings.browser.headless
        )

    async def open_context(
            self,
            user_data_dir: Path,
            proxy: Optional[ProxyConfig] = None,
            record_video_dir: Optional[Path] = None,
            record_video_size: Optional[VideoSize] = None
    ) -> BrowserContext:
        """
        Launch an isolated persistent context with exactly one page.

        Raises:
            BrowserLaunchException: the context could not be launched
        """
        if self._playwright is None:
            await self.start()

        options = self.factory.create_context_options(
            proxy=proxy,
            record_video_dir=record_video_dir,
            record_video_size=record_video_size
        )

        self.logger.info(
            "Launching persistent browser context",
            user_data_dir=str(user_data_dir),
            mode="headless" if options["headless"] else "headed",
            channel=options.get("channel"),
            proxy=proxy_log_view(proxy) if proxy else None
        )

        try:
            with get_performance_timer("open_context", self.logger) as timer:
                timer.add_metric("recording", record_video_dir is not None)
                context = await self._playwright.chromium.launch_persistent_context(
                    str(user_data_dir),
                    **options
                )
        except Exception as e:
            raise self._launch_error(e, options) from e

        try:
            context.set_default_timeout(self.settings.browser.timeout)
            if not context.pages:
                await context.new_page()
        except Exception as e:
            # The browser process holds user_data_dir until closed
            await self._discard_context(context)
            raise self._launch_error(e, options) from e

        return context

    def _launch_error(self, error: Exception, options: Dict[str, Any]) -> BrowserLaunchException:
        return BrowserLaunchException(
            str(error),
            channel=options.get("channel"),
            launch_args=options["args"],
            original_exception=error
        )

    async def _discard_context(self, context: BrowserContext) -> None:
        try:
            await context.close()
        except Exception as e:
            self.logger.error(
                "Error closing context after failed setup",
                error=str(e),
                error_type=type(e).__name__
            )

    async def close_context(self, context: BrowserContext) -> None:
        """Close a context; the recording is flushed once this returns."""
        with get_performance_timer("close_context", self.logger):
            await context.close()

    async def stop(self) -> None:
        if self._playwright is None:
            return
        try:
            await self._playwright.stop()
        finally:
            self._playwright = None
        self.logger.info("Playwright driver stopped")
