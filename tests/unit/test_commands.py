# tests/unit/test_commands.py
"""
Unit tests for command dispatch and error classification.
"""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from playwright_server.core.commands import CommandDispatcher, CommandKind
from playwright_server.core.exceptions import (
    CommandNotFoundException,
    ElementNotFoundException,
    ErrorKind,
    ExecutionException,
    TimeoutException,
    ValidationException,
    classify_automation_error,
)
from playwright_server.models.command import CommandRequest


def request(command, selector=None, **options):
    return CommandRequest(command=command, selector=selector, options=options or None)


@pytest.fixture
def dispatcher():
    return CommandDispatcher()


@pytest.fixture
def page():
    page = AsyncMock()
    page.url = "https://example.com/"
    locator = AsyncMock()
    locator.text_content = AsyncMock(return_value="Example Domain")
    page.locator = MagicMock(return_value=locator)
    page.screenshot = AsyncMock(return_value=b"png-bytes")
    page.context = MagicMock()
    page.context.cookies = AsyncMock(return_value=[{"name": "sid", "value": "1"}])
    return page


class TestCommandRegistry:
    """Name resolution."""

    def test_every_kind_has_a_handler(self, dispatcher):
        assert dispatcher.command_names == sorted(kind.value for kind in CommandKind)

    def test_resolve_known(self, dispatcher):
        assert dispatcher.resolve("textContent") == CommandKind.TEXT_CONTENT

    def test_resolve_unknown(self, dispatcher):
        with pytest.raises(CommandNotFoundException) as exc_info:
            dispatcher.resolve("teleport")

        assert exc_info.value.kind == ErrorKind.COMMAND_NOT_FOUND
        assert exc_info.value.message == "Command 'teleport' is not registered"

    def test_missing_handlers_rejected(self):
        with pytest.raises(RuntimeError):
            CommandDispatcher(handlers={})


@pytest.mark.asyncio
class TestDispatch:
    """Handlers against a mocked page."""

    async def test_navigate(self, dispatcher, page):
        result = await dispatcher.dispatch(page, request("navigate", url="https://example.com"))

        assert result is None
        page.goto.assert_awaited_once_with("https://example.com", wait_until="load")

    async def test_navigate_requires_url(self, dispatcher, page):
        with pytest.raises(ValidationException) as exc_info:
            await dispatcher.dispatch(page, request("navigate"))

        assert exc_info.value.message == "Parameter 'url' is required"
        page.goto.assert_not_awaited()

    async def test_click_passes_converted_options(self, dispatcher, page):
        await dispatcher.dispatch(page, request("click", "#submit", options={"clickCount": 2}))

        page.locator.assert_called_once_with("#submit")
        page.locator.return_value.click.assert_awaited_once_with(click_count=2)

    async def test_text_content(self, dispatcher, page):
        assert await dispatcher.dispatch(page, request("textContent", "h1")) == "Example Domain"

    async def test_url(self, dispatcher, page):
        assert await dispatcher.dispatch(page, request("url")) == "https://example.com/"

    async def test_screenshot_is_base64(self, dispatcher, page):
        result = await dispatcher.dispatch(page, request("screenshot", fullPage=True))

        assert base64.b64decode(result) == b"png-bytes"
        page.screenshot.assert_awaited_once_with(full_page=True)

    async def test_cookies(self, dispatcher, page):
        result = await dispatcher.dispatch(page, request("cookies"))

        assert result == {"cookies": [{"name": "sid", "value": "1"}]}

    async def test_headers_list_form(self, dispatcher, page):
        await dispatcher.dispatch(
            page,
            request("setExtraHTTPHeaders", headers=[{"name": "X-Trace", "value": "1"}])
        )

        page.set_extra_http_headers.assert_awaited_once_with({"X-Trace": "1"})

    @pytest.mark.parametrize("duration", [0, -5, "10", None])
    async def test_wait_rejects_bad_duration(self, dispatcher, page, duration):
        with pytest.raises(ValidationException) as exc_info:
            await dispatcher.dispatch(page, request("wait", duration=duration))

        assert exc_info.value.message == "Duration must be a positive number in milliseconds"

    async def test_wait(self, dispatcher, page):
        assert await dispatcher.dispatch(page, request("wait", duration=1)) is None

    async def test_unknown_command(self, dispatcher, page):
        with pytest.raises(CommandNotFoundException):
            await dispatcher.dispatch(page, request("teleport"))


@pytest.mark.asyncio
class TestFailureClassification:
    """Playwright failures surface as the server's error kinds."""

    async def test_timeout(self, dispatcher, page):
        page.locator.return_value.click = AsyncMock(
            side_effect=PlaywrightTimeoutError("Timeout 30000ms exceeded.")
        )

        with pytest.raises(TimeoutException):
            await dispatcher.dispatch(page, request("click", "#slow"))

    async def test_element_missing(self, dispatcher, page):
        page.locator.return_value.text_content = AsyncMock(
            side_effect=PlaywrightError("Error: No node found for selector: #missing")
        )

        with pytest.raises(ElementNotFoundException) as exc_info:
            await dispatcher.dispatch(page, request("textContent", "#missing"))

        assert exc_info.value.selector == "#missing"
        assert exc_info.value.kind.http_status() == 404

    async def test_closed_context(self, dispatcher, page):
        page.goto = AsyncMock(side_effect=PlaywrightError("Target page, context or browser has been closed"))

        with pytest.raises(ExecutionException) as exc_info:
            await dispatcher.dispatch(page, request("navigate", url="https://example.com"))

        assert exc_info.value.context["context_closed"] is True

    async def test_unexpected_error(self, dispatcher, page):
        page.title = AsyncMock(side_effect=ValueError("boom"))

        with pytest.raises(ExecutionException) as exc_info:
            await dispatcher.dispatch(page, request("title"))

        assert exc_info.value.message == "boom"
        assert exc_info.value.context["command"] == "title"


class TestClassifyAutomationError:
    """Direct classification."""

    def test_taxonomy_errors_pass_through(self):
        error = ValidationException("bad")

        assert classify_automation_error(error) is error

    def test_timeout_message_on_playwright_error(self):
        error = classify_automation_error(PlaywrightError("locator.click: Timeout 500ms exceeded"))

        assert isinstance(error, TimeoutException)
        assert error.kind.http_status() == 408

    def test_crash_is_not_element_missing(self):
        error = classify_automation_error(RuntimeError("element is not attached: browser has been closed"))

        assert isinstance(error, ExecutionException)
