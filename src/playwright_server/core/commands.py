# src/playwright_server/core/commands.py
"""
Command Dispatch

Maps command names to handlers that drive a session's page. Handlers are
thin pass-throughs to Playwright; the dispatcher's job is shaping
parameters and turning every failure into one of the server's exception
kinds.

Handlers receive a flat ``params`` mapping: the request's ``options`` bag
with ``selector`` merged in. A nested ``options`` mapping inside it is
passed to Playwright as keyword arguments, with camelCase keys converted
to snake_case.
"""

import asyncio
import base64
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from playwright.async_api import Page
from pydantic.alias_generators import to_snake

from .browser_constants import BrowserDefaults
from .exceptions import (
    AutomationException,
    CommandNotFoundException,
    ValidationException,
    classify_automation_error,
)
from .logger import get_logger
from ..models.command import CommandRequest

Handler = Callable[[Page, Dict[str, Any]], Awaitable[Any]]


class CommandKind(str, Enum):
    """Supported commands; values are the names clients send."""

    NAVIGATE = "navigate"
    GOTO = "goto"
    RELOAD = "reload"
    GO_BACK = "goBack"
    GO_FORWARD = "goForward"
    WAIT_FOR_LOAD_STATE = "waitForLoadState"

    CLICK = "click"
    DBLCLICK = "dblclick"
    HOVER = "hover"
    TYPE = "type"
    FILL = "fill"
    PRESS = "press"
    CHECK = "check"
    UNCHECK = "uncheck"
    SELECT_OPTION = "selectOption"
    DRAG_AND_DROP = "dragAndDrop"
    FOCUS = "focus"
    BLUR = "blur"
    SCROLL_INTO_VIEW_IF_NEEDED = "scrollIntoViewIfNeeded"

    TEXT_CONTENT = "textContent"
    INNER_HTML = "innerHTML"
    INNER_TEXT = "innerText"
    INPUT_VALUE = "inputValue"
    GET_ATTRIBUTE = "getAttribute"
    CONTENT = "content"
    TITLE = "title"
    URL = "url"
    SCREENSHOT = "screenshot"

    IS_VISIBLE = "isVisible"
    IS_HIDDEN = "isHidden"
    IS_ENABLED = "isEnabled"
    IS_DISABLED = "isDisabled"
    IS_EDITABLE = "isEditable"
    IS_CHECKED = "isChecked"

    WAIT_FOR_SELECTOR = "waitForSelector"
    WAIT = "wait"
    EVALUATE = "evaluate"
    SET_EXTRA_HTTP_HEADERS = "setExtraHTTPHeaders"
    COOKIES = "cookies"
    SET_COOKIES = "setCookies"
    BRING_TO_FRONT = "bringToFront"

    @classmethod
    def lookup(cls, name: str) -> Optional["CommandKind"]:
        try:
            return cls(name)
        except ValueError:
            return None


_REGISTRY: Dict[CommandKind, Handler] = {}


def command(*kinds: CommandKind) -> Callable[[Handler], Handler]:
    """Register a handler for one or more command kinds."""
    def decorator(handler: Handler) -> Handler:
        for kind in kinds:
            _REGISTRY[kind] = handler
        return handler
    return decorator


def _require(params: Mapping[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None or value == "":
        raise ValidationException(f"Parameter '{key}' is required", field=key)
    return value


def _playwright_options(params: Mapping[str, Any]) -> Dict[str, Any]:
    options = params.get("options") or {}
    if not isinstance(options, Mapping):
        raise ValidationException("Parameter 'options' must be an object", field="options")
    return {to_snake(key): value for key, value in options.items()}


def _wait_until(params: Mapping[str, Any]) -> str:
    return params.get("waitUntil") or BrowserDefaults.DEFAULT_WAIT_UNTIL


# Navigation

@command(CommandKind.NAVIGATE, CommandKind.GOTO)
async def _navigate(page: Page, params: Dict[str, Any]) -> None:
    await page.goto(_require(params, "url"), wait_until=_wait_until(params))


@command(CommandKind.RELOAD)
async def _reload(page: Page, params: Dict[str, Any]) -> None:
    await page.reload(wait_until=_wait_until(params))


@command(CommandKind.GO_BACK)
async def _go_back(page: Page, params: Dict[str, Any]) -> None:
    await page.go_back(wait_until=_wait_until(params))


@command(CommandKind.GO_FORWARD)
async def _go_forward(page: Page, params: Dict[str, Any]) -> None:
    await page.go_forward(wait_until=_wait_until(params))


@command(CommandKind.WAIT_FOR_LOAD_STATE)
async def _wait_for_load_state(page: Page, params: Dict[str, Any]) -> None:
    await page.wait_for_load_state(params.get("state") or "load", timeout=params.get("timeout"))


# Element interaction

@command(CommandKind.CLICK)
async def _click(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).click(**_playwright_options(params))


@command(CommandKind.DBLCLICK)
async def _dblclick(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).dblclick(**_playwright_options(params))


@command(CommandKind.HOVER)
async def _hover(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).hover(**_playwright_options(params))


@command(CommandKind.TYPE, CommandKind.FILL)
async def _fill(page: Page, params: Dict[str, Any]) -> None:
    text = params.get("text")
    if text is None:
        raise ValidationException("Parameter 'text' is required", field="text")
    await page.locator(_require(params, "selector")).fill(str(text))


@command(CommandKind.PRESS)
async def _press(page: Page, params: Dict[str, Any]) -> None:
    await page.keyboard.press(_require(params, "key"))


@command(CommandKind.CHECK)
async def _check(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).check(**_playwright_options(params))


@command(CommandKind.UNCHECK)
async def _uncheck(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).uncheck(**_playwright_options(params))


@command(CommandKind.SELECT_OPTION)
async def _select_option(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).select_option(
        _require(params, "values"),
        **_playwright_options(params)
    )


@command(CommandKind.DRAG_AND_DROP)
async def _drag_and_drop(page: Page, params: Dict[str, Any]) -> None:
    source = page.locator(_require(params, "sourceSelector"))
    target = page.locator(_require(params, "targetSelector"))
    await source.drag_to(target, **_playwright_options(params))


@command(CommandKind.FOCUS)
async def _focus(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).focus()


@command(CommandKind.BLUR)
async def _blur(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).blur()


@command(CommandKind.SCROLL_INTO_VIEW_IF_NEEDED)
async def _scroll_into_view(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).scroll_into_view_if_needed(**_playwright_options(params))


# Extraction

@command(CommandKind.TEXT_CONTENT)
async def _text_content(page: Page, params: Dict[str, Any]) -> Optional[str]:
    return await page.locator(_require(params, "selector")).text_content()


@command(CommandKind.INNER_HTML)
async def _inner_html(page: Page, params: Dict[str, Any]) -> str:
    return await page.locator(_require(params, "selector")).inner_html()


@command(CommandKind.INNER_TEXT)
async def _inner_text(page: Page, params: Dict[str, Any]) -> str:
    return await page.locator(_require(params, "selector")).inner_text()


@command(CommandKind.INPUT_VALUE)
async def _input_value(page: Page, params: Dict[str, Any]) -> str:
    return await page.locator(_require(params, "selector")).input_value()


@command(CommandKind.GET_ATTRIBUTE)
async def _get_attribute(page: Page, params: Dict[str, Any]) -> Optional[str]:
    return await page.locator(_require(params, "selector")).get_attribute(_require(params, "attribute"))


@command(CommandKind.CONTENT)
async def _content(page: Page, params: Dict[str, Any]) -> str:
    return await page.content()


@command(CommandKind.TITLE)
async def _title(page: Page, params: Dict[str, Any]) -> str:
    return await page.title()


@command(CommandKind.URL)
async def _url(page: Page, params: Dict[str, Any]) -> str:
    return page.url


@command(CommandKind.SCREENSHOT)
async def _screenshot(page: Page, params: Dict[str, Any]) -> str:
    image = await page.screenshot(full_page=bool(params.get("fullPage", False)))
    return base64.b64encode(image).decode("ascii")


# Element state

@command(CommandKind.IS_VISIBLE)
async def _is_visible(page: Page, params: Dict[str, Any]) -> bool:
    return await page.locator(_require(params, "selector")).is_visible()


@command(CommandKind.IS_HIDDEN)
async def _is_hidden(page: Page, params: Dict[str, Any]) -> bool:
    return await page.locator(_require(params, "selector")).is_hidden()


@command(CommandKind.IS_ENABLED)
async def _is_enabled(page: Page, params: Dict[str, Any]) -> bool:
    return await page.locator(_require(params, "selector")).is_enabled()


@command(CommandKind.IS_DISABLED)
async def _is_disabled(page: Page, params: Dict[str, Any]) -> bool:
    return await page.locator(_require(params, "selector")).is_disabled()


@command(CommandKind.IS_EDITABLE)
async def _is_editable(page: Page, params: Dict[str, Any]) -> bool:
    return await page.locator(_require(params, "selector")).is_editable()


@command(CommandKind.IS_CHECKED)
async def _is_checked(page: Page, params: Dict[str, Any]) -> bool:
    return await page.locator(_require(params, "selector")).is_checked()


# Page and context utilities

@command(CommandKind.WAIT_FOR_SELECTOR)
async def _wait_for_selector(page: Page, params: Dict[str, Any]) -> None:
    await page.locator(_require(params, "selector")).wait_for(
        timeout=params.get("timeout") or BrowserDefaults.WAIT_FOR_SELECTOR_TIMEOUT
    )


@command(CommandKind.WAIT)
async def _wait(page: Page, params: Dict[str, Any]) -> None:
    duration = params.get("duration")
    if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
        raise ValidationException("Duration must be a positive number in milliseconds", field="duration")
    await asyncio.sleep(duration / 1000)


@command(CommandKind.EVALUATE)
async def _evaluate(page: Page, params: Dict[str, Any]) -> Any:
    return await page.evaluate(_require(params, "script"), params.get("args"))


@command(CommandKind.SET_EXTRA_HTTP_HEADERS)
async def _set_extra_http_headers(page: Page, params: Dict[str, Any]) -> None:
    headers = _require(params, "headers")
    if isinstance(headers, list):
        try:
            headers = {header["name"]: header["value"] for header in headers}
        except (KeyError, TypeError) as e:
            raise ValidationException(
                "Header list entries must have 'name' and 'value'",
                field="headers",
                original_exception=e
            ) from e
    if not isinstance(headers, Mapping):
        raise ValidationException("Parameter 'headers' must be an object or a list", field="headers")
    await page.set_extra_http_headers({str(name): str(value) for name, value in headers.items()})


@command(CommandKind.COOKIES)
async def _cookies(page: Page, params: Dict[str, Any]) -> Dict[str, Any]:
    return {"cookies": await page.context.cookies()}


@command(CommandKind.SET_COOKIES)
async def _set_cookies(page: Page, params: Dict[str, Any]) -> None:
    cookies = _require(params, "cookies")
    if not isinstance(cookies, list):
        raise ValidationException("Parameter 'cookies' must be a list", field="cookies")
    await page.context.add_cookies(cookies)


@command(CommandKind.BRING_TO_FRONT)
async def _bring_to_front(page: Page, params: Dict[str, Any]) -> None:
    await page.bring_to_front()


class CommandDispatcher:
    """
    Name → handler lookup with a single error classification boundary.

    ``dispatch`` never raises anything but ``AutomationException``
    subclasses (task cancellation aside).
    """

    def __init__(self, handlers: Optional[Mapping[CommandKind, Handler]] = None):
        self._handlers: Dict[CommandKind, Handler] = dict(_REGISTRY if handlers is None else handlers)
        self.logger = get_logger("command_dispatcher")
        missing = [kind.value for kind in CommandKind if kind not in self._handlers]
        if missing:
            raise RuntimeError(f"Commands without handlers: {', '.join(missing)}")

    def resolve(self, name: str) -> CommandKind:
        """
        Raises:
            CommandNotFoundException: no handler for ``name``
        """
        kind = CommandKind.lookup(name)
        if kind is None or kind not in self._handlers:
            raise CommandNotFoundException(name)
        return kind

    @property
    def command_names(self):
        return sorted(kind.value for kind in self._handlers)

    async def dispatch(self, page: Page, request: CommandRequest) -> Any:
        """
        Run one command against ``page`` and return its raw value.

        Raises:
            CommandNotFoundException: unknown command name
            ValidationException: missing or malformed parameters
            TimeoutException: the operation timed out
            ElementNotFoundException: the selector matched nothing
            ExecutionException: anything else, including a closed context
        """
        handler = self._handlers[self.resolve(request.command)]
        params = request.to_params()

        try:
            return await handler(page, params)
        except AutomationException:
            raise
        except Exception as e:
            error = classify_automation_error(
                e,
                selector=request.selector,
                context={"command": request.command}
            )
            self.logger.debug(
                "Command failure classified",
                command=request.command,
                kind=error.kind.value,
                original_type=type(e).__name__
            )
            raise error from e
