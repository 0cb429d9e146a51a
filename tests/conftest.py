# tests/conftest.py
"""
Shared fixtures.

Time is virtual: ``FakeClock`` only moves when a test advances it, and
``FakeScheduler`` fires due callbacks as part of that advance. Browsers
are fake too: ``FakeAutomation`` hands out ``FakeContext`` objects whose
single page is a ``unittest.mock`` stand-in for Playwright's ``Page``.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from playwright_server.config.settings import get_testing_settings
from playwright_server.core.exceptions import BrowserLaunchException
from playwright_server.core.recording import RecordingTracker
from playwright_server.core.scheduling import ScheduledTask
from playwright_server.core.session_registry import SessionRegistry


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.current = start or datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeTimer(ScheduledTask):
    def __init__(self, due_at: datetime, callback: Callable[[], None]):
        super().__init__()
        self.due_at = due_at
        self.callback = callback
        self.fired = False


class FakeScheduler:
    """Scheduler whose timers fire only when ``advance`` passes their due time."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.timers: List[FakeTimer] = []

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.clock.now() + timedelta(seconds=delay_seconds), callback)
        self.timers.append(timer)
        return timer

    @property
    def live_timers(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def advance(self, seconds: float) -> None:
        target = self.clock.now() + timedelta(seconds=seconds)
        for timer in sorted(self.live_timers, key=lambda t: t.due_at):
            if timer.due_at > target:
                break
            self.clock.current = timer.due_at
            timer.fired = True
            timer.callback()
        self.clock.current = target


def make_page(url: str = "about:blank") -> MagicMock:
    """Page stand-in: awaitable Playwright methods, synchronous ``locator``."""
    page = AsyncMock()
    page.url = url
    page.locator = MagicMock(return_value=make_locator())
    page.context = MagicMock()
    page.context.cookies = AsyncMock(return_value=[])
    page.context.add_cookies = AsyncMock(return_value=None)
    page.goto = AsyncMock(return_value=None)
    page.screenshot = AsyncMock(return_value=b"\x89PNG")
    return page


def make_locator() -> AsyncMock:
    locator = AsyncMock()
    locator.text_content = AsyncMock(return_value="Example Domain")
    return locator


class FakeContext:
    """Persistent context stand-in; writes a video on close when recording."""

    def __init__(self, record_video_dir: Optional[Path] = None, page: Optional[MagicMock] = None):
        self.record_video_dir = record_video_dir
        self.pages = [page if page is not None else make_page()]
        self.closed = False
        self.close_calls = 0
        self.close_error: Optional[Exception] = None

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error
        self.closed = True
        self.pages = []
        if self.record_video_dir is not None:
            self.record_video_dir.mkdir(parents=True, exist_ok=True)
            (self.record_video_dir / "4b1e2c9a7f.webm").write_bytes(b"webm")


class FakeAutomation:
    """Automation capability stand-in recording every call."""

    def __init__(self):
        self.started = False
        self.stopped = False
        self.open_calls: List[dict] = []
        self.contexts: List[FakeContext] = []
        self.closed_contexts: List[FakeContext] = []
        self.launch_error: Optional[Exception] = None

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    async def open_context(self, user_data_dir, proxy=None, record_video_dir=None, record_video_size=None):
        self.open_calls.append({
            "user_data_dir": user_data_dir,
            "proxy": proxy,
            "record_video_dir": record_video_dir,
            "record_video_size": record_video_size,
        })
        if self.launch_error is not None:
            raise BrowserLaunchException(str(self.launch_error), original_exception=self.launch_error)
        context = FakeContext(record_video_dir)
        self.contexts.append(context)
        return context

    async def close_context(self, context: FakeContext) -> None:
        self.closed_contexts.append(context)
        await context.close()


@pytest.fixture
def settings(tmp_path):
    return get_testing_settings(
        sessions={"user_data_dir": tmp_path / "user-data", "max_concurrent": 3},
        recording={"directory": tmp_path / "recordings"},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def automation():
    return FakeAutomation()


@pytest.fixture
def tracker(clock):
    return RecordingTracker(clock=clock)


@pytest.fixture
def registry(automation, tracker, settings, scheduler, clock):
    return SessionRegistry(automation, tracker, settings=settings, scheduler=scheduler, clock=clock)
