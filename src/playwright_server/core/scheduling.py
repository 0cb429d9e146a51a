# src/playwright_server/core/scheduling.py
"""
Clock and timer abstractions.

Session expiry is driven by cancellable scheduled callbacks instead of
bare event-loop handles, so the registry can enforce "replace, never
leak" on every activity reset and tests can drive time virtually.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional


class Clock:
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ScheduledTask:
    """
    Handle for one scheduled callback.

    Cancelling is idempotent and safe after the callback already fired.
    """

    def __init__(self, handle: Optional[asyncio.TimerHandle] = None):
        self._handle = handle
        self._cancelled = False

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class TimerScheduler:
    """Schedules plain callbacks on the running asyncio event loop."""

    def schedule(self, delay_seconds: float, callback: Callable[[], None]) -> ScheduledTask:
        """
        Run ``callback`` once after ``delay_seconds``.

        Args:
            delay_seconds: Delay before the callback fires
            callback: Synchronous callable; async work must be spawned from it

        Returns:
            ScheduledTask: Cancellable handle
        """
        loop = asyncio.get_running_loop()
        handle = loop.call_later(max(delay_seconds, 0.0), callback)
        return ScheduledTask(handle)
