# src/playwright_server/core/session_registry.py
"""
Session Registry

The single owner of live sessions. Every mutation of the session map and
of a session's timer goes through ``SessionRegistry`` so that:

- a session never has more than one live expiry timer
- ``terminate`` is idempotent and concurrent callers share one teardown
- a session whose teardown has begun is never handed out again
- the number of live sessions never exceeds the configured maximum

All state lives on the event loop thread; no locks are used. No method
reads the map and writes it back across an ``await`` without checking
again.
"""

import asyncio
import shutil
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .browser_manager import BrowserAutomation
from .exceptions import (
    CapacityExceededException,
    SessionNotFoundException,
    ValidationException,
)
from .logger import get_logger
from .proxy import proxy_log_view, resolve_effective_proxy
from .recording import RecordingTracker, finalize_recording
from .scheduling import Clock, ScheduledTask, TimerScheduler
from ..config.settings import Settings, get_settings
from ..models.proxy import ProxyConfig
from ..models.recording import RecordingMetadata, VideoSize

WRITE_ONCE_FIELDS = frozenset({"recording", "proxy"})


@dataclass
class Session:
    """
    One isolated, addressable automation context plus its metadata.

    ``recording`` and ``proxy`` are write-once: they are set when the
    session is created and assigning them again raises ``AttributeError``.
    """

    id: str
    ttl_ms: int
    created_at: datetime
    last_activity_at: datetime
    expires_at: datetime
    context: Any = field(repr=False)
    user_data_dir: Path
    recording: Optional[RecordingMetadata] = None
    proxy: Optional[ProxyConfig] = None
    proxy_source: Optional[str] = None
    expiry_timer: Optional[ScheduledTask] = field(default=None, repr=False)
    closing: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if name in WRITE_ONCE_FIELDS and name in self.__dict__:
            raise AttributeError(f"Session.{name} is write-once")
        super().__setattr__(name, value)

    @property
    def page(self) -> Optional[Any]:
        """The context's single addressable page, if it still has one."""
        pages = self.context.pages
        return pages[0] if pages else None

    def remaining_ms(self, now: datetime) -> int:
        return int((self.expires_at - now).total_seconds() * 1000)


class SessionRegistry:
    """
    Keyed collection of live sessions.

    The registry is an explicitly owned object, so several can coexist
    (one per application instance, or one per test).

    Example:
        >>> registry = SessionRegistry(automation, tracker, settings)
        >>> session = await registry.create(ttl_ms=60_000)
        >>> await registry.terminate(session.id)
    """

    def __init__(
            self,
            automation: BrowserAutomation,
            tracker: RecordingTracker,
            settings: Optional[Settings] = None,
            scheduler: Optional[TimerScheduler] = None,
            clock: Optional[Clock] = None,
            global_proxy: Optional[ProxyConfig] = None
    ):
        self.automation = automation
        self.tracker = tracker
        self.settings = settings or get_settings()
        self.scheduler = scheduler or TimerScheduler()
        self.clock = clock or Clock()
        self.global_proxy = global_proxy
        self.logger = get_logger("session_registry")

        self._sessions: Dict[str, Session] = {}
        self._teardowns: Dict[str, asyncio.Task] = {}
        self._pending_creates = 0

    @property
    def max_sessions(self) -> int:
        return self.settings.sessions.max_concurrent

    @property
    def active_count(self) -> int:
        return sum(1 for session in self._sessions.values() if not session.closing)

    def validate_ttl(self, ttl_ms: Any) -> int:
        """
        Check a requested TTL against the configured bounds.

        Raises:
            ValidationException: not a number, or outside the range
        """
        if isinstance(ttl_ms, bool) or not isinstance(ttl_ms, (int, float)) or not ttl_ms:
            raise ValidationException("TTL is required and must be a number", field="ttl")

        min_ttl = self.settings.sessions.min_ttl_ms
        max_ttl = self.settings.sessions.max_ttl_ms
        if ttl_ms < min_ttl or ttl_ms > max_ttl:
            raise ValidationException(
                f"TTL must be between {min_ttl}ms and {max_ttl}ms",
                field="ttl"
            )
        return int(ttl_ms)

    async def create(
            self,
            ttl_ms: int,
            recording: bool = False,
            video_size: Optional[VideoSize] = None,
            proxy: Optional[ProxyConfig] = None
    ) -> Session:
        """
        Create a session and arm its expiry timer.

        Args:
            ttl_ms: Inactivity window in milliseconds
            recording: Capture a video of the session
            video_size: Video frame size (settings default if None)
            proxy: Session-specific proxy; the global default applies if None

        Returns:
            Session: Immediately usable handle

        Raises:
            ValidationException: TTL outside the configured range
            CapacityExceededException: the maximum number of sessions is live
            BrowserLaunchException: the context could not be opened
        """
        ttl_ms = self.validate_ttl(ttl_ms)

        # Creates still launching count against capacity
        if len(self._sessions) + self._pending_creates >= self.max_sessions:
            self.logger.warning(
                "Session capacity reached",
                max_sessions=self.max_sessions,
                active_sessions=len(self._sessions)
            )
            raise CapacityExceededException(self.max_sessions)

        session_id = str(uuid4())
        effective_proxy = resolve_effective_proxy(proxy, self.global_proxy)
        proxy_source = None
        if effective_proxy is not None:
            proxy_source = "session-specific" if proxy is not None else "global"

        user_data_dir = self.settings.sessions.user_data_dir / session_id
        recording_metadata: Optional[RecordingMetadata] = None
        if recording:
            recording_metadata = RecordingMetadata(
                playback_url=self.settings.playback_url(session_id),
                file_path=self.settings.recording.directory / session_id,
                started_at=self.clock.now(),
                size=video_size or VideoSize(
                    width=self.settings.recording.video_width,
                    height=self.settings.recording.video_height
                )
            )

        self._pending_creates += 1
        try:
            user_data_dir.mkdir(parents=True, exist_ok=True)
            context = await self.automation.open_context(
                user_data_dir,
                proxy=effective_proxy,
                record_video_dir=recording_metadata.file_path if recording_metadata else None,
                record_video_size=recording_metadata.size if recording_metadata else None
            )
        except Exception:
            await self._remove_directory(session_id, user_data_dir, "user data")
            if recording_metadata is not None:
                await self._remove_directory(session_id, recording_metadata.file_path, "recording")
            raise
        finally:
            self._pending_creates -= 1

        now = self.clock.now()
        session = Session(
            id=session_id,
            ttl_ms=ttl_ms,
            created_at=now,
            last_activity_at=now,
            expires_at=now + timedelta(milliseconds=ttl_ms),
            context=context,
            user_data_dir=user_data_dir,
            recording=recording_metadata,
            proxy=effective_proxy,
            proxy_source=proxy_source
        )
        self._sessions[session_id] = session
        self._arm_timer(session)

        if recording_metadata is not None:
            self.tracker.register(session_id, recording_metadata.file_path)

        if effective_proxy is not None:
            self.logger.info(
                "Session created with proxy configuration",
                session_id=session_id,
                proxy_config=proxy_log_view(effective_proxy, source=proxy_source)
            )

        self.logger.info(
            "Session created",
            session_id=session_id,
            ttl_ms=ttl_ms,
            expires_at=session.expires_at.isoformat(),
            recording=recording_metadata is not None,
            active_sessions=len(self._sessions)
        )
        return session

    def get(self, session_id: str) -> Session:
        """
        Look up a live session.

        Raises:
            SessionNotFoundException: unknown, expired, or being torn down
        """
        session = self._sessions.get(session_id)
        if session is None or session.closing:
            raise SessionNotFoundException(session_id)
        return session

    def list(self) -> List[Session]:
        """Snapshot of live sessions."""
        return [session for session in self._sessions.values() if not session.closing]

    def reset_activity(self, session_id: str) -> bool:
        """
        Push a session's expiry out by its TTL from now.

        The previous timer is cancelled before the new one is armed.

        Returns:
            bool: False if the session is gone or closing
        """
        session = self._sessions.get(session_id)
        if session is None or session.closing:
            return False

        now = self.clock.now()
        session.last_activity_at = now
        session.expires_at = now + timedelta(milliseconds=session.ttl_ms)
        self._arm_timer(session)

        self.logger.debug(
            "Session activity reset",
            session_id=session_id,
            expires_at=session.expires_at.isoformat()
        )
        return True

    async def terminate(self, session_id: str, reason: str = "explicit") -> bool:
        """
        Tear a session down. Idempotent.

        Concurrent callers await the same teardown. Returns False when the
        session was already gone.
        """
        task = self._begin_teardown(session_id, reason)
        if task is None:
            return False
        await asyncio.shield(task)
        return True

    async def terminate_all(self) -> int:
        """Tear down every session; used on shutdown."""
        session_ids = list(self._sessions.keys())
        results = await asyncio.gather(
            *(self.terminate(session_id, reason="shutdown") for session_id in session_ids)
        )
        terminated = sum(1 for result in results if result)
        self.logger.info("Terminated all sessions", count=terminated)
        return terminated

    async def wait_for_teardowns(self) -> None:
        """Wait for teardowns in flight, including ones started by expiry."""
        while self._teardowns:
            await asyncio.gather(*list(self._teardowns.values()))

    def _arm_timer(self, session: Session) -> None:
        if session.expiry_timer is not None:
            session.expiry_timer.cancel()
        session_id = session.id
        session.expiry_timer = self.scheduler.schedule(
            session.ttl_ms / 1000,
            lambda: self._on_expiry(session_id)
        )

    def _on_expiry(self, session_id: str) -> None:
        self.logger.info("Session TTL expired", session_id=session_id)
        self._begin_teardown(session_id, reason="expired")

    def _begin_teardown(self, session_id: str, reason: str) -> Optional[asyncio.Task]:
        task = self._teardowns.get(session_id)
        if task is not None:
            return task

        session = self._sessions.get(session_id)
        if session is None:
            return None

        session.closing = True
        if session.expiry_timer is not None:
            session.expiry_timer.cancel()

        task = asyncio.get_running_loop().create_task(
            self._teardown(session, reason),
            name=f"session-teardown-{session_id}"
        )
        self._teardowns[session_id] = task
        task.add_done_callback(lambda _: self._teardowns.pop(session_id, None))
        return task

    async def _teardown(self, session: Session, reason: str) -> None:
        try:
            try:
                await self.automation.close_context(session.context)
            except Exception as e:
                self.logger.error(
                    "Error closing browser context",
                    session_id=session.id,
                    error=str(e),
                    error_type=type(e).__name__
                )

            # The video is flushed on close, so finalize only afterwards
            if session.recording is not None:
                try:
                    video_path = await asyncio.to_thread(finalize_recording, session.recording.file_path)
                    self.logger.info(
                        "Recording finalized",
                        session_id=session.id,
                        path=str(video_path) if video_path else None
                    )
                except OSError as e:
                    self.logger.error(
                        "Error finalizing recording",
                        session_id=session.id,
                        error=str(e)
                    )
                self.tracker.mark_ended(session.id)

            await self._remove_directory(session.id, session.user_data_dir, "user data")
        finally:
            self._sessions.pop(session.id, None)

        self.logger.info(
            "Session terminated",
            session_id=session.id,
            reason=reason,
            active_sessions=len(self._sessions)
        )

    async def _remove_directory(self, session_id: str, directory: Path, label: str) -> None:
        if not directory.exists():
            return
        try:
            await asyncio.to_thread(shutil.rmtree, directory)
            self.logger.debug(f"Deleted {label} directory", session_id=session_id, path=str(directory))
        except OSError as e:
            self.logger.error(
                f"Error deleting {label} directory",
                session_id=session_id,
                path=str(directory),
                error=str(e)
            )
