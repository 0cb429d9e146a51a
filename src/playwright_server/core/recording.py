# src/playwright_server/core/recording.py
"""
Recording Artifact Lifecycle

Tracks recording directories by session id, starts their retention
countdown when the owning session ends, and periodically reaps the ones
whose retention window has passed. Reaping is eventual: an artifact may
stay available up to one sweep interval past its window.
"""

import asyncio
import contextlib
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

from .browser_constants import BrowserDefaults
from .logger import get_logger
from .scheduling import Clock


@dataclass
class TrackedArtifact:
    session_id: str
    path: Path
    ended_at: Optional[datetime] = None


def ensure_recordings_directory(directory: Path) -> Path:
    """Create the recordings root if needed."""
    directory.mkdir(parents=True, exist_ok=True)
    get_logger("recording").info("Recordings directory ensured", directory=str(directory))
    return directory


def finalize_recording(directory: Path) -> Optional[Path]:
    """
    Give the recorded video a stable name.

    Playwright names the file after the page; it is renamed to
    ``video.webm`` inside the same directory. Must run after the context
    has closed, since the video is flushed on close.

    Returns:
        Path of the finalized file, or None if no video was produced
    """
    target = directory / BrowserDefaults.RECORDING_FILE_NAME
    if target.exists():
        return target
    if not directory.is_dir():
        return None

    videos = sorted(directory.glob(f"*{BrowserDefaults.RECORDING_EXTENSION}"))
    if not videos:
        return None

    videos[0].rename(target)
    return target


class RecordingTracker:
    """
    Retention bookkeeping for recording artifacts.

    Owned by the application and injected into the session registry, so
    separate instances can coexist in tests.
    """

    def __init__(
            self,
            retention: timedelta = timedelta(hours=1),
            sweep_interval: timedelta = timedelta(minutes=15),
            clock: Optional[Clock] = None
    ):
        self.retention = retention
        self.sweep_interval = sweep_interval
        self.clock = clock or Clock()
        self.logger = get_logger("recording_tracker")
        self._artifacts: Dict[str, TrackedArtifact] = {}
        self._sweep_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings, clock: Optional[Clock] = None) -> "RecordingTracker":
        return cls(
            retention=timedelta(seconds=settings.recording.retention_seconds),
            sweep_interval=timedelta(seconds=settings.recording.sweep_interval_seconds),
            clock=clock
        )

    def register(self, session_id: str, path: Path) -> None:
        """Track a pending artifact; its end time stays unset until ``mark_ended``."""
        self._artifacts[session_id] = TrackedArtifact(session_id=session_id, path=Path(path))
        self.logger.debug("Recording registered", session_id=session_id, path=str(path))

    def mark_ended(self, session_id: str) -> None:
        """Start the retention countdown for a session's artifact."""
        artifact = self._artifacts.get(session_id)
        if artifact is None:
            return
        artifact.ended_at = self.clock.now()
        self.logger.info(
            "Recording ended",
            session_id=session_id,
            retention_seconds=self.retention.total_seconds()
        )

    def get(self, session_id: str) -> Optional[TrackedArtifact]:
        return self._artifacts.get(session_id)

    def is_available(self, session_id: str) -> bool:
        """True while the artifact is still tracked and its storage exists."""
        artifact = self._artifacts.get(session_id)
        return artifact is not None and artifact.path.exists()

    async def sweep(self, now: Optional[datetime] = None) -> List[str]:
        """
        Delete every artifact whose end time is more than the retention
        window in the past. Directories are removed off the event loop.

        Returns:
            Session ids whose artifacts were removed
        """
        now = now or self.clock.now()
        removed: List[str] = []

        for session_id, artifact in list(self._artifacts.items()):
            if artifact.ended_at is None or now - artifact.ended_at <= self.retention:
                continue
            try:
                if artifact.path.exists():
                    await asyncio.to_thread(shutil.rmtree, artifact.path)
            except OSError as e:
                self.logger.error(
                    "Error cleaning up recording",
                    session_id=session_id,
                    path=str(artifact.path),
                    error=str(e)
                )
                continue
            # Re-registered while the delete ran
            if self._artifacts.get(session_id) is artifact:
                del self._artifacts[session_id]
            removed.append(session_id)
            self.logger.info("Cleaned up recording", session_id=session_id)

        return removed

    async def _sweep_loop(self) -> None:
        interval = self.sweep_interval.total_seconds()
        while True:
            await asyncio.sleep(interval)
            await self.sweep()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweep_task is not None:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="recording-sweep")
        self.logger.info(
            "Recording cleanup scheduler started",
            interval_seconds=self.sweep_interval.total_seconds()
        )

    async def stop(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None

    @property
    def tracked_count(self) -> int:
        return len(self._artifacts)
