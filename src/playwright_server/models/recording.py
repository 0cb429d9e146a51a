# src/playwright_server/models/recording.py
"""
Recording Models
"""

from datetime import datetime
from pathlib import Path

from pydantic import Field

from .base import FrozenModel, utc_now


class VideoSize(FrozenModel):
    width: int = Field(default=1280, ge=160, le=3840)
    height: int = Field(default=720, ge=120, le=2160)

    def to_playwright(self) -> dict:
        return {"width": self.width, "height": self.height}


class RecordingMetadata(FrozenModel):
    """
    Recording attached to a session at creation.

    ``file_path`` is the session's recording directory; the finalized
    artifact inside it is always named ``video.webm``.
    """

    enabled: bool = True
    playback_url: str
    file_path: Path
    started_at: datetime = Field(default_factory=utc_now)
    size: VideoSize = Field(default_factory=VideoSize)
