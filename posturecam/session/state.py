"""
Session state definitions.

These are the values the controller owns and hands out to the presentation
layer; all of them are immutable snapshots.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from posturecam.session.history import FeedbackEntry


class SessionMode(str, Enum):
    """Which input the user is working with. Upload and live are exclusive."""
    IDLE = "idle"
    UPLOAD = "upload"
    LIVE = "live"


@dataclass(frozen=True)
class StagedClip:
    """A clip selected for upload but not necessarily analyzed yet."""
    filename: str
    data: bytes = field(repr=False)
    content_type: str = "video/mp4"

    @property
    def size(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "content_type": self.content_type,
            "size": self.size,
        }


@dataclass(frozen=True)
class ErrorState:
    """The single current error, tagged with the session that raised it."""
    message: str
    session_id: str


@dataclass(frozen=True)
class SessionState:
    """Read-only view of the controller for presentation."""
    mode: SessionMode
    busy: bool
    live_running: bool
    clip: Optional[StagedClip]
    error: Optional[str]
    feedback: Tuple[FeedbackEntry, ...]

    @property
    def status_text(self) -> Optional[str]:
        if self.busy:
            return "Analyzing video file..."
        if self.live_running:
            return "Analyzing live webcam feed..."
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "mode": self.mode.value,
            "busy": self.busy,
            "live_running": self.live_running,
            "clip": self.clip.to_dict() if self.clip else None,
            "error": self.error,
            "status_text": self.status_text,
            "feedback": [entry.to_dict() for entry in self.feedback],
        }
