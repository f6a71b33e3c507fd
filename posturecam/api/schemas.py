"""
API Schemas (DTOs) for the session endpoints.

Every command endpoint answers with the resulting SessionStateDTO so the
front end can redraw from a single response.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

from posturecam.session.state import SessionMode, SessionState


class FeedbackOriginDTO(BaseModel):
    """Where a feedback entry came from."""
    kind: str  # 'batch' or 'live'
    frame: Optional[int] = None
    timestamp: Optional[str] = None


class FeedbackEntryDTO(BaseModel):
    """One analyzed frame."""
    origin: FeedbackOriginDTO
    label: str
    issues: List[str] = Field(default_factory=list)
    is_good: bool
    summary: str


class ClipDTO(BaseModel):
    """Staged clip metadata (the bytes are served by the preview endpoint)."""
    filename: str
    content_type: str
    size: int
    preview_url: Optional[str] = None


class SessionStateDTO(BaseModel):
    """Full session state for presentation."""
    mode: SessionMode
    busy: bool
    live_running: bool
    clip: Optional[ClipDTO] = None
    error: Optional[str] = None
    status_text: Optional[str] = None
    feedback: List[FeedbackEntryDTO] = Field(default_factory=list)

    @classmethod
    def from_state(cls, state: SessionState, preview_url: str = None) -> "SessionStateDTO":
        dto = cls.model_validate(state.to_dict())
        if dto.clip is not None:
            dto.clip.preview_url = preview_url
        return dto


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str
    frame_endpoint_configured: bool = False
    video_endpoint_configured: bool = False
