"""
FastAPI routes for the posturecam service: health, session state and clip upload.
"""
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from posturecam.api.dependencies import get_controller
from posturecam.api.schemas import HealthResponse, SessionStateDTO
from posturecam.core.config import settings
from posturecam.core.logging import get_logger
from posturecam.session.controller import SessionController
from posturecam.session.state import StagedClip

logger = get_logger("api.routes")

router = APIRouter()

PREVIEW_PATH = "/session/clip/preview"


def session_response(controller: SessionController) -> SessionStateDTO:
    """Serialize the controller state, pointing the clip at its preview endpoint."""
    return SessionStateDTO.from_state(
        controller.snapshot(),
        preview_url=f"{settings.api_prefix}{PREVIEW_PATH}",
    )


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.version,
        frame_endpoint_configured=bool(settings.backend_frame_url),
        video_endpoint_configured=bool(settings.backend_video_url),
    )


@router.get("/session", response_model=SessionStateDTO)
async def get_session(controller: SessionController = Depends(get_controller)):
    """Current mode, error and feedback."""
    return session_response(controller)


@router.post("/session/clip", response_model=SessionStateDTO)
async def select_clip(
    file: UploadFile = File(...),
    controller: SessionController = Depends(get_controller),
):
    """Stage a clip for analysis. Ends live capture if it is running."""
    data = await file.read()
    if not data:
        logger.info("Empty upload received, clearing clip selection")
        await controller.select_clip(None)
        return session_response(controller)

    clip = StagedClip(
        filename=file.filename or "video.mp4",
        data=data,
        content_type=file.content_type or "application/octet-stream",
    )
    await controller.select_clip(clip)
    return session_response(controller)


@router.delete("/session/clip", response_model=SessionStateDTO)
async def clear_clip(controller: SessionController = Depends(get_controller)):
    """Clear the staged clip and its preview."""
    await controller.select_clip(None)
    return session_response(controller)


@router.get(PREVIEW_PATH)
async def preview_clip(controller: SessionController = Depends(get_controller)):
    """Serve the staged clip back for playback."""
    clip = controller.clip
    if clip is None:
        raise HTTPException(status_code=404, detail="No clip staged")
    return Response(content=clip.data, media_type=clip.content_type)


@router.post("/session/clip/analyze", response_model=SessionStateDTO)
async def analyze_clip(controller: SessionController = Depends(get_controller)):
    """
    Upload the staged clip to the Analysis Service.

    Failures are reported in the returned state's `error`, never as an HTTP error.
    """
    await controller.analyze_clip()
    return session_response(controller)
