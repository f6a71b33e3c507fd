"""
Live capture endpoints: start and stop webcam analysis.
"""
from fastapi import APIRouter, Depends

from posturecam.api.dependencies import get_controller
from posturecam.api.routes import session_response
from posturecam.api.schemas import SessionStateDTO
from posturecam.core.logging import get_logger
from posturecam.session.controller import SessionController

logger = get_logger("api.live")

router = APIRouter(prefix="/live", tags=["live"])


@router.post("/start", response_model=SessionStateDTO)
async def start_live(controller: SessionController = Depends(get_controller)):
    """Start sampling the camera and analyzing frames. Clears any staged clip."""
    logger.info("Live analysis requested")
    await controller.start_live()
    return session_response(controller)


@router.post("/stop", response_model=SessionStateDTO)
async def stop_live(controller: SessionController = Depends(get_controller)):
    """Stop live analysis. Calling it while stopped changes nothing."""
    logger.info("Live analysis stop requested")
    await controller.stop_live()
    return session_response(controller)
