"""
posturecam FastAPI application.

API Structure (v1):
- /v1/health - Service health
- /v1/session - Current mode, error and feedback
- /v1/session/clip/* - Select, preview and analyze a pre-recorded clip
- /v1/live/* - Start and stop live webcam analysis
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from posturecam.analysis_client.client import AnalysisClient
from posturecam.api.live import router as live_router
from posturecam.api.routes import router as session_router
from posturecam.core.config import settings
from posturecam.core.logging import get_logger
from posturecam.live.source import CameraSource
from posturecam.session.controller import SessionController

logger = get_logger("main")


def build_controller() -> SessionController:
    """Wire the camera, the Analysis Service client and the controller from settings."""
    return SessionController(
        source=CameraSource(),
        client=AnalysisClient(),
        capture_interval=settings.capture_interval_ms / 1000.0,
        live_capacity=settings.live_history_capacity,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    logger.info("Starting posturecam service")
    logger.info(f"Video analysis endpoint: {settings.backend_video_url or '<unset>'}")
    logger.info(f"Frame analysis endpoint: {settings.backend_frame_url or '<unset>'}")
    logger.info(f"Capture interval: {settings.capture_interval_ms}ms")

    app.state.controller = build_controller()

    yield

    logger.info("Shutting down posturecam service")
    await app.state.controller.aclose()
    app.state.controller = None


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Posture feedback for uploaded clips and live webcam feeds",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(session_router, prefix=settings.api_prefix)  # /v1/health, /v1/session/*
app.include_router(live_router, prefix=settings.api_prefix)     # /v1/live/*


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": settings.version,
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
