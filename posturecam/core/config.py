"""
Configuration management for the posturecam service.
"""
import os
from typing import Union
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # API Settings
    app_name: str = "posturecam - Bad Posture Detection"
    version: str = "1.0.0"
    api_prefix: str = "/v1"

    # Analysis Service endpoints (never hardcoded, always from the environment)
    backend_video_url: str = os.getenv("BACKEND_VIDEO_URL", "")
    backend_frame_url: str = os.getenv("BACKEND_FRAME_URL", "")

    # Request budgets
    clip_timeout_sec: float = float(os.getenv("CLIP_TIMEOUT_SEC", "600"))  # 10 minutes
    frame_timeout_sec: float = float(os.getenv("FRAME_TIMEOUT_SEC", "10"))

    # Live capture cadence
    capture_interval_ms: int = int(os.getenv("CAPTURE_INTERVAL_MS", "500"))
    live_history_capacity: int = int(os.getenv("LIVE_HISTORY_CAPACITY", "10"))

    # Camera
    camera_source: str = os.getenv("CAMERA_SOURCE", "0")  # device index or stream URL
    camera_width: int = int(os.getenv("CAMERA_WIDTH", "640"))
    camera_height: int = int(os.getenv("CAMERA_HEIGHT", "480"))

    # Frame encoding
    jpeg_quality: int = int(os.getenv("JPEG_QUALITY", "90"))
    frame_image_as_data_url: bool = os.getenv("FRAME_IMAGE_AS_DATA_URL", "true").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    # httpx logs one line per request; live capture issues two a second
    library_log_level: str = os.getenv("LIBRARY_LOG_LEVEL", "WARNING")

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()


def get_camera_source(value: str = None) -> Union[int, str]:
    """Resolve the configured camera source to a device index or a URL."""
    value = settings.camera_source if value is None else value
    value = value.strip()
    if value.isdigit():
        return int(value)
    return value
