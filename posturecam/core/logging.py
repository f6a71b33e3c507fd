"""
Logging for posturecam.

Everything logs under the "posturecam" namespace to stdout. The HTTP stack
gets its own, quieter level: at INFO httpx writes a line for every frame the
capture loop posts, which buries the lifecycle messages that matter.
"""
import logging
import sys
from typing import Iterable, Optional

from posturecam.core.config import settings

APP_LOGGER = "posturecam"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers that emit once per request
REQUEST_LOGGERS = ("httpx", "httpcore")


def parse_level(name: str) -> int:
    """Map a level name such as "debug" to its numeric value."""
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def setup_logging(
    level: str = "INFO",
    library_level: str = "WARNING",
    library_loggers: Iterable[str] = REQUEST_LOGGERS,
) -> logging.Logger:
    """
    Configure stdout logging for the app and quiet the per-request loggers.

    Safe to call more than once: basicConfig leaves an already configured
    root alone, and the levels are simply reapplied.
    """
    app_level = parse_level(level)
    quiet_level = parse_level(library_level)

    logging.basicConfig(
        level=app_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    app_logger = logging.getLogger(APP_LOGGER)
    app_logger.setLevel(app_level)

    for name in library_loggers:
        logging.getLogger(name).setLevel(quiet_level)

    return app_logger


logger = setup_logging(settings.log_level, settings.library_log_level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """`get_logger("live.loop")` -> the "posturecam.live.loop" logger."""
    if name:
        return logging.getLogger(f"{APP_LOGGER}.{name}")
    return logger
