"""
Timing utilities for request tracking.
"""
import time
from contextlib import contextmanager
from posturecam.core.logging import get_logger

logger = get_logger("timing")


@contextmanager
def timer(operation_name: str):
    """Context manager for timing operations."""
    start = time.monotonic()
    try:
        yield
    finally:
        duration = time.monotonic() - start
        logger.info(f"{operation_name} took {duration:.2f}s")
