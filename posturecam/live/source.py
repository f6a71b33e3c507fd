"""
Sample sources for live capture.

A source hands out the most recent still on demand. It never blocks waiting
for the device: when no frame is ready yet it returns None and the capture
loop simply skips that tick.
"""
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional, Union

import cv2
import numpy as np

from posturecam.core.config import settings, get_camera_source
from posturecam.core.logging import get_logger

logger = get_logger("live.source")


class SampleSource(ABC):
    """Base class for anything that can produce a still for analysis."""

    def open(self):
        """Acquire the underlying device. No-op by default."""

    def close(self):
        """Release the underlying device. No-op by default."""

    @abstractmethod
    def capture(self) -> Optional[np.ndarray]:
        """
        Return the latest still as an RGB array, or None if not available yet.

        Must return promptly and must not raise for device warm-up or
        transient read failures.
        """

    def __enter__(self) -> "SampleSource":
        self.open()
        return self

    def __exit__(self, *exc_info):
        self.close()


class CameraSource(SampleSource):
    """
    OpenCV camera (or stream URL) with a background reader thread.

    The reader keeps only the newest frame, so capture() is a cheap copy and
    never waits on the device. The reader thread owns the VideoCapture and
    releases it when it exits, so a read blocked inside OpenCV never races
    with the release.
    """

    def __init__(
        self,
        source: Union[int, str] = None,
        width: int = None,
        height: int = None,
        join_timeout: float = 2.0,
    ):
        self.source = get_camera_source() if source is None else source
        self.width = width or settings.camera_width
        self.height = height or settings.camera_height
        self.join_timeout = join_timeout

        self._reader: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None

    @property
    def is_open(self) -> bool:
        return (
            self._reader is not None
            and self._reader.is_alive()
            and not self._stop_event.is_set()
        )

    def open(self):
        """Open the device and start the reader thread."""
        if self.is_open:
            return

        cap = cv2.VideoCapture(self.source)
        if not cap.isOpened():
            # Leave the source closed: capture() keeps returning None
            logger.warning(f"Failed to open camera source {self.source!r}")
            cap.release()
            return

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        # One stop event per reader: a reader left over from an earlier open
        # keeps seeing its own (set) event and never publishes frames again
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(cap, stop_event),
            name="posturecam-camera-reader",
            daemon=True,
        )
        self._reader.start()
        logger.info(f"Camera source {self.source!r} opened ({self.width}x{self.height})")

    def _read_loop(self, cap: cv2.VideoCapture, stop_event: threading.Event):
        try:
            while not stop_event.is_set():
                ok, frame = cap.read()
                if not ok or frame is None:
                    # Transient failure: keep the last good frame and retry shortly
                    time.sleep(0.05)
                    continue
                rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                with self._lock:
                    if stop_event.is_set():
                        break
                    self._latest = rgb
        finally:
            cap.release()
            logger.info(f"Camera source {self.source!r} released")

    def capture(self) -> Optional[np.ndarray]:
        with self._lock:
            latest = self._latest
        if latest is None:
            return None
        return latest.copy()

    def close(self):
        """Stop the reader thread; it releases the device on its way out."""
        reader = self._reader
        if self._stop_event is not None:
            with self._lock:
                self._stop_event.set()
                self._latest = None

        if reader is not None:
            reader.join(timeout=self.join_timeout)
            if reader.is_alive():
                logger.warning(
                    f"Camera reader for {self.source!r} still blocked after "
                    f"{self.join_timeout:.1f}s, device will be released when the read returns"
                )
        self._reader = None
        self._stop_event = None
