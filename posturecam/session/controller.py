"""
Session controller.

Owns the user-facing commands (select clip, analyze clip, start live, stop
live), the mode they put the session in, the feedback history on display and
the single current error. Commands never raise: every failure ends up as the
one error message of the current session.

Each mode entry starts a new session id. Results and errors that arrive for
an older session are dropped, so a request that resolves after the user
moved on cannot touch what is on screen.
"""
import asyncio
import uuid
from datetime import datetime
from typing import Callable, Optional

from posturecam.analysis_client.client import AnalysisClient
from posturecam.analysis_client.errors import AnalysisError, describe_error
from posturecam.core.config import settings
from posturecam.core.logging import get_logger
from posturecam.live.loop import CaptureLoop
from posturecam.live.source import SampleSource
from posturecam.session.history import BatchIndex, FeedbackEntry, FeedbackHistory
from posturecam.session.state import ErrorState, SessionMode, SessionState, StagedClip

logger = get_logger("session.controller")

NO_CLIP_MESSAGE = "Please select a video file to upload."
CLIP_BUSY_MESSAGE = "Video analysis is already in progress."
LIVE_BLOCKED_MESSAGE = "Wait for the video analysis to finish before starting the webcam."


class SessionController:
    """Mode switching, capture loop lifecycle, batch analysis and error state."""

    def __init__(
        self,
        source: SampleSource,
        client: AnalysisClient,
        capture_interval: float = None,
        live_capacity: int = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.source = source
        self.client = client
        self.live_capacity = live_capacity or settings.live_history_capacity
        self.loop = CaptureLoop(
            source,
            client,
            on_error=self._report_live_error,
            on_success=self._report_live_success,
            interval=capture_interval,
            clock=clock,
        )

        self._mode = SessionMode.IDLE
        self._session_id = uuid.uuid4().hex
        self._history = FeedbackHistory()
        self._clip: Optional[StagedClip] = None
        self._busy = False
        self._error: Optional[ErrorState] = None

    # =========================================================================
    # State accessors
    # =========================================================================

    @property
    def mode(self) -> SessionMode:
        return self._mode

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def clip(self) -> Optional[StagedClip]:
        return self._clip

    @property
    def history(self) -> FeedbackHistory:
        return self._history

    @property
    def error(self) -> Optional[str]:
        if self._error is None or self._error.session_id != self._session_id:
            return None
        return self._error.message

    def snapshot(self) -> SessionState:
        return SessionState(
            mode=self._mode,
            busy=self._busy,
            live_running=self.loop.is_running,
            clip=self._clip,
            error=self.error,
            feedback=self._history.snapshot(),
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def _enter(self, mode: SessionMode) -> str:
        """Switch mode under a fresh session id; any previous error is dropped."""
        if mode is not self._mode:
            logger.info(f"Session mode {self._mode.value} -> {mode.value}")
        self._mode = mode
        self._session_id = uuid.uuid4().hex
        self._error = None
        return self._session_id

    def _set_error(self, message: str, session_id: str):
        if session_id != self._session_id:
            logger.debug(f"Ignoring error from stale session {session_id}: {message}")
            return
        self._error = ErrorState(message=message, session_id=session_id)

    def _report_live_error(self, error: Exception, session_id: str):
        self._set_error(describe_error(error, "live analysis"), session_id)

    def _report_live_success(self, session_id: str):
        """A good tick heals the live session: drop its stale error."""
        if session_id == self._session_id and self._error is not None:
            logger.info("Live analysis recovered, clearing error")
            self._error = None

    async def _leave_live(self):
        """Stop the loop and release the camera."""
        self.loop.stop()
        await asyncio.to_thread(self.source.close)

    # =========================================================================
    # Commands
    # =========================================================================

    async def select_clip(self, clip: Optional[StagedClip]):
        """
        Stage a clip for upload, or clear the selection with None.

        Selecting a clip ends live capture and empties the feedback list.
        """
        if clip is None:
            self._clip = None
            if self._mode is SessionMode.UPLOAD:
                self._enter(SessionMode.IDLE)
            return

        if self._mode is SessionMode.LIVE:
            await self._leave_live()

        self._clip = clip
        self._enter(SessionMode.UPLOAD)
        self._history = FeedbackHistory()
        logger.info(f"Clip staged: {clip.filename} ({clip.size} bytes)")

    async def analyze_clip(self):
        """Upload the staged clip and replace the history with its per-frame results."""
        if self._busy:
            self._set_error(CLIP_BUSY_MESSAGE, self._session_id)
            return

        if self._mode is SessionMode.LIVE:
            await self._leave_live()
            self._enter(SessionMode.IDLE)

        if self._clip is None:
            logger.warning("Clip analysis requested without a staged clip")
            self._set_error(NO_CLIP_MESSAGE, self._session_id)
            return

        clip = self._clip
        session_id = self._session_id
        self._busy = True
        self._error = None

        try:
            results = await self.client.analyze_clip(clip.data, clip.filename, clip.content_type)
        except AnalysisError as e:
            logger.error(f"Clip analysis failed: {e}")
            self._set_error(describe_error(e, "video analysis"), session_id)
            return
        except Exception as e:
            logger.error(f"Unexpected error during clip analysis: {e}", exc_info=True)
            self._set_error(describe_error(e, "video analysis"), session_id)
            return
        finally:
            self._busy = False

        if session_id != self._session_id:
            logger.info(f"Discarding clip results for {clip.filename}: session changed")
            return

        self._history.replace_all(
            FeedbackEntry(origin=BatchIndex(index), issues=issues)
            for index, issues in enumerate(results)
        )
        self._error = None
        logger.info(f"Clip {clip.filename} analyzed: {len(results)} frames")

    async def start_live(self):
        """Begin live analysis; clears any staged clip."""
        if self._busy:
            self._set_error(LIVE_BLOCKED_MESSAGE, self._session_id)
            return
        if self._mode is SessionMode.LIVE:
            return

        self._clip = None
        session_id = self._enter(SessionMode.LIVE)
        self._history = FeedbackHistory(capacity=self.live_capacity)

        try:
            await asyncio.to_thread(self.source.open)
        except Exception as e:
            logger.error(f"Could not open sample source: {e}", exc_info=True)
            self._mode = SessionMode.IDLE
            self._set_error(f"Could not start live capture: {e}", session_id)
            return

        if session_id != self._session_id:
            # Another command switched modes while the camera was opening
            await asyncio.to_thread(self.source.close)
            return

        self.loop.start(self._history, session_id)

    async def stop_live(self):
        """End live analysis. Does nothing when live capture is not active."""
        if self._mode is not SessionMode.LIVE:
            return
        await self._leave_live()
        self._enter(SessionMode.IDLE)

    async def aclose(self):
        """Tear everything down: loop, in-flight analyses, camera, HTTP client."""
        await self.loop.aclose()
        await asyncio.to_thread(self.source.close)
        await self.client.close()
        if self._mode is SessionMode.LIVE:
            self._enter(SessionMode.IDLE)
        logger.info("Session controller closed")
