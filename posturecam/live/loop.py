"""
Live capture loop.

While running, the loop samples the source on a fixed cadence and dispatches
every available still to the Analysis Service as an independent task. Ticks
never wait for earlier requests, so several analyses can be in flight at
once and results land in the history in the order they resolve.

Stopping cancels the ticker right away. Requests already in flight are left
to finish, but their results are dropped because they belong to a session
that is no longer current.
"""
import asyncio
import uuid
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Set

from posturecam.analysis_client.client import AnalysisClient
from posturecam.core.config import settings
from posturecam.core.logging import get_logger
from posturecam.live.source import SampleSource
from posturecam.session.history import FeedbackEntry, FeedbackHistory, LiveTimestamp

logger = get_logger("live.loop")

# Called with (error, session_id) when a dispatched analysis fails
ErrorReporter = Callable[[Exception, str], None]
# Called with session_id when a dispatched analysis succeeds
SuccessReporter = Callable[[str], None]


class LoopState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class CaptureLoop:
    """
    Fixed-cadence capture → analyze → history state machine.

    Usage:
        loop = CaptureLoop(CameraSource(), AnalysisClient(), on_error=report, on_success=clear)
        session_id = loop.start(FeedbackHistory(capacity=10))
        ...
        loop.stop()
    """

    def __init__(
        self,
        source: SampleSource,
        client: AnalysisClient,
        on_error: Optional[ErrorReporter] = None,
        on_success: Optional[SuccessReporter] = None,
        interval: float = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            source: Where stills come from
            client: Analysis Service client used for every dispatched still
            on_error: Receives failures of dispatched analyses (current session only)
            on_success: Told about every appended result (current session only)
            interval: Tick period in seconds (default from settings, 0.5s)
            clock: Timestamp source for live entries
        """
        self.source = source
        self.client = client
        self.on_error = on_error
        self.on_success = on_success
        self.interval = interval if interval is not None else settings.capture_interval_ms / 1000.0
        self.clock = clock

        self._state = LoopState.STOPPED
        self._session_id: Optional[str] = None
        self._history: Optional[FeedbackHistory] = None
        self._ticker: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def ticker(self) -> Optional[asyncio.Task]:
        return self._ticker

    def _is_current(self, session_id: str) -> bool:
        return self._state is LoopState.RUNNING and self._session_id == session_id

    def start(self, history: FeedbackHistory, session_id: str = None) -> str:
        """
        Clear the history and begin ticking. Must be called from a running event loop.

        Returns:
            The identifier of the new capture session
        """
        if self.is_running:
            raise RuntimeError("Capture loop is already running")

        session_id = session_id or uuid.uuid4().hex
        history.clear()

        self._history = history
        self._session_id = session_id
        self._state = LoopState.RUNNING
        self._ticker = asyncio.get_running_loop().create_task(
            self._run(session_id), name=f"capture-ticker-{session_id[:8]}"
        )

        logger.info(f"Capture loop started (session={session_id}, interval={self.interval:.3f}s)")
        return session_id

    async def _run(self, session_id: str):
        """Emit ticks on fixed deadlines; missed deadlines are skipped, not replayed."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval

        while self._is_current(session_id):
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            if not self._is_current(session_id):
                break

            self.tick()

            next_tick += self.interval
            now = loop.time()
            if next_tick <= now:
                skipped = int((now - next_tick) // self.interval) + 1
                logger.debug(f"Capture loop behind schedule, skipping {skipped} ticks")
                next_tick += skipped * self.interval

    def tick(self) -> Optional[asyncio.Task]:
        """
        Sample the source once and dispatch the still without waiting for it.

        Returns:
            The dispatched analysis task, or None if nothing was dispatched
        """
        if not self.is_running:
            return None

        try:
            image = self.source.capture()
        except Exception as e:
            logger.warning(f"Sample source failed, skipping tick: {e}")
            return None

        if image is None:
            logger.debug("Sample source not ready, skipping tick")
            return None

        task = asyncio.get_running_loop().create_task(self._analyze(image, self._session_id))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _analyze(self, image, session_id: str):
        try:
            issues = await self.client.analyze_frame(image)
        except Exception as e:
            if not self._is_current(session_id):
                logger.debug(f"Discarding failure from stale session {session_id}: {e}")
                return
            logger.error(f"Live frame analysis failed: {e}")
            if self.on_error:
                self.on_error(e, session_id)
            return

        if not self._is_current(session_id):
            logger.debug(f"Discarding result from stale session {session_id}")
            return

        entry = FeedbackEntry(origin=LiveTimestamp(self.clock()), issues=issues)
        self._history.append(entry)
        logger.debug(f"Live feedback appended: {entry.summary}")
        if self.on_success:
            self.on_success(session_id)

    def stop(self) -> bool:
        """
        Stop ticking immediately. Idempotent.

        Returns:
            True if the loop was running
        """
        if not self.is_running:
            return False

        session_id = self._session_id
        self._state = LoopState.STOPPED
        self._session_id = None
        self._history = None

        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

        logger.info(f"Capture loop stopped (session={session_id}, {self.in_flight} analyses still in flight)")
        return True

    async def aclose(self):
        """Stop and cancel every outstanding task, for teardown."""
        ticker = self._ticker
        self.stop()

        pending = list(self._in_flight)
        if ticker is not None:
            pending.append(ticker)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
