"""
Feedback entries and the bounded history shown to the user.

Live mode keeps the most recently appended entries (oldest evicted first);
batch mode replaces the whole history with the clip results in one step.
"""
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union

from posturecam.core.logging import get_logger

logger = get_logger("session.history")

GOOD_POSTURE = "Good Posture"


@dataclass(frozen=True)
class BatchIndex:
    """Origin of an entry produced by clip analysis: position in the result."""
    index: int

    @property
    def label(self) -> str:
        return f"Frame {self.index}"


@dataclass(frozen=True)
class LiveTimestamp:
    """Origin of an entry produced by live analysis: when the result arrived."""
    at: datetime

    @property
    def label(self) -> str:
        return f"Live Frame ({self.at.strftime('%H:%M:%S')})"


Origin = Union[BatchIndex, LiveTimestamp]


@dataclass(frozen=True)
class FeedbackEntry:
    """One analyzed sample. An empty issues tuple means no problems were found."""
    origin: Origin
    issues: Tuple[str, ...] = ()

    def __post_init__(self):
        # Accept any iterable of labels but always store an immutable tuple
        object.__setattr__(self, "issues", tuple(self.issues))

    @property
    def is_good(self) -> bool:
        return not self.issues

    @property
    def label(self) -> str:
        return self.origin.label

    @property
    def summary(self) -> str:
        if self.is_good:
            return GOOD_POSTURE
        return ", ".join(self.issues)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        if isinstance(self.origin, BatchIndex):
            origin = {"kind": "batch", "frame": self.origin.index}
        else:
            origin = {"kind": "live", "timestamp": self.origin.at.isoformat()}
        return {
            "origin": origin,
            "label": self.label,
            "issues": list(self.issues),
            "is_good": self.is_good,
            "summary": self.summary,
        }


class FeedbackHistory:
    """
    Ordered, optionally bounded buffer of feedback entries.

    - capacity=None: unbounded, used for batch results (replaced wholesale)
    - capacity=N: at most N entries, the oldest appended entry is evicted first
    """

    def __init__(self, capacity: Optional[int] = None):
        if capacity is not None and capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: deque[FeedbackEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    def append(self, entry: FeedbackEntry):
        """Insert at the tail, evicting the head when over capacity."""
        if self._capacity is not None and len(self._entries) >= self._capacity:
            evicted = self._entries[0]
            logger.debug(f"History full ({self._capacity}), evicting {evicted.label}")
        self._entries.append(entry)

    def replace_all(self, entries: Iterable[FeedbackEntry]):
        """Atomically replace every entry."""
        new_entries = deque(entries, maxlen=self._capacity)
        self._entries = new_entries

    def clear(self):
        self._entries = deque(maxlen=self._capacity)

    def snapshot(self) -> Tuple[FeedbackEntry, ...]:
        """Read-only ordered view for presentation."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[FeedbackEntry]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"FeedbackHistory(capacity={self._capacity}, size={len(self._entries)})"
