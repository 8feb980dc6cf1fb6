"""
NoteSync Progress.

Tracks how many notes have been synced against a periodically refreshed
total, and projects the remaining time from a moving window of recent
batch durations:

    eta = mean(window) * (total - fetched) / batch_size
"""

import logging
import time
import typing as t
from collections import deque
from dataclasses import dataclass
from datetime import datetime

from .constants import MIN_CURSOR
from .cursor import decode
from .settings import COUNT_INTERVAL, ETA_WINDOW

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """A completed batch, as reported to the display layer."""

    batch: int
    count: int
    fetched: int
    total: int
    cursor: str
    percent: float
    eta: t.Optional[float]
    elapsed: float
    task: t.Any = None
    # creation time the cursor has reached
    reached: t.Optional[datetime] = None


class Progress(object):
    """Progress and eta of a sync run."""

    def __init__(
        self,
        batch_size: int,
        window: int = ETA_WINDOW,
        count_interval: float = COUNT_INTERVAL,
        cursor: str = MIN_CURSOR,
        clock: t.Callable[[], float] = time.monotonic,
    ):
        if window < 1:
            raise ValueError(f"Invalid eta window: {window}")
        self.batch_size: int = batch_size
        self.count_interval: float = count_interval
        self.clock: t.Callable[[], float] = clock
        self.total: int = 0
        self.fetched: int = 0
        self.batches: int = 0
        self.cursor: str = cursor
        self.durations: t.Deque[float] = deque(maxlen=window)
        self.counted_at: t.Optional[float] = None
        self.started_at: float = clock()

    def set_total(self, total: int) -> None:
        """Record a fresh total estimate."""
        if total < self.fetched:
            logger.debug(
                f"Total {total} is behind the {self.fetched} notes fetched"
            )
        self.total = total
        self.counted_at = self.clock()

    def count_due(self) -> bool:
        """True if the total has never been counted or has gone stale."""
        if self.counted_at is None:
            return True
        return self.clock() - self.counted_at >= self.count_interval

    def update(self, count: int, elapsed: float, cursor: str) -> None:
        """
        Record a completed batch.

        Args:
            count (int): notes in the batch.
            elapsed (float): seconds spent fetching and publishing the batch.
            cursor (str): id of the last note in the batch.
        """
        if cursor <= self.cursor:
            raise ValueError(
                f"Cursor must increase: {cursor!r} <= {self.cursor!r}"
            )
        self.fetched += count
        self.batches += 1
        self.cursor = cursor
        # the deque drops the oldest duration once the window is full
        self.durations.append(elapsed)

    @property
    def remaining(self) -> int:
        """Notes left to sync, negative when the total is stale."""
        return self.total - self.fetched

    @property
    def mean_duration(self) -> t.Optional[float]:
        if not self.durations:
            return None
        return sum(self.durations) / len(self.durations)

    @property
    def eta(self) -> t.Optional[float]:
        """Projected seconds left, None until a batch has completed."""
        mean: t.Optional[float] = self.mean_duration
        if mean is None:
            return None
        return max(mean * self.remaining / self.batch_size, 0.0)

    @property
    def percent(self) -> float:
        """Completion for display, clamped to 0-100."""
        if self.total <= 0:
            return 100.0
        return min(max(self.fetched / self.total * 100, 0.0), 100.0)

    @property
    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def event(self, count: int = 0, task: t.Any = None) -> ProgressEvent:
        return ProgressEvent(
            batch=self.batches,
            count=count,
            fetched=self.fetched,
            total=self.total,
            cursor=self.cursor,
            percent=self.percent,
            eta=self.eta,
            elapsed=self.elapsed,
            task=task,
            reached=decode(self.cursor),
        )
