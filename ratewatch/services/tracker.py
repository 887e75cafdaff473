from __future__ import annotations

"""Call volume and block bookkeeping.

Counts successful provider calls in a daily and an ISO-week bucket and keeps a
log of block events (upstream answers with status >= 400, plus failed rate
scrapes). Buckets roll over lazily: ``roll_if_needed()`` compares the stored
keys against the clock and is expected to run at the start of every polling
cycle, so a bucket stays stale while polling is paused.

The block log is unbounded unless ``block_limit`` (>= 1) is given, in which
case the oldest events are discarded first.
"""
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, Optional, Tuple, Union

from ratewatch.services.rates.normalizer import format_timestamp


class BlockReason(str, Enum):
    RATE_LIMITED = "Rate Limit Exceeded"
    HTTP_ERROR = "HTTP Error"
    TIMEOUT = "Request Timeout"
    NOT_FOUND = "Endpoint Not Found"
    MALFORMED = "Malformed Response"
    UNKNOWN = "Unknown"
    SCRAPE_FAILED = "Scraping Failed"
    SCRAPE_EXCEPTION = "Scraping Exception"


@dataclass(frozen=True)
class BlockEvent:
    endpoint: str
    timestamp: str
    status: Optional[int]
    reason: BlockReason


@dataclass
class CounterBucket:
    key: Union[str, int]
    count: int = 0


@dataclass(frozen=True)
class TrackerSnapshot:
    daily: CounterBucket
    weekly: CounterBucket
    blocks: Tuple[BlockEvent, ...]


def day_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d")


def week_key(moment: datetime) -> int:
    return moment.isocalendar()[1]


class CallTracker:
    """Daily/weekly call counters plus the block log, guarded by one lock."""

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        block_limit: Optional[int] = None,
    ):
        if block_limit is not None and block_limit < 1:
            raise ValueError("block_limit must be at least 1")
        self._clock = clock
        self._lock = threading.Lock()
        now = clock()
        self._daily = CounterBucket(day_key(now))
        self._weekly = CounterBucket(week_key(now))
        self._blocks: Deque[BlockEvent] = deque(maxlen=block_limit)

    def roll_if_needed(self) -> None:
        # read and compare atomically; a stale reading must not undo a rollover
        with self._lock:
            now = self._clock()
            today, week = day_key(now), week_key(now)
            if self._daily.key != today:
                self._daily = CounterBucket(today)
            if self._weekly.key != week:
                self._weekly = CounterBucket(week)

    def record_success(self) -> None:
        with self._lock:
            self._daily.count += 1
            self._weekly.count += 1

    def record_block(self, event: BlockEvent) -> None:
        with self._lock:
            self._blocks.append(event)

    def block(
        self, endpoint: str, reason: BlockReason, status: Optional[int] = None
    ) -> BlockEvent:
        """Build a BlockEvent stamped with the tracker clock and record it."""
        with self._lock:
            event = BlockEvent(
                endpoint=endpoint,
                timestamp=format_timestamp(self._clock()),
                status=status,
                reason=reason,
            )
            self._blocks.append(event)
        return event

    def snapshot(self) -> TrackerSnapshot:
        with self._lock:
            return TrackerSnapshot(
                daily=CounterBucket(self._daily.key, self._daily.count),
                weekly=CounterBucket(self._weekly.key, self._weekly.count),
                blocks=tuple(self._blocks),
            )
