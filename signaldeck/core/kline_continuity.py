"""
Kline Continuity Checker
========================

Maintains a fixed-size window of 1-minute bars for one symbol and reports
every place where the bar cadence breaks.

Window rules
------------
* ``initialize()`` loads the bulk-fetched window (oldest first).  Only the
  newest ``limit`` bars are kept.
* ``apply_live_bar()`` with the same timestamp as the last bar **replaces**
  it (the still-forming bucket changed); any other timestamp is
  **appended** and the oldest bar is evicted once the window exceeds
  ``limit``.
* Updates for another symbol, or arriving before ``initialize()``, are
  ignored.

After every mutation the gap list is recomputed over the whole window:
each adjacent pair must satisfy ``curr.timestamp == prev.timestamp + bucket_ms``.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable, List, Optional

from .logger import get_logger
from .models import KLINE_BUCKET_MS, KlineBar, KlineUpdate

logger = get_logger("kline_continuity")


@dataclass(frozen=True, slots=True)
class KlineGap:
    """A break between two adjacent bars in the window."""
    index: int              # window position of the later bar
    prev_time: int          # ms
    curr_time: int          # ms
    gap_minutes: float


@dataclass(frozen=True, slots=True)
class KlineReport:
    symbol: str
    total_klines: int       # server-reported, independent of window size
    returned: int           # current window size
    is_continuous: bool
    gaps: List[KlineGap] = field(default_factory=list)
    first_time: Optional[int] = None
    last_time: Optional[int] = None
    klines: List[KlineBar] = field(default_factory=list)


def find_gaps(bars: Iterable[KlineBar], bucket_ms: int = KLINE_BUCKET_MS) -> List[KlineGap]:
    """Return every adjacent pair whose successor is not exactly one bucket later."""
    gaps: List[KlineGap] = []
    prev: Optional[KlineBar] = None
    for index, bar in enumerate(bars):
        if prev is not None and bar.timestamp != prev.timestamp + bucket_ms:
            gaps.append(KlineGap(
                index=index,
                prev_time=prev.timestamp,
                curr_time=bar.timestamp,
                gap_minutes=(bar.timestamp - prev.timestamp) / 60_000,
            ))
        prev = bar
    return gaps


class KlineContinuityChecker:
    """Sliding kline window for one symbol with a live gap report."""

    def __init__(self, symbol: str, limit: int = 100, bucket_ms: int = KLINE_BUCKET_MS):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if bucket_ms < 1:
            raise ValueError("bucket_ms must be >= 1")
        self.symbol = symbol
        self.limit = limit
        self.bucket_ms = bucket_ms
        self._bars: Deque[KlineBar] = deque(maxlen=limit)
        self._total_klines = 0
        self._initialized = False
        self._gaps: List[KlineGap] = []

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, bars: Iterable[KlineBar], total_klines: Optional[int] = None) -> None:
        """Replace the window with a bulk-fetched, time-ordered bar sequence."""
        window: Deque[KlineBar] = deque(bars, maxlen=self.limit)
        self._bars = window
        self._total_klines = len(window) if total_klines is None else total_klines
        self._initialized = True
        self._recompute()
        logger.debug(
            "%s window initialized: %d bars, %d gap(s)",
            self.symbol, len(window), len(self._gaps),
        )

    def apply_live_bar(self, update: KlineUpdate) -> bool:
        """Apply one live bar.  Returns False when the update was ignored."""
        if update.symbol != self.symbol:
            return False
        if not self._initialized:
            logger.debug("%s live bar before initial load ignored", self.symbol)
            return False

        bar = update.bar
        if self._bars and self._bars[-1].timestamp == bar.timestamp:
            self._bars[-1] = bar
        else:
            # deque(maxlen) drops the oldest bar
            self._bars.append(bar)
        self._total_klines = update.total_klines
        self._recompute()
        return True

    def _recompute(self) -> None:
        gaps = find_gaps(self._bars, self.bucket_ms)
        if len(gaps) > len(self._gaps):
            latest = gaps[-1]
            logger.warning(
                "%s kline gap: %d -> %d (%.0f min)",
                self.symbol, latest.prev_time, latest.curr_time, latest.gap_minutes,
            )
        self._gaps = gaps

    @property
    def gaps(self) -> List[KlineGap]:
        return list(self._gaps)

    @property
    def is_continuous(self) -> bool:
        return not self._gaps

    def __len__(self) -> int:
        return len(self._bars)

    def report(self) -> KlineReport:
        bars = list(self._bars)
        return KlineReport(
            symbol=self.symbol,
            total_klines=self._total_klines,
            returned=len(bars),
            is_continuous=not self._gaps,
            gaps=list(self._gaps),
            first_time=bars[0].timestamp if bars else None,
            last_time=bars[-1].timestamp if bars else None,
            klines=bars,
        )
