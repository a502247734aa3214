"""
Signal Log Analysis Pipeline
============================

slot limit (full chronological log) -> filters -> stats.

The slot limit runs first because capacity is consumed by every signal
that was dispatched, whatever its level, symbol or direction.  Filtering
first would hide concurrent load and admit too many signals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional

from ..core.models import LEVEL_BET_AMOUNT, LEVELS, Direction, Level, Signal
from ..core.slot_limit import DEFAULT_SLOT_LIMIT, SlotLimitSimulator
from ..core.stats import StatsBucket, by_day, by_level, by_month, summarize


@dataclass(frozen=True)
class SignalFilter:
    """Post-slot-limit filters.  ``None`` / empty means "all"."""
    symbol: Optional[str] = None
    direction: Optional[Direction] = None
    levels: FrozenSet[Level] = frozenset(LEVELS)
    date_prefix: Optional[str] = None   # 'YYYY-MM-DD' or 'YYYY-MM'

    def matches(self, signal: Signal) -> bool:
        if self.symbol is not None and signal.symbol != self.symbol:
            return False
        if self.direction is not None and signal.direction is not self.direction:
            return False
        if self.levels and signal.level not in self.levels:
            return False
        if self.date_prefix and not signal.created_at.startswith(self.date_prefix):
            return False
        return True


@dataclass(frozen=True)
class LevelSummary:
    level: Level
    bet_amount: float
    stats: StatsBucket


@dataclass(frozen=True)
class AnalysisResult:
    signals: List[Signal]
    slot_limit: Optional[int]
    admitted: int                       # after slot limit, before filters
    dropped_by_slot_limit: int
    overall: StatsBucket
    by_level: List[LevelSummary] = field(default_factory=list)
    by_day: Dict[str, StatsBucket] = field(default_factory=dict)
    by_month: Dict[str, StatsBucket] = field(default_factory=dict)


def run_analysis(
    signals: Iterable[Signal],
    signal_filter: Optional[SignalFilter] = None,
    slot_limit: Optional[int] = DEFAULT_SLOT_LIMIT,
) -> AnalysisResult:
    """Replay *signals* under *slot_limit*, filter, and summarize."""
    log = list(signals)
    signal_filter = signal_filter or SignalFilter()

    admitted = SlotLimitSimulator(slot_limit).run(log)
    selected = [s for s in admitted if signal_filter.matches(s)]
    levels = by_level(selected)

    return AnalysisResult(
        signals=selected,
        slot_limit=slot_limit,
        admitted=len(admitted),
        dropped_by_slot_limit=len(log) - len(admitted),
        overall=summarize(selected),
        by_level=[
            LevelSummary(level=lvl, bet_amount=LEVEL_BET_AMOUNT[lvl], stats=levels[lvl])
            for lvl in LEVELS
        ],
        by_day=by_day(selected),
        by_month=by_month(selected),
    )
