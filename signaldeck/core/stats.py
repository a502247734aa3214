"""
Win-rate / PnL aggregation over signal collections.

Every figure is a fresh reduction over the collection it is given; nothing
is accumulated incrementally, so results stay correct after re-filtering
or replaying the same log.

Day and month keys are the first 10 / 7 characters of ``created_at``.
No timezone conversion is applied; the upstream string is already local.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

from .models import LEVELS, Level, Signal


@dataclass(frozen=True, slots=True)
class StatsBucket:
    total: int = 0
    wins: int = 0
    win_rate: float = 0.0       # fraction in [0, 1]; 0 when total == 0
    pnl: float = 0.0

    @property
    def losses(self) -> int:
        return self.total - self.wins

    def to_dict(self) -> Dict[str, float]:
        return {
            "total": self.total,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
            "pnl": self.pnl,
        }


def summarize(signals: Iterable[Signal]) -> StatsBucket:
    """Reduce a collection to ``{total, wins, win_rate, pnl}``.

    Signals without a ``pnl`` (still pending) count towards ``total`` and
    contribute nothing to ``wins`` or ``pnl``.
    """
    total = 0
    wins = 0
    pnl = 0.0
    for s in signals:
        total += 1
        if s.is_win:
            wins += 1
        if s.pnl is not None:
            pnl += s.pnl
    return StatsBucket(
        total=total,
        wins=wins,
        win_rate=wins / total if total else 0.0,
        pnl=pnl,
    )


def group_by(
    signals: Iterable[Signal], key: Callable[[Signal], str]
) -> Dict[str, StatsBucket]:
    """Partition by *key* and summarize each group; keys come back sorted."""
    groups: Dict[str, List[Signal]] = defaultdict(list)
    for s in signals:
        groups[key(s)].append(s)
    return {k: summarize(groups[k]) for k in sorted(groups)}


def by_level(signals: Iterable[Signal]) -> Dict[Level, StatsBucket]:
    """Per-tier buckets; all four tiers are always present."""
    groups: Dict[Level, List[Signal]] = {level: [] for level in LEVELS}
    for s in signals:
        groups[s.level].append(s)
    return {level: summarize(groups[level]) for level in LEVELS}


def by_day(signals: Iterable[Signal]) -> Dict[str, StatsBucket]:
    return group_by(signals, lambda s: s.created_at[:10])


def by_month(signals: Iterable[Signal]) -> Dict[str, StatsBucket]:
    return group_by(signals, lambda s: s.created_at[:7])
