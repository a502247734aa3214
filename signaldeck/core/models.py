"""
SignalDeck Domain Models
========================

Records exchanged with the Signal Service and the price feed.

Signal timestamps (``created_at`` / ``settle_at``) are kept exactly as the
service sends them: pre-localized ISO-like strings such as
``"2026-01-08 11:41"``.  They sort chronologically as plain strings and
their first 10 / 7 characters are the calendar day / month.

Kline timestamps are int milliseconds (UTC epoch, bucket start).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

KLINE_BUCKET_MS = 60_000


class Direction(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class Level(str, Enum):
    """Confidence / risk tier; drives bet sizing."""
    S = "S"
    A = "A"
    B = "B"
    C = "C"


LEVELS = (Level.S, Level.A, Level.B, Level.C)

# Bet size per tier (U)
LEVEL_BET_AMOUNT = {Level.S: 30.0, Level.A: 20.0, Level.B: 10.0, Level.C: 5.0}


class SignalStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"


# ═══════════════════════════════════════════════════════════════════════════
# Coercion Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data or data[key] is None:
        raise ValueError(f"missing required field {key!r}")
    return data[key]


def _float(data: Mapping[str, Any], key: str) -> float:
    value = _require(data, key)
    if isinstance(value, bool):
        raise ValueError(f"field {key!r} must be numeric, got bool")
    return float(value)


def _opt_float(data: Mapping[str, Any], key: str) -> Optional[float]:
    if data.get(key) is None:
        return None
    return _float(data, key)


def _opt_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return None if value is None else str(value)


def _opt_bool(data: Mapping[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean, got {value!r}")
    return value


# ═══════════════════════════════════════════════════════════════════════════
# Signal
# ═══════════════════════════════════════════════════════════════════════════

_SETTLEMENT_FIELDS = ("settle_at", "settle_price", "is_win", "pnl")


@dataclass(frozen=True, slots=True)
class Settlement:
    """Terminal outcome of one signal, as pushed on the ``settlement`` channel."""
    id: int
    settle_price: float
    settle_at: str
    is_win: bool
    pnl: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settlement:
        is_win = _opt_bool(data, "is_win")
        if is_win is None:
            raise ValueError("missing required field 'is_win'")
        return cls(
            id=int(_require(data, "id")),
            settle_price=_float(data, "settle_price"),
            settle_at=str(_require(data, "settle_at")),
            is_win=is_win,
            pnl=_float(data, "pnl"),
        )


@dataclass(frozen=True, slots=True)
class Signal:
    """One dispatched binary-outcome bet.

    ``status`` is SETTLED iff all of settle_at / settle_price / is_win / pnl
    are present, and PENDING iff all are absent.  Construction rejects any
    other combination.
    """
    id: int
    symbol: str
    direction: Direction
    level: Level
    confidence: float
    entry_price: float
    bet_amount: float
    created_at: str
    status: SignalStatus = SignalStatus.PENDING
    settle_at: Optional[str] = None
    settle_price: Optional[float] = None
    is_win: Optional[bool] = None
    pnl: Optional[float] = None

    def __post_init__(self):
        present = [getattr(self, name) is not None for name in _SETTLEMENT_FIELDS]
        if self.status is SignalStatus.SETTLED and not all(present):
            missing = [n for n, p in zip(_SETTLEMENT_FIELDS, present) if not p]
            raise ValueError(f"settled signal {self.id} missing {', '.join(missing)}")
        if self.status is SignalStatus.PENDING and any(present):
            raise ValueError(f"pending signal {self.id} carries settlement fields")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"signal {self.id} confidence out of range: {self.confidence}")

    @property
    def is_settled(self) -> bool:
        return self.status is SignalStatus.SETTLED

    def settle(self, settlement: Settlement) -> Signal:
        """Return the settled version of this signal.

        Raises:
            ValueError: if the ids differ or this signal is already settled.
        """
        if settlement.id != self.id:
            raise ValueError(f"settlement {settlement.id} does not match signal {self.id}")
        if self.is_settled:
            raise ValueError(f"signal {self.id} is already settled")
        return dataclasses.replace(
            self,
            status=SignalStatus.SETTLED,
            settle_at=settlement.settle_at,
            settle_price=settlement.settle_price,
            is_win=settlement.is_win,
            pnl=settlement.pnl,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Signal:
        """Decode a Signal Service record.

        Raises:
            ValueError: on missing fields, unknown enum values or a record
                violating the settled/pending invariant.
        """
        return cls(
            id=int(_require(data, "id")),
            symbol=str(_require(data, "symbol")),
            direction=Direction(_require(data, "direction")),
            level=Level(_require(data, "level")),
            confidence=_float(data, "confidence"),
            entry_price=_float(data, "entry_price"),
            bet_amount=_float(data, "bet_amount"),
            created_at=str(_require(data, "created_at")),
            status=SignalStatus(data.get("status", SignalStatus.PENDING.value)),
            settle_at=_opt_str(data, "settle_at"),
            settle_price=_opt_float(data, "settle_price"),
            is_win=_opt_bool(data, "is_win"),
            pnl=_opt_float(data, "pnl"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "direction": self.direction.value,
            "level": self.level.value,
            "confidence": self.confidence,
            "entry_price": self.entry_price,
            "bet_amount": self.bet_amount,
            "created_at": self.created_at,
            "status": self.status.value,
            "settle_at": self.settle_at,
            "settle_price": self.settle_price,
            "is_win": self.is_win,
            "pnl": self.pnl,
        }


# ═══════════════════════════════════════════════════════════════════════════
# Klines
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class KlineBar:
    """One 1-minute OHLCV bar; ``timestamp`` is the bucket start in ms."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def time_utc(self) -> str:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M"
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KlineBar:
        return cls(
            timestamp=int(_require(data, "timestamp")),
            open=_float(data, "open"),
            high=_float(data, "high"),
            low=_float(data, "low"),
            close=_float(data, "close"),
            volume=_float(data, "volume"),
        )


@dataclass(frozen=True, slots=True)
class KlineUpdate:
    """Live bar pushed on the ``kline`` channel with the symbol's running bar count."""
    symbol: str
    bar: KlineBar
    total_klines: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KlineUpdate:
        return cls(
            symbol=str(_require(data, "symbol")),
            bar=KlineBar.from_dict(data),
            total_klines=int(_require(data, "total_klines")),
        )


@dataclass(frozen=True, slots=True)
class KlineWindow:
    """Bulk kline fetch result: the newest ``limit`` bars, oldest first."""
    symbol: str
    total_klines: int
    klines: List[KlineBar]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KlineWindow:
        return cls(
            symbol=str(_require(data, "symbol")),
            total_klines=int(data.get("total_klines", 0)),
            klines=[KlineBar.from_dict(k) for k in data.get("klines") or []],
        )


# ═══════════════════════════════════════════════════════════════════════════
# Tickers
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class TickerIndicators:
    """Derived indicators pushed on the signal feed's ``ticker`` channel."""
    symbol: str
    price: float
    rsi6: float
    rsi14: float
    bb_pct: float
    prob_up: float
    prob_down: float
    timestamp: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TickerIndicators:
        return cls(
            symbol=str(_require(data, "symbol")),
            price=_float(data, "price"),
            rsi6=_float(data, "rsi6"),
            rsi14=_float(data, "rsi14"),
            bb_pct=_float(data, "bb_pct"),
            prob_up=_float(data, "prob_up"),
            prob_down=_float(data, "prob_down"),
            timestamp=str(_require(data, "timestamp")),
        )


@dataclass(frozen=True, slots=True)
class PriceTick:
    """Third-party 24h ticker for one symbol."""
    symbol: str
    price: float
    change_24h: float
    change_percent_24h: float


# ═══════════════════════════════════════════════════════════════════════════
# REST payloads
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class SignalPage:
    signals: List[Signal]
    total: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SignalPage:
        signals = [Signal.from_dict(s) for s in data.get("signals") or []]
        return cls(signals=signals, total=int(data.get("total", len(signals))))


@dataclass(frozen=True, slots=True)
class LevelStats:
    total: int
    wins: int
    losses: int
    win_rate: float
    pnl: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LevelStats:
        return cls(
            total=int(data.get("total", 0)),
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            win_rate=float(data.get("win_rate") or 0.0),
            pnl=float(data.get("pnl") or 0.0),
        )


@dataclass(frozen=True, slots=True)
class ServiceStats:
    """Aggregate stats as computed server-side (``/api/stats``)."""
    total_signals: int
    wins: int
    losses: int
    win_rate: float
    total_pnl: float
    by_level: Dict[Level, LevelStats] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ServiceStats:
        by_level = {
            Level(key): LevelStats.from_dict(value)
            for key, value in (data.get("by_level") or {}).items()
        }
        return cls(
            total_signals=int(data.get("total_signals", 0)),
            wins=int(data.get("wins", 0)),
            losses=int(data.get("losses", 0)),
            win_rate=float(data.get("win_rate") or 0.0),
            total_pnl=float(data.get("total_pnl") or 0.0),
            by_level=by_level,
        )


@dataclass(frozen=True, slots=True)
class Health:
    status: str
    service: str
    websocket_connected: bool
    pending_signals: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Health:
        return cls(
            status=str(_require(data, "status")),
            service=str(data.get("service", "")),
            websocket_connected=bool(data.get("websocket_connected", False)),
            pending_signals=int(data.get("pending_signals", 0)),
        )


@dataclass(frozen=True, slots=True)
class ComparisonSide:
    """One side (backtest or live) of a backtest-vs-live comparison."""
    signals: List[Dict[str, Any]]
    count: int
    win_rate: Optional[float]
    pnl: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ComparisonSide:
        signals = list(data.get("signals") or [])
        win_rate = data.get("win_rate")
        return cls(
            signals=signals,
            count=int(data.get("count", len(signals))),
            win_rate=None if win_rate is None else float(win_rate),
            pnl=float(data.get("pnl") or 0.0),
        )


@dataclass(frozen=True, slots=True)
class BacktestComparison:
    """Result of ``/api/backtest/today``: an independent backtest replayed
    over one day next to the signals actually dispatched live."""
    date: str
    mode: str
    backtest: ComparisonSide
    live: ComparisonSide
    common: int
    only_backtest: int
    only_live: int
    match_rate: Optional[float]
    only_backtest_signals: List[Dict[str, Any]] = field(default_factory=list)
    only_live_signals: List[Dict[str, Any]] = field(default_factory=list)
    model_info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BacktestComparison:
        comparison = data.get("comparison") or {}
        match_rate = comparison.get("match_rate")
        return cls(
            date=str(_require(data, "date")),
            mode=str(data.get("mode", "")),
            backtest=ComparisonSide.from_dict(data.get("backtest") or {}),
            live=ComparisonSide.from_dict(data.get("live") or {}),
            common=int(comparison.get("common", 0)),
            only_backtest=int(comparison.get("only_backtest", 0)),
            only_live=int(comparison.get("only_live", 0)),
            match_rate=None if match_rate is None else float(match_rate),
            only_backtest_signals=list(data.get("only_backtest_signals") or []),
            only_live_signals=list(data.get("only_live_signals") or []),
            model_info=dict(data.get("model_info") or {}),
        )
