"""
Historical Signal Log
=====================

Loads the backtest CSV export into settled :class:`Signal` records.

The export is a flat table with a header row::

    timestamp,settle_time,symbol,direction,level,confidence,entry_price,
    settle_price,bet_amount,is_win,pnl,rsi6,bb_pct,cumulative_pnl

* numeric columns are parsed as floats
* ``is_win`` is true iff the cell reads exactly ``True``
* ``LONG`` / ``SHORT`` directions map to ``UP`` / ``DOWN``
* rows are numbered from 1 and that number becomes the signal id

Indicator columns (``rsi6``, ``bb_pct``, ``cumulative_pnl``) are not
carried over.
"""

from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from ..core.models import Direction, Level, Signal, SignalStatus

REQUIRED_COLUMNS = (
    "timestamp", "settle_time", "symbol", "direction", "level", "confidence",
    "entry_price", "settle_price", "bet_amount", "is_win", "pnl",
)

_DIRECTION_ALIASES: Dict[str, Direction] = {
    "LONG": Direction.UP,
    "SHORT": Direction.DOWN,
    "UP": Direction.UP,
    "DOWN": Direction.DOWN,
}


class SignalLogError(ValueError):
    """The CSV export is missing columns or holds an unparsable row."""


def parse_direction(text: str) -> Direction:
    try:
        return _DIRECTION_ALIASES[text.strip().upper()]
    except KeyError:
        raise ValueError(f"unknown direction {text!r}") from None


def _row_to_signal(row_id: int, row: Dict[str, str]) -> Signal:
    return Signal(
        id=row_id,
        symbol=row["symbol"],
        direction=parse_direction(row["direction"]),
        level=Level(row["level"].strip()),
        confidence=float(row["confidence"]),
        entry_price=float(row["entry_price"]),
        bet_amount=float(row["bet_amount"]),
        created_at=row["timestamp"],
        status=SignalStatus.SETTLED,
        settle_at=row["settle_time"],
        settle_price=float(row["settle_price"]),
        is_win=row["is_win"] == "True",
        pnl=float(row["pnl"]),
    )


def load_signal_log(path: Union[str, Path]) -> List[Signal]:
    """Parse a backtest CSV export, keeping file order.

    Raises:
        FileNotFoundError: if *path* does not exist
        SignalLogError: on missing columns or an unparsable row
    """
    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise SignalLogError(f"{path}: missing column(s) {', '.join(missing)}")

    signals: List[Signal] = []
    for row_id, row in enumerate(frame.to_dict(orient="records"), start=1):
        try:
            signals.append(_row_to_signal(row_id, row))
        except (KeyError, ValueError) as e:
            # +1 for the header line
            raise SignalLogError(f"{path}: line {row_id + 1}: {e}") from e
    return signals
