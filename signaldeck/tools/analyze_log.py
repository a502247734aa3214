"""
Signal Log Analysis Tool
========================

Replays a backtest CSV export under the slot limit and prints win-rate /
PnL tables overall, per level, per month and per day.

Usage::

    python -m signaldeck.tools.analyze_log data/signals.csv
    python -m signaldeck.tools.analyze_log data/signals.csv --slots 3 --level S --level A
    python -m signaldeck.tools.analyze_log data/signals.csv --no-slot-limit --date 2025-03

The default slot count comes from ``analysis.slot_limit`` in
``config/config.yaml`` (5 when no config is present).
"""

import argparse
import sys
from typing import Dict, List, Optional

from ..analysis.pipeline import AnalysisResult, SignalFilter, run_analysis
from ..analysis.signal_log import SignalLogError, load_signal_log, parse_direction
from ..core.config import ConfigurationError, get_slot_limit, load_config
from ..core.models import LEVELS, Level
from ..core.slot_limit import DEFAULT_SLOT_LIMIT
from ..core.stats import StatsBucket


def _default_slot_limit() -> Optional[int]:
    try:
        return get_slot_limit(load_config(), DEFAULT_SLOT_LIMIT)
    except ConfigurationError:
        return DEFAULT_SLOT_LIMIT


def _fmt_row(label: str, s: StatsBucket) -> str:
    return (
        f"{label:<12} {s.total:>7} {s.wins:>7} "
        f"{s.win_rate * 100:>7.1f}% {s.pnl:>+11.2f}"
    )


def _table(title: str, rows: Dict[str, StatsBucket]) -> List[str]:
    lines = ["", title, f"{'':<12} {'total':>7} {'wins':>7} {'win%':>8} {'pnl':>11}"]
    lines.extend(_fmt_row(label, bucket) for label, bucket in rows.items())
    return lines


def format_report(result: AnalysisResult) -> str:
    cap = "off" if result.slot_limit is None else str(result.slot_limit)
    lines = [
        "=" * 52,
        f"SIGNAL LOG ANALYSIS  (slot limit: {cap})",
        "=" * 52,
        f"admitted by slot limit: {result.admitted}  dropped: {result.dropped_by_slot_limit}",
    ]
    lines.extend(_table("Overall", {"all": result.overall}))
    lines.extend(_table(
        "By level",
        {f"{ls.level.value} ({ls.bet_amount:.0f}U)": ls.stats for ls in result.by_level},
    ))
    lines.extend(_table("By month", result.by_month))
    lines.extend(_table("By day", result.by_day))
    return "\n".join(lines)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Replay a signal log under a concurrency cap and summarize it.",
    )
    parser.add_argument("path", help="CSV export of historical signals")
    cap = parser.add_mutually_exclusive_group()
    cap.add_argument("--slots", type=int, help="Max concurrently open positions")
    cap.add_argument(
        "--no-slot-limit", action="store_true", help="Replay every signal (no cap)"
    )
    parser.add_argument("--symbol", help="Only this symbol, e.g. BTCUSDT")
    parser.add_argument("--direction", help="UP/DOWN (LONG/SHORT accepted)")
    parser.add_argument(
        "--level", action="append", choices=[lvl.value for lvl in LEVELS],
        help="Keep this level; repeat for several (default: all)",
    )
    parser.add_argument("--date", help="Day (YYYY-MM-DD) or month (YYYY-MM) prefix")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.no_slot_limit:
        slot_limit = None
    elif args.slots is not None:
        if args.slots < 1:
            print("Error: --slots must be >= 1", file=sys.stderr)
            return 2
        slot_limit = args.slots
    else:
        slot_limit = _default_slot_limit()

    try:
        direction = parse_direction(args.direction) if args.direction else None
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    signal_filter = SignalFilter(
        symbol=args.symbol,
        direction=direction,
        levels=frozenset(Level(lvl) for lvl in args.level) if args.level else frozenset(LEVELS),
        date_prefix=args.date,
    )

    try:
        log = load_signal_log(args.path)
        result = run_analysis(log, signal_filter, slot_limit)
    except FileNotFoundError:
        print(f"Error: file not found: {args.path}", file=sys.stderr)
        return 1
    except (SignalLogError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
