"""
Tests for KlineContinuityChecker window maintenance and gap detection.

Run with:  python -m pytest tests/test_kline_continuity.py -v
"""

import pytest

from conftest import make_bar
from signaldeck.core.kline_continuity import KlineContinuityChecker, KlineGap, find_gaps
from signaldeck.core.models import KlineUpdate

MIN = 60_000


def _update(ts: int, symbol: str = "BTCUSDT", total: int = 500, close: float = 100.0) -> KlineUpdate:
    return KlineUpdate(symbol=symbol, bar=make_bar(ts, close), total_klines=total)


class TestFindGaps:

    def test_single_gap_reported_with_minute_delta(self):
        bars = [make_bar(t) for t in (0, 60_000, 120_000, 240_000)]
        assert find_gaps(bars) == [
            KlineGap(index=3, prev_time=120_000, curr_time=240_000, gap_minutes=2)
        ]

    def test_contiguous_sequence_has_no_gaps(self):
        assert find_gaps([make_bar(i * MIN) for i in range(10)]) == []

    def test_empty_and_single_bar(self):
        assert find_gaps([]) == []
        assert find_gaps([make_bar(0)]) == []

    def test_duplicate_and_backwards_timestamps_are_gaps(self):
        gaps = find_gaps([make_bar(MIN), make_bar(MIN), make_bar(0)])
        assert [(g.prev_time, g.curr_time) for g in gaps] == [(MIN, MIN), (MIN, 0)]
        assert gaps[1].gap_minutes == -1


class TestChecker:

    def test_initialize_reports_gaps(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=10)
        checker.initialize([make_bar(t) for t in (0, MIN, 2 * MIN, 4 * MIN)], total_klines=1234)
        report = checker.report()
        assert not report.is_continuous
        assert [(g.prev_time, g.curr_time, g.gap_minutes) for g in report.gaps] == [
            (2 * MIN, 4 * MIN, 2)
        ]
        assert report.total_klines == 1234
        assert report.returned == 4
        assert report.first_time == 0
        assert report.last_time == 4 * MIN

    def test_empty_window_is_continuous(self):
        checker = KlineContinuityChecker("BTCUSDT")
        checker.initialize([])
        report = checker.report()
        assert report.is_continuous
        assert report.gaps == []
        assert report.first_time is None and report.last_time is None

    def test_initialize_keeps_newest_limit_bars(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=3)
        checker.initialize([make_bar(i * MIN) for i in range(5)])
        assert [b.timestamp for b in checker.report().klines] == [2 * MIN, 3 * MIN, 4 * MIN]

    def test_same_timestamp_replaces_last_bar(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=5)
        checker.initialize([make_bar(0), make_bar(MIN, close=100.0)])
        assert checker.apply_live_bar(_update(MIN, close=105.0))
        report = checker.report()
        assert report.returned == 2
        assert report.klines[-1].close == 105.0
        assert report.is_continuous

    def test_new_timestamp_appends(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=5)
        checker.initialize([make_bar(0), make_bar(MIN)])
        checker.apply_live_bar(_update(2 * MIN, total=777))
        report = checker.report()
        assert report.returned == 3
        assert report.last_time == 2 * MIN
        assert report.total_klines == 777

    def test_append_past_limit_evicts_oldest(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=3)
        checker.initialize([make_bar(i * MIN) for i in range(3)])
        checker.apply_live_bar(_update(3 * MIN))
        report = checker.report()
        assert report.returned == 3
        assert report.first_time == MIN
        assert report.last_time == 3 * MIN

    def test_live_gap_detected_then_evicted(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=3)
        checker.initialize([make_bar(0), make_bar(MIN)])
        checker.apply_live_bar(_update(3 * MIN))
        assert not checker.is_continuous
        assert checker.gaps[0].gap_minutes == 2

        checker.apply_live_bar(_update(4 * MIN))
        checker.apply_live_bar(_update(5 * MIN))
        assert checker.is_continuous

    def test_other_symbol_is_ignored(self):
        checker = KlineContinuityChecker("BTCUSDT", limit=5)
        checker.initialize([make_bar(0)], total_klines=10)
        before = checker.report()
        assert not checker.apply_live_bar(_update(MIN, symbol="ETHUSDT", total=99))
        assert checker.report() == before

    def test_live_bar_before_initialize_is_ignored(self):
        checker = KlineContinuityChecker("BTCUSDT")
        assert not checker.apply_live_bar(_update(0))
        assert len(checker) == 0

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            KlineContinuityChecker("BTCUSDT", limit=0)
