"""
Tests for signal-log loading, the analysis pipeline and the CLI.

Run with:  python -m pytest tests/test_analysis.py -v
"""

import pytest

from conftest import make_signal
from signaldeck.analysis import SignalFilter, SignalLogError, load_signal_log, run_analysis
from signaldeck.core.models import Direction, Level, SignalStatus
from signaldeck.tools import analyze_log

HEADER = (
    "timestamp,settle_time,symbol,direction,level,confidence,entry_price,"
    "settle_price,bet_amount,is_win,pnl,rsi6,bb_pct,cumulative_pnl\n"
)

ROWS = [
    "2025-03-01 10:00,2025-03-01 10:10,BTCUSDT,LONG,S,0.81,90000,90100,30,True,24.0,28.1,0.05,24.0\n",
    "2025-03-01 10:05,2025-03-01 10:15,BTCUSDT,SHORT,A,0.70,90050,90200,20,False,-20.0,71.0,0.95,4.0\n",
    "2025-03-01 10:12,2025-03-01 10:22,ETHUSDT,UP,B,0.66,3000,3010,10,True,8.0,30.2,0.10,12.0\n",
    "2025-04-02 09:00,2025-04-02 09:10,BTCUSDT,DOWN,C,0.60,91000,90900,5,true,4.0,69.5,0.90,16.0\n",
]


@pytest.fixture
def signal_csv(tmp_path):
    path = tmp_path / "signals.csv"
    path.write_text(HEADER + "".join(ROWS))
    return path


class TestSignalLog:

    def test_rows_become_settled_signals(self, signal_csv):
        signals = load_signal_log(signal_csv)
        assert [s.id for s in signals] == [1, 2, 3, 4]
        first = signals[0]
        assert first.status is SignalStatus.SETTLED
        assert first.direction is Direction.UP
        assert first.level is Level.S
        assert first.created_at == "2025-03-01 10:00"
        assert first.settle_at == "2025-03-01 10:10"
        assert first.pnl == 24.0
        assert signals[1].direction is Direction.DOWN

    def test_is_win_requires_exact_true(self, signal_csv):
        signals = load_signal_log(signal_csv)
        assert [s.is_win for s in signals] == [True, False, True, False]

    def test_missing_column(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("timestamp,symbol\n2025-03-01 10:00,BTCUSDT\n")
        with pytest.raises(SignalLogError, match="settle_time"):
            load_signal_log(path)

    def test_bad_row_reports_line(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text(HEADER + ROWS[0] + ROWS[1].replace("SHORT", "SIDEWAYS"))
        with pytest.raises(SignalLogError, match="line 3"):
            load_signal_log(path)

    def test_header_only(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text(HEADER)
        assert load_signal_log(path) == []


class TestPipeline:

    def _log(self):
        # ETH signal opens first; two BTC signals follow, then one the next day
        return [
            make_signal(1, "2025-03-01 10:00", "2025-03-01 10:15", level="S", symbol="ETHUSDT", pnl=24.0),
            make_signal(2, "2025-03-01 10:05", "2025-03-01 10:12", level="A", is_win=False, pnl=-20.0),
            make_signal(3, "2025-03-01 10:16", "2025-03-01 10:22", level="A", pnl=16.0),
            make_signal(4, "2025-03-02 09:00", "2025-03-02 09:10", level="C", pnl=4.0),
        ]

    def test_slot_limit_runs_before_filters(self):
        # ETH signal 1 holds the only slot until 10:15, so BTC signal 2 is
        # dropped even though ETH is filtered out afterwards
        result = run_analysis(self._log(), SignalFilter(symbol="BTCUSDT"), slot_limit=1)
        assert [s.id for s in result.signals] == [3, 4]
        assert result.admitted == 3
        assert result.dropped_by_slot_limit == 1

    def test_without_cap(self):
        result = run_analysis(self._log(), SignalFilter(symbol="BTCUSDT"), slot_limit=None)
        assert [s.id for s in result.signals] == [2, 3, 4]
        assert result.dropped_by_slot_limit == 0

    def test_summaries(self):
        result = run_analysis(self._log(), slot_limit=None)
        assert result.overall.total == 4
        assert result.overall.wins == 3
        assert result.overall.win_rate == 0.75
        assert result.overall.pnl == pytest.approx(24.0)

        levels = {ls.level: ls for ls in result.by_level}
        assert list(levels) == [Level.S, Level.A, Level.B, Level.C]
        assert levels[Level.A].stats.total == 2
        assert levels[Level.A].bet_amount == 20.0
        assert levels[Level.B].stats.total == 0

        assert list(result.by_day) == ["2025-03-01", "2025-03-02"]
        assert list(result.by_month) == ["2025-03"]

    def test_filters_combine(self):
        log = self._log()
        f = SignalFilter(levels=frozenset({Level.A}), date_prefix="2025-03-01")
        assert [s.id for s in run_analysis(log, f, slot_limit=None).signals] == [2, 3]
        f = SignalFilter(direction=Direction.DOWN)
        assert run_analysis(log, f, slot_limit=None).signals == []

    def test_empty_log(self):
        result = run_analysis([], slot_limit=5)
        assert result.overall.total == 0
        assert result.overall.win_rate == 0.0
        assert result.by_day == {}


class TestAnalyzeLogCli:

    def test_report_printed(self, signal_csv, capsys):
        assert analyze_log.main([str(signal_csv), "--slots", "1"]) == 0
        out = capsys.readouterr().out
        assert "slot limit: 1" in out
        assert "admitted by slot limit: 3  dropped: 1" in out
        assert "2025-04-02" in out

    def test_filters_and_no_cap(self, signal_csv, capsys):
        argv = [str(signal_csv), "--no-slot-limit", "--direction", "LONG", "--level", "S", "--date", "2025-03"]
        assert analyze_log.main(argv) == 0
        out = capsys.readouterr().out
        assert "slot limit: off" in out
        assert "2025-03-01" in out
        assert "2025-04-02" not in out

    def test_missing_file(self, tmp_path, capsys):
        assert analyze_log.main([str(tmp_path / "missing.csv")]) == 1
        assert "file not found" in capsys.readouterr().err

    def test_bad_arguments(self, signal_csv):
        assert analyze_log.main([str(signal_csv), "--slots", "0"]) == 2
        assert analyze_log.main([str(signal_csv), "--direction", "SIDEWAYS"]) == 2

    def test_slots_and_no_cap_are_exclusive(self, signal_csv):
        with pytest.raises(SystemExit):
            analyze_log.main([str(signal_csv), "--slots", "2", "--no-slot-limit"])
