"""
Tests for the slot-limit replay.

Run with:  python -m pytest tests/test_slot_limit.py -v
"""

from collections import namedtuple

import pytest

from conftest import make_signal
from signaldeck.core.slot_limit import SlotLimitSimulator, apply_slot_limit

Entry = namedtuple("Entry", "name entry settle")


def _sim(capacity):
    return SlotLimitSimulator(
        capacity,
        entry_key=lambda e: e.entry,
        settle_key=lambda e: e.settle,
    )


def _names(entries):
    return [e.name for e in entries]


class TestSlotLimit:

    def test_single_slot_drops_overlap(self):
        log = [Entry("A", 0, 10), Entry("B", 5, 15), Entry("C", 12, 20)]
        assert _names(_sim(1).run(log)) == ["A", "C"]

    def test_settlement_at_entry_instant_frees_slot(self):
        log = [Entry("A", 0, 10), Entry("B", 10, 20)]
        assert _names(_sim(1).run(log)) == ["A", "B"]

    def test_capacity_two(self):
        log = [
            Entry("A", 0, 30),
            Entry("B", 5, 12),
            Entry("C", 6, 40),   # both slots busy
            Entry("D", 12, 50),  # B settled at 12
            Entry("E", 20, 25),  # A and D still open
            Entry("F", 30, 35),  # A settled at 30
        ]
        assert _names(_sim(2).run(log)) == ["A", "B", "D", "F"]

    def test_disabled_cap_is_identity(self):
        log = [Entry("A", 0, 100), Entry("B", 1, 100), Entry("C", 2, 100)]
        result = _sim(None).run(log)
        assert result == log
        assert result is not log

    def test_empty_log(self):
        assert _sim(5).run([]) == []

    def test_unsettled_signal_holds_its_slot(self):
        log = [Entry("A", 0, None), Entry("B", 100, 110)]
        assert _names(_sim(1).run(log)) == ["A"]

    def test_out_of_order_log_rejected(self):
        with pytest.raises(ValueError):
            _sim(1).run([Entry("A", 5, 10), Entry("B", 1, 2)])

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            SlotLimitSimulator(capacity)

    def test_signals_use_iso_timestamps(self):
        log = [
            make_signal(1, created_at="2025-03-01 10:00", settle_at="2025-03-01 10:10"),
            make_signal(2, created_at="2025-03-01 10:05", settle_at="2025-03-01 10:15"),
            make_signal(3, created_at="2025-03-01 10:12", settle_at="2025-03-01 10:20"),
        ]
        assert [s.id for s in apply_slot_limit(log, 1)] == [1, 3]
        assert apply_slot_limit(log, None) == log
