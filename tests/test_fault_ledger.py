"""
Fault Ledger Tests
==================
Tests for de-duplicated fault flagging and the fault summary.

Run with: python -m pytest tests/test_fault_ledger.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from cruise_monitor.fault_ledger import FaultCategory, FaultLedger, FaultSummary


class TestTriggerFault:
    """Tests for FaultLedger.trigger_fault."""

    def test_flags_range(self):
        ledger = FaultLedger(10)
        added = ledger.trigger_fault(2, 5, FaultCategory.RISE_TIME)

        assert added == 3
        assert ledger.fault_flags.tolist() == [False, False, True, True, True] + [False] * 5
        assert ledger.total_faults == 3
        assert ledger.count(FaultCategory.RISE_TIME) == 3

    def test_overlap_counted_once(self):
        ledger = FaultLedger(10)
        ledger.trigger_fault(2, 6, FaultCategory.RISE_TIME)
        added = ledger.trigger_fault(4, 8, FaultCategory.SETTLING_TIME)

        assert added == 2
        assert ledger.total_faults == 6
        assert ledger.count(FaultCategory.RISE_TIME) == 4
        assert ledger.count(FaultCategory.SETTLING_TIME) == 2

    def test_same_range_twice(self):
        ledger = FaultLedger(10)
        ledger.trigger_fault(0, 10, FaultCategory.RISE_TIME)
        assert ledger.trigger_fault(0, 10, FaultCategory.RISE_TIME) == 0
        assert ledger.total_faults == 10

    def test_degenerate_range(self):
        ledger = FaultLedger(10)
        added = ledger.trigger_fault(4, 4, FaultCategory.SETTLING_TIME)

        assert added == 1
        assert ledger.total_faults == 1
        assert ledger.count(FaultCategory.SETTLING_TIME) == 1
        assert not ledger.fault_flags.any()
        assert ledger.summary().degenerate_triggers == 1

    def test_invalid_range(self):
        ledger = FaultLedger(10)
        with pytest.raises(ValueError):
            ledger.trigger_fault(5, 3, FaultCategory.RISE_TIME)
        with pytest.raises(ValueError):
            ledger.trigger_fault(8, 11, FaultCategory.RISE_TIME)
        with pytest.raises(ValueError):
            ledger.trigger_fault(-1, 2, FaultCategory.RISE_TIME)


class TestFlagSamples:
    """Tests for FaultLedger.flag_samples."""

    def test_scattered(self):
        ledger = FaultLedger(10)
        assert ledger.flag_samples([1, 3, 3, 7], FaultCategory.RAW_ERROR) == 3
        assert ledger.is_flagged(3)
        assert not ledger.is_flagged(2)

    def test_skips_flagged(self):
        ledger = FaultLedger(10)
        ledger.trigger_fault(0, 4, FaultCategory.RISE_TIME)
        assert ledger.flag_samples([2, 3, 4, 5], FaultCategory.RAW_ERROR) == 2
        assert ledger.count(FaultCategory.RAW_ERROR) == 2

    def test_empty(self):
        ledger = FaultLedger(10)
        assert ledger.flag_samples([], FaultCategory.RAW_ERROR) == 0

    def test_out_of_range(self):
        ledger = FaultLedger(10)
        with pytest.raises(ValueError):
            ledger.flag_samples([10], FaultCategory.RAW_ERROR)


class TestFaultFlags:
    """Tests for the exported flag array."""

    def test_copy_is_read_only(self):
        ledger = FaultLedger(5)
        flags = ledger.fault_flags
        with pytest.raises(ValueError):
            flags[0] = True

    def test_copy_is_detached(self):
        ledger = FaultLedger(5)
        flags = ledger.fault_flags
        ledger.trigger_fault(0, 5, FaultCategory.RISE_TIME)
        assert not flags.any()


class TestFaultSummary:
    """Tests for FaultLedger.summary and FaultSummary."""

    def test_totals_bounded_by_categories(self):
        rng = np.random.default_rng(7)
        ledger = FaultLedger(500)
        for _ in range(20):
            start = int(rng.integers(0, 500))
            end = int(rng.integers(start, 501))
            ledger.trigger_fault(start, end, FaultCategory(str(rng.choice(['rise_time', 'settling_time']))))
        ledger.flag_samples(rng.integers(0, 500, 100), FaultCategory.RAW_ERROR)

        summary = ledger.summary()
        counts = [summary.count(c) for c in FaultCategory]
        assert max(counts) <= summary.total_faults <= sum(counts)
        assert summary.total_faults == summary.flagged_samples + summary.degenerate_triggers

    def test_percentages(self):
        ledger = FaultLedger(200)
        ledger.trigger_fault(0, 20, FaultCategory.RISE_TIME)
        ledger.flag_samples(range(20, 30), FaultCategory.RAW_ERROR)
        summary = ledger.summary()

        assert summary.fault_percentage == pytest.approx(15.0)
        assert summary.fraction(FaultCategory.RISE_TIME) == pytest.approx(0.10)
        assert summary.fraction(FaultCategory.RAW_ERROR) == pytest.approx(0.05)
        assert summary.fraction(FaultCategory.SETTLING_TIME) == 0.0

    def test_to_dict(self):
        ledger = FaultLedger(10)
        ledger.trigger_fault(0, 1, FaultCategory.RISE_TIME)
        d = ledger.summary().to_dict()

        assert d['total_faults'] == 1
        assert d['category_counts'] == {'rise_time': 1, 'settling_time': 0, 'raw_error': 0}
        assert d['fault_percentage'] == pytest.approx(10.0)

    def test_empty_summary(self):
        summary = FaultSummary(
            n_samples=0, total_faults=0, flagged_samples=0,
            degenerate_triggers=0, category_counts={},
        )
        assert summary.fault_percentage == 0.0
        assert summary.count(FaultCategory.RAW_ERROR) == 0
