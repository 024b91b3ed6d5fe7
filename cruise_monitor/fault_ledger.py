"""
Fault Ledger
============
Per-sample fault flags and per-category fault counts for one monitoring run.

De-duplication rule: a sample is counted once, by the first category that
flags it. Later categories skip it. A trigger over an empty range
(start == end) is an interval-level fault: it increments the total and the
category counter by one without flagging any sample. Hence

    total_faults == flagged samples + degenerate triggers
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Iterable

import numpy as np


class FaultCategory(Enum):
    """Fault criteria."""
    RISE_TIME = "rise_time"
    SETTLING_TIME = "settling_time"
    RAW_ERROR = "raw_error"


@dataclass(frozen=True)
class FaultSummary:
    """
    Immutable snapshot of a ledger.

    Attributes:
        n_samples: Size of the log
        total_faults: De-duplicated fault count
        flagged_samples: Number of samples flagged faulty
        degenerate_triggers: Interval-level faults that flag no sample
        category_counts: Faults attributed to each category
    """
    n_samples: int
    total_faults: int
    flagged_samples: int
    degenerate_triggers: int
    category_counts: Dict[FaultCategory, int]

    @property
    def fault_percentage(self) -> float:
        """Total faults as a percentage of samples."""
        return 100.0 * self.total_faults / self.n_samples if self.n_samples else 0.0

    @property
    def category_fractions(self) -> Dict[FaultCategory, float]:
        """Category counts as a fraction of samples."""
        return {
            category: (count / self.n_samples if self.n_samples else 0.0)
            for category, count in self.category_counts.items()
        }

    def count(self, category: FaultCategory) -> int:
        return self.category_counts.get(category, 0)

    def fraction(self, category: FaultCategory) -> float:
        return self.category_fractions.get(category, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'n_samples': self.n_samples,
            'total_faults': self.total_faults,
            'fault_percentage': self.fault_percentage,
            'flagged_samples': self.flagged_samples,
            'degenerate_triggers': self.degenerate_triggers,
            'category_counts': {c.value: n for c, n in self.category_counts.items()},
            'category_fractions': {c.value: f for c, f in self.category_fractions.items()},
        }


class FaultLedger:
    """
    Mutable fault bookkeeping owned by a single pipeline run.

    Usage:
        ledger = FaultLedger(len(series))
        ledger.trigger_fault(10, 25, FaultCategory.RISE_TIME)
        summary = ledger.summary()
    """

    def __init__(self, n_samples: int):
        if n_samples < 0:
            raise ValueError(f"n_samples must be >= 0, got {n_samples}")
        self.n_samples = n_samples
        self._flags = np.zeros(n_samples, dtype=bool)
        self._counts: Dict[FaultCategory, int] = {c: 0 for c in FaultCategory}
        self._total = 0
        self._degenerate = 0

    def trigger_fault(self, start: int, end: int, category: FaultCategory) -> int:
        """
        Flag samples [start, end) for a category.

        Args:
            start: First sample
            end: One past the last sample; start == end records a single
                interval-level fault without flagging a sample
            category: Fault category

        Returns:
            Number of faults added to the total
        """
        if not 0 <= start <= end <= self.n_samples:
            raise ValueError(
                f"Invalid fault range [{start}, {end}) for {self.n_samples} samples"
            )

        if start == end:
            self._total += 1
            self._counts[category] += 1
            self._degenerate += 1
            return 1

        window = self._flags[start:end]
        new = int(np.count_nonzero(~window))
        window[:] = True
        self._total += new
        self._counts[category] += new
        return new

    def flag_samples(self, indices: Iterable[int], category: FaultCategory) -> int:
        """
        Flag scattered samples for a category, skipping already flagged ones.

        Returns:
            Number of newly flagged samples
        """
        idx = np.unique(np.asarray(list(indices), dtype=int))
        if len(idx) == 0:
            return 0
        if idx[0] < 0 or idx[-1] >= self.n_samples:
            raise ValueError(
                f"Sample indices out of range [0, {self.n_samples}): {idx[0]}..{idx[-1]}"
            )

        fresh = idx[~self._flags[idx]]
        self._flags[fresh] = True
        self._total += len(fresh)
        self._counts[category] += len(fresh)
        return len(fresh)

    def is_flagged(self, index: int) -> bool:
        return bool(self._flags[index])

    @property
    def fault_flags(self) -> np.ndarray:
        """Read-only copy of the per-sample flags."""
        flags = self._flags.copy()
        flags.setflags(write=False)
        return flags

    @property
    def total_faults(self) -> int:
        return self._total

    def count(self, category: FaultCategory) -> int:
        return self._counts[category]

    def summary(self) -> FaultSummary:
        """Snapshot the current state."""
        return FaultSummary(
            n_samples=self.n_samples,
            total_faults=self._total,
            flagged_samples=int(np.count_nonzero(self._flags)),
            degenerate_triggers=self._degenerate,
            category_counts=dict(self._counts),
        )
