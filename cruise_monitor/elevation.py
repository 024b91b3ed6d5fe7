"""
Elevation Intervals and Hill Mapping
====================================
Finds where the road elevation changes and maps those windows onto the
steady-state periods, where a hill is a disturbance the controller has to
reject without a setpoint change.

Elevation slope is taken as forward differences:

    d[i] = (elevation[i + 1] - elevation[i]) / step_interval

A changing step followed by a flat one closes a "changing" interval and opens
a "flat" one at i + 1, and the reverse. The intervals alternate and tile the
whole log.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np

from .config_validation import MonitorConfig
from .errors import AnalysisInvariantViolation
from .samples import SampleSeries
from .segmentation import SteadyStatePeriod, find_runs

logger = logging.getLogger(__name__)


class ElevationKind(Enum):
    """Kind of an elevation interval."""
    FLAT = "flat"
    CHANGING = "changing"


@dataclass(frozen=True)
class ElevationInterval:
    """Run of flat or changing elevation, [start_index, end_index)."""
    start_index: int
    end_index: int
    kind: ElevationKind

    def __post_init__(self):
        if self.end_index <= self.start_index:
            raise ValueError(
                f"Elevation interval end_index ({self.end_index}) must be > start_index ({self.start_index})"
            )

    @property
    def is_changing(self) -> bool:
        return self.kind == ElevationKind.CHANGING

    @property
    def last_index(self) -> int:
        return self.end_index - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_index': self.start_index,
            'end_index': self.end_index,
            'kind': self.kind.value,
        }


@dataclass(frozen=True)
class HillInterval:
    """
    Elevation change inside a steady-state period.

    Attributes:
        start_index: First sample of the elevation change
        end_index: Last sample evaluated (inclusive), clipped to the
            enclosing steady-state period
        settling_time: Seconds from start until the measurement settled,
            the infinite sentinel, or None until analyzed
        settle_index: Sample at which the settled run begins, if any
    """
    start_index: int
    end_index: int
    settling_time: Optional[float] = None
    settle_index: Optional[int] = None

    def __post_init__(self):
        if self.end_index < self.start_index:
            raise ValueError(
                f"Hill end_index ({self.end_index}) must be >= start_index ({self.start_index})"
            )

    @property
    def n_samples(self) -> int:
        return self.end_index - self.start_index + 1

    def with_settling(self, settling_time: float, settle_index: Optional[int]) -> 'HillInterval':
        """Return a copy with the settling result filled in."""
        if self.settling_time is not None:
            raise ValueError(f"Settling time already set for hill at {self.start_index}")
        return replace(self, settling_time=settling_time, settle_index=settle_index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_index': self.start_index,
            'end_index': self.end_index,
            'settling_time': self.settling_time,
            'settle_index': self.settle_index,
        }


# =============================================================================
# Elevation intervals
# =============================================================================

def extract_elevation_intervals(
    series: SampleSeries,
    config: MonitorConfig,
) -> Tuple[ElevationInterval, ...]:
    """
    Partition the log into alternating flat / changing elevation intervals.

    The log is assumed to start flat; only when the very first step already
    changes does the leading interval become a changing one. The last
    interval always closes at the end of the log.

    Args:
        series: Controller log
        config: Monitor configuration (step_interval_s, elevation_tolerance)

    Returns:
        Ordered tuple of intervals tiling [0, N)

    Raises:
        AnalysisInvariantViolation: If the intervals fail to tile [0, N)
    """
    n = len(series)
    slope = np.diff(series.elevation) / config.step_interval_s
    changing = np.abs(slope) > config.elevation_tolerance

    intervals: List[ElevationInterval] = []
    runs = find_runs(changing)
    if not runs:
        intervals.append(ElevationInterval(0, n, ElevationKind.FLAT))
    else:
        # A run of steps [a, b) moves the interval boundary to sample b; the
        # first interval starts at 0 and the last one absorbs the final sample
        for k, (start, end, is_changing) in enumerate(runs):
            interval_end = n if k == len(runs) - 1 else end
            kind = ElevationKind.CHANGING if is_changing else ElevationKind.FLAT
            intervals.append(ElevationInterval(start, interval_end, kind))

    validate_interval_tiling(intervals, n)

    n_changing = sum(1 for iv in intervals if iv.is_changing)
    logger.debug(f"Found {n_changing} elevation change interval(s) in {len(intervals)} total")
    return tuple(intervals)


def validate_interval_tiling(intervals: Sequence[ElevationInterval], n_samples: int) -> None:
    """
    Check that elevation intervals alternate kinds and cover [0, n_samples).

    Raises:
        AnalysisInvariantViolation: On any gap, overlap or repeated kind
    """
    if not intervals:
        raise AnalysisInvariantViolation("No elevation intervals produced")

    expected_start = 0
    previous_kind = None
    for interval in intervals:
        if interval.start_index != expected_start:
            raise AnalysisInvariantViolation(
                f"Elevation interval starts at {interval.start_index}, expected {expected_start}"
            )
        if interval.kind == previous_kind:
            raise AnalysisInvariantViolation(
                f"Two consecutive {interval.kind.value} elevation intervals at {interval.start_index}"
            )
        expected_start = interval.end_index
        previous_kind = interval.kind

    if expected_start != n_samples:
        raise AnalysisInvariantViolation(
            f"Elevation intervals end at {expected_start}, expected {n_samples}"
        )


# =============================================================================
# Hill mapping
# =============================================================================

def map_hill_intervals(
    steady_states: Sequence[SteadyStatePeriod],
    elevation_intervals: Sequence[ElevationInterval],
) -> Tuple[HillInterval, ...]:
    """
    Intersect elevation changes with steady-state periods.

    Every changing interval that begins inside a steady-state period yields a
    hill from its start to the earlier of its own last sample and the
    period's end.

    Args:
        steady_states: Output of segment_periods
        elevation_intervals: Output of extract_elevation_intervals

    Returns:
        Hill intervals ordered by start index
    """
    hills: List[HillInterval] = []

    for steady in steady_states:
        for interval in elevation_intervals:
            if not interval.is_changing:
                continue
            if steady.start_index <= interval.start_index <= steady.end_index:
                hills.append(HillInterval(
                    start_index=interval.start_index,
                    end_index=min(interval.last_index, steady.end_index),
                ))

    hills.sort(key=lambda h: h.start_index)
    logger.debug(f"Mapped {len(hills)} hill interval(s) onto {len(steady_states)} steady-state period(s)")
    return tuple(hills)
