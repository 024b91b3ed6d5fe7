"""
Period Segmentation
===================
Splits a controller log into alternating transient and steady-state periods
using a coarse acceleration signal derived from setpoint changes.

The setpoint is only updated once per sampling period (0.5 s by default), so
the acceleration is taken over a window of w = sampling_rate / step_interval
logged samples:

    accel[i] = (setpoint[i + w] - setpoint[i]) / sampling_rate,  i in [0, N - w)

Runs of nonzero acceleration are transients, runs of zero acceleration are
steady-state periods. Because the derivative window truncates the last w
samples, the trailing period is stretched to the end of the log.

Usage:
    from cruise_monitor.segmentation import derive_acceleration, segment_periods

    accel = derive_acceleration(series, config)
    transients, steady_states = segment_periods(accel, len(series), config)
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np

from .config_validation import MonitorConfig
from .errors import AnalysisInvariantViolation, InsufficientDataError
from .samples import SampleSeries

logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================

class PeriodType(Enum):
    """Kind of a setpoint period."""
    TRANSIENT = "transient"
    STEADY_STATE = "steady_state"


@dataclass(frozen=True)
class TransientPeriod:
    """
    Run of nonzero setpoint acceleration.

    Attributes:
        start_index: First sample of the run
        end_index: One past the last sample (exclusive)
        average_accel: Mean acceleration over the run [m/s^2]
        rise_time: Rise time in seconds, the infinite sentinel, or None
            until the rise time analysis has run
    """
    start_index: int
    end_index: int
    average_accel: float
    rise_time: Optional[float] = None

    def __post_init__(self):
        if self.end_index <= self.start_index:
            raise ValueError(
                f"Transient end_index ({self.end_index}) must be > start_index ({self.start_index})"
            )

    @property
    def n_samples(self) -> int:
        return self.end_index - self.start_index

    @property
    def last_index(self) -> int:
        """Last sample belonging to the period (inclusive)."""
        return self.end_index - 1

    def with_rise_time(self, rise_time: float) -> 'TransientPeriod':
        """Return a copy with the rise time filled in."""
        if self.rise_time is not None:
            raise ValueError(f"Rise time already set for transient at {self.start_index}")
        return replace(self, rise_time=rise_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': PeriodType.TRANSIENT.value,
            'start_index': self.start_index,
            'end_index': self.end_index,
            'average_accel': self.average_accel,
            'rise_time': self.rise_time,
        }


@dataclass(frozen=True)
class SteadyStatePeriod:
    """
    Run of zero setpoint acceleration.

    Attributes:
        start_index: First sample of the run
        end_index: Last sample of the run (inclusive)
        setpoint_index: Sample whose setpoint is the period's target
        steady_state_error: Setpoint minus mean measurement when the
            preceding transient never rose, 0 otherwise, None until analyzed
    """
    start_index: int
    end_index: int
    setpoint_index: int
    steady_state_error: Optional[float] = None

    def __post_init__(self):
        if self.end_index < self.start_index:
            raise ValueError(
                f"Steady-state end_index ({self.end_index}) must be >= start_index ({self.start_index})"
            )

    @property
    def n_samples(self) -> int:
        return self.end_index - self.start_index + 1

    @property
    def last_index(self) -> int:
        return self.end_index

    def with_steady_state_error(self, error: float) -> 'SteadyStatePeriod':
        """Return a copy with the steady-state error filled in."""
        if self.steady_state_error is not None:
            raise ValueError(f"Steady-state error already set for period at {self.start_index}")
        return replace(self, steady_state_error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': PeriodType.STEADY_STATE.value,
            'start_index': self.start_index,
            'end_index': self.end_index,
            'setpoint_index': self.setpoint_index,
            'steady_state_error': self.steady_state_error,
        }


# =============================================================================
# Acceleration
# =============================================================================

def derive_acceleration(series: SampleSeries, config: MonitorConfig) -> np.ndarray:
    """
    Derive the coarse setpoint acceleration signal.

    Args:
        series: Controller log
        config: Monitor configuration (sampling rate and window)

    Returns:
        Read-only array of length N - w

    Raises:
        InsufficientDataError: If N <= w
    """
    w = config.window_samples
    n = len(series)
    if n <= w:
        raise InsufficientDataError(n, w)

    setpoint = series.setpoint
    accel = (setpoint[w:] - setpoint[:-w]) / config.sampling_rate_s
    accel.setflags(write=False)

    logger.debug(f"Derived acceleration over window of {w} samples ({len(accel)} values)")
    return accel


# =============================================================================
# Segmentation
# =============================================================================

def find_runs(mask: np.ndarray) -> List[Tuple[int, int, bool]]:
    """
    Split a boolean mask into maximal runs.

    Returns:
        List of (start, end_exclusive, value) tuples in order
    """
    if len(mask) == 0:
        return []

    boundaries = np.where(mask[1:] != mask[:-1])[0] + 1
    starts = np.concatenate([[0], boundaries])
    ends = np.concatenate([boundaries, [len(mask)]])
    return [(int(s), int(e), bool(mask[s])) for s, e in zip(starts, ends)]


def segment_periods(
    accel: np.ndarray,
    n_samples: int,
    config: MonitorConfig,
) -> Tuple[Tuple[TransientPeriod, ...], Tuple[SteadyStatePeriod, ...]]:
    """
    Partition [0, n_samples) into alternating transient and steady periods.

    A nonzero run [a, b) of the acceleration signal becomes a transient
    [a, b); a zero run becomes a steady-state period [a, b - 1] whose target
    setpoint is read at b - 1. The trailing period is stretched to the end
    of the log: a steady period ends at n_samples - 1 (its setpoint index
    stays on the last signal sample), a transient ends at n_samples.

    Args:
        accel: Output of derive_acceleration
        n_samples: Length N of the full series
        config: Monitor configuration (accel_tolerance)

    Returns:
        Tuple of (transients, steady_states), each ordered by start index

    Raises:
        AnalysisInvariantViolation: If the periods fail to tile [0, N)
    """
    if len(accel) == 0 or len(accel) >= n_samples:
        raise AnalysisInvariantViolation(
            f"Acceleration signal length {len(accel)} incompatible with {n_samples} samples"
        )

    nonzero = np.abs(np.asarray(accel)) > config.accel_tolerance
    runs = find_runs(nonzero)

    transients: List[TransientPeriod] = []
    steady_states: List[SteadyStatePeriod] = []

    for k, (start, end, is_transient) in enumerate(runs):
        is_last = k == len(runs) - 1
        if is_transient:
            transients.append(TransientPeriod(
                start_index=start,
                end_index=n_samples if is_last else end,
                average_accel=float(np.mean(accel[start:end])),
            ))
        else:
            steady_states.append(SteadyStatePeriod(
                start_index=start,
                end_index=n_samples - 1 if is_last else end - 1,
                setpoint_index=end - 1,
            ))

    validate_period_tiling(transients, steady_states, n_samples)

    logger.debug(
        f"Segmented {n_samples} samples into {len(transients)} transient and "
        f"{len(steady_states)} steady-state periods"
    )
    return tuple(transients), tuple(steady_states)


def ordered_periods(
    transients: Sequence[TransientPeriod],
    steady_states: Sequence[SteadyStatePeriod],
) -> List[Tuple[PeriodType, int, int]]:
    """
    Merge both period lists into one chronological list.

    Returns:
        List of (period_type, start, end_exclusive)
    """
    periods = [
        (PeriodType.TRANSIENT, t.start_index, t.end_index) for t in transients
    ] + [
        (PeriodType.STEADY_STATE, s.start_index, s.end_index + 1) for s in steady_states
    ]
    return sorted(periods, key=lambda p: p[1])


def validate_period_tiling(
    transients: Sequence[TransientPeriod],
    steady_states: Sequence[SteadyStatePeriod],
    n_samples: int,
) -> None:
    """
    Check that the periods cover [0, n_samples) exactly once and alternate.

    Raises:
        AnalysisInvariantViolation: On any gap, overlap or repeated type
    """
    periods = ordered_periods(transients, steady_states)
    if not periods:
        raise AnalysisInvariantViolation("No periods produced")

    expected_start = 0
    previous_type = None
    for period_type, start, end in periods:
        if start != expected_start:
            kind = "gap" if start > expected_start else "overlap"
            raise AnalysisInvariantViolation(
                f"Period {kind} at sample {min(start, expected_start)}: "
                f"{period_type.value} starts at {start}, expected {expected_start}"
            )
        if period_type == previous_type:
            raise AnalysisInvariantViolation(
                f"Two consecutive {period_type.value} periods at sample {start}"
            )
        expected_start = end
        previous_type = period_type

    if expected_start != n_samples:
        raise AnalysisInvariantViolation(
            f"Periods end at {expected_start}, expected {n_samples}"
        )


def find_following_steady_state(
    transient: TransientPeriod,
    steady_states: Sequence[SteadyStatePeriod],
) -> Optional[SteadyStatePeriod]:
    """Steady period the transient drives into, None if the log ends first."""
    for steady in steady_states:
        if steady.start_index == transient.end_index:
            return steady
    return None


def find_preceding_steady_state(
    transient: TransientPeriod,
    steady_states: Sequence[SteadyStatePeriod],
) -> Optional[SteadyStatePeriod]:
    """Steady period just before the transient, None at the start of the log."""
    for steady in steady_states:
        if steady.end_index == transient.start_index - 1:
            return steady
    return None
