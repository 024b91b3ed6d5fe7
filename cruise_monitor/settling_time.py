"""
Settling Time Analysis
======================
Settling time of the measured velocity after elevation-induced disturbances.

Settling Time: the time required for the process variable's oscillations to
stay within a percentage band of the setpoint (commonly +-2% or +-5%) for a
required number of consecutive samples.

Each hill interval is scanned from its first sample; the first sample that
starts a long enough in-band run defines the settling time. Hills that never
settle, or settle too slowly, are flagged faulty over their whole extent.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config_validation import MonitorConfig
from .elevation import HillInterval
from .fault_ledger import FaultCategory, FaultLedger
from .samples import SampleSeries

logger = logging.getLogger(__name__)


def settling_band(setpoint: float, error_fraction: float) -> Tuple[float, float]:
    """Return (lower, upper) bound of the settling band around a setpoint."""
    half_width = abs(setpoint) * error_fraction
    return setpoint - half_width, setpoint + half_width


def settled_run_starts(in_band: np.ndarray, consecutive: int) -> np.ndarray:
    """
    Mark samples that start a run of `consecutive` in-band samples.

    Returns:
        Boolean array of length len(in_band); runs that would extend past
        the end of the data never qualify
    """
    n = len(in_band)
    starts = np.zeros(n, dtype=bool)
    if consecutive > n:
        return starts

    windows = np.lib.stride_tricks.sliding_window_view(in_band, consecutive)
    starts[:n - consecutive + 1] = windows.all(axis=1)
    return starts


def find_settle_index(
    measurement: np.ndarray,
    start: int,
    end: int,
    lower: float,
    upper: float,
    consecutive: int,
) -> Optional[int]:
    """
    First index j in [start, end] whose next `consecutive` samples are in band.

    The run may extend past `end` but not past the end of the data.
    """
    in_band = (measurement >= lower) & (measurement <= upper)
    qualifying = settled_run_starts(in_band, consecutive)[start:end + 1]
    hits = np.flatnonzero(qualifying)
    if len(hits) == 0:
        return None
    return start + int(hits[0])


def analyze_settling_times(
    series: SampleSeries,
    hills: Sequence[HillInterval],
    config: MonitorConfig,
    ledger: FaultLedger,
) -> Tuple[HillInterval, ...]:
    """
    Compute settling times for each hill, triggering settling time faults.

    The band is centred on the setpoint at the hill's first sample; the
    setpoint is assumed constant across a hill.

    Args:
        series: Controller log
        hills: Hill intervals from map_hill_intervals
        config: Monitor configuration
        ledger: Fault ledger of the current run

    Returns:
        New hill intervals with settling_time and settle_index filled in
    """
    measurement = series.measurement
    analyzed: List[HillInterval] = []

    for hill in hills:
        lower, upper = settling_band(float(series.setpoint[hill.start_index]), config.settling_error_fraction)
        settle_index = find_settle_index(
            measurement, hill.start_index, hill.end_index,
            lower, upper, config.settling_consecutive,
        )

        if settle_index is None:
            settling_time = config.infinite_sentinel
            ledger.trigger_fault(hill.start_index, hill.end_index + 1, FaultCategory.SETTLING_TIME)
            logger.debug(f"Hill [{hill.start_index}, {hill.end_index}] never settled")
        else:
            settling_time = float(series.time[settle_index] - series.time[hill.start_index])
            if settling_time > config.settling_time_threshold_s:
                ledger.trigger_fault(hill.start_index, hill.end_index + 1, FaultCategory.SETTLING_TIME)
                logger.debug(
                    f"Hill [{hill.start_index}, {hill.end_index}] settling time "
                    f"{settling_time:.2f}s exceeds {config.settling_time_threshold_s}s"
                )

        analyzed.append(hill.with_settling(settling_time, settle_index))

    return tuple(analyzed)
