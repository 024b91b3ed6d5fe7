"""
Rise Time Analysis
==================
Relative rise time of the measured velocity during each transient.

Rise Time: time for the process variable to go from 10% to 90% of a
relative setpoint step, where the step is taken between the setpoint of the
steady-state period before the transient and the one it drives into.

The scan covers the transient plus the two samples after it, since the
setpoint reached by a step first shows up at the transient's end index.
When the measurement never reaches 90% within that window the rise time is
infinite, the transient is faulty and the steady-state error of the period
that follows is recorded instead.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config_validation import MonitorConfig
from .fault_ledger import FaultCategory, FaultLedger
from .samples import SampleSeries
from .segmentation import (
    SteadyStatePeriod,
    TransientPeriod,
    find_following_steady_state,
    find_preceding_steady_state,
)

logger = logging.getLogger(__name__)


RISE_LOW_FRACTION = 0.1
RISE_HIGH_FRACTION = 0.9


def count_rise_samples(
    measurement: np.ndarray,
    v_initial: float,
    v_final: float,
) -> Optional[int]:
    """
    Count samples spent between 10% and 90% of a relative step.

    The crossing sample (first one at or beyond 90%) is counted and ends
    the scan.

    Args:
        measurement: Measured velocity over the transient
        v_initial: Setpoint before the step
        v_final: Setpoint after the step

    Returns:
        Sample count, or None if 90% is never reached
    """
    step = v_final - v_initial
    if step == 0:
        return 0

    # Progress along the step, so falling steps are handled like rising ones
    progress = (np.asarray(measurement, dtype=float) - v_initial) / step

    count = 0
    for p in progress:
        if p >= RISE_HIGH_FRACTION:
            return count + 1
        if p >= RISE_LOW_FRACTION:
            count += 1
    return None


def analyze_rise_times(
    series: SampleSeries,
    transients: Sequence[TransientPeriod],
    steady_states: Sequence[SteadyStatePeriod],
    config: MonitorConfig,
    ledger: FaultLedger,
) -> Tuple[Tuple[TransientPeriod, ...], Tuple[SteadyStatePeriod, ...]]:
    """
    Compute rise times and steady-state errors, triggering rise time faults.

    Each transient drives into the steady-state period starting right after
    it. v_final is that period's setpoint (the last sample's when the log
    ends mid-transient); v_initial is the setpoint of the period before the
    transient (sample 0 when there is none).

    Args:
        series: Controller log
        transients: Transient periods from segment_periods
        steady_states: Steady-state periods from segment_periods
        config: Monitor configuration
        ledger: Fault ledger of the current run

    Returns:
        New (transients, steady_states) with rise_time and
        steady_state_error filled in
    """
    setpoint = series.setpoint
    measurement = series.measurement

    analyzed_transients: List[TransientPeriod] = []
    steady_errors = {}

    for transient in transients:
        following = find_following_steady_state(transient, steady_states)
        preceding = find_preceding_steady_state(transient, steady_states)

        v_final = float(setpoint[following.setpoint_index if following else len(series) - 1])
        v_initial = float(setpoint[preceding.setpoint_index] if preceding else setpoint[0])

        # The new setpoint first appears at end_index; scan one sample beyond it
        window = measurement[transient.start_index:min(transient.end_index + 2, len(series))]
        count = count_rise_samples(window, v_initial, v_final)

        if count is None:
            rise_time = config.infinite_sentinel
            ledger.trigger_fault(transient.start_index, transient.end_index, FaultCategory.RISE_TIME)

            if following is not None:
                settled = measurement[following.start_index:following.end_index + 1]
                steady_errors[following.start_index] = v_final - float(np.mean(settled))

            logger.debug(
                f"Transient [{transient.start_index}, {transient.end_index}) never reached 90% "
                f"of {v_initial:.2f} -> {v_final:.2f} m/s"
            )
        else:
            rise_time = config.step_interval_s * count
            if following is not None:
                steady_errors[following.start_index] = 0.0
            if rise_time > config.rise_time_threshold_s:
                ledger.trigger_fault(transient.start_index, transient.end_index, FaultCategory.RISE_TIME)
                logger.debug(
                    f"Transient [{transient.start_index}, {transient.end_index}) rise time "
                    f"{rise_time:.2f}s exceeds {config.rise_time_threshold_s}s"
                )

        analyzed_transients.append(transient.with_rise_time(rise_time))

    # Steady periods with no transient in front of them have nothing to rise to
    analyzed_steady = tuple(
        steady.with_steady_state_error(steady_errors.get(steady.start_index, 0.0))
        for steady in steady_states
    )

    n_infinite = sum(1 for t in analyzed_transients if config.is_infinite(t.rise_time))
    logger.debug(f"Rise time analysis: {len(analyzed_transients)} transient(s), {n_infinite} infinite")
    return tuple(analyzed_transients), analyzed_steady
