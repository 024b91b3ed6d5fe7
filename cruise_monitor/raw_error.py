"""
Raw Error Analysis
==================
Per-sample relative tracking error, independent of segmentation.

    error[i] = setpoint[i] - measurement[i]
    faulty if |error[i] / setpoint[i]| > raw_error_fraction

A zero setpoint makes the relative error undefined; the whole check is
refused before any sample is flagged.
"""

import logging

import numpy as np

from .config_validation import MonitorConfig
from .errors import ZeroSetpointError
from .fault_ledger import FaultCategory, FaultLedger
from .samples import SampleSeries

logger = logging.getLogger(__name__)


def compute_raw_error(series: SampleSeries) -> np.ndarray:
    """Return the read-only setpoint - measurement signal."""
    error = series.setpoint - series.measurement
    error.setflags(write=False)
    return error


def analyze_raw_error(
    series: SampleSeries,
    config: MonitorConfig,
    ledger: FaultLedger,
) -> np.ndarray:
    """
    Flag samples whose relative raw error exceeds the threshold.

    Samples already flagged by an earlier criterion are not re-counted.

    Args:
        series: Controller log
        config: Monitor configuration (raw_error_fraction)
        ledger: Fault ledger of the current run

    Returns:
        Raw error signal (setpoint - measurement)

    Raises:
        ZeroSetpointError: If any setpoint is exactly zero
    """
    setpoint = series.setpoint
    zero = np.flatnonzero(setpoint == 0)
    if len(zero) > 0:
        raise ZeroSetpointError(zero.tolist(), series.time[zero].tolist())

    error = compute_raw_error(series)
    relative = np.abs(error / setpoint)
    exceeded = np.flatnonzero(relative > config.raw_error_fraction)

    added = ledger.flag_samples(exceeded, FaultCategory.RAW_ERROR)
    logger.debug(
        f"Raw error above {config.raw_error_fraction:.0%} at {len(exceeded)} sample(s), "
        f"{added} newly flagged"
    )
    return error
