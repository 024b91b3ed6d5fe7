"""
Controller Monitor Pipeline
===========================
Runs the complete fault analysis of a controller log.

Stages, strictly ordered by data dependency:
    1. derive_acceleration        setpoint slope over the sampling window
    2. segment_periods            transient / steady-state tiling
    3. extract_elevation_intervals flat / changing elevation tiling
    4. map_hill_intervals         elevation changes inside steady periods
    5. analyze_rise_times         rise time faults + steady-state error
    6. analyze_settling_times     settling time faults per hill
    7. analyze_raw_error          per-sample relative error faults
    8. FaultLedger.summary        counts and fractions per category

Each stage takes the previous stages' immutable results and returns new
immutable results. The fault ledger is the only mutable state and lives for
one run.

Usage:
    from cruise_monitor.pipeline import ControllerMonitor

    monitor = ControllerMonitor(MonitorConfig())
    result = monitor.run(series)
    print(result.summary.total_faults)
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

import numpy as np

from .config_validation import MonitorConfig
from .elevation import (
    ElevationInterval,
    HillInterval,
    extract_elevation_intervals,
    map_hill_intervals,
)
from .fault_ledger import FaultLedger, FaultSummary
from .raw_error import analyze_raw_error
from .rise_time import analyze_rise_times
from .samples import SampleSeries
from .segmentation import (
    SteadyStatePeriod,
    TransientPeriod,
    derive_acceleration,
    segment_periods,
)
from .settling_time import analyze_settling_times

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MonitorResult:
    """
    Complete result of one monitoring run.

    Attributes:
        series: Analyzed log
        config: Configuration used
        accel: Derived setpoint acceleration (length N - w)
        transients: Transient periods with rise times
        steady_states: Steady-state periods with steady-state errors
        elevation_intervals: Flat / changing elevation tiling
        hills: Hill intervals with settling times
        raw_error: setpoint - measurement per sample
        fault_flags: Per-sample fault status
        summary: Fault counts and fractions
    """
    series: SampleSeries
    config: MonitorConfig
    accel: np.ndarray
    transients: Tuple[TransientPeriod, ...]
    steady_states: Tuple[SteadyStatePeriod, ...]
    elevation_intervals: Tuple[ElevationInterval, ...]
    hills: Tuple[HillInterval, ...]
    raw_error: np.ndarray
    fault_flags: np.ndarray
    summary: FaultSummary

    @property
    def n_samples(self) -> int:
        return len(self.series)

    @property
    def total_faults(self) -> int:
        return self.summary.total_faults

    @property
    def changing_elevation_intervals(self) -> Tuple[ElevationInterval, ...]:
        return tuple(iv for iv in self.elevation_intervals if iv.is_changing)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize periods, intervals and summary (not the raw columns)."""
        return {
            'n_samples': self.n_samples,
            'config': self.config.to_dict(),
            'summary': self.summary.to_dict(),
            'transients': [t.to_dict() for t in self.transients],
            'steady_states': [s.to_dict() for s in self.steady_states],
            'elevation_intervals': [e.to_dict() for e in self.elevation_intervals],
            'hills': [h.to_dict() for h in self.hills],
        }


class ControllerMonitor:
    """
    Controller performance monitor.

    Holds only the immutable configuration; every call to run() starts
    from a fresh fault ledger.
    """

    def __init__(self, config: Optional[MonitorConfig] = None):
        self.config = config if config is not None else MonitorConfig()

    def run(self, series: SampleSeries) -> MonitorResult:
        """
        Analyze a complete log.

        Args:
            series: Controller log

        Returns:
            MonitorResult

        Raises:
            InsufficientDataError: Log shorter than the acceleration window
            ZeroSetpointError: Zero setpoint during the raw error check
            AnalysisInvariantViolation: Periods or intervals fail to tile
        """
        config = self.config
        n = len(series)
        logger.info(f"Monitoring {n} samples ({series.duration_s:.1f}s of data)")

        ledger = FaultLedger(n)

        accel = derive_acceleration(series, config)
        transients, steady_states = segment_periods(accel, n, config)
        elevation_intervals = extract_elevation_intervals(series, config)
        hills = map_hill_intervals(steady_states, elevation_intervals)

        transients, steady_states = analyze_rise_times(series, transients, steady_states, config, ledger)
        hills = analyze_settling_times(series, hills, config, ledger)
        raw_error = analyze_raw_error(series, config, ledger)

        summary = ledger.summary()
        logger.info(
            f"Monitoring complete: {summary.total_faults} fault(s) "
            f"({summary.fault_percentage:.2f}% of samples)"
        )

        return MonitorResult(
            series=series,
            config=config,
            accel=accel,
            transients=transients,
            steady_states=steady_states,
            elevation_intervals=elevation_intervals,
            hills=hills,
            raw_error=raw_error,
            fault_flags=ledger.fault_flags,
            summary=summary,
        )


def run_monitor(series: SampleSeries, config: Optional[MonitorConfig] = None) -> MonitorResult:
    """Run the full pipeline with a one-off monitor."""
    return ControllerMonitor(config).run(series)
