"""
Cruise Control Monitor
======================
Offline fault analysis of cruise control logs.

Components:
- samples: Immutable six-column sample series
- segmentation: Setpoint acceleration, transient / steady-state periods
- elevation: Flat / changing elevation intervals, hill intervals
- rise_time, settling_time, raw_error: Fault criteria
- fault_ledger: De-duplicated per-sample fault flags and counts
- pipeline: Ordered run of all stages

Adapters:
- config_validation: Pydantic configuration schema (JSON / YAML)
- loader, export: CSV in, annotated CSV / JSON out
- qc_checks: Pre-analysis data quality validation
- reporting: Console and HTML reports
- traceability: File and config hashes, run context

Usage:
    from cruise_monitor import load_controller_log, run_monitor
    from cruise_monitor.export import write_annotated_log

    series = load_controller_log("run_log.csv")
    result = run_monitor(series)
    write_annotated_log(result, "run_log_annotated.csv")
"""

from .errors import (
    MonitorError,
    InputError,
    ConfigurationError,
    DegenerateInputError,
    InsufficientDataError,
    ZeroSetpointError,
    AnalysisInvariantViolation,
)

from .config_validation import (
    MonitorConfig,
    load_monitor_config,
    get_default_config,
)

from .samples import (
    Sample,
    SampleSeries,
    SERIES_COLUMNS,
)

from .segmentation import (
    PeriodType,
    TransientPeriod,
    SteadyStatePeriod,
    derive_acceleration,
    segment_periods,
)

from .elevation import (
    ElevationKind,
    ElevationInterval,
    HillInterval,
    extract_elevation_intervals,
    map_hill_intervals,
)

from .fault_ledger import (
    FaultCategory,
    FaultLedger,
    FaultSummary,
)

from .rise_time import analyze_rise_times
from .settling_time import analyze_settling_times
from .raw_error import analyze_raw_error, compute_raw_error

from .pipeline import (
    ControllerMonitor,
    MonitorResult,
    run_monitor,
)

from .loader import load_controller_log

from .qc_checks import (
    QCStatus,
    QCCheckResult,
    QCReport,
    run_qc_checks,
    assert_qc_passed,
)

from .traceability import PROCESSING_VERSION

__version__ = PROCESSING_VERSION
