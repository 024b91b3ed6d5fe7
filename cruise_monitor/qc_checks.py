"""
Pre-Analysis Quality Control Module
====================================
Data quality checks that run before the monitor is allowed to analyze a log.

Key Principle: The monitor will NOT analyze garbage data silently.
If QC fails, analysis is blocked with clear error messages.

QC Check Categories:
1. Timestamp integrity (repeats, consistent with the configured step)
2. Data completeness (expected row count, long enough for the window)
3. Signal sanity (zero setpoints the raw error check will refuse)

Each check returns PASS, WARN, FAIL or SKIP with detailed diagnostics.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List

import numpy as np

from .config_validation import MonitorConfig
from .errors import InputError
from .samples import SampleSeries


class QCStatus(Enum):
    """Quality control check status."""
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"
    SKIP = "SKIP"  # Check not applicable


@dataclass
class QCCheckResult:
    """
    Result of a single QC check.

    Attributes:
        name: Check identifier
        status: PASS, WARN, FAIL, or SKIP
        message: Human-readable result description
        details: Additional diagnostic information
        blocking: If True, FAIL status blocks analysis
    """
    name: str
    status: QCStatus
    message: str
    details: Optional[Dict[str, Any]] = None
    blocking: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'status': self.status.value,
            'message': self.message,
            'details': self.details,
            'blocking': self.blocking,
        }

    def __str__(self) -> str:
        return f"[{self.status.value}] {self.name}: {self.message}"


@dataclass
class QCReport:
    """
    Complete QC report for a log.

    Aggregates all individual check results and determines
    overall pass/fail status.
    """
    checks: List[QCCheckResult] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def passed(self) -> bool:
        """True if no blocking checks failed."""
        return not any(
            c.status == QCStatus.FAIL and c.blocking
            for c in self.checks
        )

    @property
    def has_warnings(self) -> bool:
        return any(c.status == QCStatus.WARN for c in self.checks)

    @property
    def blocking_failures(self) -> List[QCCheckResult]:
        """List of checks that failed and block analysis."""
        return [c for c in self.checks if c.status == QCStatus.FAIL and c.blocking]

    @property
    def warnings(self) -> List[QCCheckResult]:
        return [c for c in self.checks if c.status == QCStatus.WARN]

    @property
    def summary(self) -> Dict[str, int]:
        """Count of checks by status."""
        return {
            'total': len(self.checks),
            'passed': sum(1 for c in self.checks if c.status == QCStatus.PASS),
            'warnings': sum(1 for c in self.checks if c.status == QCStatus.WARN),
            'failed': sum(1 for c in self.checks if c.status == QCStatus.FAIL),
            'skipped': sum(1 for c in self.checks if c.status == QCStatus.SKIP),
        }

    def add_check(self, check: QCCheckResult):
        self.checks.append(check)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'passed': self.passed,
            'has_warnings': self.has_warnings,
            'summary': self.summary,
            'checks': [c.to_dict() for c in self.checks],
            'timestamp': self.timestamp,
            'blocking_failures': [c.to_dict() for c in self.blocking_failures],
        }

    def __str__(self) -> str:
        lines = [
            f"QC Report - {'PASSED' if self.passed else 'FAILED'}",
            f"  Checks: {self.summary['passed']} passed, {self.summary['warnings']} warnings, "
            f"{self.summary['failed']} failed",
            "",
        ]
        for check in self.checks:
            lines.append(f"  {check}")
        return "\n".join(lines)


# =============================================================================
# TIMESTAMP CHECKS
# =============================================================================

def check_timestamp_repeats(series: SampleSeries) -> QCCheckResult:
    """
    Check for repeated timestamps.

    Time going backwards is already rejected when the SampleSeries is built;
    repeated timestamps are tolerated but reported (WARN).
    """
    repeated = np.flatnonzero(np.diff(series.time) == 0)

    if len(repeated) > 0:
        return QCCheckResult(
            name="timestamp_repeats",
            status=QCStatus.WARN,
            message=f"{len(repeated)} repeated timestamp(s)",
            details={'first_repeat_indices': repeated[:5].tolist()},
            blocking=False,
        )

    return QCCheckResult(
        name="timestamp_repeats",
        status=QCStatus.PASS,
        message="Timestamps are strictly increasing",
        details={'n_samples': len(series)},
    )


def check_step_interval(
    series: SampleSeries,
    config: MonitorConfig,
    tolerance: float = 0.05,
) -> QCCheckResult:
    """
    Compare the median logging interval with the configured step interval.

    Rise times are counted in steps of step_interval_s, so a mismatch makes
    them wrong without making them undefined (WARN only).
    """
    if len(series) < 2:
        return QCCheckResult(
            name="step_interval",
            status=QCStatus.SKIP,
            message="Insufficient data for interval check",
            blocking=False,
        )

    median_interval = float(np.median(np.diff(series.time)))
    expected = config.step_interval_s
    deviation = abs(median_interval - expected) / expected

    details = {
        'median_interval_s': median_interval,
        'configured_step_interval_s': expected,
        'deviation_pct': deviation * 100,
    }

    if deviation > tolerance:
        return QCCheckResult(
            name="step_interval",
            status=QCStatus.WARN,
            message=f"Median interval {median_interval:.4f}s differs from configured {expected}s",
            details=details,
            blocking=False,
        )

    return QCCheckResult(
        name="step_interval",
        status=QCStatus.PASS,
        message=f"Logging interval matches {expected}s",
        details=details,
    )


# =============================================================================
# COMPLETENESS CHECKS
# =============================================================================

def check_sample_count(series: SampleSeries, config: MonitorConfig) -> QCCheckResult:
    """Verify the row count when the configuration fixes one."""
    if config.sample_count is None:
        return QCCheckResult(
            name="sample_count",
            status=QCStatus.SKIP,
            message="No expected sample count configured",
            blocking=False,
        )

    if len(series) != config.sample_count:
        return QCCheckResult(
            name="sample_count",
            status=QCStatus.FAIL,
            message=f"Log has {len(series)} samples, expected {config.sample_count}",
            details={'n_samples': len(series), 'expected': config.sample_count},
            blocking=True,
        )

    return QCCheckResult(
        name="sample_count",
        status=QCStatus.PASS,
        message=f"Log has the expected {config.sample_count} samples",
    )


def check_window_length(series: SampleSeries, config: MonitorConfig) -> QCCheckResult:
    """The acceleration window needs more than w samples."""
    window = config.window_samples
    if len(series) <= window:
        return QCCheckResult(
            name="window_length",
            status=QCStatus.FAIL,
            message=f"Log has {len(series)} samples, acceleration window needs more than {window}",
            details={'n_samples': len(series), 'window_samples': window},
            blocking=True,
        )

    return QCCheckResult(
        name="window_length",
        status=QCStatus.PASS,
        message=f"Log covers the {window}-sample acceleration window",
    )


# =============================================================================
# SIGNAL CHECKS
# =============================================================================

def check_zero_setpoint(series: SampleSeries) -> QCCheckResult:
    """
    Flag zero setpoints ahead of time.

    Non-blocking: the raw error stage itself refuses such logs with an
    explicit error.
    """
    zero = np.flatnonzero(series.setpoint == 0)
    if len(zero) > 0:
        return QCCheckResult(
            name="zero_setpoint",
            status=QCStatus.WARN,
            message=f"Setpoint is zero at {len(zero)} sample(s); raw error check will fail",
            details={'first_indices': zero[:5].tolist()},
            blocking=False,
        )

    return QCCheckResult(
        name="zero_setpoint",
        status=QCStatus.PASS,
        message="Setpoint is nonzero throughout",
    )


# =============================================================================
# MAIN QC RUNNER
# =============================================================================

def run_qc_checks(series: SampleSeries, config: MonitorConfig) -> QCReport:
    """
    Run all QC checks on a log.

    This is the main entry point for pre-analysis data validation.

    Args:
        series: Loaded controller log
        config: Monitor configuration

    Returns:
        QCReport with all check results
    """
    report = QCReport()

    report.add_check(check_timestamp_repeats(series))
    report.add_check(check_step_interval(series, config))
    report.add_check(check_sample_count(series, config))
    report.add_check(check_window_length(series, config))
    report.add_check(check_zero_setpoint(series))

    return report


def assert_qc_passed(report: QCReport, raise_on_fail: bool = True) -> bool:
    """
    Check if QC passed and optionally raise on failure.

    Raises:
        InputError: If QC failed and raise_on_fail is True
    """
    if report.passed:
        return True

    if raise_on_fail:
        failure_msgs = [f"  - {f.name}: {f.message}" for f in report.blocking_failures]
        raise InputError("QC FAILED - Analysis blocked:\n" + "\n".join(failure_msgs))

    return False


def format_qc_for_display(report: QCReport) -> str:
    """
    Format QC report for console display.

    Returns:
        Markdown-formatted string
    """
    lines = []

    lines.append(f"## Quality Control: {'PASSED' if report.passed else 'FAILED'}")
    lines.append("")
    lines.append(f"**Summary:** {report.summary['passed']} passed, "
                 f"{report.summary['warnings']} warnings, "
                 f"{report.summary['failed']} failed")
    lines.append("")

    if report.blocking_failures:
        lines.append("### Blocking Failures")
        for check in report.blocking_failures:
            lines.append(f"- **{check.name}**: {check.message}")
        lines.append("")

    if report.warnings:
        lines.append("### Warnings")
        for check in report.warnings:
            lines.append(f"- **{check.name}**: {check.message}")
        lines.append("")

    passed_checks = [c for c in report.checks if c.status == QCStatus.PASS]
    if passed_checks:
        lines.append("### Passed Checks")
        for check in passed_checks:
            lines.append(f"- {check.name}")

    return "\n".join(lines)
