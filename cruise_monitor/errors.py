"""
Monitor Exceptions
==================
Failure taxonomy for the controller monitor.

Key Principle: A run either produces a complete, fully annotated result or
fails with one explicit reason. Nothing is retried and nothing is silently
tolerated.

- InputError: the log could not be read or does not look like a controller log
- DegenerateInputError: the log is readable but the analysis is undefined on it
- AnalysisInvariantViolation: internal segmentation bug, always fatal
- ConfigurationError: invalid monitor configuration
"""

from typing import List, Optional


class MonitorError(Exception):
    """Base class for all controller monitor failures."""


class InputError(MonitorError, ValueError):
    """Missing/unreadable source, malformed row or row count mismatch."""


class ConfigurationError(MonitorError, ValueError):
    """Configuration file unreadable or values out of range."""


class DegenerateInputError(MonitorError, ValueError):
    """Input is well formed but the analysis cannot be computed on it."""


class InsufficientDataError(DegenerateInputError):
    """Series too short for the acceleration window."""

    def __init__(self, n_samples: int, window: int):
        self.n_samples = n_samples
        self.window = window
        super().__init__(
            f"Need more than {window} samples to derive acceleration, got {n_samples}"
        )


class ZeroSetpointError(DegenerateInputError):
    """Relative raw error is undefined where the setpoint is zero."""

    def __init__(self, indices: List[int], times: Optional[List[float]] = None):
        self.indices = list(indices)
        self.times = list(times) if times is not None else None
        preview = ", ".join(str(i) for i in self.indices[:5])
        if len(self.indices) > 5:
            preview += ", ..."
        super().__init__(
            f"Setpoint is zero at {len(self.indices)} sample(s) (indices {preview}); "
            f"relative raw error is undefined"
        )


class AnalysisInvariantViolation(MonitorError, RuntimeError):
    """Periods or intervals do not tile the sample range."""
