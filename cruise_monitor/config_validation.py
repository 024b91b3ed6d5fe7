"""
Configuration Validation Module
===============================
Schema validation for the monitor configuration using pydantic.

Key Principle: Fail fast on bad configs. A typo in a config should
raise an immediate, clear error - not silently produce wrong results.

The configuration is a single immutable record injected at pipeline
construction. Defaults reproduce the on-vehicle monitor
constants (6000 samples at 10 Hz, setpoint updated every 0.5 s).

Usage:
    from cruise_monitor.config_validation import MonitorConfig, load_monitor_config

    config = MonitorConfig(rise_time_threshold_s=10.0)
    config = load_monitor_config("monitor.yaml")
"""

import json
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigurationError


# Tolerance when checking that sampling_rate / step_interval is an integer
WINDOW_RATIO_TOLERANCE = 1e-6


class MonitorConfig(BaseModel):
    """
    Monitor Configuration
    =====================
    Pipeline-wide constants for one monitoring run.

    All durations are in seconds; error bands are fractions of the setpoint
    (0.05 == +-5%).
    """
    model_config = ConfigDict(frozen=True, extra='forbid')

    sampling_rate_s: float = Field(0.5, gt=0, description="Period at which the setpoint changes")
    step_interval_s: float = Field(0.1, gt=0, description="Logging period of the data")
    sample_count: Optional[int] = Field(None, gt=0, description="Expected number of rows (None: any)")

    rise_time_threshold_s: float = Field(20.0, ge=0, description="Rise time fault threshold")

    settling_error_fraction: float = Field(0.05, gt=0, lt=1, description="Settling band, fraction of setpoint")
    settling_consecutive: int = Field(50, ge=1, description="Consecutive in-band samples required")
    settling_time_threshold_s: float = Field(15.0, ge=0, description="Settling time fault threshold")

    raw_error_fraction: float = Field(0.10, gt=0, description="Max |SP - PV| / SP before a sample is faulty")

    infinite_sentinel: float = Field(-999.0, description="Marker for rise/settling times that never complete")

    accel_tolerance: float = Field(0.0, ge=0, description="|accel| at or below this counts as zero")
    elevation_tolerance: float = Field(0.0, ge=0, description="|d elevation / dt| at or below this counts as flat")

    @field_validator('infinite_sentinel')
    @classmethod
    def validate_sentinel(cls, v):
        # Durations are non-negative, so a negative marker can never collide
        if v >= 0:
            raise ValueError(f"infinite_sentinel must be negative, got {v}")
        return v

    @model_validator(mode='after')
    def check_window(self):
        ratio = self.sampling_rate_s / self.step_interval_s
        window = round(ratio)
        if window < 1 or abs(ratio - window) > WINDOW_RATIO_TOLERANCE:
            raise ValueError(
                f"sampling_rate_s ({self.sampling_rate_s}) must be a positive integer "
                f"multiple of step_interval_s ({self.step_interval_s})"
            )
        return self

    @property
    def window_samples(self) -> int:
        """Number of logged samples per setpoint-change period."""
        return int(round(self.sampling_rate_s / self.step_interval_s))

    def is_infinite(self, value: Optional[float]) -> bool:
        """True if value is the 'never rose/settled' sentinel."""
        return value is not None and value == self.infinite_sentinel

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MonitorConfig':
        """Create from dictionary, wrapping validation errors."""
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Monitor configuration validation failed:\n{e}") from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'MonitorConfig':
        """Load from a JSON or YAML file."""
        return load_monitor_config(path)


def _read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a JSON or YAML config file into a dict."""
    suffix = path.suffix.lower()
    with open(path, 'r', encoding='utf-8') as f:
        if suffix in ('.yaml', '.yml'):
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
        elif suffix == '.json':
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        else:
            raise ConfigurationError(
                f"Unsupported config format '{suffix}' (use .json, .yaml or .yml)"
            )

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration in {path} must be a mapping, got {type(data).__name__}")

    # Allow the settings to be nested under a 'monitor' key
    if 'monitor' in data and isinstance(data['monitor'], dict):
        data = data['monitor']
    return data


def load_monitor_config(path: Union[str, Path]) -> MonitorConfig:
    """
    Load and validate a monitor configuration file.

    Args:
        path: Path to a .json, .yaml or .yml file. Keys may sit at the top
            level or under a 'monitor' section.

    Returns:
        Validated, immutable MonitorConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    return MonitorConfig.from_dict(_read_config_file(path))


def get_default_config() -> MonitorConfig:
    """Default configuration matching the on-vehicle constants."""
    return MonitorConfig()
