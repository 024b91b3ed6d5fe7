"""
Sample Series
=============
Immutable in-memory representation of a logged controller run.

Every downstream stage reads the same SampleSeries; the column arrays are
marked read-only so no stage can mutate the shared data.

Columns (SI units as logged by the vehicle):
    time [s], setpoint [m/s], measurement [m/s], position [m],
    elevation [m], controller_output [N]
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Iterator, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import InputError


# Canonical column order of a controller log
SERIES_COLUMNS: Tuple[str, ...] = (
    'time',
    'setpoint',
    'measurement',
    'position',
    'elevation',
    'controller_output',
)

DEFAULT_HEADER: Tuple[str, ...] = (
    'Time [s]',
    'Setpoint [m/s]',
    'Measurement [m/s]',
    'Longitudinal Position [m]',
    'Elevation [m]',
    'Controller Output [N]',
)


@dataclass(frozen=True)
class Sample:
    """One logged row."""
    index: int
    time: float
    setpoint: float
    measurement: float
    position: float
    elevation: float
    controller_output: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'time': self.time,
            'setpoint': self.setpoint,
            'measurement': self.measurement,
            'position': self.position,
            'elevation': self.elevation,
            'controller_output': self.controller_output,
        }


def _as_readonly(values: Sequence[float], name: str) -> np.ndarray:
    try:
        arr = np.array(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise InputError(f"Column '{name}' is not numeric: {e}") from e
    if arr.ndim != 1:
        raise InputError(f"Column '{name}' must be one-dimensional, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SampleSeries:
    """
    Full controller log.

    Attributes:
        time: Sample times in seconds, non-decreasing
        setpoint: Commanded velocity
        measurement: Measured velocity (process variable)
        position: Longitudinal position
        elevation: Road elevation
        controller_output: Controller force command
        header: Column labels of the source log, kept for write-back
    """
    time: np.ndarray
    setpoint: np.ndarray
    measurement: np.ndarray
    position: np.ndarray
    elevation: np.ndarray
    controller_output: np.ndarray
    header: Tuple[str, ...] = field(default=DEFAULT_HEADER)

    def __post_init__(self):
        """Freeze the columns and validate series consistency."""
        for name in SERIES_COLUMNS:
            object.__setattr__(self, name, _as_readonly(getattr(self, name), name))
        object.__setattr__(self, 'header', tuple(str(h) for h in self.header))

        lengths = {name: len(getattr(self, name)) for name in SERIES_COLUMNS}
        if len(set(lengths.values())) != 1:
            raise InputError(f"Series columns have different lengths: {lengths}")
        if lengths['time'] == 0:
            raise InputError("Series is empty")
        if len(self.header) != len(SERIES_COLUMNS):
            raise InputError(
                f"Header must have {len(SERIES_COLUMNS)} labels, got {len(self.header)}"
            )

        for name in SERIES_COLUMNS:
            values = getattr(self, name)
            if not np.all(np.isfinite(values)):
                bad = np.where(~np.isfinite(values))[0]
                raise InputError(
                    f"Column '{name}' has {len(bad)} non-finite value(s), first at row {int(bad[0])}"
                )

        backwards = np.where(np.diff(self.time) < 0)[0]
        if len(backwards) > 0:
            raise InputError(
                f"Time is not monotonically non-decreasing: "
                f"{len(backwards)} step(s) backwards, first after row {int(backwards[0])}"
            )

    def __len__(self) -> int:
        return len(self.time)

    def __iter__(self) -> Iterator[Sample]:
        for i in range(len(self)):
            yield self.sample(i)

    @property
    def n_samples(self) -> int:
        """Number of samples N."""
        return len(self.time)

    @property
    def duration_s(self) -> float:
        """Time span covered by the log."""
        return float(self.time[-1] - self.time[0])

    def sample(self, index: int) -> Sample:
        """Return the row at index as a Sample."""
        if index < 0 or index >= len(self):
            raise IndexError(f"Sample index {index} out of range [0, {len(self)})")
        return Sample(
            index=index,
            time=float(self.time[index]),
            setpoint=float(self.setpoint[index]),
            measurement=float(self.measurement[index]),
            position=float(self.position[index]),
            elevation=float(self.elevation[index]),
            controller_output=float(self.controller_output[index]),
        )

    def to_dataframe(self, use_header: bool = False) -> pd.DataFrame:
        """
        Convert to a DataFrame.

        Args:
            use_header: Label columns with the source header instead of
                the canonical snake_case names
        """
        labels = self.header if use_header else SERIES_COLUMNS
        return pd.DataFrame({
            label: np.array(getattr(self, name))
            for label, name in zip(labels, SERIES_COLUMNS)
        })

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        header: Optional[Sequence[str]] = None,
    ) -> 'SampleSeries':
        """
        Build a series from a six-column DataFrame.

        Columns are taken by position in the canonical order; the DataFrame
        column labels become the header unless one is given.
        """
        if df.shape[1] != len(SERIES_COLUMNS):
            raise InputError(
                f"Expected {len(SERIES_COLUMNS)} columns "
                f"({', '.join(SERIES_COLUMNS)}), got {df.shape[1]}"
            )
        if header is None:
            header = [str(c).strip() for c in df.columns]
        return cls(
            *(df.iloc[:, i].to_numpy(dtype=float) for i in range(len(SERIES_COLUMNS))),
            header=tuple(header),
        )

    @classmethod
    def from_arrays(
        cls,
        time: Sequence[float],
        setpoint: Sequence[float],
        measurement: Sequence[float],
        position: Optional[Sequence[float]] = None,
        elevation: Optional[Sequence[float]] = None,
        controller_output: Optional[Sequence[float]] = None,
    ) -> 'SampleSeries':
        """Convenience constructor; missing auxiliary columns are zero-filled."""
        n = len(time)
        zeros = np.zeros(n)
        return cls(
            time=time,
            setpoint=setpoint,
            measurement=measurement,
            position=zeros if position is None else position,
            elevation=zeros if elevation is None else elevation,
            controller_output=zeros if controller_output is None else controller_output,
        )
