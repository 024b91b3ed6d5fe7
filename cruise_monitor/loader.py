"""
Controller Log Loader
=====================
Reads a controller log CSV into a SampleSeries.

Expected layout (the vehicle writes ", " separators):

    Time [s], Setpoint [m/s], Measurement [m/s], Position [m], Elevation [m], Output [N]
    0, 20, 19.8, 0, 102.5, 310
    ...

Columns are taken by position; the header labels are kept so the annotated
log can be written back with the same header. Any problem with the file is
an InputError - the run never continues on partial data.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .errors import InputError
from .samples import SERIES_COLUMNS, SampleSeries

logger = logging.getLogger(__name__)


def read_log_frame(path: Union[str, Path]) -> pd.DataFrame:
    """
    Read the raw CSV into a numeric DataFrame.

    Raises:
        InputError: Missing/unreadable file, wrong column count, or a
            non-numeric field
    """
    path = Path(path)
    if not path.exists():
        raise InputError(f"Controller log not found: {path}")
    if not path.is_file():
        raise InputError(f"Controller log is not a file: {path}")

    try:
        # Data rows may end in a separator the header lacks
        df = pd.read_csv(path, skipinitialspace=True, index_col=False)
    except pd.errors.EmptyDataError as e:
        raise InputError(f"Controller log is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
        raise InputError(f"Could not read controller log {path}: {e}") from e

    # A trailing separator produces an all-empty unnamed column
    unnamed = [c for c in df.columns if str(c).startswith('Unnamed') and df[c].isna().all()]
    df = df.drop(columns=unnamed)
    df.columns = [str(c).strip() for c in df.columns]

    if df.shape[1] != len(SERIES_COLUMNS):
        raise InputError(
            f"Controller log {path.name} has {df.shape[1]} columns, expected "
            f"{len(SERIES_COLUMNS)} ({', '.join(SERIES_COLUMNS)})"
        )
    if df.empty:
        raise InputError(f"Controller log has a header but no rows: {path}")

    for col in df.columns:
        converted = pd.to_numeric(df[col], errors='coerce')
        bad = converted.isna()
        if bad.any():
            row = int(bad.idxmax())
            raise InputError(
                f"Malformed row {row + 2} in {path.name}: "
                f"column '{col}' has non-numeric value {df[col].iloc[row]!r}"
            )
        df[col] = converted.astype(float)

    return df


def load_controller_log(
    path: Union[str, Path],
    expected_samples: Optional[int] = None,
) -> SampleSeries:
    """
    Load a controller log.

    Args:
        path: CSV file with a header row and six numeric columns
        expected_samples: Required row count (None accepts any)

    Returns:
        SampleSeries with the file's header labels

    Raises:
        InputError: On any read, format or row count problem
    """
    df = read_log_frame(path)

    if expected_samples is not None and len(df) != expected_samples:
        raise InputError(
            f"Controller log {Path(path).name} has {len(df)} rows, expected {expected_samples}"
        )

    series = SampleSeries.from_dataframe(df)
    logger.info(f"Loaded {len(series)} samples from {path}")
    return series
