"""
Result Export
=============
Writes monitoring results back to disk.

Supported Formats:
- Annotated CSV: the input log plus a FaultStatus [0/1] column
- JSON summary: periods, intervals, fault counts and traceability
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

import pandas as pd

from .pipeline import MonitorResult
from .reporting import results_to_dict

logger = logging.getLogger(__name__)


FAULT_STATUS_COLUMN = "FaultStatus [0/1]"


def build_annotated_frame(result: MonitorResult) -> pd.DataFrame:
    """
    Input log columns, labels and order, plus the fault status column.
    """
    df = result.series.to_dataframe(use_header=True)
    df[FAULT_STATUS_COLUMN] = result.fault_flags.astype(int)
    return df


def write_annotated_log(
    result: MonitorResult,
    output_path: Union[str, Path],
) -> Path:
    """
    Write the annotated log as CSV.

    The output may be the input file itself; the whole series is in memory
    by the time this runs.

    Fields are written with plain "," separators and pandas float
    formatting, not the vehicle's ", " layout, so an in-place rewrite
    changes the file's bytes. Values and column order are unchanged.

    Returns:
        Path to the written file
    """
    output_path = Path(output_path)
    build_annotated_frame(result).to_csv(output_path, index=False)
    logger.info(f"Wrote annotated log with {result.n_samples} rows to {output_path}")
    return output_path


def export_summary_json(
    result: MonitorResult,
    output_path: Union[str, Path],
    traceability: Optional[Dict[str, Any]] = None,
) -> Path:
    """
    Export the result summary (without sample columns) as JSON.

    Returns:
        Path to exported file
    """
    output_path = Path(output_path)
    data = results_to_dict(result)
    if traceability:
        data['traceability'] = traceability

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=2, default=str)

    return output_path
