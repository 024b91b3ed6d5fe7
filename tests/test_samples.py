"""
Sample Series Tests
===================
Tests for the immutable SampleSeries container.

Run with: python -m pytest tests/test_samples.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from cruise_monitor.errors import InputError
from cruise_monitor.samples import DEFAULT_HEADER, SERIES_COLUMNS, SampleSeries


def create_columns(n=10):
    t = np.arange(n) * 0.1
    return {
        'time': t,
        'setpoint': np.full(n, 10.0),
        'measurement': np.full(n, 9.8),
        'position': t * 10,
        'elevation': np.full(n, 100.0),
        'controller_output': np.full(n, 300.0),
    }


class TestSampleSeries:
    """Tests for SampleSeries construction and validation."""

    def test_construction(self):
        series = SampleSeries(**create_columns())

        assert len(series) == 10
        assert series.n_samples == 10
        assert series.duration_s == pytest.approx(0.9)
        assert series.header == DEFAULT_HEADER

    def test_columns_read_only(self):
        series = SampleSeries(**create_columns())
        with pytest.raises(ValueError):
            series.setpoint[0] = 0.0

    def test_source_array_not_shared(self):
        columns = create_columns()
        series = SampleSeries(**columns)
        columns['measurement'][0] = 0.0
        assert series.measurement[0] == 9.8

    def test_unequal_lengths(self):
        columns = create_columns()
        columns['elevation'] = columns['elevation'][:5]
        with pytest.raises(InputError, match="different lengths"):
            SampleSeries(**columns)

    def test_empty(self):
        with pytest.raises(InputError):
            SampleSeries(**create_columns(0))

    def test_non_finite(self):
        columns = create_columns()
        columns['measurement'][3] = np.nan
        with pytest.raises(InputError):
            SampleSeries(**columns)

    def test_time_backwards(self):
        columns = create_columns()
        columns['time'][5] = 0.0
        with pytest.raises(InputError):
            SampleSeries(**columns)

    def test_sample_and_iteration(self):
        series = SampleSeries(**create_columns(3))
        sample = series.sample(1)

        assert sample.index == 1
        assert sample.setpoint == 10.0
        assert [s.index for s in series] == [0, 1, 2]
        assert sample.to_dict()['measurement'] == 9.8


class TestDataFrameConversion:
    """Tests for DataFrame conversion."""

    def test_to_dataframe(self):
        series = SampleSeries(**create_columns())
        assert list(series.to_dataframe().columns) == list(SERIES_COLUMNS)
        assert list(series.to_dataframe(use_header=True).columns) == list(DEFAULT_HEADER)

    def test_from_dataframe_keeps_header(self):
        df = pd.DataFrame(create_columns())
        df.columns = ['T', 'SP', 'PV', 'X', 'Z', 'U']

        series = SampleSeries.from_dataframe(df)
        assert series.header == ('T', 'SP', 'PV', 'X', 'Z', 'U')
        assert series.measurement[0] == 9.8

    def test_from_dataframe_wrong_width(self):
        df = pd.DataFrame(create_columns()).iloc[:, :4]
        with pytest.raises(InputError):
            SampleSeries.from_dataframe(df)

    def test_from_arrays_zero_fills(self):
        series = SampleSeries.from_arrays([0.0, 0.1], [10.0, 10.0], [9.0, 9.5])
        assert series.elevation.tolist() == [0.0, 0.0]
        assert series.controller_output.tolist() == [0.0, 0.0]
