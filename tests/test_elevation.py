"""
Elevation Interval Tests
========================
Tests for flat / changing elevation intervals and hill mapping.

Run with: python -m pytest tests/test_elevation.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from cruise_monitor.config_validation import MonitorConfig
from cruise_monitor.elevation import (
    ElevationInterval,
    ElevationKind,
    HillInterval,
    extract_elevation_intervals,
    map_hill_intervals,
    validate_interval_tiling,
)
from cruise_monitor.errors import AnalysisInvariantViolation
from cruise_monitor.samples import SampleSeries
from cruise_monitor.segmentation import SteadyStatePeriod


FLAT = ElevationKind.FLAT
CHANGING = ElevationKind.CHANGING


def create_series_with_elevation(elevation, dt=0.1):
    elevation = np.asarray(elevation, dtype=float)
    n = len(elevation)
    t = np.arange(n) * dt
    sp = np.full(n, 10.0)
    return SampleSeries.from_arrays(t, sp, sp.copy(), elevation=elevation)


def create_hill_profile(n=400, start=100, end=200, slope=0.5):
    """Flat road, a climb over [start, end), then flat again."""
    idx = np.arange(n)
    return np.clip(idx - start, 0, end - start) * slope


class TestExtractElevationIntervals:
    """Tests for extract_elevation_intervals."""

    def test_flat_road(self):
        series = create_series_with_elevation(np.full(100, 50.0))
        intervals = extract_elevation_intervals(series, MonitorConfig())
        assert intervals == (ElevationInterval(0, 100, FLAT),)

    def test_single_hill(self):
        series = create_series_with_elevation(create_hill_profile())
        intervals = extract_elevation_intervals(series, MonitorConfig())

        assert intervals == (
            ElevationInterval(0, 100, FLAT),
            ElevationInterval(100, 200, CHANGING),
            ElevationInterval(200, 400, FLAT),
        )

    def test_starts_changing(self):
        elevation = np.concatenate([np.arange(10, dtype=float), np.full(20, 9.0)])
        series = create_series_with_elevation(elevation)
        intervals = extract_elevation_intervals(series, MonitorConfig())

        assert intervals[0].kind == CHANGING
        assert intervals[0].start_index == 0
        assert intervals[-1].end_index == 30

    def test_ends_changing(self):
        elevation = np.concatenate([np.zeros(20), np.arange(1, 11, dtype=float)])
        series = create_series_with_elevation(elevation)
        intervals = extract_elevation_intervals(series, MonitorConfig())

        assert intervals[-1] == ElevationInterval(19, 30, CHANGING)

    def test_descent_is_changing(self):
        series = create_series_with_elevation(-create_hill_profile())
        intervals = extract_elevation_intervals(series, MonitorConfig())
        assert [iv.kind for iv in intervals] == [FLAT, CHANGING, FLAT]

    def test_alternate_and_cover(self):
        profile = create_hill_profile(n=600) + create_hill_profile(n=600, start=300, end=450, slope=-0.2)
        series = create_series_with_elevation(profile)
        intervals = extract_elevation_intervals(series, MonitorConfig())

        kinds = [iv.kind for iv in intervals]
        assert all(a != b for a, b in zip(kinds, kinds[1:]))
        assert intervals[0].start_index == 0
        assert intervals[-1].end_index == 600
        for a, b in zip(intervals, intervals[1:]):
            assert a.end_index == b.start_index

    def test_elevation_tolerance(self):
        rng = np.random.default_rng(42)
        noise = rng.uniform(-0.001, 0.001, 200)
        series = create_series_with_elevation(50.0 + noise)

        noisy = extract_elevation_intervals(series, MonitorConfig())
        assert noisy[0].kind == CHANGING

        # 0.002 m / 0.1 s = 0.02 m/s at most
        quiet = extract_elevation_intervals(series, MonitorConfig(elevation_tolerance=0.05))
        assert quiet == (ElevationInterval(0, 200, FLAT),)


class TestValidateIntervalTiling:
    """Tests for validate_interval_tiling."""

    def test_gap_raises(self):
        with pytest.raises(AnalysisInvariantViolation):
            validate_interval_tiling(
                [ElevationInterval(0, 5, FLAT), ElevationInterval(6, 10, CHANGING)], 10
            )

    def test_repeated_kind_raises(self):
        with pytest.raises(AnalysisInvariantViolation):
            validate_interval_tiling(
                [ElevationInterval(0, 5, FLAT), ElevationInterval(5, 10, FLAT)], 10
            )

    def test_short_raises(self):
        with pytest.raises(AnalysisInvariantViolation):
            validate_interval_tiling([ElevationInterval(0, 5, FLAT)], 10)

    def test_valid(self):
        validate_interval_tiling(
            [ElevationInterval(0, 5, FLAT), ElevationInterval(5, 10, CHANGING)], 10
        )


class TestMapHillIntervals:
    """Tests for map_hill_intervals."""

    def test_hill_inside_steady(self):
        steady = [SteadyStatePeriod(0, 399, 394)]
        intervals = [
            ElevationInterval(0, 100, FLAT),
            ElevationInterval(100, 200, CHANGING),
            ElevationInterval(200, 400, FLAT),
        ]
        assert map_hill_intervals(steady, intervals) == (HillInterval(100, 199),)

    def test_hill_clipped_to_steady_end(self):
        steady = [SteadyStatePeriod(0, 149, 149), SteadyStatePeriod(160, 399, 394)]
        intervals = [
            ElevationInterval(0, 100, FLAT),
            ElevationInterval(100, 200, CHANGING),
            ElevationInterval(200, 400, FLAT),
        ]
        assert map_hill_intervals(steady, intervals) == (HillInterval(100, 149),)

    def test_hill_starting_in_transient_ignored(self):
        steady = [SteadyStatePeriod(0, 89, 89), SteadyStatePeriod(120, 399, 394)]
        intervals = [
            ElevationInterval(0, 100, FLAT),
            ElevationInterval(100, 200, CHANGING),
            ElevationInterval(200, 400, FLAT),
        ]
        assert map_hill_intervals(steady, intervals) == ()

    def test_no_steady_periods(self):
        intervals = [ElevationInterval(0, 10, CHANGING)]
        assert map_hill_intervals([], intervals) == ()

    def test_sorted_by_start(self):
        steady = [SteadyStatePeriod(250, 399, 394), SteadyStatePeriod(0, 199, 199)]
        intervals = [
            ElevationInterval(0, 50, FLAT),
            ElevationInterval(50, 80, CHANGING),
            ElevationInterval(80, 300, FLAT),
            ElevationInterval(300, 320, CHANGING),
            ElevationInterval(320, 400, FLAT),
        ]
        hills = map_hill_intervals(steady, intervals)
        assert [h.start_index for h in hills] == [50, 300]
        assert hills[1].end_index == 319
