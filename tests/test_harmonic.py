"""
Unit tests for the harmonic model estimator
"""
import math
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import numpy as np
import pytest

from tidewidget.harmonic import (
    DEFAULT_PARAMS,
    K1_PERIOD_HOURS,
    M2_PERIOD_HOURS,
    estimate_harmonic_params,
    harmonic_height,
)
from tidewidget.tide_data import HarmonicParams, TideKind, TidePoint, TideSeries
from tests.config import TEST_TIMEZONE

T0 = datetime(2025, 6, 15, 0, 0, tzinfo=timezone.utc)


class TestEstimateHarmonicParams:
    """Tests for deriving (amplitude, mean level, phase) from a series."""

    def test_empty_series_defaults(self):
        """Empty series gives 3 ft amplitude, 3 ft mean, zero phase."""
        params = estimate_harmonic_params(TideSeries())
        assert params == DEFAULT_PARAMS
        assert params == HarmonicParams(amplitude=3.0, mean_level=3.0, phase=0.0)

    def test_mean_and_amplitude(self):
        """Mean is the average height, amplitude half the range."""
        series = TideSeries([
            TidePoint(T0 + timedelta(hours=i), h) for i, h in enumerate([1.0, 2.0, 6.0, 3.0])
        ])
        params = estimate_harmonic_params(series)
        assert params.mean_level == pytest.approx(3.0)
        assert params.amplitude == pytest.approx(2.5)

    def test_phase_zero_without_high(self):
        """No HIGH point means zero phase."""
        series = TideSeries([
            TidePoint(T0, 1.0, TideKind.LOW),
            TidePoint(T0 + timedelta(hours=6), 5.0),
        ])
        assert estimate_harmonic_params(series).phase == 0.0

    def test_phase_from_first_high(self):
        """Phase is the first high's hour of day mapped onto 24h = 2*pi."""
        tz = ZoneInfo(TEST_TIMEZONE)
        start = datetime(2025, 6, 15, 0, 0, tzinfo=tz)
        series = TideSeries([
            TidePoint(start, 1.0, TideKind.LOW),
            TidePoint(start.replace(hour=6, minute=30), 5.0, TideKind.HIGH),
            TidePoint(start.replace(hour=12, minute=45), 0.8, TideKind.LOW),
            TidePoint(start.replace(hour=18, minute=50), 5.2, TideKind.HIGH),
        ])
        params = estimate_harmonic_params(series)
        assert params.phase == pytest.approx(6.5 * math.pi / 12)

    def test_phase_uses_local_time_of_day(self):
        """Time of day is read in the timestamp's own timezone."""
        tz = ZoneInfo(TEST_TIMEZONE)
        high = datetime(2025, 1, 10, 15, 0, tzinfo=tz)
        series = TideSeries([TidePoint(high, 5.0, TideKind.HIGH)])
        assert estimate_harmonic_params(series).phase == pytest.approx(15 * math.pi / 12)

    def test_amplitude_non_negative(self):
        """Flat series has zero amplitude."""
        series = TideSeries([TidePoint(T0 + timedelta(hours=i), 2.5) for i in range(5)])
        params = estimate_harmonic_params(series)
        assert params.amplitude == 0.0
        assert params.mean_level == pytest.approx(2.5)


class TestHarmonicHeight:
    """Tests for the mixed semi-diurnal formula."""

    def test_at_zero_with_zero_phase(self):
        """At x=0 with phi=0 both sine terms vanish."""
        params = HarmonicParams(amplitude=2.0, mean_level=3.0, phase=0.0)
        assert harmonic_height(0.0, params) == pytest.approx(3.0)

    def test_formula(self):
        """Matches M + A sin(wM2 x + phi) + 0.25 A sin(wK1 x + phi/2)."""
        params = HarmonicParams(amplitude=2.0, mean_level=3.0, phase=0.7)
        x = 4.25
        expected = (3.0
                    + 2.0 * math.sin(2 * math.pi / 12.42 * x + 0.7)
                    + 0.5 * math.sin(2 * math.pi / 24.07 * x + 0.35))
        assert harmonic_height(x, params) == pytest.approx(expected)

    def test_periods(self):
        """Constituent periods are M2 = 12.42 h and K1 = 24.07 h."""
        assert M2_PERIOD_HOURS == 12.42
        assert K1_PERIOD_HOURS == 24.07

    def test_vectorized(self):
        """Arrays of hours evaluate element-wise."""
        params = HarmonicParams(amplitude=2.0, mean_level=3.0, phase=0.0)
        hours = np.array([0.0, 1.0, 2.0])
        values = harmonic_height(hours, params)
        assert isinstance(values, np.ndarray)
        assert values[1] == pytest.approx(harmonic_height(1.0, params))

    def test_scalar_returns_float(self):
        """Scalar input gives a plain float."""
        params = HarmonicParams(amplitude=1.0, mean_level=0.0, phase=0.0)
        assert isinstance(harmonic_height(3.0, params), float)

    def test_bounded_by_amplitude(self):
        """Curve stays within M +/- 1.25 A."""
        params = HarmonicParams(amplitude=2.0, mean_level=3.0, phase=1.1)
        values = harmonic_height(np.linspace(0, 48, 2000), params)
        assert values.max() <= 3.0 + 2.5 + 1e-9
        assert values.min() >= 3.0 - 2.5 - 1e-9
