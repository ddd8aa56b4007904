"""
Continuous tide curve over a series.

CurveEvaluator answers "what is the height at time t" in one of two modes:

- HARMONIC: evaluates the mixed semi-diurnal model fitted to the series.
  Used for point-in-time numbers (current height, trend, next tide).
- SPLINE: Hermite spline through the real points. Used when a drawn curve
  must pass exactly through the data.

Outside the series span both modes return the boundary height, and an empty
series always yields DEFAULT_HEIGHT_FT.
"""
from datetime import datetime
from enum import Enum
from typing import Iterable, Union

import numpy as np

from .harmonic import estimate_harmonic_params, harmonic_height
from .interpolation import hermite_heights
from .tide_data import TideSeries

DEFAULT_HEIGHT_FT = 3.0


class CurveMode(str, Enum):
    HARMONIC = "harmonic"
    SPLINE = "spline"


def _to_seconds(times: Union[datetime, Iterable[datetime], np.ndarray]) -> np.ndarray:
    """Convert datetimes (or an array of POSIX seconds) to a float array."""
    if isinstance(times, datetime):
        return np.array([times.timestamp()])
    if isinstance(times, np.ndarray) and times.dtype.kind in 'fiu':
        return times.astype(float)
    return np.array([t.timestamp() for t in times], dtype=float)


class CurveEvaluator:
    """
    Height function over one immutable series.

    The harmonic parameters are derived once at construction and share the
    lifetime of the series.
    """

    def __init__(self, series: TideSeries, mode: CurveMode = CurveMode.HARMONIC):
        self.series = series
        self.mode = CurveMode(mode)
        self.params = estimate_harmonic_params(series)

    def __repr__(self) -> str:
        return f"CurveEvaluator(mode={self.mode.value}, series={self.series!r})"

    def height_at(self, when: datetime) -> float:
        """Height in feet at a single instant."""
        return float(self.heights_at_seconds(_to_seconds(when))[0])

    def heights_at(self, times: Union[Iterable[datetime], np.ndarray]) -> np.ndarray:
        """Heights in feet for a sequence of datetimes or POSIX seconds."""
        return self.heights_at_seconds(_to_seconds(times))

    def heights_at_seconds(self, query_seconds: np.ndarray) -> np.ndarray:
        query_seconds = np.asarray(query_seconds, dtype=float)
        if not self.series:
            return np.full(query_seconds.shape, DEFAULT_HEIGHT_FT)

        if self.mode == CurveMode.SPLINE:
            return hermite_heights(self.series, query_seconds)

        seconds = self.series.epoch_seconds
        heights = self.series.heights

        hours = (query_seconds - seconds[0]) / 3600.0
        result = np.asarray(harmonic_height(hours, self.params), dtype=float)

        # Clamp to real boundary values instead of extrapolating
        result = np.where(query_seconds < seconds[0], heights[0], result)
        result = np.where(query_seconds > seconds[-1], heights[-1], result)
        return result


def evaluate(series: TideSeries, when: datetime, mode: CurveMode = CurveMode.HARMONIC) -> float:
    """Height of the series' curve at an instant."""
    return CurveEvaluator(series, mode).height_at(when)
