"""
Canal tide derived from the ocean tide.

The tide reaches the inland waterway behind the beach 1h45m late and about 5%
smaller. The canal height is therefore a pure transform of the primary curve:

    canal(t) = 0.95 * ocean(t - 1h45m)
"""
from datetime import datetime, timedelta
from typing import Iterable, Union

import numpy as np

from .curve import CurveEvaluator, CurveMode, _to_seconds
from .tide_data import TideSeries

CANAL_LAG = timedelta(hours=1, minutes=45)
CANAL_ATTENUATION = 0.95


class SecondaryWave:
    """Phase-lagged, attenuated wave over a primary CurveEvaluator."""

    def __init__(
        self,
        primary: CurveEvaluator,
        lag: timedelta = CANAL_LAG,
        attenuation: float = CANAL_ATTENUATION
    ):
        self.primary = primary
        self.lag = lag
        self.attenuation = attenuation

    def height_at(self, when: datetime) -> float:
        return float(self.heights_at_seconds(_to_seconds(when))[0])

    def heights_at(self, times: Union[Iterable[datetime], np.ndarray]) -> np.ndarray:
        return self.heights_at_seconds(_to_seconds(times))

    def heights_at_seconds(self, query_seconds: np.ndarray) -> np.ndarray:
        lagged = np.asarray(query_seconds, dtype=float) - self.lag.total_seconds()
        return self.attenuation * self.primary.heights_at_seconds(lagged)


def secondary_wave(series: TideSeries, when: datetime, mode: CurveMode = CurveMode.HARMONIC) -> float:
    """Canal height at an instant for the given series."""
    return SecondaryWave(CurveEvaluator(series, mode)).height_at(when)
