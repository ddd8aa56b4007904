"""
Point-in-time tide features for the widget summary.

- current height
- trend (rising / falling / stable) with a small dead band so the label does
  not flap around slack water
- next high or low tide, found by a forward scan of the curve
"""
from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from .curve import CurveEvaluator, CurveMode
from .tide_data import TideExtremum, TideKind, TideSeries, TideTrend

TREND_WINDOW = timedelta(minutes=10)
TREND_DEAD_BAND_FT = 0.01

SCAN_STEP = timedelta(minutes=5)
SCAN_HORIZON = timedelta(hours=24)

# Minimum rise/fall versus the current level for a turning point to count.
# Empirical value, keeps small wiggles from being reported as the next tide.
EXTREMUM_PROMINENCE_FT = 0.1


class FeatureExtractor:
    """Derives summary features from a CurveEvaluator (harmonic by default)."""

    def __init__(self, evaluator: CurveEvaluator):
        self.evaluator = evaluator

    @property
    def series(self) -> TideSeries:
        return self.evaluator.series

    def current_height(self, when: datetime) -> float:
        return self.evaluator.height_at(when)

    def trend(self, when: datetime) -> TideTrend:
        """
        Compare the height now with the height TREND_WINDOW later.

        Returns:
            RISING / FALLING outside the dead band, STABLE inside it,
            UNKNOWN when there is no data
        """
        if not self.series:
            return TideTrend.UNKNOWN

        now_s = when.timestamp()
        later_s = now_s + TREND_WINDOW.total_seconds()
        now_h, later_h = self.evaluator.heights_at_seconds(np.array([now_s, later_s]))
        difference = later_h - now_h

        if difference > TREND_DEAD_BAND_FT:
            return TideTrend.RISING
        if difference < -TREND_DEAD_BAND_FT:
            return TideTrend.FALLING
        return TideTrend.STABLE

    def next_extremum(self, when: datetime) -> Optional[TideExtremum]:
        """
        Find the next high or low tide after `when`.

        Candidates are taken every SCAN_STEP up to SCAN_HORIZON ahead. A
        candidate is a high if it is above both neighbouring samples and at least
        EXTREMUM_PROMINENCE_FT above the current height, a low if it is
        below both neighbours and at least EXTREMUM_PROMINENCE_FT below it.

        Returns:
            The first qualifying TideExtremum, or None if nothing qualifies
            within the horizon (always None for an empty series)
        """
        if not self.series:
            return None

        step_s = SCAN_STEP.total_seconds()
        num_candidates = int(SCAN_HORIZON / SCAN_STEP)

        # Sample k = 0 is `when` itself, k = num_candidates + 1 is the last
        # candidate's right-hand neighbour.
        start_s = when.timestamp()
        grid_s = start_s + np.arange(num_candidates + 2) * step_s
        heights = self.evaluator.heights_at_seconds(grid_s)

        current = heights[0]
        candidate = heights[1:-1]
        left = heights[:-2]
        right = heights[2:]

        is_high = (candidate > left) & (candidate > right) & \
            (candidate >= current + EXTREMUM_PROMINENCE_FT)
        is_low = (candidate < left) & (candidate < right) & \
            (candidate <= current - EXTREMUM_PROMINENCE_FT)

        hits = np.flatnonzero(is_high | is_low)
        if len(hits) == 0:
            return None

        k = int(hits[0])
        return TideExtremum(
            timestamp=datetime.fromtimestamp(float(grid_s[k + 1]), tz=when.tzinfo),
            height=float(candidate[k]),
            kind=TideKind.HIGH if is_high[k] else TideKind.LOW,
        )


def current_height(series: TideSeries, when: datetime) -> float:
    return FeatureExtractor(CurveEvaluator(series, CurveMode.HARMONIC)).current_height(when)


def trend(series: TideSeries, when: datetime) -> TideTrend:
    return FeatureExtractor(CurveEvaluator(series, CurveMode.HARMONIC)).trend(when)


def next_extremum(series: TideSeries, when: datetime) -> Optional[TideExtremum]:
    return FeatureExtractor(CurveEvaluator(series, CurveMode.HARMONIC)).next_extremum(when)
