"""
Interpolation over real tide points.

Two strategies live here:

- interpolate_hilo: turns a sparse high/low series into a regularly sampled
  one. Between consecutive extrema the height eases along a quarter sine, so
  the curve reaches every high and low with zero slope, the way real tides
  flatten out at slack water.
- hermite_heights: local cubic Hermite spline through a dense series. It
  passes exactly through every original point, which is what a renderer
  wants when the curve is drawn over real data.

Both clamp to the boundary heights outside [first, last].
"""
from datetime import datetime
from typing import Optional

import numpy as np

from .tide_data import TideKind, TidePoint, TideSeries

HILO_STEP_MINUTES = 10


def interpolate_hilo(series: TideSeries, step_minutes: Optional[int] = None) -> TideSeries:
    """
    Densify a hi-lo series into a regularly sampled series.

    Args:
        series: Extrema-only series, ascending by time. Alternation of
                high/low is expected but not enforced.
        step_minutes: Sampling step (default HILO_STEP_MINUTES)

    Returns:
        New series spanning [first, last] inclusive. Samples whose timestamp
        matches an input extremum exactly keep its kind, all others are NONE.
        Series with fewer than 2 points are returned unchanged.
    """
    if len(series) < 2:
        return series

    step_seconds = (step_minutes or HILO_STEP_MINUTES) * 60.0
    seconds = series.epoch_seconds
    heights = series.heights
    n = len(series)

    span = seconds[-1] - seconds[0]
    num_steps = int(span // step_seconds)
    offsets = np.arange(num_steps + 1) * step_seconds
    if offsets[-1] < span:
        # Keep the last extremum inside the output
        offsets = np.append(offsets, span)
    sample_seconds = seconds[0] + offsets

    # before = last input point with timestamp <= t
    before_idx = np.searchsorted(seconds, sample_seconds, side='right') - 1
    before_idx = np.clip(before_idx, 0, n - 1)
    after_idx = np.minimum(before_idx + 1, n - 1)
    has_after = (before_idx + 1) < n

    t_before = seconds[before_idx]
    t_after = seconds[after_idx]
    h_before = heights[before_idx]
    h_after = heights[after_idx]

    gap = t_after - t_before
    with np.errstate(divide='ignore', invalid='ignore'):
        progress = np.where(gap > 0, (sample_seconds - t_before) / gap, 0.0)
    eased = h_before + (h_after - h_before) * np.sin(progress * np.pi / 2.0)

    sampled = np.where(has_after & (gap > 0), eased, h_before)
    sampled = np.where(has_after, sampled, heights[-1])

    kinds = {p.timestamp: p.kind for p in series if p.is_extremum}
    tz = series.first().timestamp.tzinfo

    # Step in absolute time so DST changes do not skew the grid
    points = []
    for instant, height in zip(sample_seconds, sampled):
        ts = datetime.fromtimestamp(float(instant), tz=tz)
        points.append(TidePoint(
            timestamp=ts,
            height=float(height),
            kind=kinds.get(ts, TideKind.NONE),
        ))

    return TideSeries(points)


def hermite_heights(series: TideSeries, query_seconds: np.ndarray) -> np.ndarray:
    """
    Cubic Hermite spline evaluation at POSIX timestamps (vectorized).

    For a query t bracketed by p1 = series[i] and p2 = series[i+1], with
    p0 = series[i-1] (p1 at the start) and p3 = series[i+2] (p2 at the end):

        u  = (t - p1.t) / (p2.t - p1.t)
        h  = h1*p1 + h2*p2 + h3*m1 + h4*m2
        m1 = (p2 - p0) / 2,  m2 = (p3 - p1) / 2

    Args:
        series: Non-empty series
        query_seconds: Array of POSIX timestamps

    Returns:
        Array of heights; boundary heights outside the series span
    """
    seconds = series.epoch_seconds
    heights = series.heights
    n = len(series)
    query_seconds = np.asarray(query_seconds, dtype=float)

    result = np.empty(query_seconds.shape, dtype=float)
    before_first = query_seconds < seconds[0]

    # i = last index with timestamp <= t
    idx = np.searchsorted(seconds, query_seconds, side='right') - 1
    at_or_after_last = idx >= n - 1

    result[before_first] = heights[0]
    result[at_or_after_last] = heights[-1]

    inside = ~before_first & ~at_or_after_last
    if not np.any(inside):
        return result

    i = idx[inside]
    q = query_seconds[inside]

    h0 = heights[np.maximum(i - 1, 0)]
    h1 = heights[i]
    h2 = heights[i + 1]
    h3 = heights[np.minimum(i + 2, n - 1)]

    with np.errstate(divide='ignore', invalid='ignore'):
        u = (q - seconds[i]) / (seconds[i + 1] - seconds[i])
    u2 = u * u
    u3 = u2 * u

    # Hermite basis
    b1 = 2 * u3 - 3 * u2 + 1
    b2 = -2 * u3 + 3 * u2
    b3 = u3 - 2 * u2 + u
    b4 = u3 - u2

    # Tangents
    m1 = (h2 - h0) / 2.0
    m2 = (h3 - h1) / 2.0

    result[inside] = b1 * h1 + b2 * h2 + b3 * m1 + b4 * m2
    return result
