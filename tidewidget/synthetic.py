"""
Synthetic tide series used when no real predictions are available.

The curve is a semi-diurnal wave plus a small daily term:

    height(h) = 3.0 + 2.5*sin(2*pi*h/12.42 + phi) + 0.5*sin(2*pi*h/24)

with h in hours since the start. phi is solved so that the curve has a low
tide exactly at the next occurrence of the target hour (11:00 local by
default), which keeps the fallback chart looking plausible for the station.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np

from .tide_data import TideKind, TidePoint, TideSeries

SYNTHETIC_MEAN_FT = 3.0
SYNTHETIC_M2_AMPLITUDE_FT = 2.5
SYNTHETIC_DIURNAL_AMPLITUDE_FT = 0.5
SYNTHETIC_M2_PERIOD_HOURS = 12.42
SYNTHETIC_DIURNAL_PERIOD_HOURS = 24.0

SYNTHETIC_STEP_MINUTES = 6
SYNTHETIC_SPAN_HOURS = 24
DEFAULT_TARGET_LOW_HOUR = 11.0

_OMEGA_M2 = 2 * np.pi / SYNTHETIC_M2_PERIOD_HOURS
_OMEGA_DIURNAL = 2 * np.pi / SYNTHETIC_DIURNAL_PERIOD_HOURS


def _hours_until(start: datetime, target_hour: float) -> float:
    """Hours from start to the next local occurrence of target_hour."""
    hour = int(target_hour) % 24
    minute = int(round((target_hour - int(target_hour)) * 60)) % 60
    target = start.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target < start:
        target += timedelta(days=1)
    return (target.timestamp() - start.timestamp()) / 3600.0


def _phase_for_low_at(hours: float) -> float:
    """
    Phase that puts a local minimum of the curve at `hours`.

    Solves d(height)/dh = 0 at `hours` and takes the root with negative sine
    on the M2 term so the critical point is a minimum.
    """
    diurnal_slope = SYNTHETIC_DIURNAL_AMPLITUDE_FT * _OMEGA_DIURNAL * np.cos(_OMEGA_DIURNAL * hours)
    ratio = -diurnal_slope / (SYNTHETIC_M2_AMPLITUDE_FT * _OMEGA_M2)
    theta = -np.arccos(np.clip(ratio, -1.0, 1.0))
    return float(theta - _OMEGA_M2 * hours)


def synthetic_height(hours, phase: float):
    """Synthetic curve at elapsed hours (scalar or array)."""
    return (SYNTHETIC_MEAN_FT
            + SYNTHETIC_M2_AMPLITUDE_FT * np.sin(_OMEGA_M2 * hours + phase)
            + SYNTHETIC_DIURNAL_AMPLITUDE_FT * np.sin(_OMEGA_DIURNAL * hours))


def generate_synthetic_series(
    start: Optional[datetime] = None,
    target_low_hour: float = DEFAULT_TARGET_LOW_HOUR,
    tz=None
) -> TideSeries:
    """
    Generate 24 hours of synthetic tide points every 6 minutes.

    Args:
        start: First timestamp (default: now in `tz`, or UTC)
        target_low_hour: Local hour (0-24, fractional allowed) for the low tide
        tz: Timezone used when `start` is not given

    Returns:
        TideSeries of 241 points. Strict local maxima/minima are marked
        HIGH/LOW; the first and last points are never marked.
    """
    if start is None:
        start = datetime.now(tz or timezone.utc)

    phase = _phase_for_low_at(_hours_until(start, target_low_hour))

    num_points = SYNTHETIC_SPAN_HOURS * 60 // SYNTHETIC_STEP_MINUTES + 1
    offsets_seconds = np.arange(num_points) * SYNTHETIC_STEP_MINUTES * 60.0
    offsets_hours = offsets_seconds / 3600.0
    heights = synthetic_height(offsets_hours, phase)

    start_s = start.timestamp()
    points = []
    for i in range(num_points):
        kind = TideKind.NONE
        if 0 < i < num_points - 1:
            prev_h, h, next_h = heights[i - 1], heights[i], heights[i + 1]
            if h > prev_h and h > next_h:
                kind = TideKind.HIGH
            elif h < prev_h and h < next_h:
                kind = TideKind.LOW

        points.append(TidePoint(
            timestamp=datetime.fromtimestamp(start_s + float(offsets_seconds[i]), tz=start.tzinfo),
            height=float(heights[i]),
            kind=kind,
        ))

    return TideSeries(points)
