"""
Mixed semi-diurnal harmonic model.

The model has one principal lunar semi-diurnal term (M2)
plus a quarter-amplitude lunar diurnal term (K1) that produces the diurnal
inequality seen on the US East Coast. Its three parameters are estimated
directly from a series:

    height(x) = M + A*sin(w_M2*x + phi) + 0.25*A*sin(w_K1*x + phi/2)

where x is hours elapsed since the first point of the series.

This is a qualitative approximation for display purposes, not a
harmonic-analysis-grade predictor.
"""
from typing import Union

import numpy as np

from .tide_data import HarmonicParams, TideKind, TideSeries

M2_PERIOD_HOURS = 12.42   # Principal lunar semidiurnal
K1_PERIOD_HOURS = 24.07   # Lunar diurnal

OMEGA_M2 = 2 * np.pi / M2_PERIOD_HOURS
OMEGA_K1 = 2 * np.pi / K1_PERIOD_HOURS

# Relative amplitude of the diurnal term (fixed, not fitted)
K1_AMPLITUDE_RATIO = 0.25

# Used when there is no data at all (typical range at the reference station)
DEFAULT_PARAMS = HarmonicParams(amplitude=3.0, mean_level=3.0, phase=0.0)


def estimate_harmonic_params(series: TideSeries) -> HarmonicParams:
    """
    Estimate amplitude, mean level and phase from a series.

    Args:
        series: Any tide series (dense or hi-lo)

    Returns:
        HarmonicParams; DEFAULT_PARAMS for an empty series
    """
    if not series:
        return DEFAULT_PARAMS

    heights = series.heights
    mean_level = float(np.mean(heights))
    amplitude = float(np.max(heights) - np.min(heights)) / 2.0

    # Phase from the local time of day of the first high tide
    first_high = next((p for p in series if p.kind == TideKind.HIGH), None)
    if first_high is not None:
        ts = first_high.timestamp
        hour_of_day = ts.hour + ts.minute / 60.0
        phase = hour_of_day * np.pi / 12.0
    else:
        phase = 0.0

    return HarmonicParams(amplitude=amplitude, mean_level=mean_level, phase=float(phase))


def harmonic_height(
    hours: Union[float, np.ndarray],
    params: HarmonicParams
) -> Union[float, np.ndarray]:
    """
    Evaluate the model at elapsed hours (scalar or array).

    Pure function of (hours, params).
    """
    a = params.amplitude
    m2_component = a * np.sin(OMEGA_M2 * hours + params.phase)
    k1_component = K1_AMPLITUDE_RATIO * a * np.sin(OMEGA_K1 * hours + params.phase / 2.0)
    result = params.mean_level + m2_component + k1_component

    if np.ndim(result) == 0:
        return float(result)
    return result
