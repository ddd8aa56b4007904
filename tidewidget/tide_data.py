"""
Tide data model.

A TideSeries is an immutable, time-ordered sequence of TidePoint values for a
single station. Heights are in feet above MLLW (Mean Lower Low Water) and
timestamps are timezone-aware instants.

Series are built once per refresh cycle and never mutated afterwards. The
numpy views exposed here (epoch seconds and heights) are computed at
construction time and are read-only, so a series can be shared freely between
concurrent readers.

Ordering is not validated: callers must supply points sorted ascending by
timestamp with no duplicates.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

import numpy as np

FEET_TO_METERS = 0.3048


class TideKind(str, Enum):
    """
    Classification of a tide point.

    - HIGH: the point is a high tide (local maximum)
    - LOW: the point is a low tide (local minimum)
    - NONE: an ordinary sample between extrema
    """
    HIGH = "high"
    LOW = "low"
    NONE = "none"


class TideTrend(str, Enum):
    """Direction of the water level at a given instant."""
    RISING = "Rising"
    FALLING = "Falling"
    STABLE = "Stable"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class TidePoint:
    timestamp: datetime
    height: float
    kind: TideKind = TideKind.NONE

    @property
    def is_extremum(self) -> bool:
        return self.kind in (TideKind.HIGH, TideKind.LOW)


@dataclass(frozen=True)
class HarmonicParams:
    """
    Parameters of the mixed semi-diurnal model.

    Always derived from a series (see harmonic.estimate_harmonic_params).
    """
    amplitude: float
    mean_level: float
    phase: float


@dataclass(frozen=True)
class TideExtremum:
    timestamp: datetime
    height: float
    kind: TideKind

    def to_dict(self) -> Dict:
        return {
            'type': self.kind.value,
            'datetime': self.timestamp.replace(microsecond=0).isoformat(),
            'height_ft': round(self.height, 3),
            'height_m': round(self.height * FEET_TO_METERS, 3),
        }


class TideSeries:
    """Immutable ordered sequence of tide points."""

    def __init__(self, points: Iterable[TidePoint] = ()):
        self._points = tuple(points)

        self._seconds = np.array([p.timestamp.timestamp() for p in self._points], dtype=float)
        self._heights = np.array([p.height for p in self._points], dtype=float)
        self._seconds.setflags(write=False)
        self._heights.setflags(write=False)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TidePoint]:
        return iter(self._points)

    def __getitem__(self, index):
        return self._points[index]

    def __bool__(self) -> bool:
        return bool(self._points)

    def __repr__(self) -> str:
        if not self._points:
            return "TideSeries([])"
        return (f"TideSeries({len(self)} points, "
                f"{self.first().timestamp.isoformat()} .. {self.last().timestamp.isoformat()})")

    @property
    def points(self) -> tuple:
        return self._points

    @property
    def epoch_seconds(self) -> np.ndarray:
        """Read-only array of POSIX timestamps (seconds) for every point."""
        return self._seconds

    @property
    def heights(self) -> np.ndarray:
        """Read-only array of heights in feet."""
        return self._heights

    def first(self) -> Optional[TidePoint]:
        return self._points[0] if self._points else None

    def last(self) -> Optional[TidePoint]:
        return self._points[-1] if self._points else None

    @property
    def is_hilo(self) -> bool:
        """True for a non-empty series made only of high/low extrema."""
        return bool(self._points) and all(p.is_extremum for p in self._points)

    def extrema(self) -> List[TidePoint]:
        return [p for p in self._points if p.is_extremum]

    def to_dicts(self) -> List[Dict]:
        """
        Serialize the series for API responses.

        Only extrema carry a 'type' key, ordinary samples do not.
        """
        results = []
        for p in self._points:
            entry = {
                'datetime': p.timestamp.replace(microsecond=0).isoformat(),
                'height_ft': round(p.height, 3),
                'height_m': round(p.height * FEET_TO_METERS, 3),
            }
            if p.is_extremum:
                entry['type'] = p.kind.value
            results.append(entry)
        return results
