"""
Tide Service - current tide state for a single station.

The service owns one immutable TideSnapshot at a time:

    provider (NOAA) --> TideSeries --[hi-lo? densify]--> dense TideSeries
        --> harmonic + spline CurveEvaluators --> features / canal wave

A refresh performs exactly one provider request. If the request fails or
returns nothing, a synthetic series is used instead; there is no retry loop.
The new snapshot replaces the old one with a single reference assignment, so
readers that already hold a snapshot keep a consistent view.

Answers the queries the widget needs:
- height at any time (harmonic or spline)
- rising / falling trend
- next high or low tide
- canal height (ocean tide lagged 1h45m, 95% amplitude)
- summary and chart curve in API response format
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

import numpy as np
from timezonefinder import TimezoneFinder

from . import config
from .curve import CurveEvaluator, CurveMode
from .features import FeatureExtractor
from .interpolation import interpolate_hilo
from .noaa_client import NoaaTideProvider
from .secondary_wave import SecondaryWave
from .synthetic import generate_synthetic_series
from .tide_data import FEET_TO_METERS, TideExtremum, TideSeries, TideTrend

logger = logging.getLogger(__name__)

SOURCE_NOAA = "noaa"
SOURCE_SYNTHETIC = "synthetic"


@dataclass(frozen=True)
class TideSnapshot:
    """One series plus everything derived from it."""
    series: TideSeries
    source: str
    built_at: datetime
    harmonic: CurveEvaluator
    spline: CurveEvaluator
    features: FeatureExtractor
    canal: SecondaryWave
    canal_spline: SecondaryWave

    @classmethod
    def build(cls, series: TideSeries, source: str, built_at: datetime) -> 'TideSnapshot':
        harmonic = CurveEvaluator(series, CurveMode.HARMONIC)
        spline = CurveEvaluator(series, CurveMode.SPLINE)
        return cls(
            series=series,
            source=source,
            built_at=built_at,
            harmonic=harmonic,
            spline=spline,
            features=FeatureExtractor(harmonic),
            canal=SecondaryWave(harmonic),
            canal_spline=SecondaryWave(spline),
        )

    def evaluator(self, mode: CurveMode) -> CurveEvaluator:
        return self.spline if CurveMode(mode) == CurveMode.SPLINE else self.harmonic


class TideService:
    """
    Service for tide state at one NOAA station.

    The provider is any object with a `fetch_series(day)` method returning a
    TideSeries or None on failure.
    """

    # Allowed chart sampling intervals (minutes)
    CURVE_INTERVALS = (6, 10, 15, 30, 60)

    def __init__(
        self,
        provider=None,
        timezone_str: Optional[str] = config.STATION_TIMEZONE,
        lat: float = config.STATION_LAT,
        lon: float = config.STATION_LON,
        station_id: str = config.STATION_ID,
        station_name: str = config.STATION_NAME,
        hilo_step_minutes: int = config.HILO_STEP_MINUTES,
        target_low_hour: float = config.TARGET_LOW_HOUR,
    ):
        """
        Initialize the tide service.

        Args:
            provider: Predictions provider (default: NoaaTideProvider for station_id)
            timezone_str: Station timezone, auto-detected from lat/lon if None
            lat: Station latitude in degrees
            lon: Station longitude in degrees
            station_id: NOAA station ID
            station_name: Display name
            hilo_step_minutes: Sampling step for densified hi-lo predictions
            target_low_hour: Local hour of the low tide in the synthetic fallback
        """
        self.station_id = station_id
        self.station_name = station_name
        self.hilo_step_minutes = hilo_step_minutes
        self.target_low_hour = target_low_hour

        # Cache TimezoneFinder instance (loads data on first use)
        self._tz_finder = TimezoneFinder()
        self.tz = self._get_timezone(lat, lon, timezone_str)

        self.provider = provider or NoaaTideProvider(station_id=station_id, tz=self.tz)
        self._snapshot: Optional[TideSnapshot] = None

    def _get_timezone(self, lat: float, lon: float, timezone_str: Optional[str] = None) -> ZoneInfo:
        """
        Get timezone for coordinates, with auto-detection if not specified.

        Args:
            lat: Latitude in degrees
            lon: Longitude in degrees
            timezone_str: Optional timezone string (e.g., 'America/New_York')

        Returns:
            ZoneInfo object for the timezone
        """
        if timezone_str is None:
            timezone_str = self._tz_finder.timezone_at(lat=lat, lng=lon)
            if timezone_str is None:
                timezone_str = 'UTC'
        try:
            return ZoneInfo(timezone_str)
        except (ValueError, KeyError):
            logger.warning(f"Unknown timezone {timezone_str!r}, using UTC")
            return ZoneInfo('UTC')

    def resolve_time(self, when: Optional[datetime]) -> datetime:
        """Current time if None; naive datetimes are read as station local time."""
        if when is None:
            return datetime.now(self.tz)
        if when.tzinfo is None:
            return when.replace(tzinfo=self.tz)
        return when

    # =========================================================================
    # Snapshot lifecycle
    # =========================================================================

    def build_series(self, now: Optional[datetime] = None) -> Tuple[TideSeries, str]:
        """
        Build a fresh dense series: one provider request, synthetic on failure.

        Returns:
            Tuple of (series, source) where source is 'noaa' or 'synthetic'
        """
        now = self.resolve_time(now)

        try:
            series = self.provider.fetch_series(now.astimezone(self.tz).date())
            reason = "request failed" if series is None else "no predictions returned"
        except Exception as e:
            series, reason = None, f"{type(e).__name__}: {e}"

        if not series:
            logger.warning(f"Using synthetic tide data for station {self.station_id}: {reason}")
            synthetic = generate_synthetic_series(
                start=now.astimezone(self.tz),
                target_low_hour=self.target_low_hour,
            )
            return synthetic, SOURCE_SYNTHETIC

        if series.is_hilo:
            series = interpolate_hilo(series, self.hilo_step_minutes)

        return series, SOURCE_NOAA

    def refresh(self, now: Optional[datetime] = None) -> TideSnapshot:
        """Rebuild the snapshot and swap it in."""
        now = self.resolve_time(now)
        series, source = self.build_series(now)
        snapshot = TideSnapshot.build(series, source, built_at=now)
        self._snapshot = snapshot
        logger.info(f"Tide snapshot rebuilt from {source}: {series!r}")
        return snapshot

    @property
    def snapshot(self) -> TideSnapshot:
        """Current snapshot; the first access triggers a refresh."""
        snapshot = self._snapshot
        if snapshot is None:
            snapshot = self.refresh()
        return snapshot

    # =========================================================================
    # Queries
    # =========================================================================

    def height(self, when: Optional[datetime] = None, mode: CurveMode = CurveMode.HARMONIC) -> float:
        return self.snapshot.evaluator(mode).height_at(self.resolve_time(when))

    def trend(self, when: Optional[datetime] = None) -> TideTrend:
        return self.snapshot.features.trend(self.resolve_time(when))

    def next_extremum(self, when: Optional[datetime] = None) -> Optional[TideExtremum]:
        return self.snapshot.features.next_extremum(self.resolve_time(when))

    def secondary_height(self, when: Optional[datetime] = None) -> float:
        return self.snapshot.canal.height_at(self.resolve_time(when))

    def get_summary(self, when: Optional[datetime] = None) -> Dict:
        """
        Summary shown by the widget.

        Returns:
            Dictionary with keys:
            - station: {'id', 'name'}
            - source: 'noaa' or 'synthetic'
            - updated: ISO 8601 time the snapshot was built
            - datetime: ISO 8601 query time
            - height_ft / height_m: current ocean height
            - trend: 'Rising', 'Falling', 'Stable' or 'Unknown'
            - next_tide: {'type', 'datetime', 'height_ft', 'height_m'} or None
            - canal_height_ft / canal_height_m: current canal height
        """
        snapshot = self.snapshot
        when = self.resolve_time(when)

        height_ft = snapshot.features.current_height(when)
        canal_ft = snapshot.canal.height_at(when)
        next_tide = snapshot.features.next_extremum(when)

        return {
            'station': {'id': self.station_id, 'name': self.station_name},
            'source': snapshot.source,
            'updated': snapshot.built_at.replace(microsecond=0).isoformat(),
            'datetime': when.replace(microsecond=0).isoformat(),
            'height_ft': round(height_ft, 3),
            'height_m': round(height_ft * FEET_TO_METERS, 3),
            'trend': snapshot.features.trend(when).value,
            'next_tide': next_tide.to_dict() if next_tide else None,
            'canal_height_ft': round(canal_ft, 3),
            'canal_height_m': round(canal_ft * FEET_TO_METERS, 3),
        }

    def get_curve(self, interval_minutes: int = 10) -> List[Dict]:
        """
        Ocean and canal heights at regular intervals across the series.

        The ocean curve uses spline mode so it passes through every real
        point; the canal curve is derived from it.

        Args:
            interval_minutes: Time between samples (6, 10, 15, 30 or 60)

        Returns:
            List of dictionaries with keys 'datetime', 'ocean_ft', 'canal_ft'
        """
        if interval_minutes not in self.CURVE_INTERVALS:
            raise ValueError("interval_minutes must be one of 6, 10, 15, 30 or 60")

        snapshot = self.snapshot
        series = snapshot.series
        if not series:
            return []

        seconds = series.epoch_seconds
        step = interval_minutes * 60.0
        sample_seconds = np.arange(seconds[0], seconds[-1] + step / 2, step)
        sample_seconds = sample_seconds[sample_seconds <= seconds[-1]]

        ocean = snapshot.spline.heights_at_seconds(sample_seconds)
        canal = snapshot.canal_spline.heights_at_seconds(sample_seconds)

        results = []
        for i, instant in enumerate(sample_seconds):
            dt = datetime.fromtimestamp(float(instant), tz=self.tz)
            results.append({
                'datetime': dt.replace(microsecond=0).isoformat(),
                'ocean_ft': round(float(ocean[i]), 3),
                'canal_ft': round(float(canal[i]), 3),
            })

        return results
