"""
NOAA CO-OPS tide predictions client.

Fetches one day (today and tomorrow, station local time) of predictions for a
single station from the CO-OPS data API. Depending on the configured interval
the response is either a dense series (e.g. every 6 minutes) or a hi-lo
series of high/low extrema.

Any failure (network error, timeout, HTTP error status, API error payload,
unparseable body) is logged and reported as None; the caller decides what to
do instead.
"""
import json
import logging
import urllib.parse
import urllib.request
from datetime import date, datetime, timedelta
from typing import Dict, Optional
from zoneinfo import ZoneInfo

from . import config
from .tide_data import TideKind, TidePoint, TideSeries

logger = logging.getLogger(__name__)

NOAA_API_URL = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
APPLICATION_NAME = "OceanIsleTideWidget"

NOAA_TIME_FORMAT = '%Y-%m-%d %H:%M'

NOAA_TYPE_TO_KIND = {
    'H': TideKind.HIGH,
    'L': TideKind.LOW,
}


def safe_read_response(response, max_size: int = config.MAX_RESPONSE_SIZE) -> bytes:
    """
    Safely read HTTP response with size limit to prevent memory exhaustion.

    Args:
        response: urllib response object
        max_size: Maximum allowed response size in bytes

    Returns:
        Response body as bytes

    Raises:
        ValueError: If response exceeds size limit
    """
    content_length = response.headers.get('Content-Length')
    if content_length and int(content_length) > max_size:
        raise ValueError(f"Response too large: {content_length} bytes (max: {max_size})")

    # Read one extra byte to detect overflow
    data = response.read(max_size + 1)
    if len(data) > max_size:
        raise ValueError(f"Response exceeded size limit of {max_size} bytes")

    return data


def parse_predictions(data: Dict, tz: ZoneInfo) -> TideSeries:
    """
    Convert a CO-OPS predictions payload into a TideSeries.

    Times in the payload are station local (lst_ldt) and are attached to `tz`.
    Entries with a missing time or unparseable height are skipped.

    Args:
        data: Decoded JSON payload
        tz: Station timezone

    Returns:
        TideSeries sorted by time

    Raises:
        ValueError: If the payload reports an error, has no predictions key
                    or contains a malformed time
    """
    if 'error' in data:
        message = data['error'].get('message', 'unknown error') if isinstance(data['error'], dict) else data['error']
        raise ValueError(f"NOAA API error: {message}")
    if 'predictions' not in data:
        raise ValueError("NOAA response has no predictions")

    points = []
    for entry in data['predictions']:
        time_str = entry.get('t')
        height_str = entry.get('v')
        if not time_str or height_str in (None, ''):
            continue

        try:
            height = float(height_str)
        except ValueError:
            logger.debug(f"Skipping prediction with invalid height {height_str!r} at {time_str}")
            continue

        ts = datetime.strptime(time_str, NOAA_TIME_FORMAT).replace(tzinfo=tz)
        kind = NOAA_TYPE_TO_KIND.get(entry.get('type', '').upper(), TideKind.NONE)
        points.append(TidePoint(timestamp=ts, height=height, kind=kind))

    points.sort(key=lambda p: p.timestamp)
    return TideSeries(points)


class NoaaTideProvider:
    """Single-station predictions provider."""

    def __init__(
        self,
        station_id: str = config.STATION_ID,
        tz: Optional[ZoneInfo] = None,
        interval: str = config.PREDICTION_INTERVAL,
        timeout: float = config.API_TIMEOUT_SECONDS,
        max_response_size: int = config.MAX_RESPONSE_SIZE,
    ):
        self.station_id = station_id
        self.tz = tz or ZoneInfo('UTC')
        self.interval = interval
        self.timeout = timeout
        self.max_response_size = max_response_size

    def build_url(self, day: date) -> str:
        """URL for predictions covering `day` and the following day."""
        params = {
            'product': 'predictions',
            'application': APPLICATION_NAME,
            'station': self.station_id,
            'begin_date': day.strftime('%Y%m%d'),
            'end_date': (day + timedelta(days=1)).strftime('%Y%m%d'),
            'datum': 'MLLW',
            'time_zone': 'lst_ldt',
            'units': 'english',
            'interval': self.interval,
            'format': 'json',
        }
        return f"{NOAA_API_URL}?{urllib.parse.urlencode(params)}"

    def fetch_series(self, day: Optional[date] = None) -> Optional[TideSeries]:
        """
        Fetch predictions starting at `day` (default: today, station time).

        Returns:
            TideSeries (possibly empty), or None if the request failed
        """
        if day is None:
            day = datetime.now(self.tz).date()

        url = self.build_url(day)
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as response:
                data = json.loads(safe_read_response(response, self.max_response_size).decode())
            series = parse_predictions(data, self.tz)
        except Exception as e:
            logger.warning(f"NOAA fetch failed for station {self.station_id}: {e}")
            return None

        logger.info(f"Fetched {len(series)} predictions for station {self.station_id} "
                    f"(interval={self.interval})")
        return series
