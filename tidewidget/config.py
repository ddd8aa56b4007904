"""
Runtime configuration for the tide widget service.

Values come from environment variables (optionally loaded from a .env file in
the project root) and fall back to the defaults below.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)


def _get_float_env(key: str, default: float) -> float:
    """Get a float value from environment variable or use default."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            pass
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get an int value from environment variable or use default."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def _get_str_env(key: str, default: Optional[str]) -> Optional[str]:
    value = os.environ.get(key, '').strip()
    return value or default


# =============================================================================
# Station
# =============================================================================

# NOAA CO-OPS station ID
# Environment variable: TIDE_STATION_ID
STATION_ID = _get_str_env('TIDE_STATION_ID', '8658163')

STATION_NAME = _get_str_env('TIDE_STATION_NAME', 'Ocean Isle Beach, NC')

# Coordinates are only used to detect the station timezone
STATION_LAT = _get_float_env('TIDE_STATION_LAT', 33.8913)
STATION_LON = _get_float_env('TIDE_STATION_LON', -78.4270)

# Explicit timezone (e.g. 'America/New_York'); auto-detected when unset
# Environment variable: TIDE_TIMEZONE
STATION_TIMEZONE = _get_str_env('TIDE_TIMEZONE', None)


# =============================================================================
# Provider
# =============================================================================

# Timeout for the NOAA request (in seconds)
# Environment variable: TIDE_API_TIMEOUT
API_TIMEOUT_SECONDS = _get_int_env('TIDE_API_TIMEOUT', 10)

# NOAA prediction interval: minutes ('6', '15', '30', '60') or 'hilo'
# Environment variable: TIDE_PREDICTION_INTERVAL
PREDICTION_INTERVAL = _get_str_env('TIDE_PREDICTION_INTERVAL', '6')

# Security: Maximum response size from the provider (1 MB)
MAX_RESPONSE_SIZE = _get_int_env('TIDE_MAX_RESPONSE_SIZE', 1 * 1024 * 1024)


# =============================================================================
# Curve
# =============================================================================

# Sampling step used when densifying hi-lo predictions (in minutes)
# Environment variable: TIDE_HILO_STEP_MINUTES
HILO_STEP_MINUTES = _get_int_env('TIDE_HILO_STEP_MINUTES', 10)

# Local hour of the low tide in the synthetic fallback curve
# Environment variable: TIDE_TARGET_LOW_HOUR
TARGET_LOW_HOUR = _get_float_env('TIDE_TARGET_LOW_HOUR', 11.0)
