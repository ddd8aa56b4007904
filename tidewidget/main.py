import logging
import uuid
from datetime import datetime
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

from .curve import CurveMode
from .tide_data import FEET_TO_METERS
from .tide_service import TideService


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app = FastAPI(
    title="Tide Widget API",
    description="Ocean and canal tide curve, trend and next tide for a single NOAA station",
    version="1.0.0",
)

# Set up rate limiter
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(SecurityHeadersMiddleware)

# Snapshot is built lazily on the first query. Handlers that may trigger a
# (blocking) NOAA request are plain functions so they run in the threadpool.
tide_service = TideService()


def _parse_at(at: Optional[str]) -> Optional[datetime]:
    """Parse the optional 'at' query parameter (ISO 8601)."""
    if not at:
        return None
    if at.endswith(('Z', 'z')):
        at = at[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(at)
    except ValueError:
        raise HTTPException(
            400, "Invalid datetime format. Please use ISO 8601 format (YYYY-MM-DDTHH:MM)"
        )


@app.get("/api/v1/tide/height")
def get_height(
    at: Optional[str] = Query(
        None,
        description="Optional ISO 8601 time. Naive times are station local. Defaults to now.",
    ),
    mode: Literal["harmonic", "spline"] = Query(
        "harmonic",
        description="'harmonic' (fitted model) or 'spline' (passes through real points)",
    ),
):
    """
    Get the ocean tide height at a point in time.

    Outside the span of the current data the boundary height is returned.
    """
    try:
        when = tide_service.resolve_time(_parse_at(at))
        height_ft = tide_service.height(when, mode=CurveMode(mode))
        return {
            "datetime": when.replace(microsecond=0).isoformat(),
            "height_ft": round(height_ft, 3),
            "height_m": round(height_ft * FEET_TO_METERS, 3),
            "mode": mode,
        }
    except HTTPException:
        raise
    except Exception:
        error_id = uuid.uuid4().hex[:8]
        logger.exception(f"Error {error_id} in get_height")
        raise HTTPException(500, detail=f"Internal error (ref: {error_id})")


@app.get("/api/v1/tide/summary")
def get_summary(
    at: Optional[str] = Query(
        None,
        description="Optional ISO 8601 time. Naive times are station local. Defaults to now.",
    ),
):
    """
    Get the widget summary.

    Includes:
    - Current ocean height
    - Trend (Rising, Falling, Stable)
    - Next high or low tide
    - Current canal height (1h45m behind the ocean, 95% amplitude)
    - Data source ('noaa' or 'synthetic') and update time
    """
    try:
        return tide_service.get_summary(_parse_at(at))
    except HTTPException:
        raise
    except Exception:
        error_id = uuid.uuid4().hex[:8]
        logger.exception(f"Error {error_id} in get_summary")
        raise HTTPException(500, detail=f"Internal error (ref: {error_id})")


@app.get("/api/v1/tide/curve")
def get_curve(
    interval: Literal["6", "10", "15", "30", "60"] = Query(
        "10",
        description="Interval in minutes between samples",
    ),
):
    """
    Get ocean and canal heights at regular intervals for charting.

    The ocean curve passes exactly through the fetched predictions.
    """
    try:
        return tide_service.get_curve(interval_minutes=int(interval))
    except ValueError as e:
        raise HTTPException(400, detail=str(e))
    except Exception:
        error_id = uuid.uuid4().hex[:8]
        logger.exception(f"Error {error_id} in get_curve")
        raise HTTPException(500, detail=f"Internal error (ref: {error_id})")


@app.post("/api/v1/tide/refresh")
@limiter.limit("5/minute")
def refresh(request: Request):
    """
    Rebuild the tide data (one provider request, synthetic data on failure).

    Rate limited to 5 requests per minute per IP.
    """
    try:
        snapshot = tide_service.refresh()
        return {
            "source": snapshot.source,
            "updated": snapshot.built_at.replace(microsecond=0).isoformat(),
            "points": len(snapshot.series),
        }
    except Exception:
        error_id = uuid.uuid4().hex[:8]
        logger.exception(f"Error {error_id} in refresh")
        raise HTTPException(500, detail=f"Internal error (ref: {error_id})")


@app.get("/health")
async def health():
    return {"status": "healthy", "station": tide_service.station_id}
