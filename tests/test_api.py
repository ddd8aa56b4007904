"""
API endpoint tests for FastAPI application.
"""
import threading
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import numpy as np
import pytest
from fastapi.testclient import TestClient

from tidewidget import main
from tidewidget.main import app
from tidewidget.tide_data import TidePoint, TideSeries
from tidewidget.tide_service import TideService
from tests.config import TEST_TIMEZONE

TZ = ZoneInfo(TEST_TIMEZONE)
START = datetime(2025, 6, 15, 0, 0, tzinfo=TZ)


class StubProvider:
    """Provider returning a fixed result instead of calling NOAA."""

    def __init__(self, result):
        self.result = result

    def fetch_series(self, day=None):
        return self.result


def make_dense_series():
    points = []
    for i in range(24 * 10 + 1):
        h = i / 10.0
        height = 2.6 + 2.2 * np.sin(2 * np.pi * h / 12.42)
        points.append(TidePoint(START + timedelta(minutes=6 * i), float(height)))
    return TideSeries(points)


@pytest.fixture
def service(monkeypatch):
    """Replace the app's service with one backed by a stub provider."""
    stub = TideService(provider=StubProvider(make_dense_series()), timezone_str=TEST_TIMEZONE)
    monkeypatch.setattr(main, "tide_service", stub)
    main.limiter.reset()
    return stub


@pytest.fixture
def client(service):
    """Create a test client for the FastAPI app."""
    return TestClient(app)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_ok(self, client):
        """Health endpoint should return healthy status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["station"] == "8658163"

    def test_security_headers(self, client):
        """Every response carries the security headers."""
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


class TestHeightEndpoint:
    """Tests for /api/v1/tide/height."""

    def test_height_default_mode(self, client):
        """Harmonic mode is the default."""
        response = client.get("/api/v1/tide/height", params={"at": "2025-06-15T09:00"})
        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "harmonic"
        assert data["datetime"] == "2025-06-15T09:00:00-04:00"
        assert data["height_m"] == pytest.approx(data["height_ft"] * 0.3048, abs=1e-3)

    def test_height_spline_hits_data(self, client, service):
        """Spline mode returns the real value at a data point."""
        point = service.snapshot.series[15]
        response = client.get(
            "/api/v1/tide/height",
            params={"at": point.timestamp.isoformat(), "mode": "spline"},
        )
        assert response.status_code == 200
        assert response.json()["height_ft"] == pytest.approx(point.height, abs=1e-3)

    def test_height_now(self, client):
        """Without 'at' the current time is used."""
        response = client.get("/api/v1/tide/height")
        assert response.status_code == 200
        assert "height_ft" in response.json()

    def test_height_utc_suffix(self, client):
        """A trailing 'Z' is read as UTC."""
        response = client.get("/api/v1/tide/height", params={"at": "2025-06-15T13:00:00Z"})
        assert response.status_code == 200
        assert response.json()["datetime"] == "2025-06-15T13:00:00+00:00"

    def test_height_invalid_datetime(self, client):
        """Invalid datetime should return 400."""
        response = client.get("/api/v1/tide/height", params={"at": "invalid"})
        assert response.status_code == 400
        assert "ISO 8601" in response.json()["detail"]

    def test_height_invalid_mode(self, client):
        """Unknown mode should return 422."""
        response = client.get("/api/v1/tide/height", params={"mode": "linear"})
        assert response.status_code == 422


class TestSummaryEndpoint:
    """Tests for /api/v1/tide/summary."""

    def test_summary_structure(self, client):
        """Summary should include height, trend, next tide and canal."""
        response = client.get("/api/v1/tide/summary", params={"at": "2025-06-15T09:00"})
        assert response.status_code == 200
        data = response.json()

        assert data["source"] == "noaa"
        assert data["station"]["name"] == "Ocean Isle Beach, NC"
        assert data["trend"] in ["Rising", "Falling", "Stable"]
        assert data["next_tide"]["type"] in ["high", "low"]
        assert "canal_height_ft" in data
        assert "canal_height_m" in data

    def test_summary_synthetic_source(self, client, service):
        """Failed provider requests are reported as synthetic data."""
        service.provider.result = None
        service.refresh()
        response = client.get("/api/v1/tide/summary")
        assert response.status_code == 200
        assert response.json()["source"] == "synthetic"

    def test_summary_invalid_datetime(self, client):
        response = client.get("/api/v1/tide/summary", params={"at": "2025-13-45"})
        assert response.status_code == 400


class TestCurveEndpoint:
    """Tests for /api/v1/tide/curve."""

    def test_curve_default_interval(self, client):
        """Default interval is 10 minutes."""
        response = client.get("/api/v1/tide/curve")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 24 * 6 + 1
        assert set(data[0]) == {"datetime", "ocean_ft", "canal_ft"}

    @pytest.mark.parametrize("interval,expected", [("6", 241), ("15", 97), ("30", 49), ("60", 25)])
    def test_curve_intervals(self, client, interval, expected):
        response = client.get("/api/v1/tide/curve", params={"interval": interval})
        assert response.status_code == 200
        assert len(response.json()) == expected

    def test_curve_invalid_interval(self, client):
        """Unsupported interval should return 422."""
        response = client.get("/api/v1/tide/curve", params={"interval": "7"})
        assert response.status_code == 422


class TestRefreshEndpoint:
    """Tests for /api/v1/tide/refresh."""

    def test_refresh(self, client):
        """Refresh rebuilds the snapshot from the provider."""
        response = client.post("/api/v1/tide/refresh")
        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "noaa"
        assert data["points"] == 241

    def test_refresh_rate_limited(self, client):
        """More than 5 refreshes a minute are rejected."""
        codes = [client.post("/api/v1/tide/refresh").status_code for _ in range(6)]
        assert codes[:5] == [200] * 5
        assert codes[5] == 429


class BlockingProvider:
    """Provider that holds the request until released, like a slow NOAA call."""

    def __init__(self, result):
        self.result = result
        self.started = threading.Event()
        self.release = threading.Event()
        self.timed_out = False

    def fetch_series(self, day=None):
        self.started.set()
        self.timed_out = not self.release.wait(timeout=5)
        return self.result


class TestBlockingRequests:
    """Tests that a slow provider request does not stall the server."""

    def test_slow_refresh_does_not_block_health(self, service):
        """Health answers while a refresh is waiting on the provider."""
        provider = BlockingProvider(make_dense_series())
        service.provider = provider
        results = {}

        with TestClient(app) as client:
            worker = threading.Thread(
                target=lambda: results.update(refresh=client.post("/api/v1/tide/refresh"))
            )
            worker.start()
            assert provider.started.wait(timeout=5)

            health = client.get("/health")
            provider.release.set()
            worker.join(timeout=10)

        assert health.status_code == 200
        assert not provider.timed_out
        assert results["refresh"].status_code == 200
