"""
API endpoint tests for the FastAPI application
"""
import pytest
from fastapi.testclient import TestClient

from conftest import FIXED_NOW, make_station
from features.common.exceptions.tide_exceptions import (
    InvalidRequestError,
    StationNotFoundError,
    UpstreamUnavailableError
)
from features.common.utils.time_utils import to_millis
from features.tides.models.tide_types import TidePrediction, TideResponse, TideState
from main import app


class StubTideService:
    """Records calls and answers with canned values or a configured error."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    def _answer(self, name, *args):
        self.calls.append((name, args))
        if self.error:
            raise self.error

    def _response(self, station_id="8443970"):
        now = to_millis(FIXED_NOW)
        return TideResponse(
            timestamp=now,
            local_time="2024-06-15T10:00:00-05:00",
            water_level=7.0,
            predicted_level=7.0,
            tide_type=TideState.FALLING,
            nearest_station=station_id,
            location="Boston",
            latitude=42.3539,
            longitude=-71.0503,
            station_distance=0.4,
            time_zone_offset_seconds=-18000,
            calculation_method="NOAA API",
            extremes=[],
            predictions=[TidePrediction(timestamp=now, height=7.0)]
        )

    async def get_tide_by_station(self, station_id, start_time=None, end_time=None, use_calculation=False):
        self._answer("get_tide_by_station", station_id, start_time, end_time, use_calculation)
        return self._response(station_id)

    async def get_tide_by_coordinates(self, latitude, longitude, start_time=None, end_time=None, use_calculation=False):
        self._answer("get_tide_by_coordinates", latitude, longitude, start_time, end_time, use_calculation)
        return self._response()

    async def list_nearest_stations(self, latitude, longitude, limit=None, require_harmonic_constants=False):
        self._answer("list_nearest_stations", latitude, longitude, limit, require_harmonic_constants)
        return [make_station("8443970", distance=0.4), make_station("8443725", distance=2.4)]

    async def get_station(self, station_id):
        self._answer("get_station", station_id)
        return make_station(station_id)


@pytest.fixture
def service():
    stub = StubTideService()
    app.state.tide_service = stub
    return stub


@pytest.fixture
def client(service):
    """Create a test client for the FastAPI app without running startup."""
    return TestClient(app)


def fail_with(error):
    app.state.tide_service = StubTideService(error)


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestTidesEndpoint:
    """Tests for the /tides endpoint."""

    def test_by_station(self, client, service):
        response = client.get("/tides?stationId=8443970&useCalculation=true")

        assert response.status_code == 200
        data = response.json()
        assert data["nearest_station"] == "8443970"
        assert data["tide_type"] == "FALLING"
        assert service.calls[0] == ("get_tide_by_station", ("8443970", None, None, True))

    def test_by_coordinates_with_window(self, client, service):
        response = client.get(
            "/tides?lat=42.35&lon=-71.05"
            "&startDateTime=2024-06-15T00:00:00&endDateTime=2024-06-16T00:00:00"
        )

        assert response.status_code == 200
        name, args = service.calls[0]
        assert name == "get_tide_by_coordinates"
        assert args[:2] == (42.35, -71.05)
        assert args[2].day == 15 and args[3].day == 16

    def test_missing_identifiers_is_bad_request(self, client):
        assert client.get("/tides").status_code == 400
        assert client.get("/tides?lat=42.35").status_code == 400

    def test_invalid_request_is_bad_request(self, client):
        fail_with(InvalidRequestError("Date range cannot exceed 5 days"))
        response = client.get("/tides?stationId=8443970")
        assert response.status_code == 400
        assert "5 days" in response.json()["detail"]

    def test_not_found_is_server_error(self, client):
        fail_with(StationNotFoundError("Station 0000000 not found in any source"))
        assert client.get("/tides?stationId=0000000").status_code == 500

    def test_upstream_failure_is_server_error(self, client):
        fail_with(UpstreamUnavailableError("NOAA API returned status 503", status=503))
        response = client.get("/tides?lat=42.35&lon=-71.05")
        assert response.status_code == 500
        assert "503" in response.json()["detail"]


class TestStationsEndpoint:
    """Tests for the /stations endpoints."""

    def test_nearest_stations(self, client, service):
        response = client.get("/stations?lat=42.35&lon=-71.05&limit=2&requireHarmonicConstants=true")

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["stations"]] == ["8443970", "8443725"]
        assert service.calls[0] == ("list_nearest_stations", (42.35, -71.05, 2, True))

    def test_default_limit_is_left_to_service(self, client, service):
        client.get("/stations?lat=42.35&lon=-71.05")
        assert service.calls[0] == ("list_nearest_stations", (42.35, -71.05, None, False))

    def test_station_by_query_id(self, client):
        response = client.get("/stations?stationId=8447930")
        assert response.status_code == 200
        assert response.json()["stations"][0]["id"] == "8447930"

    def test_station_by_path(self, client):
        response = client.get("/stations/8447930")
        assert response.status_code == 200
        assert response.json()["id"] == "8447930"

    def test_missing_identifiers_is_bad_request(self, client):
        assert client.get("/stations").status_code == 400

    def test_station_lookup_failure_is_server_error(self, client):
        fail_with(StationNotFoundError("Station 0000000 not found in any source"))
        assert client.get("/stations/0000000").status_code == 500
