"""
Shared fixtures and fakes for the test suite.
"""
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from core.cache import CacheStore, build_cache_store
from features.common.exceptions.tide_exceptions import StationNotFoundError, UpstreamUnavailableError
from features.stations.models.station_types import HarmonicConstants, HarmonicConstituent, Station
from features.stations.services.station_finder import StationFinder

# 10:00 local at a UTC-5 station
FIXED_NOW = datetime(2024, 6, 15, 15, 0, tzinfo=timezone.utc)
EST_OFFSET = -5 * 3600


def fixed_clock(now: datetime = FIXED_NOW) -> Callable[[], datetime]:
    return lambda: now


class FakeNOAAClient:
    """Stands in for NOAAClient; answers by URL from a routing table."""

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.calls: List[Tuple[str, Optional[Dict[str, str]]]] = []

    async def get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        self.calls.append((url, params))
        handler = self.routes.get(url)
        if handler is None:
            raise UpstreamUnavailableError(f"No route for {url}", status=404)
        if callable(handler):
            return handler(params or {})
        return handler

    def calls_to(self, url: str) -> int:
        return sum(1 for called, _ in self.calls if called == url)


class FailingStore(CacheStore):
    """Cache store whose writes fail for chosen keys."""

    def __init__(self, store: CacheStore, failing_keys: List[str]):
        super().__init__(store.backend)
        self.failing_keys = set(failing_keys)

    async def set(self, key, value):
        if key in self.failing_keys:
            raise ConnectionError(f"write refused for {key}")
        await super().set(key, value)

    async def multi_set(self, pairs):
        pairs = list(pairs)
        if any(key in self.failing_keys for key, _ in pairs):
            raise ConnectionError("chunk write refused")
        await super().multi_set(pairs)


class StaticFinder(StationFinder):
    """Finder over a fixed list of stations, already ordered by distance."""

    def __init__(self, stations: List[Station]):
        self.stations = stations
        self.calls = 0

    async def find_station(self, station_id: str) -> Station:
        self.calls += 1
        for station in self.stations:
            if station.id == station_id:
                return station
        raise StationNotFoundError(f"Station not found: {station_id}")

    async def find_nearest_stations(self, latitude, longitude, limit=5, require_harmonic_constants=False):
        self.calls += 1
        stations = [s for s in self.stations if s.has_harmonic_constants or not require_harmonic_constants]
        return stations[:limit]


def make_station(
    station_id: str = "8443970",
    latitude: float = 42.3539,
    longitude: float = -71.0503,
    station_kind: str = "R",
    distance: float = 0.0,
    with_constants: bool = False,
    time_zone_offset: Optional[int] = EST_OFFSET
) -> Station:
    constants = None
    if with_constants:
        constants = HarmonicConstants(
            station_id=station_id,
            mean_sea_level=5.0,
            constituents=[HarmonicConstituent(name="M2", speed=28.984104, amplitude=4.5, phase=110.0)]
        )
    return Station(
        id=station_id,
        name=f"Station {station_id}",
        state="MA",
        latitude=latitude,
        longitude=longitude,
        distance=distance,
        time_zone_offset=time_zone_offset,
        station_kind=station_kind,
        harmonic_constants=constants
    )


@pytest.fixture
def store():
    """A fresh in-memory store, isolated by namespace."""
    return build_cache_store({"backend": "memory", "prefix": f"test-{uuid.uuid4().hex}"})


@pytest.fixture
def clock():
    return fixed_clock()
