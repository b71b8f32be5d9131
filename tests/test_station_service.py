"""
Tests for source fallback in the station service
"""
import asyncio
from typing import List

import pytest

from conftest import make_station
from features.common.exceptions.tide_exceptions import StationNotFoundError, UpstreamUnavailableError
from features.stations.models.station_types import Station, StationSource
from features.stations.services.station_finder import StationFinder
from features.stations.services.station_service import StationService


class StubFinder(StationFinder):
    """Finder returning fixed stations, or failing on every call."""

    def __init__(self, stations: List[Station] = None, fail: bool = False, delay: float = 0.0):
        self.stations = stations or []
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def find_station(self, station_id: str) -> Station:
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.fail:
            raise UpstreamUnavailableError("source down")
        for station in self.stations:
            if station.id == station_id:
                return station
        raise StationNotFoundError(f"Station not found: {station_id}")

    async def find_nearest_stations(self, latitude, longitude, limit=5, require_harmonic_constants=False):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.fail:
            raise UpstreamUnavailableError("source down")
        stations = [s for s in self.stations if s.has_harmonic_constants or not require_harmonic_constants]
        return stations[:limit]


@pytest.fixture
def fallback_stations():
    return [
        make_station("8443970", distance=0.4),
        make_station("8443725", distance=2.4, station_kind="S"),
        make_station("8447930", distance=110.0, with_constants=True),
    ]


class TestPreferredThenFallback:
    """Tests for the preferred source and sequential fallback."""

    async def test_failing_preferred_falls_back(self, fallback_stations):
        """The fallback's results are returned in the fallback's distance order."""
        preferred = StubFinder(fail=True)
        fallback = StubFinder(fallback_stations)
        service = StationService({StationSource.UKHO: preferred, StationSource.NOAA: fallback})

        stations = await service.find_nearest_stations(
            42.35, -71.05, limit=3, preferred_source=StationSource.UKHO
        )

        assert [s.id for s in stations] == ["8443970", "8443725", "8447930"]
        assert preferred.calls == 1
        assert fallback.calls == 1

    async def test_preferred_success_skips_fallbacks(self, fallback_stations):
        preferred = StubFinder(fallback_stations[:1])
        fallback = StubFinder(fallback_stations)
        service = StationService({StationSource.NOAA: fallback, StationSource.CHS: preferred})

        station = await service.get_station("8443970", preferred_source=StationSource.CHS)

        assert station.id == "8443970"
        assert fallback.calls == 0

    async def test_preferred_source_is_not_retried(self, fallback_stations):
        preferred = StubFinder(fail=True)
        service = StationService({StationSource.NOAA: preferred, StationSource.CHS: StubFinder(fallback_stations)})

        await service.get_station("8443970", preferred_source=StationSource.NOAA)
        assert preferred.calls == 1

    async def test_sequential_fallback_stops_at_first_success(self, fallback_stations):
        first = StubFinder(fallback_stations)
        second = StubFinder(fallback_stations)
        service = StationService({StationSource.NOAA: first, StationSource.CHS: second})

        await service.get_station("8443970")
        assert first.calls == 1
        assert second.calls == 0

    async def test_unconfigured_preferred_source_uses_others(self, fallback_stations):
        service = StationService({StationSource.NOAA: StubFinder(fallback_stations)})
        station = await service.get_station("8447930", preferred_source=StationSource.UKHO)
        assert station.id == "8447930"

    async def test_empty_result_counts_as_success(self):
        service = StationService({StationSource.NOAA: StubFinder([]), StationSource.CHS: StubFinder(fail=True)})
        assert await service.find_nearest_stations(0.0, 0.0) == []


class TestHarmonicFilter:
    """Tests for the harmonic constants requirement."""

    async def test_harmonic_flag_is_forwarded_to_finder(self, fallback_stations):
        """The finder receives the flag; the NOAA finder filtering is covered with the finder tests."""
        service = StationService({StationSource.NOAA: StubFinder(fallback_stations)})

        stations = await service.find_nearest_stations(
            42.35, -71.05, limit=5, require_harmonic_constants=True
        )

        assert [s.id for s in stations] == ["8447930"]


class TestAllSourcesFail:
    """Tests for exhaustion of every source."""

    async def test_raises_not_found_with_each_error(self):
        service = StationService({
            StationSource.NOAA: StubFinder(fail=True),
            StationSource.UKHO: StubFinder(fail=True),
        })

        with pytest.raises(StationNotFoundError) as exc_info:
            await service.get_station("8443970")
        assert "NOAA" in str(exc_info.value)
        assert "UKHO" in str(exc_info.value)

    async def test_no_sources_configured(self):
        with pytest.raises(StationNotFoundError):
            await StationService({}).find_nearest_stations(0.0, 0.0)


class TestConcurrentFallback:
    """Tests for concurrent fan-out across fallback sources."""

    async def test_first_success_wins(self, fallback_stations):
        slow = StubFinder(fallback_stations[:1], delay=0.5)
        fast = StubFinder(fallback_stations[1:2], delay=0.0)
        service = StationService(
            {StationSource.NOAA: slow, StationSource.CHS: fast},
            concurrent_fallback=True
        )

        stations = await service.find_nearest_stations(42.35, -71.05, limit=1)
        assert [s.id for s in stations] == ["8443725"]

    async def test_failure_does_not_win(self, fallback_stations):
        service = StationService(
            {
                StationSource.NOAA: StubFinder(fail=True),
                StationSource.CHS: StubFinder(fallback_stations, delay=0.05),
            },
            concurrent_fallback=True
        )

        station = await service.get_station("8447930")
        assert station.id == "8447930"

    async def test_all_failing_raises(self):
        service = StationService(
            {StationSource.NOAA: StubFinder(fail=True), StationSource.CHS: StubFinder(fail=True)},
            concurrent_fallback=True
        )
        with pytest.raises(StationNotFoundError):
            await service.get_station("8443970")
