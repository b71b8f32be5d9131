import logging
from typing import List

from features.stations.models.station_types import Station
from features.stations.services.station_cache import StationCache
from features.stations.services.station_finder import StationFinder

logger = logging.getLogger(__name__)

class CachedStationFinder(StationFinder):
    """Cache-first wrapper around an upstream finder.

    Id lookups are served from the station cache while fresh. Nearest-station
    searches always go upstream, and every station returned is written back to
    the cache for later id lookups.
    """

    def __init__(self, finder: StationFinder, station_cache: StationCache):
        self.finder = finder
        self.station_cache = station_cache

    async def find_station(self, station_id: str) -> Station:
        cached = await self.station_cache.get(station_id)
        if cached is not None:
            logger.debug(f"Found cached station: {station_id}")
            return cached

        logger.debug(f"Cache miss for station: {station_id}, fetching from upstream")
        station = await self.finder.find_station(station_id)
        await self.station_cache.put(station)
        return station

    async def find_nearest_stations(
        self,
        latitude: float,
        longitude: float,
        limit: int = 5,
        require_harmonic_constants: bool = False
    ) -> List[Station]:
        stations = await self.finder.find_nearest_stations(
            latitude,
            longitude,
            limit,
            require_harmonic_constants
        )

        for station in stations:
            # Distance is relative to this query, id lookups report 0
            await self.station_cache.put(station.model_copy(update={"distance": 0.0}))
        logger.debug(f"Cached {len(stations)} stations from nearest stations search")
        return stations
