from abc import ABC, abstractmethod
from typing import List

from features.stations.models.station_types import Station

class StationFinder(ABC):
    """Looks up tide stations in one upstream-backed source."""

    @abstractmethod
    async def find_station(self, station_id: str) -> Station:
        """Return the station with ``station_id``.

        Raises:
            StationNotFoundError: if the source has no such station.
        """

    @abstractmethod
    async def find_nearest_stations(
        self,
        latitude: float,
        longitude: float,
        limit: int = 5,
        require_harmonic_constants: bool = False
    ) -> List[Station]:
        """Return up to ``limit`` stations ordered by ascending distance."""
