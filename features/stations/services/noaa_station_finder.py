import asyncio
import logging
from typing import List, Optional, Tuple

from features.common.exceptions.tide_exceptions import StationNotFoundError, UpstreamUnavailableError
from features.common.services.noaa_client import NOAAClient
from features.common.utils.geo import haversine_km
from features.stations.models.station_types import (
    HarmonicConstants,
    HarmonicConstituent,
    NOAAStationMetadata,
    Station,
    StationCapability,
    StationSource
)
from features.stations.services.station_cache import HarmonicConstantsCache, StationListCache
from features.stations.services.station_finder import StationFinder

logger = logging.getLogger(__name__)

MEAN_SEA_LEVEL_CONSTITUENT = "Z0"

class NOAAStationFinder(StationFinder):
    """Station finder backed by the NOAA CO-OPS metadata API.

    The full tide prediction roster is cached for 24 hours and refetched
    whole on expiry. Harmonic constants are cached per station.
    """

    def __init__(
        self,
        client: NOAAClient,
        station_list_cache: StationListCache,
        harmonic_cache: HarmonicConstantsCache,
        metadata_url: str,
        station_list_path: str = "tidepredstations.json",
        harmonic_path: str = "stations/{station_id}/harcon.json",
        units: str = "english",
        harmonic_scan_batch_size: int = 10
    ):
        self.client = client
        self.station_list_cache = station_list_cache
        self.harmonic_cache = harmonic_cache
        self.station_list_url = f"{metadata_url}/{station_list_path}"
        self.harmonic_url = f"{metadata_url}/{harmonic_path}"
        self.units = units
        self.harmonic_scan_batch_size = harmonic_scan_batch_size

    async def get_station_list(self) -> List[NOAAStationMetadata]:
        """Get the station roster, from cache when fresh."""
        cached = await self.station_list_cache.get()
        if cached is not None:
            logger.debug(f"Using cached station list with {len(cached)} stations")
            return cached

        logger.info("Fetching fresh station list from NOAA API")
        data = await self.client.get_json(self.station_list_url)
        try:
            stations = [NOAAStationMetadata.model_validate(s) for s in data["stationList"]]
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamUnavailableError(f"Malformed NOAA station list: {str(e)}") from e

        logger.info(f"Fetched {len(stations)} stations from NOAA API")
        await self.station_list_cache.put(stations)
        return stations

    async def get_harmonic_constants(self, station_id: str) -> Optional[HarmonicConstants]:
        """Get harmonic constants for a station, or None if unavailable."""
        cached = await self.harmonic_cache.get(station_id)
        if cached is not None:
            logger.debug(f"Found cached harmonic constants for station {station_id}")
            return cached

        try:
            data = await self.client.get_json(
                self.harmonic_url.format(station_id=station_id),
                params={"units": self.units}
            )
            rows = data.get("HarmonicConstituents") or []
            constants = HarmonicConstants(
                station_id=station_id,
                mean_sea_level=next(
                    (float(r["amplitude"]) for r in rows if r.get("name") == MEAN_SEA_LEVEL_CONSTITUENT),
                    0.0
                ),
                constituents=[
                    HarmonicConstituent(
                        name=r["name"],
                        speed=float(r["speed"]),
                        amplitude=float(r["amplitude"]),
                        phase=float(r["phase_GMT"])
                    )
                    for r in rows
                    if r.get("name") != MEAN_SEA_LEVEL_CONSTITUENT
                ]
            )
        except (UpstreamUnavailableError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"⚠️ Failed to fetch harmonic constants for station {station_id}: {str(e)}")
            return None

        await self.harmonic_cache.put(constants)
        return constants

    @staticmethod
    def _to_station(
        metadata: NOAAStationMetadata,
        distance: float = 0.0,
        harmonic_constants: Optional[HarmonicConstants] = None
    ) -> Station:
        return Station(
            id=metadata.station_id,
            name=metadata.display_name,
            state=metadata.state,
            region=metadata.region,
            latitude=metadata.lat,
            longitude=metadata.lon,
            distance=distance,
            source=StationSource.NOAA,
            capabilities={StationCapability.WATER_LEVEL},
            time_zone_offset=metadata.time_zone_offset,
            level=metadata.level,
            station_kind=metadata.station_type,
            harmonic_constants=harmonic_constants
        )

    async def find_station(self, station_id: str) -> Station:
        logger.debug(f"Fetching station data for ID: {station_id}")
        stations = await self.get_station_list()
        metadata = next((s for s in stations if s.station_id == station_id), None)
        if metadata is None:
            raise StationNotFoundError(f"Station not found: {station_id}")

        return self._to_station(metadata, harmonic_constants=await self.get_harmonic_constants(station_id))

    async def _with_constants(self, candidates: List[Tuple[NOAAStationMetadata, float]]) -> List[Station]:
        constants = await asyncio.gather(
            *(self.get_harmonic_constants(metadata.station_id) for metadata, _ in candidates)
        )
        return [
            self._to_station(metadata, distance, hc)
            for (metadata, distance), hc in zip(candidates, constants)
        ]

    async def find_nearest_stations(
        self,
        latitude: float,
        longitude: float,
        limit: int = 5,
        require_harmonic_constants: bool = False
    ) -> List[Station]:
        logger.debug(f"Finding nearest stations to lat={latitude}, lon={longitude}")
        stations = await self.get_station_list()

        ranked = sorted(
            ((s, haversine_km(latitude, longitude, s.lat, s.lon)) for s in stations),
            key=lambda pair: pair[1]
        )

        if not require_harmonic_constants:
            return await self._with_constants(ranked[:limit])

        # Scan outward in batches until enough stations carry constants
        found: List[Station] = []
        batch_size = max(self.harmonic_scan_batch_size, limit)
        for start in range(0, len(ranked), batch_size):
            batch = await self._with_constants(ranked[start:start + batch_size])
            found.extend(s for s in batch if s.has_harmonic_constants)
            if len(found) >= limit:
                break

        logger.debug(f"Found {len(found)} stations with harmonic constants")
        return found[:limit]
