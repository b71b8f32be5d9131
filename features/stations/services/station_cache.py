import logging
from typing import Callable, List, Optional, TypeVar

from core.cache import CacheStore
from features.common.utils.time_utils import Clock, to_millis, utc_now
from features.stations.models.station_types import HarmonicConstants, NOAAStationMetadata, Station

logger = logging.getLogger(__name__)

T = TypeVar("T")

class _TimedCache:
    """Shared read/validity logic for records stamped with ``last_updated_millis``."""

    def __init__(self, store: CacheStore, validity_ms: int, clock: Clock = utc_now):
        self.store = store
        self.validity_ms = validity_ms
        self.clock = clock

    def now_millis(self) -> int:
        return to_millis(self.clock())

    def is_fresh(self, last_updated_millis: int) -> bool:
        return self.now_millis() - last_updated_millis < self.validity_ms

    async def _read(self, key: str, decode: Callable[[dict], T]) -> Optional[T]:
        """Fetch and decode a fresh record. Errors and stale records are misses."""
        try:
            raw = await self.store.get(key)
        except Exception as e:
            logger.error(f"Error reading cache key {key}: {str(e)}")
            return None
        if raw is None:
            return None
        try:
            if not self.is_fresh(raw["last_updated_millis"]):
                return None
            return decode(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Undecodable cache record {key}: {str(e)}")
            return None

    async def _write(self, key: str, record: dict) -> bool:
        try:
            await self.store.set(key, record)
            return True
        except Exception as e:
            logger.warning(f"⚠️ Failed to write cache key {key}: {str(e)}")
            return False

class StationCache(_TimedCache):
    """Individual station records keyed by station id."""

    def _key(self, station_id: str) -> str:
        return f"station:{station_id}"

    async def get(self, station_id: str) -> Optional[Station]:
        return await self._read(
            self._key(station_id),
            lambda raw: Station.model_validate(raw["station"])
        )

    async def put(self, station: Station) -> bool:
        now = self.now_millis()
        return await self._write(self._key(station.id), {
            "station": station.model_dump(mode="json"),
            "last_updated_millis": now,
            "expiry_millis": now + self.validity_ms
        })

class HarmonicConstantsCache(_TimedCache):
    """Harmonic constants keyed by station id."""

    def _key(self, station_id: str) -> str:
        return f"harmonic_constants:{station_id}"

    async def get(self, station_id: str) -> Optional[HarmonicConstants]:
        return await self._read(
            self._key(station_id),
            lambda raw: HarmonicConstants.model_validate(raw["harmonic_constants"])
        )

    async def put(self, constants: HarmonicConstants) -> bool:
        now = self.now_millis()
        return await self._write(self._key(constants.station_id), {
            "harmonic_constants": constants.model_dump(mode="json"),
            "last_updated_millis": now,
            "expiry_millis": now + self.validity_ms
        })

class StationListCache(_TimedCache):
    """Full station roster stored as fixed-size partitions.

    Partition 0 carries ``total_partitions`` and ``last_updated_millis``. The
    roster is valid only if partition 0 is fresh and every partition exists.
    """

    def __init__(
        self,
        store: CacheStore,
        validity_ms: int,
        list_id: str = "NOAA_STATION_LIST",
        partition_size: int = 100,
        clock: Clock = utc_now
    ):
        super().__init__(store, validity_ms, clock)
        self.list_id = list_id
        self.partition_size = partition_size

    def _key(self, partition_id: int) -> str:
        return f"station_list:{self.list_id}:{partition_id}"

    async def get(self) -> Optional[List[NOAAStationMetadata]]:
        head = await self._read(self._key(0), lambda raw: raw)
        if head is None:
            return None

        total = head.get("total_partitions", 1)
        if not isinstance(total, int) or total < 1:
            logger.error(f"Station list {self.list_id} has an invalid partition count: {total}")
            return None
        try:
            rest = await self.store.multi_get([self._key(i) for i in range(1, total)])
        except Exception as e:
            logger.error(f"Error reading station list partitions: {str(e)}")
            return None

        partitions = [head, *rest]
        if any(p is None for p in partitions):
            logger.debug(f"Station list {self.list_id} is missing partitions")
            return None

        try:
            return [
                NOAAStationMetadata.model_validate(entry)
                for partition in partitions
                for entry in partition["stations"]
            ]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Undecodable station list {self.list_id}: {str(e)}")
            return None

    async def put(self, stations: List[NOAAStationMetadata]) -> bool:
        now = self.now_millis()
        chunks = [
            stations[i:i + self.partition_size]
            for i in range(0, len(stations), self.partition_size)
        ] or [[]]
        pairs = [
            (self._key(i), {
                "list_id": self.list_id,
                "partition_id": i,
                "stations": [s.model_dump(mode="json", by_alias=True) for s in chunk],
                "total_partitions": len(chunks),
                "last_updated_millis": now,
                "expiry_millis": now + self.validity_ms
            })
            for i, chunk in enumerate(chunks)
        ]
        try:
            # Head partition goes last, it is what marks the roster fresh
            await self.store.multi_set(pairs[1:])
            await self.store.set(*pairs[0])
        except Exception as e:
            logger.warning(f"⚠️ Failed to cache station list {self.list_id}: {str(e)}")
            return False
        logger.info(f"Saved {len(stations)} stations to cache in {len(chunks)} partitions")
        return True
