import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel

from core.cache import CacheStore
from features.common.exceptions.tide_exceptions import CacheWriteError
from features.common.utils.time_utils import Clock, to_millis, utc_now
from features.stations.models.station_types import Station
from features.tides.models.tide_types import DayCacheRecord

logger = logging.getLogger(__name__)

FetchDay = Callable[[Station, date], Awaitable[DayCacheRecord]]

class BatchWriteResult(BaseModel):
    """Outcome of a chunked batch write. Failed chunks can be retried as-is."""
    written: int = 0
    failed_chunks: List[List[DayCacheRecord]] = []

    @property
    def ok(self) -> bool:
        return not self.failed_chunks

class PredictionCache:
    """Day-partitioned cache of station predictions and extremes.

    Records are keyed by station id and station-local ISO date. A record is
    valid while ``now - last_updated_millis`` is inside the validity window;
    anything older is reported as a miss and never served.
    """

    NAMESPACE = "tide_predictions"

    def __init__(
        self,
        store: CacheStore,
        validity_ms: int = 7 * 24 * 60 * 60 * 1000,
        batch_size: int = 25,
        clock: Clock = utc_now
    ):
        self.store = store
        self.validity_ms = validity_ms
        self.batch_size = batch_size
        self.clock = clock

    def _key(self, station_id: str, iso_date: str) -> str:
        return f"{self.NAMESPACE}:{station_id}:{iso_date}"

    def is_valid(self, record: DayCacheRecord) -> bool:
        return to_millis(self.clock()) - record.last_updated_millis < self.validity_ms

    async def get(self, station_id: str, day: date) -> Optional[DayCacheRecord]:
        """Return the cached record for the day, or None on a miss."""
        iso_date = day.isoformat()
        try:
            raw = await self.store.get(self._key(station_id, iso_date))
        except Exception as e:
            logger.error(f"Error reading predictions cache for station {station_id} on {iso_date}: {str(e)}")
            return None

        if raw is None:
            logger.debug(f"Cache miss for station {station_id} on {iso_date}")
            return None

        try:
            record = DayCacheRecord.model_validate(raw)
        except ValueError as e:
            logger.error(f"Undecodable predictions cache entry for station {station_id} on {iso_date}: {str(e)}")
            return None

        if not self.is_valid(record):
            logger.debug(f"Expired cache entry for station {station_id} on {iso_date}")
            return None

        logger.debug(f"Cache hit for station {station_id} on {iso_date}")
        return record

    async def put(self, record: DayCacheRecord) -> None:
        try:
            await self.store.set(self._key(record.station_id, record.date), record.model_dump(mode="json"))
        except Exception as e:
            logger.error(f"Error saving predictions for station {record.station_id} on {record.date}: {str(e)}")
            raise CacheWriteError(str(e)) from e
        logger.debug(f"Cached predictions for station {record.station_id} on {record.date}")

    async def _write_chunk(self, chunk: List[DayCacheRecord]) -> None:
        await self.store.multi_set(
            (self._key(r.station_id, r.date), r.model_dump(mode="json")) for r in chunk
        )

    async def put_batch(self, records: List[DayCacheRecord]) -> BatchWriteResult:
        """Write records in chunks concurrently.

        Each chunk succeeds or fails on its own; failures are reported in the
        result instead of being raised so the caller can retry them.
        """
        chunks = [records[i:i + self.batch_size] for i in range(0, len(records), self.batch_size)]
        logger.debug(f"Saving batch of {len(records)} predictions in {len(chunks)} chunks")

        outcomes = await asyncio.gather(
            *(self._write_chunk(chunk) for chunk in chunks),
            return_exceptions=True
        )

        result = BatchWriteResult()
        for chunk, outcome in zip(chunks, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error saving chunk of {len(chunk)} prediction records: {str(outcome)}")
                result.failed_chunks.append(chunk)
            else:
                result.written += len(chunk)
        return result

    async def get_or_fill(self, station: Station, dates: List[date], fetch_fn: FetchDay) -> List[DayCacheRecord]:
        """Return one record per date, fetching and storing any misses.

        Lookups and fetches run concurrently; results are returned in ``dates``
        order. Write failures are logged and the fetched records are still
        returned. If any fetch fails, the days that did arrive are cached
        before the first failure is raised.
        """
        cached = await asyncio.gather(*(self.get(station.id, day) for day in dates))
        missing = [day for day, record in zip(dates, cached) if record is None]
        if not missing:
            return list(cached)

        logger.info(f"Fetching {len(missing)} of {len(dates)} days for station {station.id}")
        outcomes = await asyncio.gather(
            *(fetch_fn(station, day) for day in missing),
            return_exceptions=True
        )
        fetched = [o for o in outcomes if not isinstance(o, BaseException)]
        errors = [o for o in outcomes if isinstance(o, BaseException)]

        result = await self.put_batch(fetched)
        if not result.ok:
            failed = sum(len(chunk) for chunk in result.failed_chunks)
            logger.warning(f"⚠️ {failed} fetched day records for station {station.id} were not cached")

        if errors:
            logger.error(f"Failed to fetch {len(errors)} of {len(missing)} days for station {station.id}")
            raise errors[0]

        filled = dict(zip(missing, fetched))
        return [record if record is not None else filled[day] for day, record in zip(dates, cached)]
