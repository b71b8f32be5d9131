import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from features.common.exceptions.tide_exceptions import StationNotFoundError
from features.stations.models.station_types import Station, StationSource
from features.stations.services.station_finder import StationFinder

logger = logging.getLogger(__name__)

T = TypeVar("T")

@dataclass(frozen=True)
class FinderResult(Generic[T]):
    """Outcome of asking one source: either a value or the error it raised."""
    source: StationSource
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

class StationService:
    """Resolves stations across redundant, independently failing sources.

    The preferred source (if any) is asked first. On failure every other
    configured source is tried, in configuration order by default or
    concurrently when ``concurrent_fallback`` is set, in which case the first
    success to complete wins.
    """

    def __init__(
        self,
        finders: Dict[StationSource, StationFinder],
        concurrent_fallback: bool = False
    ):
        self.finders = finders
        self.concurrent_fallback = concurrent_fallback

    async def _attempt(
        self,
        source: StationSource,
        call: Callable[[StationFinder], Awaitable[T]]
    ) -> FinderResult[T]:
        try:
            logger.debug(f"Attempting lookup with {source.value} finder")
            return FinderResult(source=source, value=await call(self.finders[source]))
        except Exception as e:
            logger.warning(f"⚠️ {source.value} finder failed: {str(e)}")
            return FinderResult(source=source, error=e)

    async def _first_concurrent(
        self,
        sources: List[StationSource],
        call: Callable[[StationFinder], Awaitable[T]]
    ) -> List[FinderResult[T]]:
        tasks = [asyncio.create_task(self._attempt(source, call)) for source in sources]
        results: List[FinderResult[T]] = []
        try:
            for next_done in asyncio.as_completed(tasks):
                result = await next_done
                results.append(result)
                if result.ok:
                    break
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        return results

    async def _resolve(
        self,
        call: Callable[[StationFinder], Awaitable[T]],
        preferred_source: Optional[StationSource],
        description: str
    ) -> T:
        results: List[FinderResult[T]] = []

        if preferred_source is not None and preferred_source in self.finders:
            results.append(await self._attempt(preferred_source, call))
            if results[-1].ok:
                return results[-1].value
            logger.warning(f"⚠️ Preferred source {preferred_source.value} failed, trying fallbacks")

        fallbacks = [s for s in self.finders if s != preferred_source]
        if self.concurrent_fallback:
            results.extend(await self._first_concurrent(fallbacks, call))
        else:
            for source in fallbacks:
                results.append(await self._attempt(source, call))
                if results[-1].ok:
                    break

        success = next((r for r in results if r.ok), None)
        if success is not None:
            return success.value

        errors = "; ".join(f"{r.source.value}: {r.error}" for r in results) or "no sources configured"
        logger.error(f"All station sources failed for {description}: {errors}")
        raise StationNotFoundError(f"{description} not found in any source ({errors})")

    async def get_station(
        self,
        station_id: str,
        preferred_source: Optional[StationSource] = None
    ) -> Station:
        logger.debug(f"Looking up station: {station_id}")
        return await self._resolve(
            lambda finder: finder.find_station(station_id),
            preferred_source,
            f"Station {station_id}"
        )

    async def find_nearest_stations(
        self,
        latitude: float,
        longitude: float,
        limit: int = 5,
        require_harmonic_constants: bool = False,
        preferred_source: Optional[StationSource] = None
    ) -> List[Station]:
        logger.debug(
            f"Finding nearest stations: lat={latitude}, lon={longitude}, limit={limit}, "
            f"harmonics={require_harmonic_constants}, preferred={preferred_source}"
        )
        return await self._resolve(
            lambda finder: finder.find_nearest_stations(
                latitude, longitude, limit, require_harmonic_constants
            ),
            preferred_source,
            f"Stations near ({latitude}, {longitude})"
        )
