import logging
from datetime import date, datetime, timedelta, tzinfo
from typing import Callable, List, Optional, Tuple

from features.common.exceptions.tide_exceptions import InvalidRequestError, StationNotFoundError
from features.common.utils.time_utils import Clock, date_span, station_timezone, to_millis, utc_now
from features.stations.models.station_types import Station
from features.stations.services.station_service import StationService
from features.tides.models.tide_types import (
    DayCacheRecord,
    TideExtreme,
    TidePrediction,
    TideResponse
)
from features.tides.services import interpolation
from features.tides.services.noaa_tide_client import NOAATideClient
from features.tides.services.prediction_cache import PredictionCache

logger = logging.getLogger(__name__)

NOAA_METHOD = "NOAA API"
HARMONIC_METHOD = "Harmonic Calculation"
DEFAULT_HARMONIC_METHOD = "Default Harmonic Estimate"

class TideService:
    """Answers tide level questions for a station or a location.

    Resolves the station, loads the station-local days covering the window
    (plus a day of padding on each side) from the prediction cache, and
    interpolates the current level, tide state and a fixed-step curve.
    """

    def __init__(
        self,
        station_service: StationService,
        prediction_cache: PredictionCache,
        tide_client: NOAATideClient,
        max_window_days: int = 5,
        prediction_step_minutes: int = 6,
        classification_step_minutes: int = 60,
        classification_threshold_feet: float = 0.1,
        high_tide_threshold_feet: float = 6.0,
        nearest_station_default_limit: int = 5,
        nearest_station_max_limit: int = 50,
        clock: Clock = utc_now
    ):
        self.station_service = station_service
        self.prediction_cache = prediction_cache
        self.tide_client = tide_client
        self.max_window = timedelta(days=max_window_days)
        self.prediction_step_ms = prediction_step_minutes * 60_000
        self.classification_step_ms = classification_step_minutes * 60_000
        self.classification_threshold_feet = classification_threshold_feet
        self.high_tide_threshold_feet = high_tide_threshold_feet
        self.nearest_station_default_limit = nearest_station_default_limit
        self.nearest_station_max_limit = nearest_station_max_limit
        self.clock = clock

    @staticmethod
    def _validate_coordinates(latitude: float, longitude: float) -> None:
        if not -90 <= latitude <= 90:
            raise InvalidRequestError(f"Invalid latitude {latitude}: must be between -90 and 90")
        if not -180 <= longitude <= 180:
            raise InvalidRequestError(f"Invalid longitude {longitude}: must be between -180 and 180")

    @staticmethod
    def _validate_station_id(station_id: Optional[str]) -> None:
        if not station_id or not station_id.strip():
            raise InvalidRequestError("Station id is required")

    def _validate_window(self, start: Optional[datetime], end: Optional[datetime]) -> None:
        """Reject malformed windows before any station lookup or fetch."""
        if start is None or end is None:
            return
        if (start.tzinfo is None) != (end.tzinfo is None):
            raise InvalidRequestError("Start and end times must both include or both omit a UTC offset")
        if end <= start:
            raise InvalidRequestError("End time must be after start time")
        if end - start > self.max_window:
            raise InvalidRequestError(f"Date range cannot exceed {self.max_window.days} days")

    def _local_window(
        self,
        tz: tzinfo,
        start: Optional[datetime],
        end: Optional[datetime]
    ) -> Tuple[datetime, datetime]:
        """Resolve the requested window in the station's local clock.

        Naive datetimes are station wall time. With neither bound the window
        is the current station-local day.
        """
        def localize(dt: datetime) -> datetime:
            return dt.replace(tzinfo=tz) if dt.tzinfo is None else dt.astimezone(tz)

        if start is None and end is None:
            today = self.clock().astimezone(tz).replace(hour=0, minute=0, second=0, microsecond=0)
            return today, today + timedelta(days=1)
        if end is None:
            start = localize(start)
            return start, start + timedelta(days=1)
        if start is None:
            end = localize(end)
            return end - timedelta(days=1), end
        return localize(start), localize(end)

    @staticmethod
    def _padded_dates(start: datetime, end: datetime) -> List[date]:
        """Station-local dates covering the window plus one day either side."""
        first = start.date() - timedelta(days=1)
        last = (end - timedelta(microseconds=1)).date() + timedelta(days=1)
        return date_span(first, last)

    def _height_function(
        self,
        station: Station,
        predictions: List[TidePrediction],
        extremes: List[TideExtreme],
        use_calculation: bool
    ) -> Tuple[Callable[[int], float], str]:
        """Pick the interpolation for this station and return it with its label."""
        if not use_calculation:
            if station.is_subordinate and extremes:
                return (lambda t: interpolation.interpolate_extremes(extremes, t)), NOAA_METHOD
            if not station.is_subordinate and predictions:
                return (lambda t: interpolation.interpolate_dense(predictions, t)), NOAA_METHOD
            logger.warning(f"⚠️ No predicted series for station {station.id}, using harmonic model")

        if station.has_harmonic_constants:
            constants, method = station.harmonic_constants, HARMONIC_METHOD
        else:
            constants, method = interpolation.DEFAULT_HARMONIC_CONSTANTS, DEFAULT_HARMONIC_METHOD
        return (lambda t: interpolation.harmonic_height(constants, t)), method

    async def _tide_for_station(
        self,
        station: Station,
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        use_calculation: bool
    ) -> TideResponse:
        tz = station_timezone(station.time_zone_offset)
        start, end = self._local_window(tz, start_time, end_time)
        dates = self._padded_dates(start, end)
        logger.debug(f"Tide window for station {station.id}: {start.isoformat()} to {end.isoformat()}")

        records: List[DayCacheRecord] = []
        if not use_calculation:
            records = await self.prediction_cache.get_or_fill(station, dates, self.tide_client.fetch_day)

        # Fetches complete in any order, so always re-sort
        predictions = sorted((p for r in records for p in r.predictions), key=lambda p: p.timestamp)
        extremes = sorted((e for r in records for e in r.extremes), key=lambda e: e.timestamp)

        height_at, method = self._height_function(station, predictions, extremes, use_calculation)

        start_ms, end_ms = to_millis(start), to_millis(end)
        now = self.clock().astimezone(tz)
        current = now if start <= now <= end else start
        current_ms = to_millis(current)

        water_level = height_at(current_ms)
        tide_type = interpolation.classify(
            water_level,
            height_at(current_ms - self.classification_step_ms),
            threshold=self.classification_threshold_feet,
            high_threshold=self.high_tide_threshold_feet
        )

        curve = [
            TidePrediction(timestamp=t, height=height_at(t))
            for t in range(start_ms, end_ms + 1, self.prediction_step_ms)
        ]

        return TideResponse(
            timestamp=current_ms,
            local_time=current.isoformat(),
            water_level=water_level,
            predicted_level=water_level,
            tide_type=tide_type,
            nearest_station=station.id,
            location=station.name,
            latitude=station.latitude,
            longitude=station.longitude,
            station_distance=station.distance,
            time_zone_offset_seconds=station.time_zone_offset or 0,
            calculation_method=method,
            extremes=[e for e in extremes if start_ms <= e.timestamp <= end_ms],
            predictions=curve
        )

    async def get_tide_by_coordinates(
        self,
        latitude: float,
        longitude: float,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        use_calculation: bool = False
    ) -> TideResponse:
        """Tide at the station nearest to the given coordinates."""
        self._validate_coordinates(latitude, longitude)
        self._validate_window(start_time, end_time)
        logger.debug(f"Getting tide for lat={latitude}, lon={longitude}")

        stations = await self.station_service.find_nearest_stations(latitude, longitude, 1)
        if not stations:
            raise StationNotFoundError(f"No stations found near ({latitude}, {longitude})")
        return await self._tide_for_station(stations[0], start_time, end_time, use_calculation)

    async def get_tide_by_station(
        self,
        station_id: str,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        use_calculation: bool = False
    ) -> TideResponse:
        """Tide at a specific station."""
        self._validate_station_id(station_id)
        self._validate_window(start_time, end_time)
        logger.debug(f"Getting tide for station {station_id}")

        station = await self.station_service.get_station(station_id)
        return await self._tide_for_station(station, start_time, end_time, use_calculation)

    async def list_nearest_stations(
        self,
        latitude: float,
        longitude: float,
        limit: Optional[int] = None,
        require_harmonic_constants: bool = False
    ) -> List[Station]:
        """Stations nearest to the coordinates, closest first."""
        self._validate_coordinates(latitude, longitude)
        if limit is None:
            limit = self.nearest_station_default_limit
        if not 1 <= limit <= self.nearest_station_max_limit:
            raise InvalidRequestError(f"Limit must be between 1 and {self.nearest_station_max_limit}")
        return await self.station_service.find_nearest_stations(
            latitude,
            longitude,
            limit,
            require_harmonic_constants
        )

    async def get_station(self, station_id: str) -> Station:
        self._validate_station_id(station_id)
        return await self.station_service.get_station(station_id)
