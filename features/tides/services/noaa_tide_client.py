import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, List

from features.common.exceptions.tide_exceptions import UpstreamUnavailableError
from features.common.services.noaa_client import NOAAClient
from features.common.utils.time_utils import Clock, station_timezone, to_millis, utc_now
from features.stations.models.station_types import Station
from features.tides.models.tide_types import DayCacheRecord, ExtremeType, TideExtreme, TidePrediction

logger = logging.getLogger(__name__)

NOAA_TIME_FORMAT = "%Y-%m-%d %H:%M"
NO_DATA_MESSAGE = "No Predictions data was found"

class NOAATideClient:
    """Fetches one station-local day of tide data from NOAA CO-OPS."""

    def __init__(
        self,
        client: NOAAClient,
        data_url: str,
        coops_params: Dict[str, str],
        validity_ms: int = 7 * 24 * 60 * 60 * 1000,
        clock: Clock = utc_now
    ):
        self.client = client
        self.data_url = data_url
        self.coops_params = coops_params
        self.validity_ms = validity_ms
        self.clock = clock

    async def _get_predictions(self, station: Station, day: date, interval: str) -> List[Dict[str, Any]]:
        day_str = day.strftime("%Y%m%d")
        params = {
            **self.coops_params,
            "station": station.id,
            "begin_date": day_str,
            "end_date": day_str,
            "product": "predictions",
            "interval": interval
        }
        data = await self.client.get_json(self.data_url, params=params)

        if "error" in data:
            message = data["error"].get("message", "Unknown error from NOAA API")
            if NO_DATA_MESSAGE in message:
                logger.warning(f"No {interval} predictions for station {station.id} on {day}")
                return []
            raise UpstreamUnavailableError(message)

        return data.get("predictions", [])

    @staticmethod
    def _parse_time(value: str, station: Station) -> int:
        local = datetime.strptime(value, NOAA_TIME_FORMAT)
        return to_millis(local.replace(tzinfo=station_timezone(station.time_zone_offset)))

    async def fetch_predictions(self, station: Station, day: date) -> List[TidePrediction]:
        """Dense 6-minute predictions for a station-local day."""
        rows = await self._get_predictions(station, day, "6")
        return [
            TidePrediction(timestamp=self._parse_time(row["t"], station), height=float(row["v"]))
            for row in rows
        ]

    async def fetch_extremes(self, station: Station, day: date) -> List[TideExtreme]:
        """High/low extremes for a station-local day."""
        rows = await self._get_predictions(station, day, "hilo")
        return [
            TideExtreme(
                timestamp=self._parse_time(row["t"], station),
                height=float(row["v"]),
                type=ExtremeType.HIGH if row.get("type") == "H" else ExtremeType.LOW
            )
            for row in rows
        ]

    async def fetch_day(self, station: Station, day: date) -> DayCacheRecord:
        """Build a cache record for one station-local day."""
        try:
            if station.is_subordinate:
                predictions = []
                extremes = await self.fetch_extremes(station, day)
            else:
                predictions, extremes = await asyncio.gather(
                    self.fetch_predictions(station, day),
                    self.fetch_extremes(station, day)
                )
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Malformed NOAA response for station {station.id} on {day}: {str(e)}")
            raise UpstreamUnavailableError(f"Malformed NOAA response: {str(e)}") from e

        now = to_millis(self.clock())
        return DayCacheRecord(
            station_id=station.id,
            date=day.isoformat(),
            station_kind="S" if station.is_subordinate else "R",
            predictions=predictions,
            extremes=extremes,
            last_updated_millis=now,
            expiry_millis=now + self.validity_ms
        )
