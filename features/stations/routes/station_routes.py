from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query, Request
from features.common.exceptions.tide_exceptions import InvalidRequestError, TideServiceError
from features.stations.models.station_types import Station, StationsResponse
from features.tides.services.tide_service import TideService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/stations",
    tags=["Stations"]
)

def get_service(request: Request) -> TideService:
    """Dependency to get the TideService instance."""
    return request.app.state.tide_service

@router.get(
    "",
    response_model=StationsResponse,
    summary="Find tide stations",
    description=(
        "Returns a single station by stationId, or the stations nearest to lat/lon "
        "ordered by distance. Set requireHarmonicConstants to only return stations "
        "with fitted harmonic constants."
    )
)
async def find_stations(
    station_id: Optional[str] = Query(None, alias="stationId"),
    lat: Optional[float] = Query(None),
    lon: Optional[float] = Query(None),
    limit: Optional[int] = Query(None),
    require_harmonic_constants: bool = Query(False, alias="requireHarmonicConstants"),
    service: TideService = Depends(get_service)
) -> StationsResponse:
    """Look up stations by id or by distance."""
    try:
        if station_id:
            return StationsResponse(stations=[await service.get_station(station_id)])
        if lat is not None and lon is not None:
            stations = await service.list_nearest_stations(
                lat,
                lon,
                limit,
                require_harmonic_constants
            )
            return StationsResponse(stations=stations)
        raise InvalidRequestError("Either stationId or lat and lon are required")
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TideServiceError as e:
        logger.error(f"Error finding stations: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to find stations: {str(e)}")

@router.get(
    "/{station_id}",
    response_model=Station,
    summary="Get a tide station",
    description="Returns station metadata, including harmonic constants when available"
)
async def get_station(
    station_id: str,
    service: TideService = Depends(get_service)
) -> Station:
    """Get a specific station by id."""
    try:
        return await service.get_station(station_id)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TideServiceError as e:
        logger.error(f"Error getting station {station_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to get station: {str(e)}")
