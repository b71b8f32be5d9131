from typing import Optional
from datetime import datetime
from fastapi import APIRouter, HTTPException, Depends, Query, Request
from features.common.exceptions.tide_exceptions import InvalidRequestError, TideServiceError
from features.tides.models.tide_types import TideResponse
from features.tides.services.tide_service import TideService
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/tides",
    tags=["Tides"]
)

def get_service(request: Request) -> TideService:
    """Dependency to get the TideService instance."""
    return request.app.state.tide_service

@router.get(
    "",
    response_model=TideResponse,
    summary="Get tide level for a station or location",
    description=(
        "Returns the current water level, tide state, high/low extremes and a 6-minute "
        "prediction curve for a station, or for the station nearest to lat/lon. "
        "The window defaults to the station's local day and may not exceed 5 days."
    )
)
async def get_tides(
    station_id: Optional[str] = Query(None, alias="stationId"),
    lat: Optional[float] = Query(None),
    lon: Optional[float] = Query(None),
    start_date_time: Optional[datetime] = Query(None, alias="startDateTime"),
    end_date_time: Optional[datetime] = Query(None, alias="endDateTime"),
    use_calculation: bool = Query(False, alias="useCalculation"),
    service: TideService = Depends(get_service)
) -> TideResponse:
    """Get tide data by station id or coordinates."""
    try:
        if station_id:
            return await service.get_tide_by_station(
                station_id, start_date_time, end_date_time, use_calculation
            )
        if lat is not None and lon is not None:
            return await service.get_tide_by_coordinates(
                lat, lon, start_date_time, end_date_time, use_calculation
            )
        raise InvalidRequestError("Either stationId or lat and lon are required")
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TideServiceError as e:
        logger.error(f"Error getting tide data: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Failed to get tide data: {str(e)}")
