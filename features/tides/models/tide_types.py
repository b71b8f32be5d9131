from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

class ExtremeType(str, Enum):
    """Kind of tide extreme."""
    HIGH = "HIGH"
    LOW = "LOW"

class TideState(str, Enum):
    """Tide state at a point in time."""
    RISING = "RISING"
    FALLING = "FALLING"
    HIGH = "HIGH"
    LOW = "LOW"

class TidePrediction(BaseModel):
    """Individual tide prediction"""
    timestamp: int = Field(..., description="Epoch milliseconds")
    height: float = Field(..., description="Height of tide in feet")

class TideExtreme(BaseModel):
    """High or low tide event"""
    timestamp: int = Field(..., description="Epoch milliseconds")
    height: float = Field(..., description="Height of tide in feet")
    type: ExtremeType = Field(..., description="HIGH or LOW")

class DayCacheRecord(BaseModel):
    """One station-local calendar day of predictions and extremes."""
    station_id: str
    date: str = Field(..., description="Station-local ISO date (YYYY-MM-DD)")
    station_kind: str = Field("R", description="R for reference, S for subordinate")
    predictions: List[TidePrediction] = []
    extremes: List[TideExtreme] = []
    last_updated_millis: int = 0
    expiry_millis: int = 0

class TideResponse(BaseModel):
    """Tide level for a station over a requested window"""
    timestamp: int = Field(..., description="Instant the current level refers to, epoch milliseconds")
    local_time: str = Field(..., description="Same instant in the station's local clock")
    water_level: float
    predicted_level: float
    tide_type: TideState
    nearest_station: str
    location: Optional[str] = None
    latitude: float
    longitude: float
    station_distance: float
    time_zone_offset_seconds: int
    calculation_method: str
    extremes: List[TideExtreme]
    predictions: List[TidePrediction]
