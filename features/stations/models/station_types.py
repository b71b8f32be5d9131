from enum import Enum
from typing import List, Optional, Set
from pydantic import BaseModel, Field

class StationSource(str, Enum):
    """Upstream station providers."""
    NOAA = "NOAA"
    UKHO = "UKHO"  # UK Hydrographic Office
    CHS = "CHS"    # Canadian Hydrographic Service

class StationCapability(str, Enum):
    """Measurement types a station provides."""
    WATER_LEVEL = "WATER_LEVEL"
    TIDAL_CURRENTS = "TIDAL_CURRENTS"
    WATER_TEMPERATURE = "WATER_TEMPERATURE"
    AIR_TEMPERATURE = "AIR_TEMPERATURE"
    WIND = "WIND"

class HarmonicConstituent(BaseModel):
    """Single tidal constituent."""
    name: str
    speed: float = Field(..., description="Angular speed in degrees per hour")
    amplitude: float = Field(..., description="Amplitude in feet")
    phase: float = Field(..., description="Phase in degrees")

class HarmonicConstants(BaseModel):
    """Fitted harmonic constants for a station."""
    station_id: str
    mean_sea_level: float = 0.0
    constituents: List[HarmonicConstituent] = []

class Station(BaseModel):
    """Tide station resolved from an upstream source.

    ``distance`` is in kilometers from the query point, 0 when the station
    was looked up by id. ``station_kind`` is "R" for reference stations
    (dense predictions) and "S" for subordinate stations (extremes only).
    """
    id: str
    name: Optional[str] = None
    state: Optional[str] = None
    region: Optional[str] = None
    latitude: float
    longitude: float
    distance: float = 0.0
    source: StationSource = StationSource.NOAA
    capabilities: Set[StationCapability] = {StationCapability.WATER_LEVEL}
    time_zone_offset: Optional[int] = Field(None, description="Fixed UTC offset in seconds, no DST")
    level: Optional[str] = None
    station_kind: Optional[str] = None
    harmonic_constants: Optional[HarmonicConstants] = None

    model_config = {"frozen": True}

    @property
    def is_subordinate(self) -> bool:
        return self.station_kind == "S"

    @property
    def has_harmonic_constants(self) -> bool:
        return bool(self.harmonic_constants and self.harmonic_constants.constituents)

class NOAAStationMetadata(BaseModel):
    """Roster entry from the NOAA tide prediction station listing."""
    station_id: str = Field(alias="stationId")
    name: Optional[str] = None
    station_name: Optional[str] = Field(None, alias="stationName")
    lat: float
    lon: float
    state: Optional[str] = None
    region: Optional[str] = None
    time_zone_corr: Optional[str] = Field(None, alias="timeZoneCorr")
    station_type: Optional[str] = Field(None, alias="stationType")
    level: Optional[str] = None
    ref_station_id: Optional[str] = Field(None, alias="refStationId")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def display_name(self) -> Optional[str]:
        return self.station_name or self.name

    @property
    def time_zone_offset(self) -> Optional[int]:
        """Time zone correction in seconds, parsed from signed hours."""
        if self.time_zone_corr in (None, ""):
            return None
        try:
            return int(float(self.time_zone_corr) * 3600)
        except ValueError:
            return None

class StationsResponse(BaseModel):
    """Station lookup response"""
    stations: List[Station]
