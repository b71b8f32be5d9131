from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Any

class Settings(BaseSettings):
    """Application settings."""

    # NOAA CO-OPS endpoints
    noaa_data_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    noaa_metadata_url: str = "https://api.tidesandcurrents.noaa.gov/mdapi/prod/webapi"
    noaa_station_list_path: str = "tidepredstations.json"
    noaa_harmonic_path: str = "stations/{station_id}/harcon.json"

    coops_params: Dict[str, str] = {
        "datum": "MLLW",
        "units": "english",
        "time_zone": "lst",  # Local standard time, stations don't observe DST
        "format": "json"
    }

    cache: Dict[str, Any] = {
        "backend": "memory",
        "prefix": "slack_water"
    }

    request: Dict[str, float] = {
        "connect_timeout": 15,
        "total_timeout": 30
    }

    # Cache validity windows (milliseconds)
    prediction_validity_ms: int = 7 * 24 * 60 * 60 * 1000
    station_validity_ms: int = 7 * 24 * 60 * 60 * 1000
    station_list_validity_ms: int = 24 * 60 * 60 * 1000
    harmonic_validity_ms: int = 7 * 24 * 60 * 60 * 1000
    station_list_partition_size: int = 100
    cache_batch_size: int = 25

    # Tide window and curve settings
    max_window_days: int = 5
    prediction_step_minutes: int = 6
    classification_step_minutes: int = 60
    classification_threshold_feet: float = 0.1
    high_tide_threshold_feet: float = 6.0

    # Station resolution
    station_sources: List[str] = ["NOAA"]
    station_fallback_concurrent: bool = False
    nearest_station_default_limit: int = 5
    nearest_station_max_limit: int = 50
    harmonic_scan_batch_size: int = 10

    log_level: str = "INFO"
    log_utc_offset_hours: int = -5

    model_config = SettingsConfigDict(
        env_prefix="slackwater_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
