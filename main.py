from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict

from core.cache import build_cache_store
from core.config import settings
from core.logging_config import setup_logging

# Feature routes
from features.tides.routes.tide_routes import router as tide_router
from features.stations.routes.station_routes import router as station_router

# Services and clients
from features.common.services.noaa_client import NOAAClient
from features.stations.models.station_types import StationSource
from features.stations.services.cached_station_finder import CachedStationFinder
from features.stations.services.noaa_station_finder import NOAAStationFinder
from features.stations.services.station_cache import (
    HarmonicConstantsCache,
    StationCache,
    StationListCache
)
from features.stations.services.station_finder import StationFinder
from features.stations.services.station_service import StationService
from features.tides.services.noaa_tide_client import NOAATideClient
from features.tides.services.prediction_cache import PredictionCache
from features.tides.services.tide_service import TideService

setup_logging(settings.log_level, settings.log_utc_offset_hours)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("🚀 Starting Slack Water API...")

    store = build_cache_store(settings.cache)
    noaa_client = NOAAClient(
        connect_timeout=settings.request["connect_timeout"],
        total_timeout=settings.request["total_timeout"]
    )

    try:
        noaa_finder = NOAAStationFinder(
            client=noaa_client,
            station_list_cache=StationListCache(
                store,
                settings.station_list_validity_ms,
                partition_size=settings.station_list_partition_size
            ),
            harmonic_cache=HarmonicConstantsCache(store, settings.harmonic_validity_ms),
            metadata_url=settings.noaa_metadata_url,
            station_list_path=settings.noaa_station_list_path,
            harmonic_path=settings.noaa_harmonic_path,
            units=settings.coops_params["units"],
            harmonic_scan_batch_size=settings.harmonic_scan_batch_size
        )
        available: Dict[StationSource, StationFinder] = {
            StationSource.NOAA: CachedStationFinder(
                noaa_finder,
                StationCache(store, settings.station_validity_ms)
            )
        }

        finders: Dict[StationSource, StationFinder] = {}
        for name in settings.station_sources:
            source = StationSource(name.upper())
            if source not in available:
                logger.warning(f"⚠️ No finder available for station source {source.value}, skipping")
                continue
            finders[source] = available[source]
        logger.info(f"📍 Station sources: {', '.join(s.value for s in finders)}")

        station_service = StationService(
            finders,
            concurrent_fallback=settings.station_fallback_concurrent
        )
        tide_client = NOAATideClient(
            client=noaa_client,
            data_url=settings.noaa_data_url,
            coops_params=settings.coops_params,
            validity_ms=settings.prediction_validity_ms
        )

        # Store services in app state
        app.state.tide_service = TideService(
            station_service=station_service,
            prediction_cache=PredictionCache(
                store,
                validity_ms=settings.prediction_validity_ms,
                batch_size=settings.cache_batch_size
            ),
            tide_client=tide_client,
            max_window_days=settings.max_window_days,
            prediction_step_minutes=settings.prediction_step_minutes,
            classification_step_minutes=settings.classification_step_minutes,
            classification_threshold_feet=settings.classification_threshold_feet,
            high_tide_threshold_feet=settings.high_tide_threshold_feet,
            nearest_station_default_limit=settings.nearest_station_default_limit,
            nearest_station_max_limit=settings.nearest_station_max_limit
        )

        logger.info("✨ API startup complete - ready to serve requests")
        yield

    except Exception as e:
        logger.error(f"❌ Startup error: {str(e)}")
        raise
    finally:
        logger.info("🔄 Shutting down API...")
        await noaa_client.close()
        await store.close()
        logger.info("👋 API shutdown complete")

app = FastAPI(
    title="Slack Water API",
    description="API for tide levels and tide stations",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include feature routers
app.include_router(tide_router)
app.include_router(station_router)

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "time": datetime.now().isoformat()
    }

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5010))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info",
        workers=1
    )
