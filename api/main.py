"""
GeoPulse — FastAPI Application Entry Point

  uvicorn api.main:app
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies import get_optional_index
from api.routes import locations, readings
from processor.config import ProcessorConfig
from processor.geo.spatial_index import SpatialIndex
from processor.pipeline import Pipeline

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = ProcessorConfig.load()

    # ── Step 1: Spatial index ─────────────────────────────────────────────────
    index = None
    try:
        index = SpatialIndex.from_geonames_file(config.geocoder.geonames_file_path)
    except (FileNotFoundError, RuntimeError) as e:
        logger.error("Spatial index unavailable: %s", e)

    # ── Step 2: Pipeline ──────────────────────────────────────────────────────
    app.state.index = index
    app.state.pipeline = Pipeline(config.processing, index)
    logger.info("GeoPulse API started (index loaded: %s)", index is not None)
    yield
    logger.info("GeoPulse API shutting down")


app = FastAPI(
    title="GeoPulse API",
    description="Geospatial enrichment and processing for sensor readings",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(locations.router, prefix="/api/locations", tags=["Locations"])
app.include_router(readings.router,  prefix="/api/readings",  tags=["Readings"])


@app.get("/api/health", tags=["Health"])
def health(index: Optional[SpatialIndex] = Depends(get_optional_index)):
    body = {"status": "ok", "service": "geopulse-api", "version": "1.0.0",
            "index_loaded": index is not None}
    if index is not None:
        body["cell_counts"] = list(index.cell_counts())
    return body
