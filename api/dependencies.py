"""
Shared FastAPI dependencies.

The index and pipeline are built once in the lifespan hook and kept on
app.state; routes reach them through these functions so tests can swap
them via app.dependency_overrides.
"""
from typing import Optional

from fastapi import HTTPException, Request, status

from processor.geo.spatial_index import SpatialIndex
from processor.pipeline import Pipeline


def get_optional_index(request: Request) -> Optional[SpatialIndex]:
    return getattr(request.app.state, "index", None)


def get_index(request: Request) -> SpatialIndex:
    index = get_optional_index(request)
    if index is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Spatial index is not loaded",
        )
    return index


def get_pipeline(request: Request) -> Pipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline is not initialised",
        )
    return pipeline
