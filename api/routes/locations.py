"""
Location routes — reverse geocoding and H3 cell lookups against the
in-memory spatial index.
"""
import h3
from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.dependencies import get_index
from processor.geo.spatial_index import SpatialIndex
from processor.models import MAX_RESOLUTION

router = APIRouter()


@router.get("")
def resolve_location(
    lat: float = Query(..., ge=-90.0, le=90.0),
    lon: float = Query(..., ge=-180.0, le=180.0),
    index: SpatialIndex = Depends(get_index),
):
    """Finest-resolution region match for a coordinate, with all nine H3 cells."""
    result = index.resolve(lat, lon)
    if result is None:
        raise HTTPException(
            status_code=404,
            detail=f"No region found for ({lat}, {lon})",
        )
    return result.to_dict()


@router.get("/cell")
def cell_for_coordinate(
    lat: float = Query(..., ge=-90.0, le=90.0),
    lon: float = Query(..., ge=-180.0, le=180.0),
    resolution: int = Query(..., ge=0, le=MAX_RESOLUTION),
    index: SpatialIndex = Depends(get_index),
):
    cell_id = index.cell_id(lat, lon, resolution)
    if cell_id is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Invalid coordinate or resolution",
        )
    return {"cell_id": cell_id, "cell": h3.int_to_str(cell_id), "resolution": resolution}


@router.get("/cells/{cell_id}/center")
def cell_center(cell_id: int, index: SpatialIndex = Depends(get_index)):
    """Centre point of an H3 cell given as its 64-bit integer id."""
    center = index.cell_center(cell_id)
    if center is None:
        raise HTTPException(status_code=404, detail=f"Cell {cell_id} is not a valid H3 cell")
    lat, lon = center
    return {"cell_id": cell_id, "lat": lat, "lon": lon}
