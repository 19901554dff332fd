"""
Readings routes — dry-run a reading through the processing pipeline.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from api.dependencies import get_pipeline
from processor.models import Reading
from processor.pipeline import Pipeline
from processor.sink.influx_writer import build_records

router = APIRouter()


class ReadingIn(BaseModel):
    source: str
    category: str             # environmental | health | infrastructure | economic | social
    variable: str
    value: float
    units: str = ""
    lat: float
    lon: float
    epoch_ms: Optional[int] = None


@router.post("/process")
def process_reading(body: ReadingIn, pipeline: Pipeline = Depends(get_pipeline)):
    """
    Run one reading through validation, enrichment, scoring and
    aggregation, and report what would be written. Nothing is written.
    A rejected reading yields an empty point list.
    """
    try:
        reading = Reading.from_dict(body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    points = pipeline.process(reading)
    return {
        "points": [p.to_dict() for p in points],
        "records": sum(len(build_records(p)) for p in points),
    }
