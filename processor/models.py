"""
Core data models for the GeoPulse processor.

Reading         : one decoded, geotagged measurement (input entity)
RegionInfo      : administrative context attached to one H3 cell
LocationResult  : per-query spatial lookup result
EnrichedData    : spatial context + calculated fields for one reading
ProcessedPoint  : terminal pipeline entity handed to the sink
"""

import enum
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

# Number of H3 resolutions indexed (0 = coarsest … 8 = finest)
RESOLUTION_COUNT = 9
MAX_RESOLUTION = RESOLUTION_COUNT - 1


class Category(str, enum.Enum):
    """Closed set of reading categories. Adding one needs new rule and derived-field entries."""
    environmental = "environmental"
    health = "health"
    infrastructure = "infrastructure"
    economic = "economic"
    social = "social"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value) -> Optional["Category"]:
        """Return the member for *value*, or None for unknown/empty categories."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return cls._value2member_map_.get(value)


def valid_coordinate(lat: float, lon: float) -> bool:
    """True when lat ∈ [-90, 90] and lon ∈ [-180, 180] (NaN never passes)."""
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


@dataclass(frozen=True)
class Reading:
    """A single timestamped, geolocated measurement of a named variable."""
    source: str
    category: str
    variable: str
    value: float
    units: str
    lat: float
    lon: float
    epoch_ms: int

    @property
    def kind(self) -> Optional[Category]:
        return Category.parse(self.category)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Reading":
        """
        Decode a JSON-shaped mapping into a Reading.

        Known categories are stored as Category members so later stages
        skip the string lookup; unknown ones are kept verbatim for the
        validator to reject.

        Raises:
            ValueError: missing keys or non-numeric value/lat/lon/epoch_ms.
        """
        missing = [k for k in ("source", "category", "variable", "value", "lat", "lon")
                   if k not in payload]
        if missing:
            raise ValueError(f"Reading payload missing required fields: {', '.join(missing)}")

        try:
            value = float(payload["value"])
            lat = float(payload["lat"])
            lon = float(payload["lon"])
            epoch_ms = payload.get("epoch_ms")
            epoch_ms = int(epoch_ms) if epoch_ms is not None else int(time.time() * 1000)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Reading payload has a non-numeric field: {e}") from e

        raw_category = str(payload["category"] or "")
        return cls(
            source=str(payload["source"] or ""),
            category=Category.parse(raw_category) or raw_category,
            variable=str(payload["variable"] or ""),
            value=value,
            units=str(payload.get("units") or ""),
            lat=lat,
            lon=lon,
            epoch_ms=epoch_ms,
        )

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "category": str(self.category),
            "variable": self.variable,
            "value": self.value,
            "units": self.units,
            "lat": self.lat,
            "lon": self.lon,
            "epoch_ms": self.epoch_ms,
        }


@dataclass(frozen=True)
class RegionInfo:
    """Gazetteer context shared read-only by every lookup that hits its cell."""
    country: str
    region: str
    timezone: str
    nearest_place: str


@dataclass(frozen=True)
class LocationResult:
    """Result of SpatialIndex.resolve(); cells holds the H3 id at every resolution."""
    country: str
    region: str
    timezone: str
    nearest_place: str
    cells: Tuple[int, ...]
    resolution_used: int

    def to_dict(self) -> dict:
        return {
            "country": self.country,
            "region": self.region,
            "timezone": self.timezone,
            "nearest_place": self.nearest_place,
            "cells": list(self.cells),
            "resolution_used": self.resolution_used,
        }


@dataclass
class EnrichedData:
    """Enrichment payload for one reading. All-None defaults mean 'not enriched'."""
    country: Optional[str] = None
    region: Optional[str] = None
    timezone: Optional[str] = None
    nearest_place: Optional[str] = None
    cells: Optional[Tuple[int, ...]] = None
    resolution_used: Optional[int] = None
    calculated_fields: Dict[str, float] = field(default_factory=dict)

    def copy(self) -> "EnrichedData":
        """Independent clone; each ProcessedPoint owns its calculated_fields."""
        return EnrichedData(
            country=self.country,
            region=self.region,
            timezone=self.timezone,
            nearest_place=self.nearest_place,
            cells=self.cells,
            resolution_used=self.resolution_used,
            calculated_fields=dict(self.calculated_fields),
        )

    def to_dict(self) -> dict:
        return {
            "country": self.country,
            "region": self.region,
            "timezone": self.timezone,
            "nearest_place": self.nearest_place,
            "cells": list(self.cells) if self.cells is not None else None,
            "resolution_used": self.resolution_used,
            "calculated_fields": dict(self.calculated_fields),
        }


@dataclass(frozen=True)
class ProcessedPoint:
    """Pipeline output. quality_score is None when scoring is disabled."""
    reading: Reading
    enriched_data: EnrichedData
    quality_score: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "reading": self.reading.to_dict(),
            "enriched_data": self.enriched_data.to_dict(),
            "quality_score": self.quality_score,
        }
