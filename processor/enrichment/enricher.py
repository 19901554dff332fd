"""
Reading Enricher — GeoPulse

Attaches spatial context (country, admin region, timezone, nearest place,
H3 cells) from the SpatialIndex and computes category-specific derived
fields. Lookups are in-memory map probes; no I/O on this path.

Several formulas are deliberate placeholders kept for output
compatibility: dew_point is a rough linear approximation, heart-rate
percentage uses a fixed 190 bpm reference maximum, price_per_unit is the
identity and population_density assumes 1000 km².
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from processor.geo.spatial_index import SpatialIndex
from processor.models import Category, EnrichedData, Reading

logger = logging.getLogger(__name__)

UNKNOWN_UNIT = "unknown"

# Fixed reference maximum heart rate (220 - 30), not age-adjusted
REFERENCE_MAX_HEART_RATE = 220.0 - 30.0


def _celsius_to_fahrenheit(v: float) -> float:
    return v * 9.0 / 5.0 + 32.0


@dataclass(frozen=True)
class DerivedField:
    """One calculated field: name, unit tag at the sink, formula over the raw value."""
    name: str
    unit: str
    formula: Callable[[float], float]


# category → variable → derived fields
DERIVED_FIELDS: Dict[Category, Dict[str, Tuple[DerivedField, ...]]] = {
    Category.environmental: {
        "temperature": (
            DerivedField("temperature_fahrenheit", "fahrenheit", _celsius_to_fahrenheit),
            DerivedField("temperature_kelvin", "kelvin", lambda v: v + 273.15),
        ),
        "humidity": (
            DerivedField("dew_point", "celsius", lambda v: v - (100.0 - v) / 5.0),
        ),
    },
    Category.health: {
        "heart_rate": (
            DerivedField("heart_rate_percentage", "percentage",
                         lambda v: (v / REFERENCE_MAX_HEART_RATE) * 100.0),
        ),
        "temperature": (
            DerivedField("body_temperature_fahrenheit", "fahrenheit", _celsius_to_fahrenheit),
        ),
    },
    Category.infrastructure: {
        "flow_rate": (
            DerivedField("flow_rate_m3_per_hour", "m³/h", lambda v: v * 3.6 / 1000.0),
        ),
        "pressure": (
            DerivedField("pressure_psi", "psi", lambda v: v * 14.5038),
        ),
    },
    Category.economic: {
        "price": (
            DerivedField("price_per_unit", "currency/unit", lambda v: v),
        ),
    },
    Category.social: {
        "population": (
            DerivedField("population_density", "people/km²", lambda v: v / 1000.0),
        ),
    },
}

# category → derived field name → unit
_FIELD_UNITS: Dict[Category, Dict[str, str]] = {
    category: {f.name: f.unit for fields in by_variable.values() for f in fields}
    for category, by_variable in DERIVED_FIELDS.items()
}


def units_for_calculated_field(field_name: str, category) -> str:
    """Unit tag for a derived field within a category; 'unknown' if the pair is not defined."""
    parsed = Category.parse(category)
    if parsed is None:
        return UNKNOWN_UNIT
    return _FIELD_UNITS[parsed].get(field_name, UNKNOWN_UNIT)


def calculate_fields(reading: Reading) -> Dict[str, float]:
    """Derived fields for a reading; empty for pairs without formulas."""
    category = Category.parse(reading.category)
    if category is None:
        return {}
    fields = DERIVED_FIELDS[category].get(reading.variable, ())
    return {f.name: f.formula(reading.value) for f in fields}


class Enricher:
    """Combines SpatialIndex lookups with derived-field computation."""

    def __init__(self, index: Optional[SpatialIndex] = None):
        self._index = index

    def enrich(self, reading: Reading) -> EnrichedData:
        logger.debug("Enriching point at (%.4f, %.4f)", reading.lat, reading.lon)
        enriched = EnrichedData()

        if self._index is not None:
            location = self._index.resolve(reading.lat, reading.lon)
            if location is not None:
                enriched.country = location.country
                enriched.region = location.region
                enriched.timezone = location.timezone
                enriched.nearest_place = location.nearest_place
                enriched.cells = location.cells
                enriched.resolution_used = location.resolution_used
            else:
                logger.debug(
                    "No gazetteer match for (%.4f, %.4f), spatial fields left empty",
                    reading.lat, reading.lon,
                )

        enriched.calculated_fields = calculate_fields(reading)
        return enriched
