"""
InfluxDB v2 Writer.

Renders ProcessedPoints as line-protocol records and posts them to the
/api/v2/write endpoint over httpx.

Measurements per ProcessedPoint:
  data_points        : the reading itself (+ H3 cells, quality score)
  h3_spatial         : location-only record, when spatial data exists
  calculated_fields  : one record per derived field, tagged with its unit

Unresolved country/region are tagged "unknown" so enrichment gaps never
drop a record.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import httpx

from processor.config import InfluxDbConfig
from processor.enrichment.enricher import units_for_calculated_field
from processor.models import EnrichedData, ProcessedPoint, Reading

logger = logging.getLogger(__name__)

UNKNOWN_TAG = "unknown"
WRITE_PATH = "/api/v2/write"
PING_PATH = "/ping"

FieldValue = Union[int, float]


def _escape_measurement(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ")


def _escape_key(value: str) -> str:
    """Escaping for tag keys, tag values and field keys."""
    return (
        value.replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace("=", "\\=")
        .replace(" ", "\\ ")
    )


def _format_field(value: FieldValue) -> Optional[str]:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    value = float(value)
    if not math.isfinite(value):
        return None
    return repr(value)


@dataclass
class Record:
    """One time-series record (line-protocol row)."""
    measurement: str
    epoch_ms: int
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, FieldValue] = field(default_factory=dict)

    def to_line_protocol(self) -> str:
        tag_part = "".join(
            f",{_escape_key(k)}={_escape_key(v)}"
            for k, v in sorted(self.tags.items())
            if v
        )
        field_parts = []
        for k, v in self.fields.items():
            rendered = _format_field(v)
            if rendered is not None:
                field_parts.append(f"{_escape_key(k)}={rendered}")
        if not field_parts:
            raise ValueError(f"Record for {self.measurement} has no writable fields")
        return f"{_escape_measurement(self.measurement)}{tag_part} {','.join(field_parts)} {self.epoch_ms}"


def _location_tags(enriched: EnrichedData) -> Dict[str, str]:
    tags = {
        "country": enriched.country or UNKNOWN_TAG,
        "region": enriched.region or UNKNOWN_TAG,
    }
    if enriched.nearest_place:
        tags["nearest_place"] = enriched.nearest_place
    if enriched.timezone:
        tags["timezone"] = enriched.timezone
    return tags


def _spatial_fields(enriched: EnrichedData) -> Dict[str, FieldValue]:
    fields: Dict[str, FieldValue] = {}
    if enriched.cells is not None:
        for resolution, cell_id in enumerate(enriched.cells):
            fields[f"h3_cell_res_{resolution}"] = int(cell_id)
    if enriched.resolution_used is not None:
        fields["h3_resolution_used"] = int(enriched.resolution_used)
    return fields


def _base_tags(reading: Reading) -> Dict[str, str]:
    return {"source": reading.source, "category": str(reading.category)}


def build_records(point: ProcessedPoint) -> List[Record]:
    """All sink records for one ProcessedPoint, primary record first."""
    reading = point.reading
    enriched = point.enriched_data
    location = _location_tags(enriched)
    spatial = _spatial_fields(enriched)

    primary = Record(
        measurement="data_points",
        epoch_ms=reading.epoch_ms,
        tags={
            **_base_tags(reading),
            "variable": reading.variable,
            "units": reading.units,
            **location,
        },
        fields={"value": float(reading.value), "lat": float(reading.lat), "lon": float(reading.lon), **spatial},
    )
    if point.quality_score is not None:
        primary.fields["quality_score"] = float(point.quality_score)
    records = [primary]

    if enriched.cells is not None:
        records.append(Record(
            measurement="h3_spatial",
            epoch_ms=reading.epoch_ms,
            tags={**_base_tags(reading), "variable": reading.variable, **location},
            fields={"lat": float(reading.lat), "lon": float(reading.lon), **spatial},
        ))

    for field_name, field_value in enriched.calculated_fields.items():
        records.append(Record(
            measurement="calculated_fields",
            epoch_ms=reading.epoch_ms,
            tags={
                **_base_tags(reading),
                "variable": field_name,
                "original_variable": reading.variable,
                "units": units_for_calculated_field(field_name, reading.category),
                **location,
            },
            fields={"value": float(field_value), "lat": float(reading.lat), "lon": float(reading.lon), **spatial},
        ))

    return records


class InfluxWriter:
    """Batching line-protocol writer for InfluxDB v2."""

    def __init__(
        self,
        config: InfluxDbConfig,
        batch_size: int = 100,
        client: Optional[httpx.Client] = None,
    ):
        self._config = config
        self._batch_size = max(1, batch_size)
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=config.url, timeout=config.timeout)

    def ping(self) -> None:
        """
        Check that InfluxDB is reachable.

        Raises:
            RuntimeError: the ping request failed.
        """
        try:
            resp = self._client.get(PING_PATH)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to connect to InfluxDB at %s: %s", self._config.url, e)
            raise RuntimeError(f"Failed to connect to InfluxDB at {self._config.url}: {e}") from e
        logger.info("Connected to InfluxDB at %s", self._config.url)

    def write_points(self, points: List[ProcessedPoint]) -> None:
        """
        Write all records for the given points.

        Raises:
            RuntimeError: a batch was rejected or the request failed.
        """
        if not points:
            return

        lines = []
        for point in points:
            for record in build_records(point):
                try:
                    lines.append(record.to_line_protocol())
                except ValueError as e:
                    logger.warning("Skipping record: %s", e)
        if not lines:
            return
        logger.debug("Writing %d records for %d points to InfluxDB", len(lines), len(points))

        for start in range(0, len(lines), self._batch_size):
            self._write_lines(lines[start:start + self._batch_size])

        logger.info("Wrote %d points (%d records) to InfluxDB bucket %s",
                    len(points), len(lines), self._config.bucket)

    def _write_lines(self, lines: List[str]) -> None:
        try:
            resp = self._client.post(
                WRITE_PATH,
                params={
                    "org": self._config.org,
                    "bucket": self._config.bucket,
                    "precision": "ms",
                },
                headers={
                    "Authorization": f"Token {self._config.token}",
                    "Content-Type": "text/plain; charset=utf-8",
                },
                content="\n".join(lines).encode("utf-8"),
            )
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("InfluxDB write failed: %s", e)
            raise RuntimeError(f"Failed to write to InfluxDB: {e}") from e

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
