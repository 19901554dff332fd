"""
H3 Spatial Index — GeoPulse

Multi-resolution reverse geocoder built once from a GeoNames gazetteer
dump (tab-separated, allCountries.txt layout) and queried per reading.

Structure:
  One map per H3 resolution 0..8, keyed by the 64-bit integer cell id,
  holding the RegionInfo of the FIRST gazetteer row that fell into that
  cell. Later rows never overwrite an occupied cell, independently at
  each resolution.

Lookup:
  The coordinate's cell is computed at all nine resolutions; the maps are
  probed from resolution 8 (finest) down to 0 (coarsest) and the first
  hit wins.

After construction the maps are wrapped in read-only proxies; the index
is never mutated again and can be shared by concurrent readers without
locking.
"""

import logging
import math
import os
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import h3

from processor.models import (
    MAX_RESOLUTION,
    RESOLUTION_COUNT,
    LocationResult,
    RegionInfo,
    valid_coordinate,
)

logger = logging.getLogger(__name__)

# GeoNames column positions (0-indexed)
GEONAMES_MIN_FIELDS = 18
FIELD_NAME = 1
FIELD_LATITUDE = 4
FIELD_LONGITUDE = 5
FIELD_COUNTRY_CODE = 8
FIELD_ADMIN1_CODE = 10
FIELD_TIMEZONE = 17

PROGRESS_EVERY = 100_000

_MAX_CELL_ID = 1 << 64


def _cells_for(lat: float, lon: float) -> Tuple[int, ...]:
    """H3 cell id of (lat, lon) at every resolution 0..8. Coordinate must be valid."""
    return tuple(
        h3.str_to_int(h3.latlng_to_cell(lat, lon, res))
        for res in range(RESOLUTION_COUNT)
    )


def parse_geonames_line(line: str) -> Optional[Tuple[float, float, RegionInfo]]:
    """
    Parse one gazetteer row into (lat, lon, RegionInfo).

    Returns None for rows with fewer than 18 fields, unparseable
    coordinates or coordinates out of range.
    """
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < GEONAMES_MIN_FIELDS:
        return None

    try:
        lat = float(fields[FIELD_LATITUDE])
        lon = float(fields[FIELD_LONGITUDE])
    except ValueError:
        return None

    if not valid_coordinate(lat, lon):
        return None

    info = RegionInfo(
        country=fields[FIELD_COUNTRY_CODE],
        region=fields[FIELD_ADMIN1_CODE],
        timezone=fields[FIELD_TIMEZONE],
        nearest_place=fields[FIELD_NAME],
    )
    return lat, lon, info


def _insert(region_maps: List[Dict[int, RegionInfo]], lat: float, lon: float,
            info: RegionInfo) -> None:
    for res, cell in enumerate(_cells_for(lat, lon)):
        # First writer wins
        region_maps[res].setdefault(cell, info)


class SpatialIndex:
    """
    Immutable H3 reverse-geocoding index over resolutions 0..8.

    Build with SpatialIndex.from_geonames_file(path) (or from_entries for
    in-memory data); query with resolve(), cell_id() and cell_center().
    """

    def __init__(self, region_maps: Sequence[Mapping[int, RegionInfo]]):
        if len(region_maps) != RESOLUTION_COUNT:
            raise ValueError(
                f"SpatialIndex needs {RESOLUTION_COUNT} resolution maps, got {len(region_maps)}"
            )
        # Copy then freeze so the builder keeps no mutable handle
        self._region_maps: Tuple[Mapping[int, RegionInfo], ...] = tuple(
            MappingProxyType(dict(m)) for m in region_maps
        )

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_entries(cls, entries: Iterable[Tuple[float, float, RegionInfo]]) -> "SpatialIndex":
        """Build from (lat, lon, RegionInfo) tuples in order; invalid coordinates are skipped."""
        region_maps: List[Dict[int, RegionInfo]] = [{} for _ in range(RESOLUTION_COUNT)]
        for lat, lon, info in entries:
            if not valid_coordinate(lat, lon):
                continue
            _insert(region_maps, lat, lon, info)
        return cls(region_maps)

    @classmethod
    def from_geonames_file(cls, path: str) -> "SpatialIndex":
        """
        Stream a GeoNames dump and build the index.

        Rows that are short, have bad coordinates or are out of range are
        skipped silently.

        Raises:
            FileNotFoundError: the gazetteer does not exist.
            RuntimeError: the file could not be opened, read or decoded.
        """
        if not os.path.exists(path):
            raise FileNotFoundError(
                f"CRITICAL: gazetteer not found at {path}. Cannot build spatial index."
            )

        logger.info("Building H3 spatial index for resolutions 0-%d from %s", MAX_RESOLUTION, path)
        region_maps: List[Dict[int, RegionInfo]] = [{} for _ in range(RESOLUTION_COUNT)]
        indexed = 0
        skipped = 0

        try:
            with open(path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f):
                    entry = parse_geonames_line(line)
                    if entry is None:
                        skipped += 1
                    else:
                        _insert(region_maps, *entry)
                        indexed += 1

                    if line_num and line_num % PROGRESS_EVERY == 0:
                        logger.info("Processed %d locations...", line_num)
        except (OSError, UnicodeDecodeError) as e:
            raise RuntimeError(f"Failed to read gazetteer {path}: {e}") from e

        index = cls(region_maps)
        logger.info("Gazetteer loaded: %d rows indexed, %d skipped", indexed, skipped)
        for res, count in enumerate(index.cell_counts()):
            logger.info("Resolution %d: %d unique cells", res, count)
        return index

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def resolve(self, lat: float, lon: float) -> Optional[LocationResult]:
        """
        Country/region/timezone/nearest place for a coordinate.

        Returns None for invalid coordinates or when no resolution has an
        entry for the coordinate's cell.
        """
        if not valid_coordinate(lat, lon):
            return None

        cells = _cells_for(lat, lon)
        for res in range(MAX_RESOLUTION, -1, -1):
            info = self._region_maps[res].get(cells[res])
            if info is not None:
                return LocationResult(
                    country=info.country,
                    region=info.region,
                    timezone=info.timezone,
                    nearest_place=info.nearest_place,
                    cells=cells,
                    resolution_used=res,
                )
        return None

    def cells(self, lat: float, lon: float) -> Optional[Tuple[int, ...]]:
        """All nine cell ids for a coordinate, or None if the coordinate is invalid."""
        if not valid_coordinate(lat, lon):
            return None
        return _cells_for(lat, lon)

    def cell_id(self, lat: float, lon: float, resolution: int) -> Optional[int]:
        """Cell id at one resolution; None for resolution outside 0..8 or invalid coordinates."""
        if not isinstance(resolution, int) or not 0 <= resolution <= MAX_RESOLUTION:
            return None
        if not valid_coordinate(lat, lon):
            return None
        return h3.str_to_int(h3.latlng_to_cell(lat, lon, resolution))

    def cell_center(self, cell_id: int) -> Optional[Tuple[float, float]]:
        """Centre (lat, lon) of a cell; None if cell_id is not a valid H3 cell."""
        if not isinstance(cell_id, int) or not 0 < cell_id < _MAX_CELL_ID:
            return None
        cell = h3.int_to_str(cell_id)
        if not h3.is_valid_cell(cell):
            return None
        lat, lon = h3.cell_to_latlng(cell)
        if math.isnan(lat) or math.isnan(lon):
            return None
        return lat, lon

    def region_at(self, cell_id: int, resolution: int) -> Optional[RegionInfo]:
        """Direct lookup of the RegionInfo stored for a cell at one resolution."""
        if not isinstance(resolution, int) or not 0 <= resolution <= MAX_RESOLUTION:
            return None
        return self._region_maps[resolution].get(cell_id)

    def cell_counts(self) -> Tuple[int, ...]:
        return tuple(len(m) for m in self._region_maps)

    def __len__(self) -> int:
        return sum(self.cell_counts())
