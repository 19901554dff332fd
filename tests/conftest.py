"""Shared test fixtures and configuration for the GeoPulse test suite."""

import pytest

from processor.geo.spatial_index import SpatialIndex
from processor.models import Category, Reading

TOKYO = (35.5, 139.5)
YOKOHAMA = (35.45, 139.63)
# Open ocean, nowhere near any gazetteer row
SOUTH_ATLANTIC = (-45.0, -20.0)


def geonames_line(geonameid, name, lat, lon, country, admin1, tz):
    """One 19-column allCountries.txt row."""
    fields = [
        str(geonameid), name, name, "", str(lat), str(lon), "P", "PPL",
        country, "", admin1, "", "", "", "0", "", "10", tz, "2024-01-01",
    ]
    return "\t".join(fields) + "\n"


GAZETTEER_LINES = [
    geonames_line(1850147, "Tokyo", TOKYO[0], TOKYO[1], "JP", "40", "Asia/Tokyo"),
    # Same coordinate as Tokyo: never overwrites it
    geonames_line(9999991, "Shadow", TOKYO[0], TOKYO[1], "XX", "99", "Etc/UTC"),
    geonames_line(1848354, "Yokohama", YOKOHAMA[0], YOKOHAMA[1], "JP", "19", "Asia/Tokyo"),
    "short\trow\n",
    geonames_line(9999992, "BadLat", "abc", 10.0, "XX", "00", "Etc/UTC"),
    geonames_line(9999993, "OutOfRange", 95.0, 10.0, "XX", "00", "Etc/UTC"),
]


@pytest.fixture(scope="session")
def gazetteer_path(tmp_path_factory):
    """A small GeoNames-format gazetteer on disk."""
    path = tmp_path_factory.mktemp("geonames") / "allCountries.txt"
    path.write_text("".join(GAZETTEER_LINES), encoding="utf-8")
    return str(path)


@pytest.fixture(scope="session")
def index(gazetteer_path):
    """SpatialIndex built from the test gazetteer."""
    return SpatialIndex.from_geonames_file(gazetteer_path)


def make_reading(**kwargs):
    defaults = dict(
        source="sensor-1",
        category=Category.environmental,
        variable="temperature",
        value=25.0,
        units="celsius",
        lat=TOKYO[0],
        lon=TOKYO[1],
        epoch_ms=1_700_000_000_000,
    )
    defaults.update(kwargs)
    return Reading(**defaults)
