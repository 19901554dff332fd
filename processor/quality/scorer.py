"""
Quality Scorer for Readings.

Computes a heuristic quality score in [0, 1] for a reading:
  - starts at 1.0
  - × 0.7 when the coordinate is exactly (0, 0) (placeholder location)
  - × 0.8 when the source is the literal "unknown"
  - × 1.1 when enrichment resolved a country
  - clamped to [0, 1]
"""

import logging

from processor.models import EnrichedData, Reading

logger = logging.getLogger(__name__)

NULL_ISLAND_FACTOR = 0.7
UNKNOWN_SOURCE_FACTOR = 0.8
RESOLVED_COUNTRY_FACTOR = 1.1


def score_reading(reading: Reading, enriched: EnrichedData) -> float:
    """
    Score one reading.

    Args:
        reading: The validated Reading.
        enriched: Its EnrichedData (default/empty when enrichment is off).

    Returns:
        Score between 0.0 and 1.0.
    """
    score = 1.0

    if reading.lat == 0.0 and reading.lon == 0.0:
        score *= NULL_ISLAND_FACTOR

    if reading.source == "unknown":
        score *= UNKNOWN_SOURCE_FACTOR

    if enriched.country is not None:
        score *= RESOLVED_COUNTRY_FACTOR

    score = min(max(score, 0.0), 1.0)
    logger.debug("Quality score for source=%s variable=%s: %.3f",
                 reading.source, reading.variable, score)
    return score
