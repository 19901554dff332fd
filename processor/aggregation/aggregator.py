"""
Reading aggregation seam.

An Aggregator turns one validated + enriched reading into zero or more
output readings. The current implementation is a passthrough. A temporal
implementation would buffer readings under bucket_key() and emit
aggregated readings when a bucket closes; it must keep the same
signature and must not block.
"""

import logging
from typing import List, Protocol, Tuple

from processor.models import EnrichedData, Reading

logger = logging.getLogger(__name__)


class Aggregator(Protocol):
    def aggregate(self, reading: Reading, enriched: EnrichedData) -> List[Reading]:
        ...


class PassthroughAggregator:
    """Returns the reading unchanged as a one-element list."""

    def aggregate(self, reading: Reading, enriched: EnrichedData) -> List[Reading]:
        logger.debug("Aggregating point (passthrough)")
        return [reading]


def bucket_key(reading: Reading, bucket_ms: int) -> Tuple[str, str, int]:
    """
    (source, variable, bucket_start_ms) grouping key for time bucketing.

    Raises:
        ValueError: if bucket_ms is not positive.
    """
    if bucket_ms <= 0:
        raise ValueError(f"bucket_ms must be positive, got {bucket_ms}")
    return reading.source, reading.variable, (reading.epoch_ms // bucket_ms) * bucket_ms
