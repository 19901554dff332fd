"""
GeoPulse Pipeline — per-reading orchestration.

  reading → Validator → Enricher → quality score → Aggregator → [ProcessedPoint]

Each stage can be switched off through ProcessingConfig:
  - validation off:  every reading proceeds
  - enrichment off:  EnrichedData stays at its all-None default
  - quality off:     ProcessedPoint.quality_score is None
  - aggregation off: the reading is wrapped directly

The Pipeline holds no per-reading state; process() calls are independent
and may run concurrently against the same (read-only) SpatialIndex.
"""

import logging
from typing import Iterable, List, Optional, Protocol

from processor.aggregation.aggregator import Aggregator, PassthroughAggregator
from processor.config import ProcessingConfig
from processor.enrichment.enricher import Enricher
from processor.geo.spatial_index import SpatialIndex
from processor.models import EnrichedData, ProcessedPoint, Reading
from processor.quality.scorer import score_reading
from processor.validation.validator import Validator

logger = logging.getLogger(__name__)


class PointSink(Protocol):
    def write_points(self, points: List[ProcessedPoint]) -> None:
        ...


class Pipeline:
    """
    Usage
    -----
    1.  index = SpatialIndex.from_geonames_file(path)
    2.  pipeline = Pipeline(config.processing, index)
    3.  points = pipeline.process(reading)
    """

    def __init__(
        self,
        config: Optional[ProcessingConfig] = None,
        index: Optional[SpatialIndex] = None,
        aggregator: Optional[Aggregator] = None,
    ):
        self.config = config or ProcessingConfig()
        self._validator = Validator(self.config.validation_rules)
        self._enricher = Enricher(index)
        self._aggregator = aggregator or PassthroughAggregator()

    def process(self, reading: Reading) -> List[ProcessedPoint]:
        """
        Run one reading through the pipeline.

        Returns an empty list when validation rejects the reading; that is
        a normal outcome, not an error.
        """
        # Step 1: Validation
        if self.config.enable_validation and not self._validator.validate(reading):
            return []

        # Step 2: Enrichment
        if self.config.enable_enrichment:
            enriched = self._enricher.enrich(reading)
        else:
            enriched = EnrichedData()

        # Step 3: Quality scoring
        quality_score = None
        if self.config.enable_quality_score:
            quality_score = score_reading(reading, enriched)

        # Step 4: Aggregation
        if self.config.enable_aggregation:
            points = [
                ProcessedPoint(reading=r, enriched_data=enriched.copy(), quality_score=quality_score)
                for r in self._aggregator.aggregate(reading, enriched)
            ]
        else:
            points = [ProcessedPoint(reading=reading, enriched_data=enriched, quality_score=quality_score)]

        logger.debug(
            "Processed %s/%s from %s into %d point(s)",
            reading.category, reading.variable, reading.source, len(points),
        )
        return points

    def run(self, readings: Iterable[Reading], sink: PointSink) -> int:
        """
        Process readings strictly in order and hand each result to the sink.

        A failed sink write is logged and the loop moves on to the next
        reading. Returns the number of points written successfully.
        """
        written = 0
        for reading in readings:
            points = self.process(reading)
            if not points:
                continue
            try:
                sink.write_points(points)
            except RuntimeError as exc:
                logger.error("Failed to write %d point(s) for source %s: %s",
                             len(points), reading.source, exc)
                continue
            written += len(points)
        return written
