"""
Tests for Module 04 — Aggregation seam.
"""

import pytest

from processor.aggregation.aggregator import PassthroughAggregator, bucket_key
from processor.models import EnrichedData

from conftest import make_reading


class TestPassthroughAggregator:
    def test_returns_reading_unchanged(self):
        reading = make_reading()
        assert PassthroughAggregator().aggregate(reading, EnrichedData()) == [reading]


class TestBucketKey:
    def test_floors_to_bucket_start(self):
        reading = make_reading(epoch_ms=1_234_567)
        assert bucket_key(reading, 60_000) == ("sensor-1", "temperature", 1_200_000)

    def test_same_bucket(self):
        a = make_reading(epoch_ms=60_000)
        b = make_reading(epoch_ms=119_999)
        assert bucket_key(a, 60_000) == bucket_key(b, 60_000)

    def test_non_positive_bucket_rejected(self):
        with pytest.raises(ValueError):
            bucket_key(make_reading(), 0)


if __name__ == "__main__":
    import subprocess, sys
    sys.exit(subprocess.call(["pytest", __file__, "-v"]))
