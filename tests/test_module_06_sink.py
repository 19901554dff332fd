"""
Tests for Module 06 — InfluxDB sink.
Tests line-protocol rendering, record layout and the batching writer
(HTTP client mocked).
"""

from unittest.mock import MagicMock

import httpx
import pytest

from processor.config import InfluxDbConfig
from processor.models import Category, EnrichedData, ProcessedPoint
from processor.pipeline import Pipeline
from processor.sink.influx_writer import InfluxWriter, Record, build_records

from conftest import make_reading


def _point(index=None, **kwargs):
    return Pipeline(index=index).process(make_reading(**kwargs))[0]


class TestLineProtocol:
    def test_basic_record(self):
        record = Record("data_points", 1000, {"source": "s1"}, {"value": 1.5})
        assert record.to_line_protocol() == "data_points,source=s1 value=1.5 1000"

    def test_tags_sorted_and_escaped(self):
        record = Record("m", 5, {"b": "x y", "a": "k=v,w"}, {"value": 2.0})
        assert record.to_line_protocol() == "m,a=k\\=v\\,w,b=x\\ y value=2.0 5"

    def test_empty_tag_skipped(self):
        record = Record("m", 5, {"a": "", "b": "1"}, {"value": 2.0})
        assert record.to_line_protocol() == "m,b=1 value=2.0 5"

    def test_integer_field(self):
        record = Record("m", 5, {}, {"h3_resolution_used": 8})
        assert record.to_line_protocol() == "m h3_resolution_used=8i 5"

    def test_non_finite_field_dropped(self):
        record = Record("m", 5, {}, {"value": float("nan"), "lat": 1.0})
        assert record.to_line_protocol() == "m lat=1.0 5"

    def test_no_writable_fields_rejected(self):
        with pytest.raises(ValueError):
            Record("m", 5, {}, {"value": float("inf")}).to_line_protocol()


class TestBuildRecords:
    def test_enriched_point_layout(self, index):
        records = build_records(_point(index))
        assert [r.measurement for r in records] == [
            "data_points", "h3_spatial", "calculated_fields", "calculated_fields",
        ]

    def test_primary_record(self, index):
        primary = build_records(_point(index, value=25))[0]
        assert primary.tags["country"] == "JP"
        assert primary.tags["region"] == "40"
        assert primary.tags["nearest_place"] == "Tokyo"
        assert primary.tags["category"] == "environmental"
        assert primary.fields["value"] == 25.0
        assert isinstance(primary.fields["value"], float)
        assert primary.fields["quality_score"] == 1.0
        assert primary.fields["h3_resolution_used"] == 8
        assert "h3_cell_res_0" in primary.fields and "h3_cell_res_8" in primary.fields

    def test_calculated_field_records(self, index):
        records = build_records(_point(index))[2:]
        units = {r.tags["variable"]: r.tags["units"] for r in records}
        assert units == {"temperature_fahrenheit": "fahrenheit", "temperature_kelvin": "kelvin"}
        assert all(r.tags["original_variable"] == "temperature" for r in records)

    def test_unresolved_point_tagged_unknown(self):
        records = build_records(_point(None))
        assert [r.measurement for r in records] == [
            "data_points", "calculated_fields", "calculated_fields",
        ]
        assert records[0].tags["country"] == "unknown"
        assert records[0].tags["region"] == "unknown"
        assert "h3_resolution_used" not in records[0].fields

    def test_no_quality_score_field_when_disabled(self):
        point = ProcessedPoint(reading=make_reading(), enriched_data=EnrichedData())
        assert "quality_score" not in build_records(point)[0].fields

    def test_point_without_derived_fields(self):
        point = ProcessedPoint(
            reading=make_reading(category=Category.economic, variable="cost", value=3.0),
            enriched_data=EnrichedData(),
        )
        assert len(build_records(point)) == 1


class TestInfluxWriter:
    def _writer(self, client, batch_size=100):
        return InfluxWriter(InfluxDbConfig(org="org1", bucket="b1", token="t0k"),
                            batch_size=batch_size, client=client)

    def test_ping_ok(self):
        client = MagicMock()
        self._writer(client).ping()
        client.get.assert_called_once_with("/ping")

    def test_ping_failure_raises_runtime_error(self):
        client = MagicMock()
        client.get.side_effect = httpx.ConnectError("refused")
        with pytest.raises(RuntimeError):
            self._writer(client).ping()

    def test_write_posts_line_protocol(self):
        client = MagicMock()
        self._writer(client).write_points([_point(None)])
        client.post.assert_called_once()
        args, kwargs = client.post.call_args
        assert args[0] == "/api/v2/write"
        assert kwargs["params"] == {"org": "org1", "bucket": "b1", "precision": "ms"}
        assert kwargs["headers"]["Authorization"] == "Token t0k"
        lines = kwargs["content"].decode("utf-8").split("\n")
        assert len(lines) == 3
        assert lines[0].startswith("data_points,")

    def test_batches_by_size(self):
        client = MagicMock()
        # 3 records per point → 6 lines in batches of 4
        self._writer(client, batch_size=4).write_points([_point(None), _point(None)])
        assert client.post.call_count == 2

    def test_empty_write_is_noop(self):
        client = MagicMock()
        self._writer(client).write_points([])
        client.post.assert_not_called()

    def test_write_failure_raises_runtime_error(self):
        client = MagicMock()
        client.post.side_effect = httpx.ConnectError("refused")
        with pytest.raises(RuntimeError):
            self._writer(client).write_points([_point(None)])

    def test_http_error_status_raises_runtime_error(self):
        client = MagicMock()
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "401 Unauthorized", request=MagicMock(), response=MagicMock(status_code=401),
        )
        client.post.return_value = response
        with pytest.raises(RuntimeError):
            self._writer(client).write_points([_point(None)])

    def test_injected_client_not_closed(self):
        client = MagicMock()
        self._writer(client).close()
        client.close.assert_not_called()


if __name__ == "__main__":
    import subprocess, sys
    sys.exit(subprocess.call(["pytest", __file__, "-v"]))
