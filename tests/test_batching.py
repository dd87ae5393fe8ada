"""Tests for request batching and de-duplication"""
import pytest
from google.api import metric_pb2 as ga_metric
from google.cloud import monitoring_v3

from stackdriver_metrics.batching import (
    batch_time_series,
    build_requests,
    chunk_time_series,
    dedupe_time_series,
    metric_signature,
)

METRIC_TYPE = "custom.googleapis.com/opencensus/requests"


def make_ts(*label_values, metric_type=METRIC_TYPE):
    labels = {f"key{i}": value for i, value in enumerate(label_values)}
    return monitoring_v3.TimeSeries(metric=ga_metric.Metric(type=metric_type, labels=labels))


def signatures(batch):
    return [ts.metric.labels["key0"] for ts in batch]


class TestMetricSignature:
    """Test time series signatures"""

    def test_signature_format(self):
        assert metric_signature(make_ts("b", "a")) == f"{METRIC_TYPE}:a,b"

    def test_label_values_sorted(self):
        assert metric_signature(make_ts("1", "2")) == metric_signature(make_ts("2", "1"))

    def test_metric_type_distinguishes(self):
        assert metric_signature(make_ts("a")) != metric_signature(make_ts("a", metric_type="custom.googleapis.com/x"))


class TestDedupeTimeSeries:
    """Test splitting series into rounds of unique signatures"""

    def test_recursive_partition(self):
        """[A, A, B, A, B, C] gives [A, B, C], then [A, B], then [A]"""
        series = [make_ts(v) for v in ["A", "A", "B", "A", "B", "C"]]

        rounds = dedupe_time_series(series)

        assert [signatures(r) for r in rounds] == [["A", "B", "C"], ["A", "B"], ["A"]]
        assert rounds[0] == [series[0], series[2], series[5]]
        assert rounds[1] == [series[1], series[4]]
        assert rounds[2] == [series[3]]

    def test_all_unique(self):
        series = [make_ts(v) for v in ["A", "B", "C"]]

        assert dedupe_time_series(series) == [series]

    def test_empty(self):
        assert dedupe_time_series([]) == []

    def test_high_multiplicity(self):
        series = [make_ts("A") for _ in range(300)]

        rounds = dedupe_time_series(series)

        assert len(rounds) == 300
        assert all(len(r) == 1 for r in rounds)


class TestBatchTimeSeries:
    """Test the combination of de-duplication and size limits"""

    def test_split_at_limit(self):
        """N+1 unique series with a limit of N give requests of N and 1"""
        series = [make_ts(str(i)) for i in range(201)]

        batches = batch_time_series(series, 200)

        assert [len(b) for b in batches] == [200, 1]
        assert [ts for b in batches for ts in b] == series

    def test_dedupe_then_chunk(self):
        series = [make_ts(v) for v in ["A", "B", "C", "A", "D", "B"]]

        batches = batch_time_series(series, 2)

        assert [signatures(b) for b in batches] == [["A", "B"], ["C", "D"], ["A", "B"]]

    def test_no_duplicate_signature_in_any_batch(self):
        series = [make_ts(v) for v in ["A", "A", "B", "A", "B", "C"] * 3]

        for batch in batch_time_series(series, 4):
            keys = [metric_signature(ts) for ts in batch]
            assert len(keys) == len(set(keys))
            assert len(batch) <= 4

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            chunk_time_series([make_ts("A")], 0)


class TestBuildRequests:
    """Test CreateTimeSeries request construction"""

    def test_requests(self):
        series = [make_ts(v) for v in ["A", "A", "B"]]

        requests = build_requests("projects/test-project", series, 200)

        assert len(requests) == 2
        assert all(r.name == "projects/test-project" for r in requests)
        assert [len(r.time_series) for r in requests] == [2, 1]
        assert requests[0].time_series[0] == series[0]

    def test_no_series(self):
        assert build_requests("projects/p", [], 200) == []
