"""Tests for summary metric decomposition"""
from datetime import datetime, timezone
import pytest

from stackdriver_metrics.errors import ConversionError
from stackdriver_metrics.models import (
    DoubleValue,
    Int64Value,
    LabelKey,
    LabelValue,
    Metric,
    MetricDescriptor,
    MetricKind,
    Point,
    Resource,
    Snapshot,
    SummaryValue,
    TimeSeries,
    ValueAtPercentile,
)
from stackdriver_metrics.summary import split_summary_metric

START = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
END = datetime(2024, 1, 1, 12, 1, 0, tzinfo=timezone.utc)


def summary_metric(value, series_count=1):
    return Metric(
        descriptor=MetricDescriptor(
            name="rpc_latency",
            kind=MetricKind.SUMMARY,
            description="RPC latency",
            unit="ms",
            label_keys=[LabelKey("method", "RPC method")],
        ),
        timeseries=[
            TimeSeries(
                label_values=[LabelValue(f"method-{i}")],
                start_timestamp=START,
                points=[Point(timestamp=END, value=value)],
            )
            for i in range(series_count)
        ],
        resource=Resource(type="host", labels={"host.name": "a"}),
    )


class TestSplitSummaryMetric:
    """Test splitting of summary metrics"""

    def setup_method(self):
        """Setup test fixtures"""
        self.value = SummaryValue(
            count=10,
            sum=120.5,
            snapshot=Snapshot(percentile_values=[
                ValueAtPercentile(percentile=50.0, value=11.0),
                ValueAtPercentile(percentile=99.0, value=30.0),
            ]),
        )

    def test_three_metrics_emitted(self):
        metrics = split_summary_metric(summary_metric(self.value))

        assert [m.name for m in metrics] == [
            "rpc_latency_summary_sum",
            "rpc_latency_summary_count",
            "rpc_latency_summary_percentile",
        ]
        assert [m.descriptor.kind for m in metrics] == [
            MetricKind.CUMULATIVE_DOUBLE,
            MetricKind.CUMULATIVE_INT64,
            MetricKind.GAUGE_DOUBLE,
        ]

    def test_sum_and_count_series(self):
        """Sum and count keep labels and the start timestamp"""
        sum_metric, count_metric, _ = split_summary_metric(summary_metric(self.value))

        sum_ts = sum_metric.timeseries[0]
        assert sum_ts.start_timestamp == START
        assert [lv.value for lv in sum_ts.label_values] == ["method-0"]
        assert sum_ts.points[0].value == DoubleValue(120.5)
        assert sum_ts.points[0].timestamp == END
        assert sum_metric.descriptor.unit == "ms"

        count_ts = count_metric.timeseries[0]
        assert count_ts.start_timestamp == START
        assert count_ts.points[0].value == Int64Value(10)
        assert count_metric.descriptor.unit == "1"

    def test_percentile_series(self):
        """One gauge series per percentile with an appended percentile label"""
        _, _, percentile_metric = split_summary_metric(summary_metric(self.value))

        assert [k.key for k in percentile_metric.descriptor.label_keys] == ["method", "percentile"]
        assert len(percentile_metric.timeseries) == 2

        label_values = [[lv.value for lv in ts.label_values] for ts in percentile_metric.timeseries]
        assert label_values == [["method-0", "50.000000"], ["method-0", "99.000000"]]
        assert all(ts.start_timestamp is None for ts in percentile_metric.timeseries)
        assert [ts.points[0].value for ts in percentile_metric.timeseries] == [DoubleValue(11.0), DoubleValue(30.0)]

    def test_percentile_series_per_source_series(self):
        metrics = split_summary_metric(summary_metric(self.value, series_count=3))

        assert len(metrics) == 3
        assert len(metrics[0].timeseries) == 3
        assert len(metrics[2].timeseries) == 6

    def test_source_metric_unchanged(self):
        metric = summary_metric(self.value)
        split_summary_metric(metric)

        assert [k.key for k in metric.descriptor.label_keys] == ["method"]
        assert len(metric.timeseries[0].label_values) == 1

    def test_resource_carried_over(self):
        metric = summary_metric(self.value)

        for derived in split_summary_metric(metric):
            assert derived.resource is metric.resource

    def test_only_count_present(self):
        metrics = split_summary_metric(summary_metric(SummaryValue(count=4)))

        assert [m.name for m in metrics] == ["rpc_latency_summary_count"]

    def test_empty_summary(self):
        assert split_summary_metric(summary_metric(SummaryValue())) == []

    def test_non_summary_point_rejected(self):
        with pytest.raises(ConversionError):
            split_summary_metric(summary_metric(DoubleValue(1.0)))
