"""Decomposition of summary metrics into sum, count and percentile metrics"""
from typing import List

from .errors import ConversionError
from .models import (
    DoubleValue,
    Int64Value,
    LabelKey,
    LabelValue,
    Metric,
    MetricDescriptor,
    MetricKind,
    Point,
    SummaryValue,
    TimeSeries,
)

PERCENTILE_LABEL_KEY = LabelKey(
    key="percentile",
    description="the value at a given percentile of a distribution",
)


def split_summary_metric(summary: Metric) -> List[Metric]:
    """Split a summary metric into up to three standard metrics.

    The backend has no summary kind, so a summary becomes a cumulative
    ``<name>_summary_sum`` double, a cumulative ``<name>_summary_count``
    int64 and a ``<name>_summary_percentile`` gauge with one series per
    percentile. Metrics without any series are not emitted.
    """
    descriptor = summary.descriptor
    sum_series: List[TimeSeries] = []
    count_series: List[TimeSeries] = []
    percentile_series: List[TimeSeries] = []

    for ts in summary.timeseries:
        for point in ts.points:
            value = point.value
            if not isinstance(value, SummaryValue):
                raise ConversionError(
                    f"summary metric '{descriptor.name}' has a {type(value).__name__} point"
                )

            if value.sum is not None:
                sum_series.append(TimeSeries(
                    label_values=list(ts.label_values),
                    start_timestamp=ts.start_timestamp,
                    points=[Point(timestamp=point.timestamp, value=DoubleValue(value.sum))],
                ))

            if value.count is not None:
                count_series.append(TimeSeries(
                    label_values=list(ts.label_values),
                    start_timestamp=ts.start_timestamp,
                    points=[Point(timestamp=point.timestamp, value=Int64Value(value.count))],
                ))

            snapshot_values = value.snapshot.percentile_values if value.snapshot else []
            for percentile in snapshot_values:
                # Percentiles are instantaneous, so no start timestamp
                percentile_series.append(TimeSeries(
                    label_values=list(ts.label_values) + [LabelValue(value=f"{percentile.percentile:f}")],
                    start_timestamp=None,
                    points=[Point(timestamp=point.timestamp, value=DoubleValue(percentile.value))],
                ))

    metrics = []
    if sum_series:
        metrics.append(Metric(
            descriptor=MetricDescriptor(
                name=f"{descriptor.name}_summary_sum",
                description=descriptor.description,
                kind=MetricKind.CUMULATIVE_DOUBLE,
                unit=descriptor.unit,
                label_keys=list(descriptor.label_keys),
            ),
            timeseries=sum_series,
            resource=summary.resource,
        ))
    if count_series:
        metrics.append(Metric(
            descriptor=MetricDescriptor(
                name=f"{descriptor.name}_summary_count",
                description=descriptor.description,
                kind=MetricKind.CUMULATIVE_INT64,
                unit="1",
                label_keys=list(descriptor.label_keys),
            ),
            timeseries=count_series,
            resource=summary.resource,
        ))
    if percentile_series:
        metrics.append(Metric(
            descriptor=MetricDescriptor(
                name=f"{descriptor.name}_summary_percentile",
                description=descriptor.description,
                kind=MetricKind.GAUGE_DOUBLE,
                unit=descriptor.unit,
                label_keys=list(descriptor.label_keys) + [PERCENTILE_LABEL_KEY],
            ),
            timeseries=percentile_series,
            resource=summary.resource,
        ))
    return metrics
