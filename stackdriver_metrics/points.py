"""Conversion of OpenCensus points into Cloud Monitoring points"""
from datetime import datetime
from typing import List, Optional, Sequence

from google.api import distribution_pb2
from google.cloud import monitoring_v3

from .errors import ConversionError
from .models import DistributionValue, DoubleValue, Int64Value, Point, PointValue, SummaryValue


def should_insert_zero_bound(bounds: Sequence[float]) -> bool:
    """Whether a 0.0 boundary must be prepended to explicit bucket bounds.

    The OpenCensus first bucket is [0, bounds[0]) while the backend's first
    bucket is (-infinity, bounds[0]).
    """
    return len(bounds) > 0 and bounds[0] != 0.0


def bucket_counts(distribution: DistributionValue, insert_zero_bound: bool) -> List[int]:
    counts = [bucket.count if bucket is not None else 0 for bucket in distribution.buckets]
    if insert_zero_bound:
        counts.insert(0, 0)
    return counts


def to_distribution(value: DistributionValue) -> distribution_pb2.Distribution:
    mean = value.sum / value.count if value.count > 0 else 0.0
    distribution = distribution_pb2.Distribution(
        count=value.count,
        mean=mean,
        sum_of_squared_deviation=value.sum_of_squared_deviation,
    )

    insert_zero_bound = False
    if value.bounds is not None:
        insert_zero_bound = should_insert_zero_bound(value.bounds)
        bounds = list(value.bounds)
        if insert_zero_bound:
            bounds.insert(0, 0.0)
        distribution.bucket_options.explicit_buckets.bounds.extend(bounds)

    distribution.bucket_counts.extend(bucket_counts(value, insert_zero_bound))
    return distribution


def to_typed_value(value: PointValue) -> monitoring_v3.TypedValue:
    """Convert one point value; summaries and unknown kinds are rejected"""
    if isinstance(value, Int64Value):
        return monitoring_v3.TypedValue(int64_value=value.value)
    if isinstance(value, DoubleValue):
        return monitoring_v3.TypedValue(double_value=value.value)
    if isinstance(value, DistributionValue):
        return monitoring_v3.TypedValue(distribution_value=to_distribution(value))
    if isinstance(value, SummaryValue):
        raise ConversionError("summary values must be split into sum, count and percentile metrics first")
    raise ConversionError(f"unknown point value type: {type(value).__name__}")


def to_point(start_time: Optional[datetime], point: Point) -> monitoring_v3.Point:
    """Convert a point; ``start_time`` is None for gauges"""
    interval = monitoring_v3.TimeInterval(end_time=point.timestamp)
    if start_time is not None:
        interval.start_time = start_time
    return monitoring_v3.Point(interval=interval, value=to_typed_value(point.value))
