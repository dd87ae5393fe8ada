"""Assembly of Cloud Monitoring time series from OpenCensus metrics"""
from typing import Dict, List

from google.api import metric_pb2 as ga_metric
from google.api import monitored_resource_pb2
from google.cloud import monitoring_v3

from .descriptors import metric_prose, metric_type
from .errors import LabelMismatchError
from .labels import DefaultLabel, labels_per_time_series
from .logging_config import get_logger
from .models import Metric, TimeSeries
from .points import to_point

logger = get_logger(__name__)


def series_points(ts: TimeSeries, is_gauge: bool) -> List[monitoring_v3.Point]:
    """Convert a series' points; gauges never carry a start time"""
    start_time = None if is_gauge else ts.start_timestamp
    return [to_point(start_time, point) for point in ts.points if point is not None]


def metric_to_time_series(metric: Metric, mapped_resource: monitored_resource_pb2.MonitoredResource,
                          default_labels: Dict[str, DefaultLabel],
                          metric_prefix: str) -> List[monitoring_v3.TimeSeries]:
    """Convert a metric into time series without calling the backend.

    Series whose label values do not line up with the metric's label keys
    are skipped and logged. Points that cannot be converted raise
    ConversionError for the whole metric.
    """
    name, _, _ = metric_prose(metric)
    type_ = metric_type(name, metric_prefix)
    label_keys = metric.descriptor.label_keys
    is_gauge = metric.descriptor.kind.is_gauge

    time_series = []
    for ts in metric.timeseries:
        points = series_points(ts, is_gauge)

        labels = labels_per_time_series(default_labels, label_keys, ts.label_values)
        if labels is None:
            error = LabelMismatchError(name, len(label_keys), len(ts.label_values))
            logger.warning(
                "Skipping time series",
                metric_name=name,
                error=str(error),
                event_type="label_mismatch"
            )
            continue

        time_series.append(monitoring_v3.TimeSeries(
            metric=ga_metric.Metric(type=type_, labels=labels),
            resource=mapped_resource,
            points=points,
        ))

    return time_series
