"""Export OpenCensus metrics to Google Cloud Monitoring (Stackdriver)"""
from .config import ExporterConfig
from .errors import (
    CombinedExportError,
    ConversionError,
    ExportError,
    ExportTimeoutError,
    InvalidMetricError,
    LabelMismatchError,
    NoMetricsError,
)
from .exporter import MetricsExporter
from .labels import DefaultLabel
from .models import (
    GLOBAL_RESOURCE,
    Bucket,
    DistributionValue,
    DoubleValue,
    Int64Value,
    LabelKey,
    LabelValue,
    Language,
    LibraryInfo,
    Metric,
    MetricDescriptor,
    MetricKind,
    Node,
    Point,
    ProcessIdentifier,
    Resource,
    Snapshot,
    SummaryValue,
    TimeSeries,
    ValueAtPercentile,
)
from .resources import ResourceMapper

__version__ = "0.1.0"

__all__ = [
    'ExporterConfig',
    'MetricsExporter',
    'ResourceMapper',
    'DefaultLabel',
    'ExportError',
    'NoMetricsError',
    'InvalidMetricError',
    'ConversionError',
    'LabelMismatchError',
    'ExportTimeoutError',
    'CombinedExportError',
    'GLOBAL_RESOURCE',
    'Bucket',
    'DistributionValue',
    'DoubleValue',
    'Int64Value',
    'LabelKey',
    'LabelValue',
    'Language',
    'LibraryInfo',
    'Metric',
    'MetricDescriptor',
    'MetricKind',
    'Node',
    'Point',
    'ProcessIdentifier',
    'Resource',
    'Snapshot',
    'SummaryValue',
    'TimeSeries',
    'ValueAtPercentile',
]
