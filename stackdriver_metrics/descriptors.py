"""Metric descriptor construction and the per-exporter descriptor cache"""
import asyncio
from typing import Dict, Optional, Tuple

from google.api import metric_pb2 as ga_metric
from google.cloud import monitoring_v3

from .config import ExporterConfig
from .errors import ConversionError, InvalidMetricError
from .labels import DefaultLabel, label_descriptors
from .logging_config import get_logger
from .models import Metric, MetricKind

logger = get_logger(__name__)

# Metric types under these prefixes are user-defined and may be created
CUSTOM_METRIC_PREFIXES = (
    "custom.googleapis.com/",
    "external.googleapis.com/",
)

# Names mentioning one of these domains already live in a metric namespace
KNOWN_METRIC_DOMAINS = (
    "googleapis.com",
    "kubernetes.io",
    "istio.io",
    "knative.dev",
)

# Types whose prefix has none of the known domains are placed under this one
DEFAULT_METRIC_DOMAIN = "custom.googleapis.com"

_KIND_MAP = {
    MetricKind.CUMULATIVE_INT64: (ga_metric.MetricDescriptor.CUMULATIVE, ga_metric.MetricDescriptor.INT64),
    MetricKind.CUMULATIVE_DOUBLE: (ga_metric.MetricDescriptor.CUMULATIVE, ga_metric.MetricDescriptor.DOUBLE),
    MetricKind.CUMULATIVE_DISTRIBUTION: (ga_metric.MetricDescriptor.CUMULATIVE, ga_metric.MetricDescriptor.DISTRIBUTION),
    MetricKind.GAUGE_INT64: (ga_metric.MetricDescriptor.GAUGE, ga_metric.MetricDescriptor.INT64),
    MetricKind.GAUGE_DOUBLE: (ga_metric.MetricDescriptor.GAUGE, ga_metric.MetricDescriptor.DOUBLE),
    MetricKind.GAUGE_DISTRIBUTION: (ga_metric.MetricDescriptor.GAUGE, ga_metric.MetricDescriptor.DISTRIBUTION),
}


def has_known_domain(name: str) -> bool:
    return any(domain in name for domain in KNOWN_METRIC_DOMAINS)


def metric_type(name: str, prefix: str) -> str:
    """Full metric type for a metric name.

    A prefix without a known domain is itself placed under
    ``custom.googleapis.com`` so the result is always a creatable type.
    """
    if has_known_domain(name):
        return name
    type_ = f"{prefix.rstrip('/')}/{name}" if prefix else name
    if not has_known_domain(type_):
        type_ = f"{DEFAULT_METRIC_DOMAIN}/{type_}"
    return type_


def display_name(name: str, prefix: str) -> str:
    return f"{prefix.rstrip('/')}/{name}"


def is_builtin_metric(type_: str) -> bool:
    """Built-in metric types already exist remotely and can only be fetched"""
    return not type_.startswith(CUSTOM_METRIC_PREFIXES)


def metric_kind_and_value_type(kind: MetricKind) -> Tuple[int, int]:
    if kind not in _KIND_MAP:
        raise ConversionError(f"metric kind {kind.name} has no Cloud Monitoring equivalent")
    return _KIND_MAP[kind]


def metric_prose(metric: Metric) -> Tuple[str, str, str]:
    """Name, description and unit of a metric"""
    if metric is None:
        raise InvalidMetricError("expecting a non-nil metric")
    descriptor = metric.descriptor
    if descriptor is None:
        raise InvalidMetricError("expecting a non-nil metric descriptor")

    unit = descriptor.unit
    if descriptor.kind == MetricKind.CUMULATIVE_INT64:
        # Counts of recorded measurements are dimensionless
        unit = "1"
    return descriptor.name, descriptor.description, unit


def build_metric_descriptor(metric: Metric, default_labels: Dict[str, DefaultLabel],
                            config: ExporterConfig) -> ga_metric.MetricDescriptor:
    """Describe a metric the way Cloud Monitoring expects it"""
    name, description, unit = metric_prose(metric)
    type_ = metric_type(name, config.metric_prefix)
    kind, value_type = metric_kind_and_value_type(metric.descriptor.kind)

    return ga_metric.MetricDescriptor(
        name=f"{config.project_name}/metricDescriptors/{type_}",
        type=type_,
        display_name=display_name(name, config.display_name_prefix),
        description=description,
        unit=unit,
        metric_kind=kind,
        value_type=value_type,
        labels=label_descriptors(default_labels, metric.descriptor.label_keys),
    )


class DescriptorRegistry:
    """Registers each metric's descriptor remotely at most once.

    Entries are keyed by metric name and never replaced, since the backend
    cannot change the shape of an existing descriptor. A failed create or
    fetch leaves no entry so a later export retries it.
    """

    def __init__(self, client, config: ExporterConfig):
        self.client = client
        self.config = config
        self._descriptors: Dict[str, ga_metric.MetricDescriptor] = {}
        self._lock = asyncio.Lock()

    def get(self, name: str) -> Optional[ga_metric.MetricDescriptor]:
        return self._descriptors.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)

    async def ensure_descriptor(self, metric: Metric,
                                default_labels: Dict[str, DefaultLabel]) -> ga_metric.MetricDescriptor:
        """Return the cached descriptor for ``metric``, creating or fetching it on a miss"""
        name, _, _ = metric_prose(metric)

        async with self._lock:
            cached = self.get(name)
            if cached is not None:
                return cached

            descriptor = build_metric_descriptor(metric, default_labels, self.config)
            if is_builtin_metric(descriptor.type):
                result = await self.client.get_metric_descriptor(
                    request=monitoring_v3.GetMetricDescriptorRequest(name=descriptor.name),
                    retry=None,
                    timeout=self.config.timeout,
                )
                action = "fetched"
            else:
                result = await self.client.create_metric_descriptor(
                    request=monitoring_v3.CreateMetricDescriptorRequest(
                        name=self.config.project_name,
                        metric_descriptor=descriptor,
                    ),
                    retry=None,
                    timeout=self.config.timeout,
                )
                action = "created"

            self._descriptors[name] = result
            logger.info(
                "Metric descriptor registered",
                metric_name=name,
                metric_type=descriptor.type,
                action=action,
                event_type="descriptor_registered"
            )
            return result
