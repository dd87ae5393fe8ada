"""OpenCensus metric models accepted by the exporter"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union


class MetricKind(Enum):
    """OpenCensus metric descriptor types"""
    CUMULATIVE_INT64 = "cumulative_int64"
    CUMULATIVE_DOUBLE = "cumulative_double"
    CUMULATIVE_DISTRIBUTION = "cumulative_distribution"
    GAUGE_INT64 = "gauge_int64"
    GAUGE_DOUBLE = "gauge_double"
    GAUGE_DISTRIBUTION = "gauge_distribution"
    SUMMARY = "summary"

    @property
    def is_gauge(self) -> bool:
        return self in (MetricKind.GAUGE_INT64, MetricKind.GAUGE_DOUBLE, MetricKind.GAUGE_DISTRIBUTION)


class Language(Enum):
    """Language of the library that produced the metrics"""
    LANGUAGE_UNSPECIFIED = 0
    CPP = 1
    C_SHARP = 2
    ERLANG = 3
    GO_LANG = 4
    JAVA = 5
    NODE_JS = 6
    PHP = 7
    PYTHON = 8
    RUBY = 9
    WEB_JS = 10


@dataclass
class LabelKey:
    key: str
    description: str = ""


@dataclass
class LabelValue:
    value: str = ""
    has_value: bool = True


@dataclass(frozen=True)
class Int64Value:
    value: int


@dataclass(frozen=True)
class DoubleValue:
    value: float


@dataclass
class Bucket:
    count: int = 0


@dataclass
class DistributionValue:
    """Distribution point.

    ``bounds`` are the explicit bucket boundaries; the first bucket covers
    ``[0, bounds[0])``. None means the distribution has no bucket options.
    """
    count: int = 0
    sum: float = 0.0
    sum_of_squared_deviation: float = 0.0
    bounds: Optional[List[float]] = None
    buckets: List[Bucket] = field(default_factory=list)


@dataclass
class ValueAtPercentile:
    percentile: float
    value: float


@dataclass
class Snapshot:
    count: Optional[int] = None
    sum: Optional[float] = None
    percentile_values: List[ValueAtPercentile] = field(default_factory=list)


@dataclass
class SummaryValue:
    """Summary point: running sum and count plus a percentile snapshot"""
    count: Optional[int] = None
    sum: Optional[float] = None
    snapshot: Optional[Snapshot] = None


PointValue = Union[Int64Value, DoubleValue, DistributionValue, SummaryValue]


@dataclass
class Point:
    """A value recorded at the end of an interval"""
    timestamp: datetime
    value: PointValue


@dataclass
class TimeSeries:
    """Points sharing one label value combination"""
    label_values: List[LabelValue] = field(default_factory=list)
    points: List[Point] = field(default_factory=list)
    start_timestamp: Optional[datetime] = None


@dataclass
class MetricDescriptor:
    name: str
    kind: MetricKind
    description: str = ""
    unit: str = ""
    label_keys: List[LabelKey] = field(default_factory=list)


@dataclass
class Resource:
    """Entity that produced the metrics"""
    type: str
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class Metric:
    descriptor: Optional[MetricDescriptor]
    timeseries: List[TimeSeries] = field(default_factory=list)
    resource: Optional[Resource] = None

    @property
    def name(self) -> str:
        return self.descriptor.name if self.descriptor else ""


@dataclass
class ProcessIdentifier:
    host_name: str = ""
    pid: int = 0


@dataclass
class LibraryInfo:
    language: Language = Language.LANGUAGE_UNSPECIFIED
    exporter_version: str = ""
    core_library_version: str = ""


@dataclass
class Node:
    """Process that produced a batch of metrics"""
    identifier: ProcessIdentifier = field(default_factory=ProcessIdentifier)
    library_info: LibraryInfo = field(default_factory=LibraryInfo)


# Stand-in for metrics reported without a resource
GLOBAL_RESOURCE = Resource(type="global")
