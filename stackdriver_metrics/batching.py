"""Packing of time series into CreateTimeSeries requests.

Cloud Monitoring rejects a request that writes two points to the same time
series ("Duplicate TimeSeries encountered"), which happens when several
processes report through one exporter. Series are therefore split into
rounds of unique signatures before being cut to the per-request limit.
"""
from typing import List, Sequence

from google.cloud import monitoring_v3


def metric_signature(ts: monitoring_v3.TimeSeries) -> str:
    """Metric type plus lexicographically sorted label values"""
    label_values = sorted(ts.metric.labels.values())
    return f"{ts.metric.type}:{','.join(label_values)}"


def dedupe_time_series(time_series: Sequence[monitoring_v3.TimeSeries]) -> List[List[monitoring_v3.TimeSeries]]:
    """Split series into rounds in which every signature appears once.

    The first round holds the first occurrence of each signature, the second
    the second occurrence, and so on. Order is preserved within a round.
    """
    rounds = []
    remaining = list(time_series)
    while remaining:
        unique = []
        overflow = []
        seen = set()
        for ts in remaining:
            key = metric_signature(ts)
            if key in seen:
                overflow.append(ts)
            else:
                seen.add(key)
                unique.append(ts)
        rounds.append(unique)
        remaining = overflow
    return rounds


def chunk_time_series(time_series: Sequence[monitoring_v3.TimeSeries],
                      max_per_request: int) -> List[List[monitoring_v3.TimeSeries]]:
    if max_per_request < 1:
        raise ValueError("max_per_request must be at least 1")
    return [
        list(time_series[start:start + max_per_request])
        for start in range(0, len(time_series), max_per_request)
    ]


def batch_time_series(time_series: Sequence[monitoring_v3.TimeSeries],
                      max_per_request: int) -> List[List[monitoring_v3.TimeSeries]]:
    """Batches with no duplicate signature and at most ``max_per_request`` series each"""
    batches = []
    for unique in dedupe_time_series(time_series):
        batches.extend(chunk_time_series(unique, max_per_request))
    return batches


def build_requests(project_name: str, time_series: Sequence[monitoring_v3.TimeSeries],
                   max_per_request: int) -> List[monitoring_v3.CreateTimeSeriesRequest]:
    return [
        monitoring_v3.CreateTimeSeriesRequest(name=project_name, time_series=batch)
        for batch in batch_time_series(time_series, max_per_request)
    ]
