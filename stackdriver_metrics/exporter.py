"""Stackdriver exporter for OpenCensus metrics"""
import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import grpc
from google.api_core import exceptions as core_exceptions
from google.cloud import monitoring_v3
from google.cloud.monitoring_v3.services.metric_service.transports import MetricServiceGrpcAsyncIOTransport

from .batching import build_requests
from .bundler import Bundler
from .config import ExporterConfig
from .descriptors import DescriptorRegistry
from .errors import ExportError, ExportTimeoutError, InvalidMetricError, NoMetricsError, combine_errors
from .labels import DefaultLabel, default_labels_from_node
from .logging_config import get_logger, log_error, log_export_completed
from .models import Metric, MetricKind, Node, Resource
from .resources import MapResource, ResourceCache, ResourceMapper
from .summary import split_summary_metric
from .timeseries import metric_to_time_series

logger = get_logger(__name__)

# Errors scoped to one metric or one request; anything else propagates
RECOVERABLE_ERRORS = (ExportError, core_exceptions.GoogleAPICallError)


@dataclass
class MetricPayload:
    """One metric queued for upload with the context it was exported in"""
    metric: Metric
    resource: Optional[Resource]
    additional_labels: Dict[str, DefaultLabel]


class MetricsExporter:
    """Uploads OpenCensus metrics to Cloud Monitoring.

    ``export_metrics`` buffers metrics and uploads them from a background
    bundler, reporting failures to ``on_error``. ``export_metrics_sync``
    uploads inline and raises on failure. Neither retries.
    """

    def __init__(self,
                 config: ExporterConfig,
                 client=None,
                 default_labels: Optional[Dict[str, DefaultLabel]] = None,
                 map_resource: Optional[MapResource] = None,
                 on_error: Optional[Callable[[Exception], None]] = None):
        self.config = config
        self.client = client
        self._owns_client = False
        self._healthy = False

        if default_labels is None:
            default_labels = config.fixed_default_labels()
        self.default_labels = default_labels

        self.map_resource = map_resource or ResourceMapper(config.project_id)
        self.on_error = on_error or self._log_error
        self.descriptors = DescriptorRegistry(client, config)
        self.bundler = Bundler(
            handler=self._upload_bundle,
            on_error=self._handle_error,
            count_threshold=config.bundle_count_threshold,
            delay_threshold=config.bundle_delay_threshold,
            max_queue_size=config.max_queue_size,
        )

    async def start(self) -> None:
        """Connect to the API and start the background bundler"""
        self._ensure_client()
        await self.bundler.start()
        self._healthy = True
        logger.info(
            "Stackdriver exporter started",
            project_id=self.config.project_id,
            endpoint=self.config.endpoint or "default",
            metric_prefix=self.config.metric_prefix
        )

    async def shutdown(self) -> None:
        """Flush buffered metrics and release the client"""
        await self.bundler.stop()
        if self._owns_client and self.client is not None:
            await self.client.transport.close()
        self._healthy = False
        logger.info("Stackdriver exporter shutdown")

    def is_healthy(self) -> bool:
        return self._healthy

    async def export_metrics(self, metrics: Sequence[Metric], node: Optional[Node] = None,
                             resource: Optional[Resource] = None) -> None:
        """Queue metrics for upload by the bundler"""
        self._validate(metrics)
        payloads, errors = self._build_payloads(metrics, node, resource)
        for payload in payloads:
            self.bundler.add(payload)

        error = combine_errors(errors)
        if error is not None:
            self._handle_error(error)

    async def export_metrics_sync(self, metrics: Sequence[Metric], node: Optional[Node] = None,
                                  resource: Optional[Resource] = None,
                                  timeout: Optional[float] = None) -> None:
        """Upload metrics now, stopping at the first failed request.

        Raises ExportTimeoutError when the upload does not finish within
        ``timeout`` (default: the configured timeout).
        """
        self._validate(metrics)
        self._ensure_client()
        payloads, errors = self._build_payloads(metrics, node, resource)

        timeout = timeout if timeout is not None else self.config.timeout
        try:
            await asyncio.wait_for(
                self._upload(payloads, fail_fast=True, errors=errors, mode="sync"),
                timeout=timeout
            )
        except asyncio.TimeoutError as e:
            raise ExportTimeoutError(timeout) from e

    async def flush(self) -> None:
        """Upload everything buffered so far"""
        await self.bundler.flush()

    def _ensure_client(self):
        if self.client is None:
            self.client = self._create_client()
            self._owns_client = True
        self.descriptors.client = self.client
        return self.client

    def _create_client(self):
        if self.config.endpoint and self.config.insecure:
            channel = grpc.aio.insecure_channel(self.config.endpoint)
            transport = MetricServiceGrpcAsyncIOTransport(channel=channel)
            return monitoring_v3.MetricServiceAsyncClient(transport=transport)
        if self.config.endpoint:
            return monitoring_v3.MetricServiceAsyncClient(client_options={"api_endpoint": self.config.endpoint})
        return monitoring_v3.MetricServiceAsyncClient()

    def _validate(self, metrics: Sequence[Metric]) -> None:
        if not metrics:
            raise NoMetricsError()
        for metric in metrics:
            if metric is None:
                raise InvalidMetricError("expecting a non-nil metric")
            if metric.descriptor is None:
                raise InvalidMetricError("expecting a non-nil metric descriptor")

    def _additional_labels(self, node: Optional[Node]) -> Dict[str, DefaultLabel]:
        if self.default_labels is not None:
            return self.default_labels
        return default_labels_from_node(node)

    def _build_payloads(self, metrics: Sequence[Metric], node: Optional[Node],
                        resource: Optional[Resource]) -> Tuple[List[MetricPayload], List[Exception]]:
        """One payload per metric, with summaries split into their three parts"""
        additional_labels = self._additional_labels(node)
        payloads = []
        errors = []
        for metric in metrics:
            if metric.descriptor.kind == MetricKind.SUMMARY:
                try:
                    expanded = split_summary_metric(metric)
                except ExportError as e:
                    errors.append(e)
                    continue
            else:
                expanded = [metric]

            payloads.extend(
                MetricPayload(metric=m, resource=resource, additional_labels=additional_labels)
                for m in expanded
            )
        return payloads, errors

    async def _upload_bundle(self, payloads: List[MetricPayload]) -> None:
        try:
            await asyncio.wait_for(
                self._upload(payloads, fail_fast=False, errors=[], mode="buffered"),
                timeout=self.config.timeout
            )
        except asyncio.TimeoutError as e:
            raise ExportTimeoutError(self.config.timeout) from e

    async def _upload(self, payloads: List[MetricPayload], fail_fast: bool,
                      errors: List[Exception], mode: str) -> None:
        """Register descriptors, convert, batch and upload.

        Errors scoped to one metric skip that metric. A failed request stops
        the upload when ``fail_fast`` is set; otherwise every request is
        attempted. All collected errors are raised together at the end.
        """
        start_time = time.monotonic()

        registered = []
        for payload in payloads:
            try:
                await self.descriptors.ensure_descriptor(payload.metric, payload.additional_labels)
            except RECOVERABLE_ERRORS as e:
                logger.error(
                    "Failed to register metric descriptor",
                    metric_name=payload.metric.name,
                    error=str(e),
                    error_type=type(e).__name__,
                    event_type="descriptor_error"
                )
                errors.append(e)
                continue
            registered.append(payload)

        resources = ResourceCache(self.map_resource)
        all_time_series = []
        for payload in registered:
            mapped_resource = resources.resolve(payload.resource, payload.metric)
            try:
                all_time_series.extend(metric_to_time_series(
                    payload.metric, mapped_resource, payload.additional_labels, self.config.metric_prefix
                ))
            except ExportError as e:
                errors.append(e)

        requests = build_requests(
            self.config.project_name, all_time_series, self.config.max_time_series_per_upload
        )
        sent = 0
        for request in requests:
            try:
                await self.client.create_time_series(request=request, retry=None, timeout=self.config.timeout)
                sent += 1
            except core_exceptions.GoogleAPICallError as e:
                logger.error(
                    "Failed to upload time series",
                    time_series_count=len(request.time_series),
                    grpc_code=e.grpc_status_code.name if e.grpc_status_code else "unknown",
                    error=str(e),
                    event_type="upload_error"
                )
                errors.append(e)
                if fail_fast:
                    break

        log_export_completed(
            logger,
            mode=mode,
            metrics_count=len(payloads),
            time_series_count=len(all_time_series),
            requests_count=sent,
            duration=time.monotonic() - start_time,
            errors=len(errors)
        )

        error = combine_errors(errors)
        if error is not None:
            raise error

    def _handle_error(self, error: Exception) -> None:
        self.on_error(error)

    def _log_error(self, error: Exception) -> None:
        log_error(logger, error, {"mode": "buffered"})
