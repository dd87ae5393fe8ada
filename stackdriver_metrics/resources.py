"""Mapping of OpenCensus resources onto Cloud Monitoring monitored resources"""
from typing import Callable, Dict, Optional, Tuple

from google.api import monitored_resource_pb2

from .models import GLOBAL_RESOURCE, Metric, Resource

# OpenCensus resource keys
CONTAINER_TYPE = "container"
K8S_TYPE = "k8s"
CLOUD_PROVIDER_KEY = "cloud.provider"
CLOUD_PROVIDER_GCP = "gcp"
CLOUD_PROVIDER_AWS = "aws"

# Monitored resource label -> OpenCensus resource label
K8S_CONTAINER_LABELS = {
    "location": "cloud.zone",
    "cluster_name": "k8s.cluster.name",
    "namespace_name": "k8s.namespace.name",
    "pod_name": "k8s.pod.name",
    "container_name": "container.name",
}
K8S_POD_LABELS = {
    "location": "cloud.zone",
    "cluster_name": "k8s.cluster.name",
    "namespace_name": "k8s.namespace.name",
    "pod_name": "k8s.pod.name",
}
GCE_INSTANCE_LABELS = {
    "project_id": "cloud.account.id",
    "instance_id": "host.id",
    "zone": "cloud.zone",
}
AWS_EC2_INSTANCE_LABELS = {
    "instance_id": "host.id",
    "region": "cloud.region",
    "aws_account": "cloud.account.id",
}

MapResource = Callable[[Resource], monitored_resource_pb2.MonitoredResource]


def global_monitored_resource() -> monitored_resource_pb2.MonitoredResource:
    return monitored_resource_pb2.MonitoredResource(type="global")


class ResourceMapper:
    """Default resource mapping.

    Resources missing any label their monitored resource type requires are
    reported as ``global``.
    """

    def __init__(self, project_id: str = ""):
        self.project_id = project_id

    def __call__(self, resource: Optional[Resource]) -> monitored_resource_pb2.MonitoredResource:
        if resource is None or resource.type == GLOBAL_RESOURCE.type:
            return global_monitored_resource()

        resource_type, label_map = self._match(resource)
        if resource_type is None:
            return global_monitored_resource()

        labels = {}
        for target, source in label_map.items():
            value = resource.labels.get(source)
            if value is None:
                return global_monitored_resource()
            labels[target] = value

        if resource_type == "aws_ec2_instance":
            labels["region"] = f"aws:{labels['region']}"
        if resource_type in ("k8s_container", "k8s_pod") and self.project_id:
            labels["project_id"] = self.project_id

        return monitored_resource_pb2.MonitoredResource(type=resource_type, labels=labels)

    def _match(self, resource: Resource) -> Tuple[Optional[str], Dict[str, str]]:
        if resource.type == CONTAINER_TYPE:
            return "k8s_container", K8S_CONTAINER_LABELS
        if resource.type == K8S_TYPE:
            return "k8s_pod", K8S_POD_LABELS

        provider = resource.labels.get(CLOUD_PROVIDER_KEY)
        if provider == CLOUD_PROVIDER_GCP:
            return "gce_instance", GCE_INSTANCE_LABELS
        if provider == CLOUD_PROVIDER_AWS:
            return "aws_ec2_instance", AWS_EC2_INSTANCE_LABELS
        return None, {}


class ResourceCache:
    """Memoizes resource mapping by resource identity within one export call"""

    def __init__(self, map_resource: MapResource):
        self.map_resource = map_resource
        # id() keys stay valid because the source resource is held alongside
        self._seen: Dict[int, Tuple[Optional[Resource], monitored_resource_pb2.MonitoredResource]] = {}

    def resolve(self, default: Optional[Resource], metric: Metric) -> monitored_resource_pb2.MonitoredResource:
        """Map the metric's resource, falling back to the call's default resource"""
        resource = metric.resource if metric.resource is not None else default
        key = id(resource)
        seen = self._seen.get(key)
        if seen is not None:
            return seen[1]

        mapped = self.map_resource(resource if resource is not None else GLOBAL_RESOURCE)
        self._seen[key] = (resource, mapped)
        return mapped

    def __len__(self) -> int:
        return len(self._seen)
