"""Tests for resource mapping and the per-call resource cache"""
from unittest.mock import Mock

from google.api import monitored_resource_pb2

from stackdriver_metrics.models import GLOBAL_RESOURCE, Metric, MetricDescriptor, MetricKind, Resource
from stackdriver_metrics.resources import ResourceCache, ResourceMapper


def make_metric(resource=None):
    return Metric(descriptor=MetricDescriptor(name="m", kind=MetricKind.GAUGE_INT64), resource=resource)


class TestResourceMapper:
    """Test the default resource mapping"""

    def setup_method(self):
        """Setup test fixtures"""
        self.mapper = ResourceMapper(project_id="test-project")

    def test_missing_resource_is_global(self):
        assert self.mapper(None).type == "global"
        assert self.mapper(GLOBAL_RESOURCE).type == "global"

    def test_k8s_container(self):
        resource = Resource(type="container", labels={
            "cloud.zone": "us-central1-a",
            "k8s.cluster.name": "prod",
            "k8s.namespace.name": "default",
            "k8s.pod.name": "web-1",
            "container.name": "app",
        })

        mapped = self.mapper(resource)

        assert mapped.type == "k8s_container"
        assert dict(mapped.labels) == {
            "project_id": "test-project",
            "location": "us-central1-a",
            "cluster_name": "prod",
            "namespace_name": "default",
            "pod_name": "web-1",
            "container_name": "app",
        }

    def test_k8s_container_missing_label(self):
        resource = Resource(type="container", labels={"container.name": "app"})

        assert self.mapper(resource).type == "global"

    def test_gce_instance(self):
        resource = Resource(type="host", labels={
            "cloud.provider": "gcp",
            "cloud.account.id": "gce-project",
            "host.id": "12345",
            "cloud.zone": "europe-west1-b",
        })

        mapped = self.mapper(resource)

        assert mapped.type == "gce_instance"
        assert dict(mapped.labels) == {"project_id": "gce-project", "instance_id": "12345", "zone": "europe-west1-b"}

    def test_aws_ec2_instance(self):
        resource = Resource(type="host", labels={
            "cloud.provider": "aws",
            "host.id": "i-abc",
            "cloud.region": "us-east-1",
            "cloud.account.id": "123456789",
        })

        mapped = self.mapper(resource)

        assert mapped.type == "aws_ec2_instance"
        assert mapped.labels["region"] == "aws:us-east-1"
        assert mapped.labels["aws_account"] == "123456789"

    def test_unknown_resource_is_global(self):
        assert self.mapper(Resource(type="host", labels={"host.name": "a"})).type == "global"


class TestResourceCache:
    """Test per-call resource memoization"""

    def setup_method(self):
        """Setup test fixtures"""
        self.map_resource = Mock(return_value=monitored_resource_pb2.MonitoredResource(type="global"))
        self.cache = ResourceCache(self.map_resource)

    def test_mapped_once_per_resource(self):
        resource = Resource(type="host")

        self.cache.resolve(resource, make_metric())
        self.cache.resolve(resource, make_metric())

        self.map_resource.assert_called_once_with(resource)
        assert len(self.cache) == 1

    def test_metric_resource_takes_precedence(self):
        default = Resource(type="host")
        override = Resource(type="container")

        self.cache.resolve(default, make_metric(resource=override))

        self.map_resource.assert_called_once_with(override)

    def test_keyed_by_identity(self):
        """Equal but distinct resources are mapped separately"""
        self.cache.resolve(Resource(type="host"), make_metric())
        self.cache.resolve(Resource(type="host"), make_metric())

        assert self.map_resource.call_count == 2

    def test_missing_resource_maps_global(self):
        self.cache.resolve(None, make_metric())
        self.cache.resolve(None, make_metric())

        self.map_resource.assert_called_once_with(GLOBAL_RESOURCE)
