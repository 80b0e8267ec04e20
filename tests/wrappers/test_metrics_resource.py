"""
Tests for the metrics decorator
"""

# Third Party
import pytest

# Local
from reconkit.exceptions import InvalidConfigError
from reconkit.resource import CRUDResource
from reconkit.test_helpers.helpers import NopResource, RecordingCRUDOps
from reconkit.wrappers import metrics_resource
from reconkit.wrappers.metrics_resource import MetricsResource, OperationMetrics

## Helpers #####################################################################


def sample(registry, name, service, resource, operation):
    return registry.get_sample_value(
        f"reconkit_controller_{name}",
        {"service": service, "resource": resource, "operation": operation},
    )


## Tests #######################################################################


def test_metrics_per_resource(registry):
    """Make sure each resource is counted under its own label"""
    metrics = OperationMetrics(registry)
    resources = metrics_resource.wrap(
        [
            CRUDResource(RecordingCRUDOps(name="r0")),
            CRUDResource(RecordingCRUDOps(name="r1")),
        ],
        "svc",
        metrics,
    )
    for resource in resources:
        resource.ensure_created(None, {})

    for name in ["r0", "r1"]:
        assert sample(registry, "operation_total", "svc", name, "GetCurrentState") == 1
        assert (
            sample(registry, "operation_total", "svc", name, "ApplyUpdateChange") == 1
        )
        assert (
            sample(
                registry,
                "operation_duration_seconds_count",
                "svc",
                name,
                "GetCurrentState",
            )
            == 1
        )
        assert (
            sample(registry, "operation_error_total", "svc", name, "GetCurrentState")
            is None
        )


def test_metrics_counts_errors(registry):
    metrics = OperationMetrics(registry)
    ops = RecordingCRUDOps(name="r0", error_method="GetDesiredState", error_count=1)
    resource = metrics_resource.new(CRUDResource(ops), "svc", metrics)
    with pytest.raises(RuntimeError):
        resource.ensure_created(None, {})
    assert sample(registry, "operation_total", "svc", "r0", "GetDesiredState") == 1
    assert (
        sample(registry, "operation_error_total", "svc", "r0", "GetDesiredState") == 1
    )
    assert sample(registry, "operation_total", "svc", "r0", "NewUpdatePatch") is None


def test_metrics_service_camel_case(registry):
    metrics = OperationMetrics(registry)
    resource = metrics_resource.new(
        CRUDResource(RecordingCRUDOps(name="r0")), "my-service", metrics
    )
    resource.ensure_deleted(None, {})
    assert (
        sample(registry, "operation_total", "myService", "r0", "NewDeletePatch") == 1
    )


def test_metrics_basic_resource(registry):
    metrics = OperationMetrics(registry)
    resource = metrics_resource.new(NopResource("basic"), "svc", metrics)
    assert isinstance(resource, MetricsResource)
    resource.ensure_created(None, {})
    resource.ensure_deleted(None, {})
    assert sample(registry, "operation_total", "svc", "basic", "EnsureCreated") == 1
    assert sample(registry, "operation_total", "svc", "basic", "EnsureDeleted") == 1


def test_metrics_custom_namespace(registry):
    metrics = OperationMetrics(registry, namespace="acme", subsystem="widgets")
    metrics_resource.new(NopResource("basic"), "svc", metrics).ensure_created(None, {})
    assert (
        registry.get_sample_value(
            "acme_widgets_operation_total",
            {"service": "svc", "resource": "basic", "operation": "EnsureCreated"},
        )
        == 1
    )


def test_metrics_requires_service(registry):
    with pytest.raises(InvalidConfigError):
        metrics_resource.new(NopResource(), "", OperationMetrics(registry))
