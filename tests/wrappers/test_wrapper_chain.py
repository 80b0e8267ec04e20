"""
Tests for stacking decorators on the same resource
"""

# Third Party
import pytest

# Local
from reconkit.backoff import ZeroBackOff
from reconkit.exceptions import IncompatibleUnderlyingResourceError, LoopDetectedError
from reconkit.resource import CRUDResource, Resource, Wrapper, underlying
from reconkit.test_helpers.helpers import NopResource, RecordingCRUDOps
from reconkit.wrappers import log_resource, metrics_resource, retry_resource
from reconkit.wrappers.base import new_crud_wrapper, new_wrapper
from reconkit.wrappers.log_resource import LogOps
from reconkit.wrappers.metrics_resource import MetricsOps, OperationMetrics
from reconkit.wrappers.retry_resource import RetryOps


class CyclicWrapper(Wrapper, Resource):
    def __init__(self):
        self._resource = self

    @property
    def name(self):
        return "cyclic"

    def ensure_created(self, ctx, obj):
        pass

    def ensure_deleted(self, ctx, obj):
        pass


def test_full_stack_decorates_each_step(registry):
    """Make sure stacked decorators all splice into the CRUD operations"""
    ops = RecordingCRUDOps(name="r0", error_method="GetCurrentState", error_count=1)
    resource = CRUDResource(ops)
    resource = metrics_resource.new(resource, "svc", OperationMetrics(registry))
    resource = retry_resource.new(resource, ZeroBackOff())
    resource = log_resource.new(resource)

    resource.ensure_created(None, {})

    # Metrics sits inside retry, so it sees both attempts
    assert (
        registry.get_sample_value(
            "reconkit_controller_operation_total",
            {"service": "svc", "resource": "r0", "operation": "GetCurrentState"},
        )
        == 2
    )
    assert ops.order.count("GetCurrentState") == 2

    spliced_ops = underlying(resource).ops
    assert isinstance(spliced_ops, LogOps)
    assert isinstance(spliced_ops._ops, RetryOps)
    assert isinstance(spliced_ops._ops._ops, MetricsOps)
    assert spliced_ops._ops._ops._ops is ops


def test_basic_fallback():
    calls = []
    base = NopResource()
    result = new_wrapper(
        base,
        ops_factory=lambda ops: calls.append("ops"),
        resource_factory=lambda res: calls.append("resource") or res,
    )
    assert result is base
    assert calls == ["resource"]


def test_crud_strategy_rejects_basic():
    with pytest.raises(IncompatibleUnderlyingResourceError):
        new_crud_wrapper(NopResource(), lambda ops: ops)


def test_cycle_surfaces_from_wrapping():
    with pytest.raises(LoopDetectedError):
        log_resource.new(CyclicWrapper())
