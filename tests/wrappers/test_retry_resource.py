"""
Tests for the retry decorator
"""
# Standard
import threading

# Third Party
import pytest

# Local
from reconkit.backoff import (
    CappedRetriesBackOff,
    ExponentialBackOff,
    MaxRetriesBackOff,
    ZeroBackOff,
)
from reconkit.context import ReconcileContext
from reconkit.resource import CRUDResource, underlying
from reconkit.test_helpers.helpers import NopResource, RecordingCRUDOps
from reconkit.wrappers import retry_resource
from reconkit.wrappers.base import CRUDResourceWrapper
from reconkit.wrappers.retry_resource import RetryOps, RetryResource

CREATE_ORDER = [
    "GetCurrentState",
    "GetDesiredState",
    "NewUpdatePatch",
    "ApplyCreateChange",
    "ApplyDeleteChange",
    "ApplyUpdateChange",
]

## CRUD splice #################################################################


def test_retry_no_errors_delete_pass():
    """Wrapping a resource that never fails does not change the call order"""
    ops = RecordingCRUDOps(name="r0")
    resource = retry_resource.new(CRUDResource(ops), ZeroBackOff())
    resource.ensure_deleted(None, {})
    assert ops.order == [
        "GetCurrentState",
        "GetDesiredState",
        "NewDeletePatch",
        "ApplyCreateChange",
        "ApplyDeleteChange",
        "ApplyUpdateChange",
    ]


def test_retry_current_state_fails_once_on_delete():
    ops = RecordingCRUDOps(error_method="GetCurrentState", error_count=1)
    resource = retry_resource.new(CRUDResource(ops), ZeroBackOff())
    resource.ensure_deleted(None, {})
    assert ops.order == [
        "GetCurrentState",
        "GetCurrentState",
        "GetDesiredState",
        "NewDeletePatch",
        "ApplyCreateChange",
        "ApplyDeleteChange",
        "ApplyUpdateChange",
    ]


@pytest.mark.parametrize("failing_method", CREATE_ORDER)
@pytest.mark.parametrize("failures", [1, 2])
def test_retry_is_per_step(failing_method, failures):
    """Make sure only the failing step is repeated"""
    ops = RecordingCRUDOps(error_method=failing_method, error_count=failures)
    retry_resource.new(CRUDResource(ops), ZeroBackOff()).ensure_created(None, {})
    expected = []
    for method in CREATE_ORDER:
        expected.extend([method] * (failures + 1 if method == failing_method else 1))
    assert ops.order == expected


def test_retry_exhausted_propagates_last_error():
    ops = RecordingCRUDOps(error_method="ApplyUpdateChange", error_count=10)
    resource = retry_resource.new(CRUDResource(ops), MaxRetriesBackOff(2))
    with pytest.raises(RuntimeError):
        resource.ensure_created(None, {})
    assert ops.order.count("ApplyUpdateChange") == 3


def test_retry_budget_is_per_operation():
    """Make sure a retry in one step does not consume the budget of the next"""
    ops = RecordingCRUDOps(error_method="GetCurrentState", error_count=1)
    resource = retry_resource.new(CRUDResource(ops), MaxRetriesBackOff(1))
    resource.ensure_created(None, {})
    ops.error_method = "ApplyCreateChange"
    ops.error_count = 1
    resource.ensure_created(None, {})
    assert ops.order.count("ApplyCreateChange") == 3


def test_retry_splices_ops_without_mutating_original():
    ops = RecordingCRUDOps(name="r0")
    original = CRUDResource(ops)
    resource = retry_resource.new(original, ZeroBackOff())

    assert isinstance(resource, CRUDResourceWrapper)
    assert resource.name == "r0"
    spliced = underlying(resource)
    assert isinstance(spliced, CRUDResource)
    assert isinstance(spliced.ops, RetryOps)
    assert original.ops is ops


@pytest.mark.timeout(5)
def test_retry_stops_when_context_stopped():
    """Make sure a stopped context interrupts the backoff wait"""
    stop_event = threading.Event()
    stop_event.set()
    base = NopResource(error_method="EnsureCreated", error_count=5)
    resource = retry_resource.new(base, MaxRetriesBackOff(5, 100))
    with pytest.raises(RuntimeError):
        resource.ensure_created(ReconcileContext(stop_event=stop_event), {})
    assert base.order == ["EnsureCreated"]


## Basic wrap ##################################################################


def test_retry_basic_resource():
    base = NopResource("basic", error_method="EnsureCreated", error_count=2)
    resource = retry_resource.new(base, ZeroBackOff())
    assert isinstance(resource, RetryResource)
    assert resource.wrapped() is base
    resource.ensure_created(None, {})
    resource.ensure_deleted(None, {})
    assert base.order == [
        "EnsureCreated",
        "EnsureCreated",
        "EnsureCreated",
        "EnsureDeleted",
    ]


## wrap ########################################################################


def test_wrap_preserves_order_and_names():
    resources = [
        CRUDResource(RecordingCRUDOps(name="r0")),
        NopResource("r1"),
        CRUDResource(RecordingCRUDOps(name="r2")),
    ]
    created = []

    def factory():
        backoff = ZeroBackOff()
        created.append(backoff)
        return backoff

    wrapped = retry_resource.wrap(resources, backoff_factory=factory)
    assert wrapped is not resources
    assert [resource.name for resource in wrapped] == ["r0", "r1", "r2"]
    assert len(created) == 3
    assert [resource.name for resource in resources] == ["r0", "r1", "r2"]


def test_wrap_default_is_capped_exponential():
    wrapped = retry_resource.wrap([CRUDResource(RecordingCRUDOps(name="r0"))])
    backoff = underlying(wrapped[0]).ops._backoff
    assert isinstance(backoff, CappedRetriesBackOff)
    assert isinstance(backoff.backoff, ExponentialBackOff)
    assert backoff.max_retries == 3
