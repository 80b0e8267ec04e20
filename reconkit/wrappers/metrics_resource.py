"""
Decorator that counts and times resource operations with prometheus metrics
"""

# Standard
from typing import Iterable, List, Optional
import time

# Third Party
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

# First Party
import alog

# Local
from .. import config
from ..context import ReconcileContext
from ..exceptions import assert_config
from ..resource.base import Resource
from ..resource.crud import CRUDResourceOps
from ..utils import to_camel_case
from .base import CallInterceptor, OpsDecorator, ResourceDecorator, new_wrapper, wrap_all

log = alog.use_channel("METRC")

LABEL_NAMES = ["service", "resource", "operation"]
DURATION_BUCKETS = (1, 2, 5, 10, 20, 40, 60, 120)


class OperationMetrics:
    """The metric families shared by every metrics-decorated resource. Create
    one per registry and pass it to new() or wrap().
    """

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = REGISTRY,
        namespace: Optional[str] = None,
        subsystem: Optional[str] = None,
    ):
        namespace = namespace if namespace is not None else config.metrics.namespace
        subsystem = subsystem if subsystem is not None else config.metrics.subsystem
        self.operation_total = Counter(
            "operation",
            "Number of resource operations executed",
            LABEL_NAMES,
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.operation_error_total = Counter(
            "operation_error",
            "Number of resource operations that raised an error",
            LABEL_NAMES,
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.operation_duration = Histogram(
            "operation_duration_seconds",
            "Duration of resource operations",
            LABEL_NAMES,
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
            buckets=DURATION_BUCKETS,
        )


class _MetricsCall(CallInterceptor):
    """Count, time, and count failures of each intercepted call"""

    _service: str
    _metrics: OperationMetrics

    def _call(self, ctx: Optional[ReconcileContext], operation: str, func, *args):
        labels = (self._service, self.name, operation)
        self._metrics.operation_total.labels(*labels).inc()
        start = time.monotonic()
        try:
            return func(*args)
        except Exception:
            self._metrics.operation_error_total.labels(*labels).inc()
            raise
        finally:
            self._metrics.operation_duration.labels(*labels).observe(
                time.monotonic() - start
            )


class MetricsOps(_MetricsCall, OpsDecorator):
    """CRUD operations with every step measured independently"""

    def __init__(self, ops: CRUDResourceOps, service: str, metrics: OperationMetrics):
        super().__init__(ops)
        self._service = service
        self._metrics = metrics


class MetricsResource(_MetricsCall, ResourceDecorator):
    """Resource with ensure_created/ensure_deleted measured as a whole"""

    def __init__(self, resource: Resource, service: str, metrics: OperationMetrics):
        super().__init__(resource)
        self._service = service
        self._metrics = metrics


## Construction ################################################################


def new(resource: Resource, service: str, metrics: OperationMetrics) -> Resource:
    """Decorate a resource with operation metrics

    Args:
        resource:  Resource
            The resource to decorate
        service:  str
            Name of the owning service. It is normalized to lower camel case
            for the service label.
        metrics:  OperationMetrics
            The metric families to record into

    Returns:
        resource:  Resource
            The decorated resource
    """
    assert_config(bool(service), "service must not be empty")
    assert_config(metrics is not None, "metrics must not be None")
    service = to_camel_case(service)
    return new_wrapper(
        resource,
        ops_factory=lambda ops: MetricsOps(ops, service, metrics),
        resource_factory=lambda res: MetricsResource(res, service, metrics),
    )


def wrap(
    resources: Iterable[Resource],
    service: str,
    metrics: OperationMetrics,
) -> List[Resource]:
    """Decorate every resource with operation metrics"""
    return wrap_all(resources, lambda resource: new(resource, service, metrics))
