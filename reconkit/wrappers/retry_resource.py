"""
Decorator that retries failing resource operations according to a BackOff
"""

# Standard
from typing import Callable, Iterable, List, Optional
import copy

# First Party
import alog

# Local
from ..backoff import BackOff, new_exponential, new_max_retries, retry_notify
from ..context import ReconcileContext, log_extra
from ..resource.base import Resource
from ..resource.crud import CRUDResourceOps
from .base import CallInterceptor, OpsDecorator, ResourceDecorator, new_wrapper, wrap_all

log = alog.use_channel("RETRY")

BackOffFactory = Callable[[], BackOff]


class _RetryCall(CallInterceptor):
    """Retry each intercepted call. Every call runs against its own copy of the
    configured BackOff so concurrent reconciliations never share retry state.
    """

    _backoff: BackOff

    def _call(self, ctx: Optional[ReconcileContext], operation: str, func, *args):
        resource_name = self.name

        def notify(err: Exception, interval: float):
            log.warning(
                "retrying due to error: %s",
                err,
                extra=log_extra(
                    ctx, resource=resource_name, operation=operation, retryIn=interval
                ),
            )

        return retry_notify(
            lambda: func(*args),
            copy.deepcopy(self._backoff),
            notify=notify,
            wait=ctx.wait if ctx is not None else None,
        )


class RetryOps(_RetryCall, OpsDecorator):
    """CRUD operations with every step retried independently"""

    def __init__(self, ops: CRUDResourceOps, backoff: BackOff):
        super().__init__(ops)
        self._backoff = backoff


class RetryResource(_RetryCall, ResourceDecorator):
    """Resource with ensure_created/ensure_deleted retried as a whole"""

    def __init__(self, resource: Resource, backoff: BackOff):
        super().__init__(resource)
        self._backoff = backoff


## Construction ################################################################


def new(resource: Resource, backoff: Optional[BackOff] = None) -> Resource:
    """Decorate a resource with retries

    Args:
        resource:  Resource
            The resource to decorate
        backoff:  Optional[BackOff]
            The retry policy. Defaults to the exponential policy from the retry
            library config.

    Returns:
        resource:  Resource
            The decorated resource
    """
    backoff = backoff or new_exponential()
    return new_wrapper(
        resource,
        ops_factory=lambda ops: RetryOps(ops, backoff),
        resource_factory=lambda res: RetryResource(res, backoff),
    )


def wrap(
    resources: Iterable[Resource],
    backoff_factory: Optional[BackOffFactory] = None,
) -> List[Resource]:
    """Decorate every resource with retries, each with its own BackOff from
    backoff_factory. The default factory builds the exponential policy from the
    retry library config, capped at retry.wrap_max_retries retries.
    """
    backoff_factory = backoff_factory or new_max_retries
    return wrap_all(resources, lambda resource: new(resource, backoff_factory()))
