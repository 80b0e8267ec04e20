"""
Decorator that logs the start, end, and failure of resource operations
"""

# Standard
from typing import Iterable, List, Optional

# First Party
import alog

# Local
from ..context import ReconcileContext, log_extra
from ..resource.base import Resource
from .base import CallInterceptor, OpsDecorator, ResourceDecorator, new_wrapper, wrap_all

log = alog.use_channel("RSLOG")


class _LogCall(CallInterceptor):
    def _call(self, ctx: Optional[ReconcileContext], operation: str, func, *args):
        extra = log_extra(ctx, resource=self.name, operation=operation)
        log.debug("start to execute resource operation", extra=extra)
        try:
            result = func(*args)
        except Exception as err:
            log.warning("resource operation failed: %s", err, extra=extra)
            raise
        log.debug("executed resource operation without errors", extra=extra)
        return result


class LogOps(_LogCall, OpsDecorator):
    """CRUD operations with every step logged"""


class LogResource(_LogCall, ResourceDecorator):
    """Resource with ensure_created/ensure_deleted logged"""


def new(resource: Resource) -> Resource:
    """Decorate a resource with operation logging"""
    return new_wrapper(resource, ops_factory=LogOps, resource_factory=LogResource)


def wrap(resources: Iterable[Resource]) -> List[Resource]:
    """Decorate every resource with operation logging"""
    return wrap_all(resources, new)
