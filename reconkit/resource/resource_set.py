"""
A ResourceSet binds an ordered list of resources to the objects it handles
"""

# Standard
from typing import Any, Callable, Iterable, Optional, Tuple

# First Party
import alog

# Local
from ..context import ReconcileContext
from ..exceptions import assert_config
from .base import Resource

log = alog.use_channel("RSSET")

HandlesFunc = Callable[[Any], bool]
InitCtxFunc = Callable[[ReconcileContext, Any], ReconcileContext]


class ResourceSet:
    """An ordered list of resources together with the predicate deciding which
    objects they reconcile
    """

    def __init__(
        self,
        handles: HandlesFunc,
        resources: Iterable[Resource],
        init_ctx: Optional[InitCtxFunc] = None,
    ):
        """
        Args:
            handles:  HandlesFunc
                Predicate returning True for objects this set reconciles
            resources:  Iterable[Resource]
                The resources to run, in order. Must not be empty.
            init_ctx:  Optional[InitCtxFunc]
                Hook run before each reconciliation to prepare the context
        """
        resources = tuple(resources or ())
        assert_config(callable(handles), "handles must be callable")
        assert_config(len(resources) > 0, "resources must not be empty")
        for resource in resources:
            assert_config(resource is not None, "resources must not contain None")
            assert_config(bool(resource.name), "resource names must not be empty")
        assert_config(init_ctx is None or callable(init_ctx), "init_ctx must be callable")
        self._handles = handles
        self._resources = resources
        self._init_ctx = init_ctx

    @property
    def resources(self) -> Tuple[Resource, ...]:
        return self._resources

    def handles(self, obj: Any) -> bool:
        return bool(self._handles(obj))

    def init_ctx(self, ctx: ReconcileContext, obj: Any) -> ReconcileContext:
        if self._init_ctx is None:
            return ctx
        return self._init_ctx(ctx, obj)

    def __repr__(self):
        return f"ResourceSet({[resource.name for resource in self._resources]})"
