"""
Shared wrapping core for the retry, metrics, and logging decorators.

Every decorator intercepts calls through a single _call(ctx, operation, func,
*args) hook. When the underlying resource of the target is a CRUD resource, the
decorator is spliced in at the level of the individual CRUD operations so that
each step is decorated on its own. Otherwise the whole resource is wrapped and
only ensure_created/ensure_deleted are decorated.
"""

# Standard
from typing import Any, Callable, Iterable, List, Optional
import abc

# First Party
import alog

# Local
from .. import constants
from ..context import ReconcileContext
from ..exceptions import IncompatibleUnderlyingResourceError, assert_config
from ..resource.base import Resource, ResourceKind, Wrapper
from ..resource.crud import CRUDResource, CRUDResourceOps
from ..resource.patch import Patch
from ..resource.unwrap import replace_underlying, underlying

log = alog.use_channel("WRAP")

OpsFactory = Callable[[CRUDResourceOps], CRUDResourceOps]
ResourceFactory = Callable[[Resource], Resource]


## Interceptors ################################################################


class CallInterceptor(abc.ABC):
    """Single hook through which every decorated call is routed"""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Name of the decorated resource"""

    @abc.abstractmethod
    def _call(
        self,
        ctx: Optional[ReconcileContext],
        operation: str,
        func: Callable,
        *args,
    ) -> Any:
        """Invoke func(*args) on behalf of operation, adding the decorator's
        behavior around it
        """


class OpsDecorator(CallInterceptor, CRUDResourceOps):
    """CRUDResourceOps that forwards each operation through _call"""

    def __init__(self, ops: CRUDResourceOps):
        self._ops = ops

    @property
    def name(self) -> str:
        return self._ops.name

    def get_current_state(self, ctx: Optional[ReconcileContext], obj: Any) -> Any:
        return self._call(
            ctx, constants.OP_GET_CURRENT_STATE, self._ops.get_current_state, ctx, obj
        )

    def get_desired_state(self, ctx: Optional[ReconcileContext], obj: Any) -> Any:
        return self._call(
            ctx, constants.OP_GET_DESIRED_STATE, self._ops.get_desired_state, ctx, obj
        )

    def new_update_patch(
        self,
        ctx: Optional[ReconcileContext],
        obj: Any,
        current_state: Any,
        desired_state: Any,
    ) -> Optional[Patch]:
        return self._call(
            ctx,
            constants.OP_NEW_UPDATE_PATCH,
            self._ops.new_update_patch,
            ctx,
            obj,
            current_state,
            desired_state,
        )

    def new_delete_patch(
        self,
        ctx: Optional[ReconcileContext],
        obj: Any,
        current_state: Any,
        desired_state: Any,
    ) -> Optional[Patch]:
        return self._call(
            ctx,
            constants.OP_NEW_DELETE_PATCH,
            self._ops.new_delete_patch,
            ctx,
            obj,
            current_state,
            desired_state,
        )

    def apply_create_change(
        self, ctx: Optional[ReconcileContext], obj: Any, change: Any
    ):
        return self._call(
            ctx,
            constants.OP_APPLY_CREATE_CHANGE,
            self._ops.apply_create_change,
            ctx,
            obj,
            change,
        )

    def apply_delete_change(
        self, ctx: Optional[ReconcileContext], obj: Any, change: Any
    ):
        return self._call(
            ctx,
            constants.OP_APPLY_DELETE_CHANGE,
            self._ops.apply_delete_change,
            ctx,
            obj,
            change,
        )

    def apply_update_change(
        self, ctx: Optional[ReconcileContext], obj: Any, change: Any
    ):
        return self._call(
            ctx,
            constants.OP_APPLY_UPDATE_CHANGE,
            self._ops.apply_update_change,
            ctx,
            obj,
            change,
        )


class ResourceDecorator(CallInterceptor, Wrapper, Resource):
    """Resource wrapper that forwards ensure_created/ensure_deleted through
    _call. Used when the underlying resource is not a CRUD resource.
    """

    def __init__(self, resource: Resource):
        self._resource = resource

    @property
    def name(self) -> str:
        return self._resource.name

    def ensure_created(self, ctx: Optional[ReconcileContext], obj: Any):
        return self._call(
            ctx, constants.OP_ENSURE_CREATED, self._resource.ensure_created, ctx, obj
        )

    def ensure_deleted(self, ctx: Optional[ReconcileContext], obj: Any):
        return self._call(
            ctx, constants.OP_ENSURE_DELETED, self._resource.ensure_deleted, ctx, obj
        )


class CRUDResourceWrapper(Wrapper, Resource):
    """Thin wrapper returned when a decorator was spliced into the operations
    of a CRUD resource. It delegates to the rebuilt chain.
    """

    def __init__(self, resource: Resource):
        self._resource = resource

    @property
    def name(self) -> str:
        return self._resource.name

    def ensure_created(self, ctx: Optional[ReconcileContext], obj: Any):
        return self._resource.ensure_created(ctx, obj)

    def ensure_deleted(self, ctx: Optional[ReconcileContext], obj: Any):
        return self._resource.ensure_deleted(ctx, obj)


## Construction ################################################################


def new_wrapper(
    resource: Resource,
    ops_factory: OpsFactory,
    resource_factory: ResourceFactory,
) -> Resource:
    """Decorate a resource with whichever strategy its underlying resource
    supports

    Args:
        resource:  Resource
            The resource to decorate. It may itself be a wrapper chain.
        ops_factory:  OpsFactory
            Builds the decorated operations for the CRUD strategy
        resource_factory:  ResourceFactory
            Builds the decorated resource for the basic strategy

    Returns:
        resource:  Resource
            A new resource with the same name. The given resource is not
            modified.
    """
    assert_config(resource is not None, "resource must not be None")
    try:
        return new_crud_wrapper(resource, ops_factory)
    except IncompatibleUnderlyingResourceError as err:
        log.debug3("Falling back to basic wrapping for %s: %s", resource.name, err)
        return resource_factory(resource)


def new_crud_wrapper(resource: Resource, ops_factory: OpsFactory) -> Resource:
    """Splice decorated operations under an existing chain

    Raises:
        IncompatibleUnderlyingResourceError:  If the chain does not end in a
            CRUD resource
    """
    base = underlying(resource)
    if base.kind is not ResourceKind.CRUD or not isinstance(base, CRUDResource):
        raise IncompatibleUnderlyingResourceError(
            f"Underlying resource of {resource.name} is not a CRUD resource"
        )
    decorated = CRUDResource(ops_factory(base.ops))
    return CRUDResourceWrapper(replace_underlying(resource, decorated))


def wrap_all(
    resources: Iterable[Resource],
    new_resource: Callable[[Resource], Resource],
) -> List[Resource]:
    """Decorate every resource in order, returning a new list"""
    return [new_resource(resource) for resource in resources]
