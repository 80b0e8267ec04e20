"""
The CRUD resource protocol: a resource expressed as state getters, patch
builders, and change appliers, plus the algorithm that drives them
"""

# Standard
from typing import Any, Callable, Optional
import abc

# First Party
import alog

# Local
from .. import constants
from ..context import ReconcileContext, is_canceled, log_extra
from ..exceptions import assert_config
from .base import Resource, ResourceKind
from .patch import Patch

log = alog.use_channel("CRUD")


class CRUDResourceOps(abc.ABC):
    """The operations a CRUD resource is made of. State and change values are
    opaque to reconkit and only flow between these methods.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Stable identifier used in logs and metric labels"""

    @abc.abstractmethod
    def get_current_state(self, ctx: Optional[ReconcileContext], obj: Any) -> Any:
        """Observe the state of the world relevant to obj"""

    @abc.abstractmethod
    def get_desired_state(self, ctx: Optional[ReconcileContext], obj: Any) -> Any:
        """Compute the state obj declares"""

    @abc.abstractmethod
    def new_update_patch(
        self,
        ctx: Optional[ReconcileContext],
        obj: Any,
        current_state: Any,
        desired_state: Any,
    ) -> Optional[Patch]:
        """Build the changes needed to converge current_state to desired_state.
        None is treated as an empty Patch.
        """

    @abc.abstractmethod
    def new_delete_patch(
        self,
        ctx: Optional[ReconcileContext],
        obj: Any,
        current_state: Any,
        desired_state: Any,
    ) -> Optional[Patch]:
        """Build the changes needed to remove what obj declared. None is
        treated as an empty Patch.
        """

    @abc.abstractmethod
    def apply_create_change(
        self, ctx: Optional[ReconcileContext], obj: Any, change: Any
    ):
        """Create what the change describes"""

    @abc.abstractmethod
    def apply_delete_change(
        self, ctx: Optional[ReconcileContext], obj: Any, change: Any
    ):
        """Delete what the change describes"""

    @abc.abstractmethod
    def apply_update_change(
        self, ctx: Optional[ReconcileContext], obj: Any, change: Any
    ):
        """Update what the change describes"""


class CRUDResource(Resource):
    """A Resource that converges by computing a Patch from current and desired
    state and applying each of its set changes in a fixed order: create, then
    delete, then update. Any error aborts the remaining steps. A canceled
    context stops before the next step without error.
    """

    def __init__(self, ops: CRUDResourceOps):
        assert_config(ops is not None, "ops must not be None")
        assert_config(bool(ops.name), "ops.name must not be empty")
        self._ops = ops

    @property
    def name(self) -> str:
        return self._ops.name

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.CRUD

    @property
    def ops(self) -> CRUDResourceOps:
        return self._ops

    def ensure_created(self, ctx: Optional[ReconcileContext], obj: Any):
        self._reconcile(
            ctx, obj, constants.OP_NEW_UPDATE_PATCH, self._ops.new_update_patch
        )

    def ensure_deleted(self, ctx: Optional[ReconcileContext], obj: Any):
        self._reconcile(
            ctx, obj, constants.OP_NEW_DELETE_PATCH, self._ops.new_delete_patch
        )

    ## Implementation ##########################################################

    def _reconcile(
        self,
        ctx: Optional[ReconcileContext],
        obj: Any,
        patch_operation: str,
        new_patch: Callable[..., Optional[Patch]],
    ):
        if self._canceled(ctx, constants.OP_GET_CURRENT_STATE):
            return
        current_state = self._run(
            ctx, constants.OP_GET_CURRENT_STATE, self._ops.get_current_state, obj
        )

        if self._canceled(ctx, constants.OP_GET_DESIRED_STATE):
            return
        desired_state = self._run(
            ctx, constants.OP_GET_DESIRED_STATE, self._ops.get_desired_state, obj
        )

        if self._canceled(ctx, patch_operation):
            return
        patch = self._run(ctx, patch_operation, new_patch, obj, current_state, desired_state)
        if patch is None:
            log.debug3("No patch for resource %s", self.name)
            return

        for operation, get_change, apply_change in (
            (
                constants.OP_APPLY_CREATE_CHANGE,
                patch.get_create_change,
                self._ops.apply_create_change,
            ),
            (
                constants.OP_APPLY_DELETE_CHANGE,
                patch.get_delete_change,
                self._ops.apply_delete_change,
            ),
            (
                constants.OP_APPLY_UPDATE_CHANGE,
                patch.get_update_change,
                self._ops.apply_update_change,
            ),
        ):
            change, is_set = get_change()
            if not is_set:
                continue
            if self._canceled(ctx, operation):
                return
            self._run(ctx, operation, apply_change, obj, change)

    def _canceled(self, ctx: Optional[ReconcileContext], operation: str) -> bool:
        if is_canceled(ctx):
            log.debug(
                "Canceled before %s",
                operation,
                extra=log_extra(ctx, resource=self.name, operation=operation),
            )
            return True
        return False

    def _run(self, ctx: Optional[ReconcileContext], operation: str, func, *args):
        log.debug4(
            "Running %s.%s",
            self.name,
            operation,
            extra=log_extra(ctx, resource=self.name, operation=operation),
        )
        if ctx is None:
            return func(ctx, *args)
        with ctx.log_meta(function=operation):
            return func(ctx, *args)
