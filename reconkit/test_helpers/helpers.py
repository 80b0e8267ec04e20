"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Any, List, Optional
import os
import threading
import time

# First Party
import alog

# Local
from reconkit.config import library_config as config_detail_dict
from reconkit.context import ReconcileContext
from reconkit.log_format import ReconkitJsonFormatter
from reconkit.resource import CRUDResourceOps, Patch, Resource

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter=ReconkitJsonFormatter()
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_NAMESPACE = "test"
TEST_KIND = "Widget"
TEST_API_VERSION = "foo.bar.com/v1"


def make_object(
    name: str = "widget",
    namespace: Optional[str] = TEST_NAMESPACE,
    finalizers: Optional[List[str]] = None,
    deletion_timestamp: Optional[str] = None,
    resource_version: Optional[str] = None,
    **kwargs,
) -> dict:
    """Build a minimal object definition"""
    obj = dict(kwargs)
    obj.setdefault("kind", TEST_KIND)
    obj.setdefault("apiVersion", TEST_API_VERSION)
    metadata = obj.setdefault("metadata", {})
    metadata.setdefault("name", name)
    if namespace:
        metadata.setdefault("namespace", namespace)
    if finalizers is not None:
        metadata["finalizers"] = list(finalizers)
    if deletion_timestamp is not None:
        metadata["deletionTimestamp"] = deletion_timestamp
    if resource_version is not None:
        metadata["resourceVersion"] = resource_version
    obj.setdefault("spec", {})
    return obj


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    yield

    for key in config_overrides:
        if key in old_vals:
            config_detail_dict[key] = old_vals[key]
        else:
            del config_detail_dict[key]


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            return self.fail_val
        log.debug("Not failing on call %d", self.call_count)
        return None


class RecordingCRUDOps(CRUDResourceOps):
    """CRUD operations that record every call into a shared order list and can
    fail error_count times on error_method. The patches they build set whichever
    changes were requested at construction.
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(  # pylint: disable=too-many-arguments
        self,
        name: str = "r0",
        order: Optional[List[str]] = None,
        error_method: Optional[str] = None,
        error_count: int = 0,
        error: type = RuntimeError,
        create_change: Any = None,
        delete_change: Any = None,
        update_change: Any = None,
        set_changes: Optional[List[str]] = None,
        no_patch: bool = False,
    ):
        self._name = name
        self.order = order if order is not None else []
        self.error_method = error_method
        self.error_count = error_count
        self.error = error
        self.create_change = create_change
        self.delete_change = delete_change
        self.update_change = update_change
        self.set_changes = (
            set_changes if set_changes is not None else ["create", "delete", "update"]
        )
        self.no_patch = no_patch
        self.applied = []
        self.contexts = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    def get_current_state(self, ctx: Optional[ReconcileContext], obj: Any) -> Any:
        self._record(ctx, "GetCurrentState")
        return {"current": obj}

    def get_desired_state(self, ctx: Optional[ReconcileContext], obj: Any) -> Any:
        self._record(ctx, "GetDesiredState")
        return {"desired": obj}

    def new_update_patch(self, ctx, obj, current_state, desired_state):
        self._record(ctx, "NewUpdatePatch")
        return self._patch()

    def new_delete_patch(self, ctx, obj, current_state, desired_state):
        self._record(ctx, "NewDeletePatch")
        return self._patch()

    def apply_create_change(self, ctx, obj, change):
        self._record(ctx, "ApplyCreateChange")
        self.applied.append(("create", change))

    def apply_delete_change(self, ctx, obj, change):
        self._record(ctx, "ApplyDeleteChange")
        self.applied.append(("delete", change))

    def apply_update_change(self, ctx, obj, change):
        self._record(ctx, "ApplyUpdateChange")
        self.applied.append(("update", change))

    def _patch(self) -> Optional[Patch]:
        if self.no_patch:
            return None
        patch = Patch()
        if "create" in self.set_changes:
            patch.set_create_change(self.create_change)
        if "delete" in self.set_changes:
            patch.set_delete_change(self.delete_change)
        if "update" in self.set_changes:
            patch.set_update_change(self.update_change)
        return patch

    def _record(self, ctx: Optional[ReconcileContext], method: str):
        with self._lock:
            self.order.append(method)
            self.contexts.append(ctx)
            if method == self.error_method and self.error_count > 0:
                self.error_count -= 1
                raise self.error(f"{self._name}.{method} failed")


class NopResource(Resource):
    """Basic resource that records its calls and optionally fails them"""

    def __init__(
        self,
        name: str = "nop",
        order: Optional[List[str]] = None,
        error_method: Optional[str] = None,
        error_count: int = 0,
    ):
        self._name = name
        self.order = order if order is not None else []
        self.error_method = error_method
        self.error_count = error_count
        self.objects = []

    @property
    def name(self) -> str:
        return self._name

    def ensure_created(self, ctx, obj):
        self._record("EnsureCreated", obj)

    def ensure_deleted(self, ctx, obj):
        self._record("EnsureDeleted", obj)

    def _record(self, method: str, obj: Any):
        self.order.append(method)
        self.objects.append(obj)
        if method == self.error_method and self.error_count > 0:
            self.error_count -= 1
            raise RuntimeError(f"{self._name}.{method} failed")


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    """Poll predicate until it is truthy or timeout seconds have passed"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())
