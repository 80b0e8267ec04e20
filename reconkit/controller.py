"""
The Controller routes informer events to the matching ResourceSet and drives
the finalizer-guarded create/update/delete lifecycle of each watched object
"""

# Standard
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
import threading

# Third Party
from prometheus_client import REGISTRY, CollectorRegistry, Counter

# First Party
import alog

# Local
from . import config
from .backoff import BackOff
from .client.base import FinalizerClientBase, SchemaClientBase
from .context import ReconcileContext, log_extra
from .exceptions import NoResourceSetError, assert_config, assert_execution
from .finalizer import default_backoff, ensure_finalizer, finalizer_name, remove_finalizer
from .informer.informer import Informer
from .informer.stream import EventStream
from .managed_object import ManagedObject
from .resource.base import Resource
from .resource.resource_set import ResourceSet
from .threads import ThreadBase

log = alog.use_channel("CTRLR")

LOOP_UPDATE = "update"
LOOP_DELETE = "delete"
LOOP_ERROR = "error"


## Resource execution ##########################################################


def process_update(
    ctx: Optional[ReconcileContext], obj: Any, resources: Sequence[Resource]
):
    """Run ensure_created for every resource in order"""
    _process(ctx, obj, resources, LOOP_UPDATE)


def process_delete(
    ctx: Optional[ReconcileContext], obj: Any, resources: Sequence[Resource]
):
    """Run ensure_deleted for every resource in order"""
    _process(ctx, obj, resources, LOOP_DELETE)


def _process(
    ctx: Optional[ReconcileContext],
    obj: Any,
    resources: Sequence[Resource],
    loop: str,
):
    assert_execution(bool(resources), "resources must not be empty")
    ctx = ctx or ReconcileContext()
    for resource in resources:
        if ctx.reconciliation_canceled or ctx.stopped:
            log.debug(
                "Skipping remaining resources", extra=log_extra(ctx, loop=loop)
            )
            return
        ctx.reset_resource()
        with ctx.log_meta(resource=resource.name, loop=loop):
            if loop == LOOP_DELETE:
                resource.ensure_deleted(ctx, obj)
            else:
                resource.ensure_created(ctx, obj)


## Metrics #####################################################################


class ControllerMetrics:
    """Counts reconciliations and their failures per loop"""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = REGISTRY,
        namespace: Optional[str] = None,
        subsystem: Optional[str] = None,
    ):
        namespace = namespace if namespace is not None else config.metrics.namespace
        subsystem = subsystem if subsystem is not None else config.metrics.subsystem
        self.reconcile_total = Counter(
            "reconcile",
            "Number of reconciliations started",
            ["controller", "loop"],
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.reconcile_error_total = Counter(
            "reconcile_error",
            "Number of reconciliations or informer errors that failed",
            ["controller", "loop"],
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )


## Workers #####################################################################


class _StreamWorker(ThreadBase):
    """Consumes one informer stream until it ends or the controller stops"""

    def __init__(
        self,
        name: str,
        stream: EventStream,
        handler: Callable[[Any], None],
        shutdown: threading.Event,
    ):
        super().__init__(name=name, daemon=True, shutdown=shutdown)
        self._stream = stream
        self._handler = handler

    def run(self):
        for item in self._stream:
            if self.should_stop():
                break
            self._handler(item)
        log.debug("Worker %s finished", self.name)


## Controller ##################################################################


class Controller:  # pylint: disable=too-many-instance-attributes
    """Reconciles the objects delivered by an Informer.

    Before an object is reconciled for the first time the controller's
    finalizer is added to it. When the object is being deleted, the matching
    resources are run with ensure_deleted and only when all of them succeed is
    the finalizer removed, allowing the deletion to complete.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        name: str,
        informer: Informer,
        resource_sets: Iterable[ResourceSet],
        finalizer_client: FinalizerClientBase,
        finalizer_backoff_factory: Optional[Callable[[], BackOff]] = None,
        schema_client: Optional[SchemaClientBase] = None,
        metrics: Optional[ControllerMetrics] = None,
    ):
        """
        Args:
            name:  str
                Name of the controller. It is part of the finalizer name.
            informer:  Informer
                Source of the objects to reconcile
            resource_sets:  Iterable[ResourceSet]
                The candidate resource sets. At most one may handle any object.
            finalizer_client:  FinalizerClientBase
                Client used to add and remove the finalizer
            finalizer_backoff_factory:  Optional[Callable[[], BackOff]]
                Conflict retry policy for finalizer updates
            schema_client:  Optional[SchemaClientBase]
                If given, its schema is ensured before watching starts
            metrics:  Optional[ControllerMetrics]
                Metric families to record into
        """
        resource_sets = list(resource_sets or [])
        assert_config(bool(name), "name must not be empty")
        assert_config(informer is not None, "informer must not be None")
        assert_config(len(resource_sets) > 0, "resource_sets must not be empty")
        assert_config(finalizer_client is not None, "finalizer_client must not be None")
        self.name = name
        self.finalizer = finalizer_name(name)
        self._informer = informer
        self._resource_sets: List[ResourceSet] = resource_sets
        self._finalizer_client = finalizer_client
        self._finalizer_backoff_factory = finalizer_backoff_factory or default_backoff
        self._schema_client = schema_client
        self._metrics = metrics

        self._shutdown = threading.Event()
        self._workers: List[_StreamWorker] = []
        self._object_locks: Dict[str, threading.Lock] = {}
        self._object_locks_lock = threading.Lock()

    ## Lifecycle ###############################################################

    def start(self):
        """Ensure the schema, start the informer, and start the workers"""
        if self._schema_client is not None:
            with alog.ContextTimer(log.debug, "Schema for %s ensured in: ", self.name):
                self._schema_client.ensure_schema()
        log.info("Starting controller %s", self.name)
        streams = self._informer.watch(self._shutdown)
        self._workers = [
            _StreamWorker(
                f"{self.name}-updates", streams.updates, self._on_update, self._shutdown
            ),
            _StreamWorker(
                f"{self.name}-deletes", streams.deletes, self._on_delete, self._shutdown
            ),
            _StreamWorker(
                f"{self.name}-errors", streams.errors, self._on_error, self._shutdown
            ),
        ]
        for worker in self._workers:
            worker.start_thread()

    def stop(self, timeout: Optional[float] = None):
        """Stop the informer and wait for the workers to finish"""
        log.info("Stopping controller %s", self.name)
        self._shutdown.set()
        self._informer.stop(timeout)
        for worker in self._workers:
            if worker.is_alive():
                worker.join(timeout)

    @property
    def stopped(self) -> bool:
        return self._shutdown.is_set()

    ## Reconciliation ##########################################################

    def select_resource_set(self, obj: ManagedObject) -> Optional[ResourceSet]:
        """Find the resource set responsible for obj

        Returns:
            resource_set:  Optional[ResourceSet]
                The single matching set or None if no set handles obj

        Raises:
            NoResourceSetError:  If more than one set handles obj
        """
        matches = [
            resource_set
            for resource_set in self._resource_sets
            if resource_set.handles(obj)
        ]
        if len(matches) > 1:
            raise NoResourceSetError(
                f"{len(matches)} resource sets handle {obj}, expected at most one"
            )
        return matches[0] if matches else None

    def reconcile(self, obj: ManagedObject):
        """Reconcile obj on the path its deletion state calls for"""
        if obj.is_deleting:
            self.reconcile_delete(obj)
        else:
            self.reconcile_update(obj)

    def reconcile_update(self, obj: ManagedObject):
        """Ensure the finalizer is present, then run ensure_created for every
        resource of the matching set
        """
        resource_set = self._select_or_skip(obj)
        if resource_set is None:
            return
        with self._object_lock(obj):
            self._count(self._metrics and self._metrics.reconcile_total, LOOP_UPDATE)
            current = ensure_finalizer(
                self._finalizer_client,
                obj,
                self.finalizer,
                self._finalizer_backoff_factory(),
            )
            if current is None:
                log.debug("Object %s is gone, skipping update", obj)
                self._drop_object_lock(obj)
                return
            if current.is_deleting:
                log.debug("Object %s is being deleted, skipping update", current)
                return
            ctx = resource_set.init_ctx(self._new_ctx(current, LOOP_UPDATE), current)
            with alog.ContextTimer(log.debug2, "Update of %s took: ", current):
                process_update(ctx, current, resource_set.resources)

    def reconcile_delete(self, obj: ManagedObject):
        """Run ensure_deleted for every resource of the matching set and then
        remove the finalizer. Objects without the finalizer are skipped.

        The object is read again first. A live object without a deletion
        timestamp is left alone. An object that is already gone still has its
        resources deleted, but there is no finalizer left to remove.
        """
        resource_set = self._select_or_skip(obj)
        if resource_set is None:
            return
        if not obj.has_finalizer(self.finalizer):
            log.debug2("Object %s does not carry %s, skipping", obj, self.finalizer)
            self._drop_object_lock(obj)
            return
        with self._object_lock(obj):
            definition = self._finalizer_client.get_object(obj)
            current = ManagedObject(definition) if definition is not None else None
            if current is not None and not current.is_deleting:
                log.debug("Object %s is not being deleted, skipping delete", current)
                return
            if current is not None and not current.has_finalizer(self.finalizer):
                log.debug2("Finalizer already removed from %s, skipping", current)
                self._drop_object_lock(obj)
                return

            target = current or obj
            self._count(self._metrics and self._metrics.reconcile_total, LOOP_DELETE)
            ctx = resource_set.init_ctx(self._new_ctx(target, LOOP_DELETE), target)
            with alog.ContextTimer(log.debug2, "Delete of %s took: ", target):
                process_delete(ctx, target, resource_set.resources)
            if ctx.stopped:
                log.debug("Controller stopped during delete of %s", target)
                return
            if current is None:
                log.debug("Object %s is already gone", obj)
            else:
                if ctx.finalizers_kept:
                    log.debug("Keeping finalizers on %s", target, extra=log_extra(ctx))
                    return
                remove_finalizer(
                    self._finalizer_client,
                    target,
                    self.finalizer,
                    self._finalizer_backoff_factory(),
                )
            # Nothing reconciles this object again once the finalizer is gone
            self._drop_object_lock(obj)

    ## Stream handlers #########################################################

    def _on_update(self, obj: ManagedObject):
        self._guarded(self.reconcile_update, obj, LOOP_UPDATE)

    def _on_delete(self, obj: ManagedObject):
        self._guarded(self.reconcile_delete, obj, LOOP_DELETE)

    def _on_error(self, err: Exception):
        log.warning("Informer error in %s: %s", self.name, err)
        self._count(self._metrics and self._metrics.reconcile_error_total, LOOP_ERROR)

    def _guarded(self, reconcile: Callable[[ManagedObject], None], obj, loop: str):
        try:
            reconcile(obj)
        except Exception as err:  # pylint: disable=broad-exception-caught
            log.error(
                "Failed to reconcile %s on %s loop: %s",
                obj,
                loop,
                err,
                exc_info=True,
                extra={"controller": self.name, "object": obj.key, "loop": loop},
            )
            self._count(self._metrics and self._metrics.reconcile_error_total, loop)

    ## Implementation ##########################################################

    def _select_or_skip(self, obj: ManagedObject) -> Optional[ResourceSet]:
        resource_set = self.select_resource_set(obj)
        if resource_set is None:
            log.debug("No resource set handles %s, skipping", obj)
        return resource_set

    def _new_ctx(self, obj: ManagedObject, loop: str) -> ReconcileContext:
        return ReconcileContext(
            stop_event=self._shutdown,
            meta={"controller": self.name, "object": obj.key, "loop": loop},
        )

    def _object_lock(self, obj: ManagedObject) -> threading.Lock:
        with self._object_locks_lock:
            return self._object_locks.setdefault(obj.key, threading.Lock())

    def _drop_object_lock(self, obj: ManagedObject):
        """Forget the lock of an object that no longer exists"""
        with self._object_locks_lock:
            self._object_locks.pop(obj.key, None)

    def _count(self, counter: Optional[Counter], loop: str):
        if counter is not None:
            counter.labels(self.name, loop).inc()
