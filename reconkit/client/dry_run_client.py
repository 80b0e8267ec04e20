"""
The DryRunClusterClient holds a single watched collection in memory. It
implements the list/watch and finalizer interfaces so that controllers can be
exercised without a cluster.
"""

# Standard
from datetime import datetime, timezone
from queue import Empty, Queue
from threading import Event, RLock
from typing import Dict, Iterator, List, Optional, Tuple
import copy

# First Party
import alog

# Local
from ..exceptions import ConflictError, ObjectNotFoundError, ResourceVersionExpiredError
from ..informer.base import ListerWatcherBase
from ..informer.event import EventType, ObjectList
from ..managed_object import ManagedObject, object_key
from .base import FinalizerClientBase

log = alog.use_channel("DRY-RUN")


class DryRunClusterClient(ListerWatcherBase, FinalizerClientBase):
    """In-memory collection with resourceVersion tracking. Deleting an object
    that still has finalizers only sets its deletionTimestamp. The object is
    removed once its last finalizer is removed.
    """

    def __init__(
        self,
        objects: Optional[List[dict]] = None,
        watch_timeout: Optional[float] = None,
        poll_interval: float = 0.05,
    ):
        """
        Args:
            objects:  Optional[List[dict]]
                Objects present before any watch starts
            watch_timeout:  Optional[float]
                If set, each watch ends after this many seconds to simulate a
                server-side close
            poll_interval:  float
                How often an idle watch checks for stop
        """
        self.watch_timeout = watch_timeout
        self.poll_interval = poll_interval
        self._lock = RLock()
        self._objects: Dict[str, dict] = {}
        self._resource_version = 0
        self._history: List[Tuple[int, EventType, dict]] = []
        self._oldest_retained = 0
        self._watchers: List[Queue] = []
        self._stop = Event()
        self._pending_conflicts = 0
        self._pending_watch_errors: List[Exception] = []
        self.list_calls = 0
        self.watch_calls = 0
        for obj in objects or []:
            self.apply(obj)

    ## ListerWatcherBase #######################################################

    def list(self) -> ObjectList:
        with self._lock:
            self.list_calls += 1
            log.debug2("DRY RUN list at %d", self._resource_version)
            return ObjectList(
                items=[copy.deepcopy(obj) for obj in self._objects.values()],
                resource_version=str(self._resource_version),
            )

    def watch(self, resource_version: Optional[str]) -> Iterator[dict]:
        with self._lock:
            self.watch_calls += 1
            if self._pending_watch_errors:
                raise self._pending_watch_errors.pop(0)
            since = int(resource_version or 0)
            if since < self._oldest_retained:
                raise ResourceVersionExpiredError(
                    f"resourceVersion {since} is older than {self._oldest_retained}"
                )
            event_queue = Queue()
            for version, event_type, obj in self._history:
                if version > since:
                    event_queue.put((event_type, obj))
            self._watchers.append(event_queue)
        log.debug2("DRY RUN watch from %s", resource_version)
        return self._watch_events(event_queue)

    def stop(self):
        log.debug("DRY RUN stopping watches")
        self._stop.set()

    ## FinalizerClientBase #####################################################

    def get_object(self, obj: ManagedObject) -> Optional[dict]:
        with self._lock:
            current = self._objects.get(obj.key)
            return copy.deepcopy(current) if current is not None else None

    def update_finalizers(
        self,
        obj: ManagedObject,
        finalizers: List[str],
        resource_version: Optional[str],
    ) -> Optional[dict]:
        with self._lock:
            current = self._objects.get(obj.key)
            if current is None:
                raise ObjectNotFoundError(f"{obj.key} not found")
            if self._pending_conflicts > 0:
                self._pending_conflicts -= 1
                raise ConflictError(f"Injected conflict for {obj.key}")
            if current["metadata"].get("resourceVersion") != resource_version:
                raise ConflictError(
                    f"{obj.key} is at {current['metadata'].get('resourceVersion')}, "
                    f"not {resource_version}"
                )
            updated = copy.deepcopy(current)
            updated["metadata"]["finalizers"] = list(finalizers)
            if not finalizers and updated["metadata"].get("deletionTimestamp"):
                self._remove(updated)
                return None
            return self._store(updated, EventType.MODIFIED)

    ## Dry Run Methods #########################################################

    def apply(self, definition: dict) -> dict:
        """Create or replace an object"""
        obj = ManagedObject(definition)
        with self._lock:
            event_type = (
                EventType.MODIFIED if obj.key in self._objects else EventType.ADDED
            )
            log.debug("DRY RUN apply %s (%s)", obj.key, event_type.value)
            return self._store(copy.deepcopy(definition), event_type)

    def delete(self, name: str, namespace: Optional[str] = None) -> bool:
        """Delete an object, honoring its finalizers

        Returns:
            found:  bool
                Whether the object existed
        """
        key = object_key(namespace, name)
        with self._lock:
            current = self._objects.get(key)
            if current is None:
                return False
            if current["metadata"].get("finalizers"):
                if not current["metadata"].get("deletionTimestamp"):
                    log.debug("DRY RUN marking %s for deletion", key)
                    updated = copy.deepcopy(current)
                    updated["metadata"]["deletionTimestamp"] = datetime.now(
                        timezone.utc
                    ).strftime("%Y-%m-%dT%H:%M:%SZ")
                    self._store(updated, EventType.MODIFIED)
            else:
                self._remove(current)
            return True

    def get(self, name: str, namespace: Optional[str] = None) -> Optional[dict]:
        with self._lock:
            current = self._objects.get(object_key(namespace, name))
            return copy.deepcopy(current) if current is not None else None

    def compact(self):
        """Drop the event history so that resuming any older watch fails"""
        with self._lock:
            self._history = []
            self._oldest_retained = self._resource_version

    def inject_conflicts(self, count: int):
        """Make the next count finalizer updates fail with a conflict"""
        with self._lock:
            self._pending_conflicts = count

    def inject_watch_error(self, error: Exception):
        """Make the next watch call raise error"""
        with self._lock:
            self._pending_watch_errors.append(error)

    ## Implementation Details ##################################################

    def _store(self, definition: dict, event_type: EventType) -> dict:
        self._resource_version += 1
        definition.setdefault("metadata", {})["resourceVersion"] = str(
            self._resource_version
        )
        key = ManagedObject(definition).key
        self._objects[key] = definition
        self._notify(event_type, definition)
        return copy.deepcopy(definition)

    def _remove(self, definition: dict):
        log.debug("DRY RUN removing %s", ManagedObject(definition).key)
        self._objects.pop(ManagedObject(definition).key, None)
        self._resource_version += 1
        removed = copy.deepcopy(definition)
        removed["metadata"]["resourceVersion"] = str(self._resource_version)
        self._notify(EventType.DELETED, removed)

    def _notify(self, event_type: EventType, definition: dict):
        snapshot = copy.deepcopy(definition)
        self._history.append((self._resource_version, event_type, snapshot))
        for event_queue in self._watchers:
            event_queue.put((event_type, snapshot))

    def _watch_events(self, event_queue: Queue) -> Iterator[dict]:
        started = datetime.now()
        try:
            while not self._stop.is_set():
                if (
                    self.watch_timeout is not None
                    and (datetime.now() - started).total_seconds() > self.watch_timeout
                ):
                    log.debug2("DRY RUN watch timed out")
                    return
                try:
                    event_type, obj = event_queue.get(timeout=self.poll_interval)
                except Empty:
                    continue
                yield {"type": event_type.value, "object": copy.deepcopy(obj)}
        finally:
            with self._lock:
                if event_queue in self._watchers:
                    self._watchers.remove(event_queue)
