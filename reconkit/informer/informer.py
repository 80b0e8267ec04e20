"""
The Informer keeps a local cache of a watched collection and publishes every
relevant change on its update, delete, and error streams
"""

# Standard
from dataclasses import dataclass
from typing import Dict, List, Optional
import threading

# First Party
import alog

# Local
from .. import config, constants
from ..backoff import BackOff, ExponentialBackOff
from ..exceptions import InvalidEventError, ResourceVersionExpiredError, assert_config
from ..managed_object import ManagedObject
from ..threads import ThreadBase
from ..utils import to_seconds
from .base import ListerWatcherBase
from .event import EventType, WatchEvent
from .metrics import InformerMetrics
from .stream import EventStream

log = alog.use_channel("INFMR")


@dataclass
class InformerStreams:
    """The three streams an Informer publishes to"""

    deletes: EventStream
    updates: EventStream
    errors: EventStream

    def close(self):
        self.deletes.close()
        self.updates.close()
        self.errors.close()


class _LoopThread(ThreadBase):
    """Daemon thread running one of the informer loops"""

    def __init__(self, name: str, loop, shutdown: threading.Event):
        super().__init__(name=name, daemon=True, shutdown=shutdown)
        self._loop = loop

    def run(self):
        self._loop()


class Informer:  # pylint: disable=too-many-instance-attributes
    """Lists and watches a collection through a ListerWatcherBase.

    Objects carrying a deletion timestamp are published on the delete stream,
    all other created or modified objects on the update stream. Objects removed
    from the collection are published on the delete stream and dropped from the
    cache. Replayed events for an object at an already seen resourceVersion are
    dropped. Every resync_period the whole collection is re-listed and
    re-published, pausing rate_wait between items.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        lister_watcher: ListerWatcherBase,
        resync_period: Optional[float] = None,
        rate_wait: Optional[float] = None,
        watch_backoff: Optional[BackOff] = None,
        metrics: Optional[InformerMetrics] = None,
        name: str = "informer",
    ):
        """
        Args:
            lister_watcher:  ListerWatcherBase
                The source of the collection
            resync_period:  Optional[float]
                Seconds (or a duration string) between resyncs. Zero disables
                resync. Defaults to informer.resync_period.
            rate_wait:  Optional[float]
                Seconds (or a duration string) between published items during
                a list. Defaults to informer.rate_wait.
            watch_backoff:  Optional[BackOff]
                Policy for reopening a failed watch. Defaults to an exponential
                policy built from informer.watch_backoff.
            metrics:  Optional[InformerMetrics]
                Metric families to record into
            name:  str
                Name used for threads and logs
        """
        assert_config(lister_watcher is not None, "lister_watcher must not be None")
        self.name = name
        self.resync_period = to_seconds(
            resync_period
            if resync_period is not None
            else config.informer.resync_period
        )
        self.rate_wait = to_seconds(
            rate_wait if rate_wait is not None else config.informer.rate_wait
        )
        assert_config(self.resync_period >= 0, "resync_period must not be negative")
        assert_config(self.rate_wait >= 0, "rate_wait must not be negative")
        self._lister_watcher = lister_watcher
        self._watch_backoff = watch_backoff or ExponentialBackOff(
            initial_interval=config.informer.watch_backoff.initial_interval,
            max_interval=config.informer.watch_backoff.max_interval,
            max_elapsed_time=config.informer.watch_backoff.max_elapsed_time,
        )
        self._metrics = metrics

        self._cache: Dict[str, ManagedObject] = {}
        self._cache_lock = threading.Lock()
        # Serializes a list and its cache swap against watch events
        self._sync_lock = threading.Lock()
        self._filled = threading.Event()
        self._shutdown = threading.Event()
        self._streams: Optional[InformerStreams] = None
        self._threads: List[ThreadBase] = []

    ## Public ##################################################################

    def watch(self, stop_event: Optional[threading.Event] = None) -> InformerStreams:
        """Start listing and watching in the background. This blocks until the
        initial list has been taken and the cache seeded, or until the informer
        stops.

        Args:
            stop_event:  Optional[threading.Event]
                Shared shutdown event. Setting it stops the informer at the
                next event boundary.

        Returns:
            streams:  InformerStreams
                The streams every change will be published on
        """
        assert_config(self._streams is None, f"Informer {self.name} already started")
        if stop_event is not None:
            self._shutdown = stop_event
        self._streams = InformerStreams(
            deletes=EventStream(f"{self.name}.deletes"),
            updates=EventStream(f"{self.name}.updates"),
            errors=EventStream(f"{self.name}.errors"),
        )
        self._threads = [
            _LoopThread(f"{self.name}-watch", self._run_watch, self._shutdown)
        ]
        if self.resync_period > 0:
            self._threads.append(
                _LoopThread(f"{self.name}-resync", self._run_resync, self._shutdown)
            )
        for thread in self._threads:
            thread.start_thread()
        while not self._filled.wait(constants.INFORMER_FILL_POLL_INTERVAL):
            if self._shutdown.is_set():
                break
        log.debug2("Informer %s cache filled: %s", self.name, self._filled.is_set())
        return self._streams

    def stop(self, timeout: Optional[float] = None):
        """Stop listing and watching, wait for the loops to finish, and close
        every stream
        """
        log.debug("Stopping informer %s", self.name)
        self._shutdown.set()
        self._lister_watcher.stop()
        for thread in self._threads:
            if thread is not threading.current_thread() and thread.is_alive():
                thread.join(timeout)
        if self._streams is not None:
            self._streams.close()

    @property
    def stopped(self) -> bool:
        return self._shutdown.is_set()

    def get_cached(self, key: str) -> Optional[ManagedObject]:
        with self._cache_lock:
            return self._cache.get(key)

    @property
    def cache_size(self) -> int:
        with self._cache_lock:
            return len(self._cache)

    ## Loops ###################################################################

    def _run_watch(self):
        """List once, then watch from the list's resourceVersion, reopening the
        watch whenever it closes
        """
        resource_version = None
        needs_list = True
        self._watch_backoff.reset()
        try:
            while not self._shutdown.is_set():
                try:
                    if needs_list:
                        resource_version = self._list_and_publish()
                        needs_list = False
                        self._filled.set()
                        if self._shutdown.is_set():
                            break
                    log.debug2("Opening watch at resourceVersion %s", resource_version)
                    for raw_event in self._lister_watcher.watch(resource_version):
                        if self._shutdown.is_set():
                            break
                        with self._sync_lock:
                            resource_version = (
                                self._handle_raw_event(raw_event) or resource_version
                            )
                    if self._shutdown.is_set():
                        break
                    log.debug2("Watch closed, reopening")
                    if self._metrics is not None:
                        self._metrics.watcher_close_total.inc()
                    self._watch_backoff.reset()
                except ResourceVersionExpiredError as err:
                    log.info("Watch cannot resume, re-listing: %s", err)
                    needs_list = True
                except Exception as err:  # pylint: disable=broad-exception-caught
                    log.warning("Error while watching %s: %s", self.name, err)
                    self._streams.errors.put(err)
                    interval = self._watch_backoff.next_back_off()
                    if interval is None:
                        log.error("Giving up watching %s", self.name)
                        break
                    if self._shutdown.wait(interval):
                        break
        finally:
            self._shutdown.set()
            self._filled.set()
            for thread in self._threads:
                if thread is not threading.current_thread():
                    thread.join()
            self._streams.close()
            log.debug("Informer %s watch loop finished", self.name)

    def _run_resync(self):
        """Periodically re-list and re-publish the whole collection"""
        while not self._shutdown.wait(self.resync_period):
            log.debug("Resyncing %s", self.name)
            try:
                self._list_and_publish()
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.warning("Error while resyncing %s: %s", self.name, err)
                self._streams.errors.put(err)

    ## Implementation ##########################################################

    def _list_and_publish(self) -> Optional[str]:
        """List the collection, replace the cache, and publish every object.
        Cached objects missing from the list are published as deleted.

        Cached objects the watch has already seen at a newer resourceVersion
        than the list are kept as they are and never published as deleted.

        Returns:
            resource_version:  Optional[str]
                The resourceVersion of the list
        """
        with self._sync_lock:
            object_list = self._lister_watcher.list()
            list_version = object_list.resource_version
            listed = {}
            for item in object_list.items:
                try:
                    obj = ManagedObject(
                        item.to_dict() if hasattr(item, "to_dict") else item
                    )
                except InvalidEventError as err:
                    self._streams.errors.put(err)
                    continue
                listed[obj.key] = obj

            with self._cache_lock:
                removed = []
                for key, cached in self._cache.items():
                    if key in listed:
                        if _is_newer(
                            cached.resource_version, listed[key].resource_version
                        ):
                            listed[key] = cached
                    elif _is_newer(cached.resource_version, list_version):
                        log.debug2("Keeping %s, newer than the list", cached)
                        listed[key] = cached
                    else:
                        removed.append(cached)
                self._cache = dict(listed)
        objects = list(listed.values())
        self._update_cache_size()

        log.debug2(
            "Listed %d objects (%d removed) at resourceVersion %s",
            len(objects),
            len(removed),
            list_version,
        )
        first = True
        for obj, deleted in [(obj, True) for obj in removed] + [
            (obj, False) for obj in objects
        ]:
            if not first and self._shutdown.wait(self.rate_wait):
                break
            first = False
            if deleted:
                self._streams.deletes.put(obj)
            else:
                self._publish(obj)
        return list_version

    def _handle_raw_event(self, raw_event: dict) -> Optional[str]:
        """Apply a single watch event to the cache and publish it

        Returns:
            resource_version:  Optional[str]
                The resourceVersion of the event's object if it was valid
        """
        try:
            event = WatchEvent.from_raw(raw_event)
        except InvalidEventError as err:
            log.warning("Invalid watch event: %s", err)
            self._count_event(constants.WATCH_KIND_INVALID)
            self._streams.errors.put(err)
            return None

        obj = event.object
        log.debug3("Got %s event for %s", event.type.value, obj)
        if event.type == EventType.DELETED:
            self._count_event(constants.WATCH_KIND_DELETED)
            with self._cache_lock:
                self._cache.pop(obj.key, None)
            self._streams.deletes.put(obj)
        else:
            self._count_event(
                constants.WATCH_KIND_ADDED
                if event.type == EventType.ADDED
                else constants.WATCH_KIND_MODIFIED
            )
            with self._cache_lock:
                cached = self._cache.get(obj.key)
                if (
                    cached is not None
                    and obj.resource_version is not None
                    and cached.resource_version == obj.resource_version
                ):
                    log.debug3("Dropping replayed event for %s", obj)
                    return obj.resource_version
                self._cache[obj.key] = obj
            self._publish(obj)
        self._update_cache_size()
        return obj.resource_version

    def _publish(self, obj: ManagedObject):
        if obj.is_deleting:
            self._streams.deletes.put(obj)
        else:
            self._streams.updates.put(obj)

    def _count_event(self, kind: str):
        if self._metrics is not None:
            self._metrics.watch_event_total.labels(kind).inc()

    def _update_cache_size(self):
        if self._metrics is not None:
            self._metrics.cache_size.set(self.cache_size)


def _is_newer(resource_version: Optional[str], than: Optional[str]) -> bool:
    """resourceVersions are opaque, so only numeric versions are ordered.
    Anything else is never considered newer.
    """
    if not (resource_version and than):
        return False
    if not (resource_version.isdigit() and than.isdigit()):
        return False
    return int(resource_version) > int(than)
