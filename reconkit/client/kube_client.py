"""
Adapters that implement the list/watch and finalizer interfaces on top of an
already configured kubernetes dynamic client
"""

# Standard
from typing import Iterator, List, Optional

# Third Party
from kubernetes import client
from kubernetes.watch import Watch
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import ConflictError as KubeConflictError
from openshift.dynamic.exceptions import NotFoundError, UnprocessibleEntityError
import urllib3

# First Party
import alog

# Local
from ..exceptions import (
    ConflictError,
    InvalidEventError,
    ObjectNotFoundError,
    ResourceVersionExpiredError,
)
from ..informer.base import ListerWatcherBase
from ..informer.event import ObjectList
from ..managed_object import ManagedObject
from .base import FinalizerClientBase

log = alog.use_channel("KUBE")

# Timeouts for a single watch request. The server closes the watch after
# SERVER_WATCH_TIMEOUT and the client gives up on a silent socket after
# CLIENT_WATCH_TIMEOUT.
SERVER_WATCH_TIMEOUT = 3600
CLIENT_WATCH_TIMEOUT = 30

HTTP_GONE = 410

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"


class _KubeCollection:
    """Shared handle on one kind of object, optionally scoped to a namespace"""

    def __init__(
        self,
        dynamic_client: DynamicClient,
        kind: str,
        api_version: str,
        namespace: Optional[str] = None,
    ):
        self.kind = kind
        self.api_version = api_version
        self.namespace = namespace
        self._resource_handle = dynamic_client.resources.get(
            api_version=api_version, kind=kind
        )


class KubeListerWatcher(_KubeCollection, ListerWatcherBase):
    """Lists and watches one kind through the kubernetes dynamic client"""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        dynamic_client: DynamicClient,
        kind: str,
        api_version: str,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
        field_selector: Optional[str] = None,
    ):
        super().__init__(dynamic_client, kind, api_version, namespace)
        self.label_selector = label_selector
        self.field_selector = field_selector
        self._watch = Watch()

    def list(self) -> ObjectList:
        list_obj = self._resource_handle.get(
            namespace=self.namespace,
            label_selector=self.label_selector,
            field_selector=self.field_selector,
        ).to_dict()
        return ObjectList(
            items=list_obj.get("items", []),
            resource_version=list_obj.get("metadata", {}).get("resourceVersion"),
        )

    def watch(self, resource_version: Optional[str]) -> Iterator[dict]:
        try:
            for event_obj in self._watch.stream(
                self._resource_handle.get,
                resource_version=resource_version,
                namespace=self.namespace,
                label_selector=self.label_selector,
                field_selector=self.field_selector,
                serialize=False,
                timeout_seconds=SERVER_WATCH_TIMEOUT,
                _request_timeout=CLIENT_WATCH_TIMEOUT,
            ):
                if event_obj.get("type") == "ERROR":
                    self._raise_error_event(event_obj)
                yield {"type": event_obj.get("type"), "object": event_obj.get("object")}
        except client.exceptions.ApiException as exception:
            if exception.status == HTTP_GONE:
                raise ResourceVersionExpiredError(
                    f"Watch of {self.api_version}/{self.kind} expired at {resource_version}"
                ) from exception
            log.info("Unknown ApiException received, re-raising")
            raise
        except urllib3.exceptions.ReadTimeoutError:
            log.debug4("Watch socket closed for %s/%s", self.api_version, self.kind)
        except urllib3.exceptions.ProtocolError:
            log.debug2("Invalid chunk from server for %s/%s", self.api_version, self.kind)

    def stop(self):
        self._watch.stop()

    def _raise_error_event(self, event_obj: dict):
        status = event_obj.get("raw_object") or event_obj.get("object") or {}
        if status.get("code") == HTTP_GONE:
            raise ResourceVersionExpiredError(status.get("message", "resource expired"))
        raise InvalidEventError(f"Watch error event: {status}")


class KubeFinalizerClient(_KubeCollection, FinalizerClientBase):
    """Reads objects and updates their finalizers with a JSON patch guarded by a
    test on the resourceVersion
    """

    def get_object(self, obj: ManagedObject) -> Optional[dict]:
        try:
            return self._resource_handle.get(
                name=obj.name, namespace=obj.namespace or self.namespace
            ).to_dict()
        except NotFoundError:
            log.debug2("Object %s not found", obj)
            return None

    def update_finalizers(
        self,
        obj: ManagedObject,
        finalizers: List[str],
        resource_version: Optional[str],
    ) -> Optional[dict]:
        patch = [
            {
                "op": "test",
                "path": "/metadata/resourceVersion",
                "value": resource_version,
            },
            {"op": "add", "path": "/metadata/finalizers", "value": list(finalizers)},
        ]
        try:
            result = self._resource_handle.patch(
                body=patch,
                name=obj.name,
                namespace=obj.namespace or self.namespace,
                content_type=JSON_PATCH_CONTENT_TYPE,
            )
        except NotFoundError as err:
            raise ObjectNotFoundError(f"{obj} not found") from err
        except (KubeConflictError, UnprocessibleEntityError) as err:
            log.debug2("Handling conflict on %s: %s", obj, err)
            raise ConflictError(f"{obj} changed since {resource_version}") from err
        return result.to_dict()
