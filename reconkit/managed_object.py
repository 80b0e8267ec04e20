"""
Helper object to represent an object observed by a controller
"""
# Standard
from typing import List, Optional

# Local
from .constants import OBJECT_KEY_DELIM
from .exceptions import InvalidEventError


class ManagedObject:
    """Read-only view over an observed object dict. Only metadata that the
    reconciliation machinery needs is surfaced as attributes. Everything else is
    available through get().
    """

    def __init__(self, definition: dict):
        if not isinstance(definition, dict):
            raise InvalidEventError(f"Object is not a dict: {type(definition)}")
        self.definition = definition
        self.metadata = definition.get("metadata") or {}
        self.kind = definition.get("kind")
        self.api_version = definition.get("apiVersion")
        self.name = self.metadata.get("name")
        self.namespace = self.metadata.get("namespace")
        self.uid = self.metadata.get("uid")
        self.resource_version = self.metadata.get("resourceVersion")
        if not self.name:
            raise InvalidEventError("No name found in object metadata")

    @property
    def finalizers(self) -> List[str]:
        return list(self.metadata.get("finalizers") or [])

    @property
    def deletion_timestamp(self) -> Optional[str]:
        return self.metadata.get("deletionTimestamp")

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    @property
    def key(self) -> str:
        """Identity of the object within a watched collection"""
        return object_key(self.namespace, self.name)

    def has_finalizer(self, finalizer: str) -> bool:
        return finalizer in self.finalizers

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        return f"{self.api_version}/{self.kind}/{self.key}"

    def __repr__(self):
        return f"ManagedObject({self}@{self.resource_version})"

    def __hash__(self):
        return hash(self.uid or str(self))

    def __eq__(self, other):
        if not isinstance(other, ManagedObject):
            return NotImplemented
        return self.definition == other.definition


def object_key(namespace: Optional[str], name: str) -> str:
    """Build the namespace/name key for an object. Cluster scoped objects are
    keyed by name alone.
    """
    if namespace:
        return f"{namespace}{OBJECT_KEY_DELIM}{name}"
    return name
