"""
Collaborator interfaces for the cluster operations the controller needs
"""

# Standard
from typing import List, Optional
import abc

# Local
from ..managed_object import ManagedObject


class FinalizerClientBase(abc.ABC):
    """Reads single objects and updates their finalizers with
    compare-and-swap semantics
    """

    @abc.abstractmethod
    def get_object(self, obj: ManagedObject) -> Optional[dict]:
        """Fetch the latest version of obj

        Returns:
            definition:  Optional[dict]
                The current definition or None if the object no longer exists
        """

    @abc.abstractmethod
    def update_finalizers(
        self,
        obj: ManagedObject,
        finalizers: List[str],
        resource_version: Optional[str],
    ) -> Optional[dict]:
        """Replace the finalizers of obj if its resourceVersion still matches

        Returns:
            definition:  Optional[dict]
                The updated definition or None if the update removed the object

        Raises:
            ConflictError:  If the object changed since resource_version
            ObjectNotFoundError:  If the object no longer exists
        """


class SchemaClientBase(abc.ABC):
    """Ensures the schema of the watched collection is established before
    watching it
    """

    @abc.abstractmethod
    def ensure_schema(self):
        """Create the schema if needed and wait for it to be usable. Raise if
        it cannot be established.
        """
