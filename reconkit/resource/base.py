"""
Base interfaces for reconciled resources and resource wrappers
"""

# Standard
from enum import Enum
from typing import Any, Optional
import abc
import copy

# First Party
import alog

# Local
from ..context import ReconcileContext

log = alog.use_channel("RSRC")


class ResourceKind(Enum):
    """The implementation families a Resource can belong to. Decorators decide
    how to wrap a resource based on the kind of its underlying implementation.
    """

    BASIC = "BASIC"
    CRUD = "CRUD"


class Resource(abc.ABC):
    """A Resource converges one aspect of the world toward the state declared
    by a watched object
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Stable identifier used in logs and metric labels"""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.BASIC

    @abc.abstractmethod
    def ensure_created(self, ctx: Optional[ReconcileContext], obj: Any):
        """Converge toward the existence of whatever obj declares"""

    @abc.abstractmethod
    def ensure_deleted(self, ctx: Optional[ReconcileContext], obj: Any):
        """Converge toward the absence of whatever obj declared"""


class Wrapper(abc.ABC):
    """Capability of a resource that decorates another resource. Subclasses
    keep the wrapped resource in the attribute named by WRAPPED_ATTR.
    """

    WRAPPED_ATTR = "_resource"

    def wrapped(self) -> Resource:
        """Get the resource directly inside this one"""
        return getattr(self, self.WRAPPED_ATTR)

    def with_wrapped(self, resource: Resource) -> "Wrapper":
        """Get a shallow copy of this wrapper that wraps a different resource.
        The receiver is left untouched.
        """
        new_wrapper = copy.copy(self)
        setattr(new_wrapper, self.WRAPPED_ATTR, resource)
        return new_wrapper
