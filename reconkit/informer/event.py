"""
Helper module to define shared types related to watch events
"""

# Standard
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

# First Party
import alog

# Local
from ..exceptions import InvalidEventError
from ..managed_object import ManagedObject

log = alog.use_channel("EVENT")


class EventType(Enum):
    """Enum for all possible watch event types"""

    DELETED = "DELETED"
    MODIFIED = "MODIFIED"
    ADDED = "ADDED"


@dataclass
class WatchEvent:
    """DataClass containing the type, object, and timestamp of a particular
    event"""

    type: EventType
    object: ManagedObject
    timestamp: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_raw(cls, raw: Any) -> "WatchEvent":
        """Decode a raw {"type": ..., "object": ...} watch event

        Raises:
            InvalidEventError:  If the event type is unknown or the object
                cannot be decoded
        """
        if not isinstance(raw, dict):
            raise InvalidEventError(f"Watch event is not a dict: {type(raw)}")
        raw_type = raw.get("type")
        try:
            event_type = EventType(raw_type)
        except ValueError as err:
            raise InvalidEventError(f"Unknown watch event type: {raw_type}") from err
        obj = raw.get("object")
        if hasattr(obj, "to_dict"):
            obj = obj.to_dict()
        return cls(type=event_type, object=ManagedObject(obj))


@dataclass
class ObjectList:
    """The result of listing the watched collection"""

    items: List[dict]
    resource_version: Optional[str] = None
