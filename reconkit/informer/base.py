"""
The collaborator interface an informer lists and watches through
"""

# Standard
from typing import Iterator, Optional
import abc

# Local
from .event import ObjectList


class ListerWatcherBase(abc.ABC):
    """Source of the watched collection. Implementations are responsible for
    connecting to the remote API.
    """

    @abc.abstractmethod
    def list(self) -> ObjectList:
        """List every object currently in the collection"""

    @abc.abstractmethod
    def watch(self, resource_version: Optional[str]) -> Iterator[dict]:
        """Stream raw {"type": ..., "object": ...} events that happened after
        resource_version. The iterator ending means the server closed the
        watch.

        Raises:
            ResourceVersionExpiredError:  If the watch cannot resume from
                resource_version
        """

    def stop(self):
        """Interrupt any in-flight watch"""
