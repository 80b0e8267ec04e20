"""
List/watch informer and its collaborator interface
"""

# Local
from .base import ListerWatcherBase
from .event import EventType, ObjectList, WatchEvent
from .informer import Informer, InformerStreams
from .metrics import InformerMetrics
from .stream import EventStream
