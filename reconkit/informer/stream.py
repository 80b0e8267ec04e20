"""
Unbounded, closable event streams the informer publishes to
"""

# Standard
from typing import Any, Iterator, Optional
import queue
import threading

# First Party
import alog

log = alog.use_channel("STRM")


class EventStream:
    """A multi-producer stream that never blocks producers. Once closed, all
    queued items are still delivered and then every consumer sees the end of
    the stream.
    """

    _END = object()

    def __init__(self, name: str):
        self.name = name
        self._queue = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()

    def put(self, item: Any):
        """Publish an item. Items published after close are dropped."""
        with self._lock:
            if self._closed:
                log.debug2("Dropping item on closed stream %s", self.name)
                return
            self._queue.put(item)

    def close(self):
        """Mark the end of the stream"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(self._END)

    @property
    def closed(self) -> bool:
        return self._closed

    def get(self, timeout: Optional[float] = None) -> Optional[Any]:
        """Get the next item

        Args:
            timeout:  Optional[float]
                Seconds to wait for an item. None waits forever.

        Returns:
            item:  Optional[Any]
                The next item or None if the stream has ended

        Raises:
            queue.Empty:  If no item arrived within timeout
        """
        item = self._queue.get(timeout=timeout)
        if item is self._END:
            # Leave the marker for any other consumer
            self._queue.put(self._END)
            return None
        return item

    def __iter__(self) -> Iterator[Any]:
        while True:
            item = self.get()
            if item is None:
                return
            yield item

    def qsize(self) -> int:
        return self._queue.qsize()
