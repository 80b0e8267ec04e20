"""
Module for the ThreadBase Class
"""

# Standard
from typing import Optional
import threading

# First Party
import alog

log = alog.use_channel("THRDS")


class ThreadBase(threading.Thread):
    """Base class for the long-running informer and controller threads. This
    class handles generic starting and stopping. Threads may share a single
    shutdown event so that stopping one owner stops all of its threads.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        daemon: Optional[bool] = None,
        shutdown: Optional[threading.Event] = None,
    ):
        """
        Args:
            name:  Optional[str]
                The name of the thread
            daemon:  Optional[bool]
                Whether python should skip waiting for this thread at exit
            shutdown:  Optional[threading.Event]
                Shared shutdown event. A private one is created if not given.
        """
        self.shutdown = shutdown or threading.Event()
        super().__init__(name=name, daemon=daemon)

    ## Abstract Interface ######################################################

    def run(self):
        """Control loop for the thread. Once this function exits the thread stops"""
        raise NotImplementedError()

    ## Base Class Interface ####################################################

    def start_thread(self):
        """If the thread is not already alive start it"""
        if not self.is_alive():
            log.debug("Starting %s: %s", self.__class__.__name__, self.name)
            self.start()

    def should_stop(self) -> bool:
        """Helper to determine if a thread should shutdown"""
        return self.shutdown.is_set()
