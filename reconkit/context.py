"""
The ReconcileContext carries cancellation flags and log metadata through a
single reconciliation of one object
"""

# Standard
from contextlib import contextmanager
from typing import Any, Dict, Optional
import threading
import uuid

# First Party
import alog

log = alog.use_channel("CTX")


class ReconcileContext:
    """Per-reconciliation context. A resource may cancel the remaining
    resources of the reconciliation, cancel its own remaining steps, or ask the
    controller to keep the object's finalizers after a deletion.
    """

    def __init__(
        self,
        stop_event: Optional[threading.Event] = None,
        reconciliation_id: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            stop_event:  Optional[threading.Event]
                Event that is set when the owning component shuts down. Any
                retry wait performed with this context is interrupted by it.
            reconciliation_id:  Optional[str]
                Identifier attached to every log line. A uuid is generated if
                not given.
            meta:  Optional[Dict[str, Any]]
                Initial log metadata
        """
        self.stop_event = stop_event or threading.Event()
        self.reconciliation_id = reconciliation_id or str(uuid.uuid4())
        self.meta = dict(meta or {})
        self.meta.setdefault("reconciliationId", self.reconciliation_id)
        self._reconciliation_canceled = False
        self._resource_canceled = False
        self._finalizers_kept = False

    ## Cancellation ############################################################

    def cancel_reconciliation(self):
        """Skip every remaining resource of this reconciliation"""
        log.debug2("Reconciliation %s canceled", self.reconciliation_id)
        self._reconciliation_canceled = True

    @property
    def reconciliation_canceled(self) -> bool:
        return self._reconciliation_canceled

    def cancel_resource(self):
        """Skip the remaining steps of the resource currently executing"""
        log.debug2(
            "Resource %s canceled in %s",
            self.meta.get("resource"),
            self.reconciliation_id,
        )
        self._resource_canceled = True

    @property
    def resource_canceled(self) -> bool:
        return self._resource_canceled

    def reset_resource(self):
        """Clear the per-resource cancellation before the next resource runs"""
        self._resource_canceled = False

    @property
    def stopped(self) -> bool:
        return self.stop_event.is_set()

    ## Finalizers ##############################################################

    def keep_finalizers(self):
        """Ask the controller not to remove finalizers after this deletion"""
        self._finalizers_kept = True

    @property
    def finalizers_kept(self) -> bool:
        return self._finalizers_kept

    ## Waiting #################################################################

    def wait(self, timeout: float) -> bool:
        """Sleep for timeout seconds unless the context is stopped first

        Returns:
            interrupted:  bool
                True if the stop event was set before the timeout elapsed
        """
        return self.stop_event.wait(timeout)

    ## Logging #################################################################

    @contextmanager
    def log_meta(self, **kwargs):
        """Temporarily add log metadata for the duration of the block"""
        previous = {key: self.meta.get(key) for key in kwargs}
        self.meta.update(kwargs)
        try:
            yield self
        finally:
            for key, val in previous.items():
                if val is None:
                    self.meta.pop(key, None)
                else:
                    self.meta[key] = val


## Helpers #####################################################################


def is_canceled(ctx: Optional[ReconcileContext]) -> bool:
    """Whether work under the given context should stop. A None context is
    never canceled.
    """
    if ctx is None:
        return False
    return ctx.reconciliation_canceled or ctx.resource_canceled or ctx.stopped


def log_extra(ctx: Optional[ReconcileContext], **kwargs) -> Dict[str, Any]:
    """Build the logging extra dict from the context metadata"""
    extra = dict(ctx.meta) if ctx is not None else {}
    extra.update(kwargs)
    return extra
