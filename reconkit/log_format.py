"""
Custom logging formats that carry reconciliation fields in json logs
"""

# Standard
from typing import Optional

# First Party
from alog import AlogJsonFormatter
import alog

log = alog.use_channel("LOGFT")


class ReconkitJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter to add the identifiers
    of the object and resource being reconciled, the reconciliationId, and
    thread information
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "controller",
        "resource",
        "operation",
        "object",
        "loop",
        "reconciliationId",
    ]

    def __init__(self, controller: Optional[str] = None):
        super().__init__()
        self.controller = controller

    def format(self, record):
        if self.controller and not getattr(record, "controller", None):
            record.controller = self.controller
        return super().format(record)
