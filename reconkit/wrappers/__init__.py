"""
Resource decorators: retry, metrics, and logging
"""

# Local
from . import log_resource, metrics_resource, retry_resource
from .base import CRUDResourceWrapper, new_wrapper
from .metrics_resource import OperationMetrics
