"""
Package exports
"""

# Local
from . import backoff, config, informer, wrappers
from .client import DryRunClusterClient, FinalizerClientBase, SchemaClientBase
from .context import ReconcileContext
from .controller import Controller, ControllerMetrics, process_delete, process_update
from .exceptions import assert_config, assert_execution
from .finalizer import ensure_finalizer, finalizer_name, remove_finalizer
from .informer import Informer, InformerMetrics, ListerWatcherBase
from .managed_object import ManagedObject
from .resource import (
    CRUDResource,
    CRUDResourceOps,
    Patch,
    Resource,
    ResourceKind,
    ResourceSet,
    Wrapper,
    replace_underlying,
    underlying,
)
from .wrappers import OperationMetrics, log_resource, metrics_resource, retry_resource
