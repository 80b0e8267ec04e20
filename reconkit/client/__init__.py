"""
Cluster client interfaces and implementations
"""

# Local
from .base import FinalizerClientBase, SchemaClientBase
from .dry_run_client import DryRunClusterClient
from .kube_client import KubeFinalizerClient, KubeListerWatcher
