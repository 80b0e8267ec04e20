"""
Prometheus metrics describing the informer cache and watch
"""

# Standard
from typing import Optional

# Third Party
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge

# Local
from .. import config


class InformerMetrics:
    """Metric families recorded by an Informer"""

    def __init__(
        self,
        registry: Optional[CollectorRegistry] = REGISTRY,
        namespace: Optional[str] = None,
        subsystem: Optional[str] = None,
    ):
        namespace = namespace if namespace is not None else config.metrics.namespace
        subsystem = (
            subsystem if subsystem is not None else config.metrics.informer_subsystem
        )
        self.cache_size = Gauge(
            "cache_size",
            "Number of objects held in the informer cache",
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.watch_event_total = Counter(
            "watch_event",
            "Number of watch events received",
            ["kind"],
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.watcher_close_total = Counter(
            "watcher_close",
            "Number of times the watch was closed by the server",
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
