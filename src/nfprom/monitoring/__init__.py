"""
Monitoring module.
Prometheus collectors and the HTTP endpoint serving them.
"""

from .collectors import SnapshotCollector, SourceCollector
from .metrics_server import MetricsServer

__all__ = ["MetricsServer", "SnapshotCollector", "SourceCollector"]
