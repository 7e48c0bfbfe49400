"""Output adapters - snapshot file, health monitoring."""

from .snapshot_writer import SnapshotWriter, SnapshotReader
from .health_server import HealthServer

__all__ = ['SnapshotWriter', 'SnapshotReader', 'HealthServer']
