"""File-based hand-off of counter snapshots from the poller to the server."""

from .snapshot import Snapshot, SnapshotEntry, SnapshotRelay

__all__ = ["Snapshot", "SnapshotEntry", "SnapshotRelay"]
