"""Backup bundles, restores and automatic snapshots."""

from .engine import BACKUP_VERSION, BackupEngine, RestoreResult, SnapshotInfo, iso_timestamp
from .scheduler import AutoSnapshotter

__all__ = [
    "BACKUP_VERSION",
    "BackupEngine",
    "RestoreResult",
    "SnapshotInfo",
    "iso_timestamp",
    "AutoSnapshotter"
]
