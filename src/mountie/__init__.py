"""
Mountie

Detects volume mount, rename and unmount on the host and exposes them as
a live event stream, plus a watcher that detects deletion of any folder
even where the filesystem has no native "folder deleted" notification.

Features:
- Periodic snapshot diffing keyed by volume uuid
- Replay of current mounts to every new event subscriber
- Folder deletion detection across the whole ancestor chain
- Synthesized unmount when a mount folder disappears
"""

from .models import (
    FileSystem,
    FileSystemEvent,
    FileSystemEventType,
    FileSystemSize,
    compute_filesystem_uuid,
    is_directory,
    sort_filesystems,
)

from .config import MonitorConfig

from .exceptions import (
    MountieError,
    MonitorNotRunningError,
    SnapshotError,
    WatchSetupError,
)

from .timer import CancellableTimer
from .bus import EventBus, MonitorSignal
from .differ import diff_snapshots
from .snapshot import SnapshotProvider, BlockDevice, RawFilesystemEntry
from .deletion_watcher import FolderDeletionWatcher, CompletionSignal
from .registry import DeletionWatcherRegistry
from .monitor import MountMonitor, EventSubscription


__all__ = [
    # Models
    "FileSystem",
    "FileSystemEvent",
    "FileSystemEventType",
    "FileSystemSize",
    "compute_filesystem_uuid",
    "is_directory",
    "sort_filesystems",
    # Config
    "MonitorConfig",
    # Exceptions
    "MountieError",
    "MonitorNotRunningError",
    "SnapshotError",
    "WatchSetupError",
    # Components
    "CancellableTimer",
    "EventBus",
    "MonitorSignal",
    "diff_snapshots",
    "SnapshotProvider",
    "BlockDevice",
    "RawFilesystemEntry",
    "FolderDeletionWatcher",
    "CompletionSignal",
    "DeletionWatcherRegistry",
    # Main Monitor
    "MountMonitor",
    "EventSubscription",
]

__version__ = "0.1.0"
