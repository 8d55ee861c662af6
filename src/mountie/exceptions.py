"""Custom exceptions for the mountie package."""


class MountieError(Exception):
    """Base exception for all mountie errors."""
    pass


class MonitorNotRunningError(MountieError):
    """Mount monitor is not running."""
    pass


class SnapshotError(MountieError):
    """Mounted filesystems could not be enumerated."""
    pass


class WatchSetupError(MountieError):
    """A native directory watch could not be created."""
    pass
