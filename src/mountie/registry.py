"""Thread-safe ownership of the folder deletion watchers of mounted volumes."""

import logging
import threading
from typing import Dict, List, Optional

from .deletion_watcher import FolderDeletionWatcher

logger = logging.getLogger(__name__)


class DeletionWatcherRegistry:
    """
    Maps mountpoint paths to their active deletion watcher.
    
    A path has at most one watcher; the registry stops a watcher before
    dropping it.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._watchers: Dict[str, FolderDeletionWatcher] = {}
        self._lock = threading.RLock()

    def register(self, path: str, watcher: FolderDeletionWatcher) -> bool:
        """
        Register the watcher for a path.
        
        A watcher already registered for the path means its unmount was
        missed; it is stopped and replaced.
        
        Args:
            path: Watched mountpoint
            watcher: Watcher for that mountpoint
            
        Returns:
            True if the path was new, False if a stale watcher was replaced
        """
        with self._lock:
            stale = self._watchers.get(path)
            self._watchers[path] = watcher
        if stale is not None and stale is not watcher:
            logger.warning(f"Replacing stale deletion watcher for {path}")
            stale.stop()
            return False
        return stale is None

    def unregister(self, path: str) -> bool:
        """
        Stop and remove the watcher for a path.
        
        Returns:
            True if a watcher was removed, False if none was registered
        """
        with self._lock:
            watcher = self._watchers.pop(path, None)
        if watcher is None:
            return False
        watcher.stop()
        return True

    def get(self, path: str) -> Optional[FolderDeletionWatcher]:
        with self._lock:
            return self._watchers.get(path)

    def paths(self) -> List[str]:
        """
        Get the watched paths.
        
        Returns:
            List of registered mountpoints
        """
        with self._lock:
            return list(self._watchers.keys())

    def stop_all(self, timeout: Optional[float] = None) -> int:
        """
        Stop and remove every watcher.
        
        Args:
            timeout: Per-watcher wait for its observer thread to exit
            
        Returns:
            Number of watchers stopped
        """
        with self._lock:
            watchers = list(self._watchers.values())
            self._watchers.clear()
        for watcher in watchers:
            watcher.stop()
        for watcher in watchers:
            watcher.join(timeout=timeout)
        return len(watchers)

    def __len__(self) -> int:
        """Return the number of registered watchers."""
        with self._lock:
            return len(self._watchers)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._watchers
