"""Mount monitor: polls mounted filesystems and publishes volume events."""

import logging
import os
import queue
import threading
import time
from typing import Callable, Dict, Iterator, List, Optional, Union

from .bus import EventBus, MonitorSignal
from .config import MonitorConfig
from .deletion_watcher import FolderDeletionWatcher
from .differ import diff_snapshots
from .exceptions import MonitorNotRunningError, SnapshotError
from .models import FileSystem, FileSystemEvent, is_directory, sort_filesystems
from .registry import DeletionWatcherRegistry
from .snapshot import SnapshotProvider
from .timer import CancellableTimer

logger = logging.getLogger(__name__)

_STREAM_END = object()


class EventSubscription:
    """
    One consumer's view of the event stream.
    
    Starts with a mount event for every volume mounted at subscription
    time, followed by live events. Ends when the monitor stops or the
    subscription is closed.
    """

    def __init__(self, monitor: "MountMonitor", replay: List[FileSystemEvent]):
        self._monitor = monitor
        self._queue: "queue.Queue" = queue.Queue()
        self._token: Optional[int] = None
        self._ended = False
        for event in replay:
            self._queue.put(event)

    def _deliver(self, event: FileSystemEvent) -> None:
        self._queue.put(event)

    def _end(self) -> None:
        self._queue.put(_STREAM_END)

    def get(self, timeout: Optional[float] = None) -> Optional[FileSystemEvent]:
        """
        Get the next event.
        
        Args:
            timeout: Seconds to wait, None to block
            
        Returns:
            The next event, or None on timeout or end of stream
        """
        if self._ended:
            return None
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None
        if item is _STREAM_END:
            self._ended = True
            return None
        return item

    @property
    def ended(self) -> bool:
        return self._ended

    def close(self) -> None:
        """Detach from the monitor. The monitor keeps running."""
        self._monitor._unsubscribe(self)
        self._end()

    def __iter__(self) -> Iterator[FileSystemEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class MountMonitor:
    """
    Watches the machine for volume mount, rename and unmount.
    
    A background thread takes a snapshot of mounted filesystems every
    interval and diffs it against the current state. Each mounted volume
    also gets a FolderDeletionWatcher on its mountpoint so that a mount
    folder that disappears is reported without waiting for the next poll.
    """

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        provider: Optional[SnapshotProvider] = None,
        watcher_factory: Callable[..., FolderDeletionWatcher] = FolderDeletionWatcher,
        is_dir: Callable[[str], bool] = is_directory,
    ):
        """
        Initialize the monitor. Nothing runs until start().
        
        Args:
            config: Monitor configuration
            provider: Source of filesystem snapshots
            watcher_factory: Creates the deletion watcher for a mountpoint
            is_dir: Directory existence check used when diffing
        """
        self.config = config or MonitorConfig()
        self._provider = provider or SnapshotProvider(self.config)
        self._watcher_factory = watcher_factory
        self._is_dir = is_dir

        self._bus = EventBus()
        self._registry = DeletionWatcherRegistry()
        self._filesystems: Dict[str, FileSystem] = {}
        self._state_lock = threading.RLock()
        # Serializes handler application and fan-out of every event
        self._emit_lock = threading.RLock()
        self._refresh = threading.Condition(threading.Lock())
        self._generation = 0

        self._run: Optional[object] = None
        self._timer: Optional[CancellableTimer] = None
        self._thread: Optional[threading.Thread] = None
        self._handler_tokens: List[int] = []
        self._subscriptions: Dict[int, EventSubscription] = {}

    @property
    def running(self) -> bool:
        """Check if the monitor is running."""
        return self._run is not None

    @property
    def state(self) -> List[FileSystem]:
        """Currently mounted filesystems as of the latest completed poll."""
        with self._state_lock:
            filesystems = list(self._filesystems.values())
        if self.config.sort:
            return sort_filesystems(filesystems, self.config.platform)
        return filesystems

    @property
    def watchers(self) -> DeletionWatcherRegistry:
        return self._registry

    def __iter__(self) -> Iterator[FileSystem]:
        return iter(self.state)

    def __len__(self) -> int:
        with self._state_lock:
            return len(self._filesystems)

    def filesystem(self, path: Union[str, os.PathLike]) -> Optional[FileSystem]:
        """
        Find the mounted filesystem containing a path.
        
        Args:
            path: Any path
            
        Returns:
            The filesystem with the longest mountpoint prefixing path, or None
        """
        path = os.fspath(path)
        best = None
        for fs in self.state:
            if not fs.mounted or not fs.mountpoint:
                continue
            if path.startswith(fs.mountpoint) and (best is None or len(fs.mountpoint) > len(best.mountpoint)):
                best = fs
        return best

    def is_mounted(self, path: Union[str, os.PathLike]) -> bool:
        """Check if a volume is mounted exactly at path."""
        path = os.fspath(path)
        return any(fs.mountpoint == path for fs in self.state)

    def start(self) -> None:
        """
        Start polling and block until the first poll has completed.
        
        Does nothing if already running.
        """
        with self._refresh:
            if self._run is not None:
                logger.debug("Mount monitor is already running")
                return
            run = object()
            timer = CancellableTimer()
            self._run = run
            self._timer = timer
            generation = self._generation

        with self._state_lock:
            self._filesystems = {}
        self._registry.stop_all(timeout=self.config.stop_timeout_s)
        self._handler_tokens = [
            self._bus.subscribe(MonitorSignal.MOUNT, self._on_mount),
            self._bus.subscribe(MonitorSignal.RENAME, self._on_rename),
            self._bus.subscribe(MonitorSignal.UNMOUNT, self._on_unmount),
        ]

        self._thread = threading.Thread(
            target=self._monitor_loop,
            args=(run, timer),
            name="MountMonitor",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Mount monitor started, interval={self.config.interval_s}s")

        self._wait_for_refresh(generation, None)

    def stop(self) -> None:
        """
        Stop polling and release every deletion watcher.
        
        Idempotent. The last published state is kept. Blocked
        next_refresh() callers raise and event iterations end.
        """
        with self._refresh:
            if self._run is None:
                return
            self._run = None
            timer = self._timer
            self._timer = None
            self._refresh.notify_all()

        for token in self._handler_tokens:
            self._bus.unsubscribe(token)
        self._handler_tokens = []
        if timer is not None:
            timer.cancel()

        with self._emit_lock:
            subscriptions = list(self._subscriptions.items())
            self._subscriptions.clear()
        for token, subscription in subscriptions:
            self._bus.unsubscribe(token)
            subscription._end()

        self._registry.stop_all(timeout=self.config.stop_timeout_s)

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.stop_timeout_s)
        self._thread = None
        logger.info("Mount monitor stopped")

    def next_refresh(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the next poll cycle completes.
        
        Args:
            timeout: Seconds to wait, None to wait indefinitely
            
        Returns:
            True when a refresh happened, False on timeout
            
        Raises:
            MonitorNotRunningError: If the monitor is or becomes stopped
        """
        with self._refresh:
            if self._run is None:
                raise MonitorNotRunningError("Mount monitor is not running")
            generation = self._generation
        return self._wait_for_refresh(generation, timeout)

    def wait_for_setup(self, timeout: Optional[float] = None) -> bool:
        """
        Block until at least one filesystem is mounted.
        
        Args:
            timeout: Seconds to wait, None to wait indefinitely
            
        Returns:
            True once state is non-empty, False on timeout
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while len(self) == 0:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
            self.next_refresh(remaining)
        return True

    def _wait_for_refresh(self, generation: int, timeout: Optional[float]) -> bool:
        with self._refresh:
            self._refresh.wait_for(
                lambda: self._generation != generation or self._run is None,
                timeout=timeout,
            )
            if self._generation != generation:
                return True
            if self._run is None:
                raise MonitorNotRunningError("Mount monitor stopped while waiting for refresh")
            return False

    def subscribe(self) -> EventSubscription:
        """
        Open a subscription to the event stream, starting the monitor if needed.
        
        Returns:
            Subscription replaying current mounts, then live events
        """
        if not self.running:
            self.start()
        with self._emit_lock:
            replay = [FileSystemEvent.mount(fs) for fs in self.state]
            subscription = EventSubscription(self, replay)
            if self.running:
                token = self._bus.subscribe(MonitorSignal.ALL, subscription._deliver)
                subscription._token = token
                self._subscriptions[token] = subscription
            else:
                subscription._end()
        return subscription

    def _unsubscribe(self, subscription: EventSubscription) -> None:
        with self._emit_lock:
            token = subscription._token
            if token is None:
                return
            self._subscriptions.pop(token, None)
            self._bus.unsubscribe(token)
            subscription._token = None

    def iter_events(self) -> Iterator[FileSystemEvent]:
        """
        Iterate over volume events, blocking between them.
        
        Starts the monitor if needed. Yields a mount event for every
        currently mounted volume first, then live events until the monitor
        stops. Closing the iterator detaches only this consumer.
        
        Yields:
            FileSystemEvent objects
        """
        subscription = self.subscribe()
        try:
            yield from subscription
        finally:
            subscription.close()

    def add_listener(self, signal: MonitorSignal, callback: Callable) -> int:
        """
        Register a callback for a monitor signal.
        
        Event signals pass the FileSystemEvent; CHANGED and REFRESH pass None.
        Callbacks run on the monitor's threads and must not block.
        
        Returns:
            Token for remove_listener()
        """
        return self._bus.subscribe(signal, callback)

    def remove_listener(self, token: int) -> bool:
        return self._bus.unsubscribe(token)

    def _monitor_loop(self, run: object, timer: CancellableTimer) -> None:
        """Worker loop that polls snapshots until the run is stopped."""
        logger.debug("Mount monitor loop started")
        interval = self.config.interval_s

        while self._run is run:
            started = time.monotonic()
            try:
                new_state = self._provider.get_snapshot()
            except SnapshotError as e:
                logger.warning(f"Skipping poll cycle: {e}")
                new_state = None
            except Exception as e:
                logger.error(f"Snapshot retrieval failed: {e}", exc_info=True)
                new_state = None

            if self._run is run:
                if new_state is not None:
                    events = diff_snapshots(self.state, new_state, self._is_dir)
                    if events:
                        logger.debug(f"Poll produced {len(events)} event(s)")
                    for event in events:
                        self._emit(event, run)
                self._bus.publish(MonitorSignal.CHANGED)
                self._signal_refresh(run)

            elapsed = time.monotonic() - started
            if self._run is run:
                timer.sleep(max(interval / 2, interval - elapsed))

        logger.debug("Mount monitor loop exited")

    def _signal_refresh(self, run: object) -> None:
        with self._refresh:
            if self._run is not run:
                return
            self._generation += 1
            self._refresh.notify_all()
        self._bus.publish(MonitorSignal.REFRESH)

    def _emit(self, event: FileSystemEvent, run: Optional[object] = None) -> bool:
        """Apply an event's handler, then fan it out to subscribers."""
        with self._emit_lock:
            if self._run is None or (run is not None and self._run is not run):
                return False
            self._bus.publish(MonitorSignal(event.event_type.value), event)
            self._bus.publish(MonitorSignal.ALL, event)
            return True

    def _on_folder_deleted(self, path: str) -> None:
        """Synthesize an unmount when a mount folder disappears."""
        with self._emit_lock:
            with self._state_lock:
                filesystem = self._filesystems.get(path)
            if filesystem is None:
                return
            emitted = self._emit(FileSystemEvent.unmount(filesystem))
        if emitted:
            self._bus.publish(MonitorSignal.CHANGED)

    def _on_mount(self, event: FileSystemEvent) -> None:
        filesystem = event.filesystem
        path = filesystem.mountpoint
        if not path:
            return
        with self._state_lock:
            self._filesystems[path] = filesystem
        watcher = self._watcher_factory(path, lambda: self._on_folder_deleted(path))
        self._registry.register(path, watcher)
        logger.info(f"Mounted {filesystem.label or filesystem.device} at {path}")

    def _on_rename(self, event: FileSystemEvent) -> None:
        old_filesystem = event.old_filesystem
        if old_filesystem is not None and old_filesystem.mounted:
            self._on_unmount(FileSystemEvent.unmount(old_filesystem))
        if event.filesystem.mounted:
            self._on_mount(FileSystemEvent.mount(event.filesystem))
        logger.info(f"Renamed {old_filesystem.label!r} to {event.filesystem.label!r}")

    def _on_unmount(self, event: FileSystemEvent) -> None:
        filesystem = event.filesystem
        path = filesystem.mountpoint
        if not path:
            return
        with self._state_lock:
            current = self._filesystems.get(path)
            # Another volume may already have been mounted at the same folder
            if current is None or current.uuid != filesystem.uuid:
                logger.debug(f"Unmount of {filesystem.uuid} leaves {path} to its current volume")
                return
            del self._filesystems[path]
            self._registry.unregister(path)
        logger.info(f"Unmounted {filesystem.label or filesystem.device} from {path}")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
