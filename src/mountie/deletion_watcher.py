"""Detects deletion of a folder by watching every ancestor directory."""

import errno
import logging
import os
import threading
from typing import Callable, List, Optional, Tuple, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .exceptions import WatchSetupError
from .models import is_directory

logger = logging.getLogger(__name__)


def ancestor_chain(path: str) -> List[Tuple[str, str]]:
    """
    List (parent directory, child name) pairs from a path up to the root.
    
    Args:
        path: Absolute path
        
    Returns:
        Pairs ordered bottom-up, e.g. /a/b -> [("/a", "b"), ("/", "a")]
    """
    chain = []
    current = os.path.normpath(path)
    while True:
        parent = os.path.dirname(current)
        if parent == current:
            break
        chain.append((parent, os.path.basename(current)))
        current = parent
    return chain


class CompletionSignal:
    """One-shot flag shared by every level of a watcher chain."""

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()

    def resolve(self) -> bool:
        """
        Settle the signal.
        
        Returns:
            True for the first caller only
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    @property
    def resolved(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout=timeout)


class AncestorHandler(FileSystemEventHandler):
    """Resolves the shared signal when its child entry is moved or deleted."""

    def __init__(
        self,
        directory: str,
        name: str,
        signal: CompletionSignal,
        on_resolved: Callable[[], None],
    ):
        super().__init__()
        self.directory = directory
        self.name = name
        self.child_path = os.path.join(directory, name)
        self._signal = signal
        self._on_resolved = on_resolved

    def _check(self, src_path) -> None:
        if isinstance(src_path, bytes):
            src_path = os.fsdecode(src_path)
        if os.path.normpath(src_path) != self.child_path:
            return
        if self._signal.resolve():
            logger.debug(f"Watched entry removed: {self.child_path}")
            self._on_resolved()

    def on_moved(self, event):
        self._check(event.src_path)

    def on_deleted(self, event):
        self._check(event.src_path)


class FolderDeletionWatcher:
    """
    Calls back once when a folder, or any folder above it, is removed or renamed.
    
    Every ancestor directory gets its own native watch, because deleting a
    grandparent does not surface as an event on the parent's watch. The
    first level to see its entry go resolves a shared signal; the watcher
    then stops and invokes the callback on a short-lived thread so the
    observer's dispatch thread is never blocked by the callback.

    Each watched level costs one inotify instance on Linux, so many deep
    mount folders can exhaust fs.inotify.max_user_instances (128 by
    default). Levels that cannot be watched are logged and skipped.
    """

    def __init__(
        self,
        path: Union[str, os.PathLike],
        callback: Callable[[], None],
        observer_factory: Callable[[], object] = Observer,
    ):
        """
        Initialize and start the watcher.
        
        Args:
            path: Folder to watch
            callback: Called with no arguments when the folder goes away
            observer_factory: Creates the watchdog observer for the chain
        """
        self.path = os.path.abspath(os.fspath(path))
        self.callback = callback
        self._observer_factory = observer_factory
        self._observer = None
        self._last_observer = None
        self._signal: Optional[CompletionSignal] = None
        self._handlers: List[AncestorHandler] = []
        self._fired = False
        self._lock = threading.Lock()
        self.start()

    @classmethod
    def watch(cls, path: Union[str, os.PathLike], callback: Callable[[], None]) -> "FolderDeletionWatcher":
        return cls(path, callback)

    def start(self) -> bool:
        """
        Attach watches to the folder's ancestor chain.
        
        Returns:
            True if watching started, False if already active or the
            folder is not an existing directory
        """
        if not is_directory(self.path):
            logger.debug(f"Not watching missing folder: {self.path}")
            self.stop()
            return False

        with self._lock:
            if self._observer is not None:
                return False
            signal = CompletionSignal()
            observer = self._observer_factory()
            self._observer = observer
            self._last_observer = observer
            self._signal = signal
            self._handlers = []
        # Observer must be running so schedule() attaches synchronously
        observer.start()

        for directory, name in ancestor_chain(self.path):
            handler = AncestorHandler(directory, name, signal, lambda: self._resolved(signal))
            try:
                self._attach(observer, handler)
            except WatchSetupError as e:
                logger.warning(f"{e}; relying on higher levels for {self.path}")
                continue
            with self._lock:
                if self._observer is not observer:
                    break
                self._handlers.append(handler)
            logger.debug(f"Watching {directory} for {name}")
        return True

    def _attach(self, observer, handler: AncestorHandler) -> None:
        try:
            observer.schedule(handler, handler.directory, recursive=False)
        except OSError as e:
            if e.errno in (errno.EMFILE, errno.ENOSPC):
                raise WatchSetupError(
                    f"Cannot watch {handler.directory}: inotify limit reached "
                    f"(raise fs.inotify.max_user_instances or max_user_watches)"
                ) from e
            raise WatchSetupError(f"Cannot watch {handler.directory}: {e}") from e

    def _resolved(self, signal: CompletionSignal) -> None:
        thread = threading.Thread(
            target=self._fire,
            args=(signal,),
            name=f"FolderDeleted:{self.path}",
            daemon=True,
        )
        thread.start()

    def _fire(self, signal: CompletionSignal) -> None:
        with self._lock:
            if self._fired or self._signal is not signal:
                return
            self._fired = True
        logger.info(f"Folder deleted: {self.path}")
        self.stop()
        try:
            self.callback()
        except Exception as e:
            logger.error(f"Deletion callback for {self.path} failed: {e}", exc_info=True)

    def stop(self) -> None:
        """
        Release every native watch in the chain.
        
        Idempotent; does not invoke the callback.
        """
        with self._lock:
            observer = self._observer
            signal = self._signal
            self._observer = None
            self._signal = None
            self._handlers = []
        if signal is not None:
            # Late notifications must not fire after a stop
            signal.resolve()
        if observer is not None:
            observer.stop()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for a stopped watcher's observer thread to exit."""
        observer = self._last_observer
        if observer is not None and observer is not threading.current_thread():
            observer.join(timeout=timeout)

    @property
    def active(self) -> bool:
        with self._lock:
            return self._observer is not None

    @property
    def fired(self) -> bool:
        with self._lock:
            return self._fired

    @property
    def watched_directories(self) -> List[str]:
        """Directories currently holding a native watch, bottom-up."""
        with self._lock:
            return [h.directory for h in self._handlers]

    @property
    def handlers(self) -> List[AncestorHandler]:
        with self._lock:
            return list(self._handlers)
