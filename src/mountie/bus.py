"""In-process publish/subscribe bus for monitor signals."""

import itertools
import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class MonitorSignal(Enum):
    """Signals published by the mount monitor."""
    MOUNT = "mount"
    RENAME = "rename"
    UNMOUNT = "unmount"
    ALL = "all"
    CHANGED = "changed"
    REFRESH = "refresh"


class EventBus:
    """
    Thread-safe synchronous publish/subscribe.
    
    Subscribers are called in registration order on the publishing thread.
    A subscriber that raises is logged and does not affect the others.
    """

    def __init__(self):
        self._subscribers: Dict[int, Tuple[MonitorSignal, Callable[[Any], None]]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def subscribe(self, signal: MonitorSignal, callback: Callable[[Any], None]) -> int:
        """
        Register a callback for a signal.
        
        Args:
            signal: Signal to listen for
            callback: Called with the published payload (None for CHANGED/REFRESH)
            
        Returns:
            Token for unsubscribe()
        """
        with self._lock:
            token = next(self._ids)
            self._subscribers[token] = (signal, callback)
            return token

    def unsubscribe(self, token: int) -> bool:
        """
        Remove a subscription.
        
        Returns:
            True if removed, False if the token was unknown
        """
        with self._lock:
            return self._subscribers.pop(token, None) is not None

    def publish(self, signal: MonitorSignal, payload: Optional[Any] = None) -> int:
        """
        Deliver a payload to every subscriber of a signal.
        
        Returns:
            Number of subscribers called
        """
        with self._lock:
            callbacks: List[Callable[[Any], None]] = [
                cb for sig, cb in self._subscribers.values() if sig == signal
            ]
        for callback in callbacks:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Subscriber for {signal.value} failed: {e}", exc_info=True)
        return len(callbacks)

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
